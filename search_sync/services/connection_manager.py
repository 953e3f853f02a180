"""
Redis connection manager for the Search Sync service.

This module owns the single long-lived connection to the Redis stream store.
It runs a connect / retry / disable state machine on a background task and
exposes an availability signal to the event publisher:

    disconnected -> connecting -> connected
                        |  ^          |
                        |  +----------+  (transport error)
                        v
                     disabled          (retry cap exceeded, terminal)
"""

import asyncio
import enum
import functools
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import structlog
from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from search_sync.core.config import mask_url
from search_sync.utils.metrics import REDIS_CONNECT_ATTEMPTS, record_connection_state

logger = structlog.get_logger(__name__)

TLS_SCHEME = "rediss://"

# Errors that mean the connection itself is gone
TRANSPORT_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError, asyncio.TimeoutError)


class ConnectionState(str, enum.Enum):
    """State of the Redis connection."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISABLED = "disabled"


def backoff_delay(attempt: int, step_ms: int = 200, cap_ms: int = 2000) -> float:
    """
    Delay before retrying after a failed connection attempt.

    Args:
        attempt: 1-based number of the attempt that just failed
        step_ms: Linear step in milliseconds
        cap_ms: Upper bound in milliseconds

    Returns:
        Delay in seconds, ``min(attempt * step_ms, cap_ms) / 1000``
    """
    return min(attempt * step_ms, cap_ms) / 1000.0


def create_redis_client(
        url: str,
        tls_verify: bool = True,
        connect_timeout: float = 5.0,
) -> Redis:
    """
    Build a Redis client for the given URL.

    A ``rediss://`` URL enables TLS. Client-side retries are turned off so the
    connection manager's state machine is the only reconnect policy.

    Args:
        url: Redis connection URL
        tls_verify: Verify the server certificate and hostname for TLS URLs
        connect_timeout: Socket connect and command timeout in seconds

    Returns:
        Unconnected asyncio Redis client
    """
    options: Dict[str, Any] = {
        "decode_responses": True,
        "socket_connect_timeout": connect_timeout,
        "socket_timeout": connect_timeout,
        "retry": Retry(NoBackoff(), 0),
    }
    if url.startswith(TLS_SCHEME):
        options["ssl_cert_reqs"] = "required" if tls_verify else "none"
        options["ssl_check_hostname"] = tls_verify

    return Redis.from_url(url, **options)


class ConnectionManager:
    """
    Owns the Redis connection and its reconnect state machine.

    The manager is the only component that changes connection state. Callers
    read ``is_available()`` and append through ``xadd()``; a transport error
    raised by an append moves the manager back to ``disconnected`` and the
    background task reconnects under the same backoff policy.
    """

    def __init__(
            self,
            url: str,
            max_retries: int = 5,
            backoff_step_ms: int = 200,
            backoff_cap_ms: int = 2000,
            health_check_interval: float = 5.0,
            tls_verify: bool = True,
            connect_timeout: float = 5.0,
            client_factory: Optional[Callable[[], Redis]] = None,
            sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the connection manager without connecting.

        Args:
            url: Redis connection URL
            max_retries: Failed attempts tolerated before the manager disables itself
            backoff_step_ms: Linear backoff step in milliseconds
            backoff_cap_ms: Backoff upper bound in milliseconds
            health_check_interval: Seconds between PINGs while connected
            tls_verify: Verify certificates for ``rediss://`` URLs
            connect_timeout: Socket connect timeout in seconds
            client_factory: Builds a fresh client for each attempt
            sleep: Coroutine used to wait between attempts
        """
        self.url = url
        self.max_retries = max_retries
        self.backoff_step_ms = backoff_step_ms
        self.backoff_cap_ms = backoff_cap_ms
        self.health_check_interval = health_check_interval
        self.tls = url.startswith(TLS_SCHEME)
        self.tls_verify = tls_verify

        self._client_factory = client_factory or functools.partial(
            create_redis_client, url, tls_verify=tls_verify, connect_timeout=connect_timeout
        )
        self._sleep = sleep

        self._client: Optional[Redis] = None
        self._state = ConnectionState.DISCONNECTED
        self._attempts = 0
        self._failure_reported = False
        self._last_error: Optional[str] = None
        self._connected_since: Optional[datetime] = None
        self._lost: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

        record_connection_state(self._state.value, [s.value for s in ConnectionState])

        if self.tls and not tls_verify:
            logger.warning(
                "Redis TLS certificate verification is disabled",
                endpoint=mask_url(url),
            )

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def attempts(self) -> int:
        """Consecutive failed attempts since the last successful connection."""
        return self._attempts

    def is_available(self) -> bool:
        """Whether entries can be appended right now."""
        return self._state is ConnectionState.CONNECTED

    async def start(self) -> None:
        """Start the background connection task and return immediately."""
        if self._task is not None and not self._task.done():
            return
        if self._state is ConnectionState.DISABLED:
            return

        self._task = asyncio.create_task(self._run(), name="search-sync-redis")
        logger.info("Redis connection manager started", endpoint=mask_url(self.url))

    async def stop(self) -> None:
        """Cancel the background task and close the connection."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await self._close_client()

        if self._state is not ConnectionState.DISABLED:
            self._set_state(ConnectionState.DISCONNECTED)

        logger.info("Redis connection manager stopped")

    async def connect(self) -> bool:
        """
        Run one connection series until connected or disabled.

        Each failed attempt ``n`` waits ``min(n * step, cap)`` before the next
        one; the attempt after ``max_retries`` failures disables the manager.

        Returns:
            True once connected, False if the manager is disabled
        """
        if self._state is ConnectionState.DISABLED:
            return False
        if self._state is ConnectionState.CONNECTED:
            return True

        self._set_state(ConnectionState.CONNECTING)
        await self._close_client()

        while True:
            try:
                await self._open()
            except Exception as e:
                self._attempts += 1
                self._last_error = str(e)
                REDIS_CONNECT_ATTEMPTS.labels(outcome="failure").inc()

                if self._attempts > self.max_retries:
                    self._disable(e)
                    return False

                delay = backoff_delay(self._attempts, self.backoff_step_ms, self.backoff_cap_ms)
                self._report_failure(e, delay)
                await self._sleep(delay)
                continue

            REDIS_CONNECT_ATTEMPTS.labels(outcome="success").inc()
            self._attempts = 0
            self._failure_reported = False
            self._connected_since = datetime.now(timezone.utc)
            self._lost = asyncio.Event()
            self._set_state(ConnectionState.CONNECTED)
            logger.info("Redis connected successfully", endpoint=mask_url(self.url))
            return True

    async def xadd(
            self,
            stream: str,
            fields: Mapping[str, str],
            maxlen: Optional[int] = None,
    ) -> str:
        """
        Append an entry with an auto-generated id.

        Args:
            stream: Stream key
            fields: Entry fields
            maxlen: Optional approximate stream length cap

        Returns:
            Id assigned by Redis

        Raises:
            RuntimeError: If the connection is not available
        """
        client = self._client
        if client is None or self._state is not ConnectionState.CONNECTED:
            raise RuntimeError("Redis connection is not available")

        try:
            return await client.xadd(stream, dict(fields), maxlen=maxlen, approximate=True)
        except TRANSPORT_ERRORS as e:
            self._mark_lost(e)
            raise

    def get_status(self) -> Dict[str, Any]:
        """Describe the connection for health reporting."""
        return {
            "state": self._state.value,
            "available": self.is_available(),
            "endpoint": mask_url(self.url),
            "tls": self.tls,
            "tls_verify": self.tls_verify,
            "attempts": self._attempts,
            "max_retries": self.max_retries,
            "last_error": self._last_error,
            "connected_since": (
                self._connected_since.isoformat()
                if self._connected_since and self.is_available()
                else None
            ),
        }

    async def _run(self) -> None:
        """Background loop: connect, watch until lost, reconnect."""
        while await self.connect():
            await self._watch()

    async def _watch(self) -> None:
        """Wait while connected, pinging the server periodically."""
        lost = self._lost
        while self._state is ConnectionState.CONNECTED:
            try:
                await asyncio.wait_for(lost.wait(), timeout=self.health_check_interval)
            except asyncio.TimeoutError:
                await self._health_check()

        await self._close_client()

    async def _health_check(self) -> None:
        client = self._client
        if client is None:
            return
        try:
            await client.ping()
        except Exception as e:
            self._mark_lost(e)

    async def _open(self) -> None:
        client = self._client_factory()
        try:
            await client.ping()
        except BaseException:
            await self._close_quietly(client)
            raise
        self._client = client

    def _mark_lost(self, error: BaseException) -> None:
        """Move from connected to disconnected; logged on the transition only."""
        if self._state is not ConnectionState.CONNECTED:
            return

        self._last_error = str(error)
        self._failure_reported = True
        self._set_state(ConnectionState.DISCONNECTED)
        logger.error("Redis connection lost", error=str(error))

        if self._lost is not None:
            self._lost.set()

    def _report_failure(self, error: Exception, delay: float) -> None:
        if not self._failure_reported:
            self._failure_reported = True
            logger.warning(
                "Could not connect to Redis",
                error=str(error),
                attempt=self._attempts,
                retry_in=delay,
            )
        else:
            logger.debug(
                "Redis connection attempt failed",
                error=str(error),
                attempt=self._attempts,
                retry_in=delay,
            )

    def _disable(self, error: Exception) -> None:
        self._set_state(ConnectionState.DISABLED)
        logger.warning(
            "Redis connection failed after retries - disabling search sync",
            retries=self.max_retries,
            error=str(error),
        )

    def _set_state(self, state: ConnectionState) -> None:
        self._state = state
        record_connection_state(state.value, [s.value for s in ConnectionState])

    async def _close_client(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await self._close_quietly(client)

    async def _close_quietly(self, client: Redis) -> None:
        try:
            await client.aclose()
        except Exception as e:
            logger.debug("Error closing Redis client", error=str(e))
