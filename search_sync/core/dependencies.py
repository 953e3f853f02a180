"""
Core dependencies for the Search Sync service.

This module builds the connection manager, publisher and hooks once per
application and exposes them to request handlers through ``app.state``.
"""

import hmac
from typing import Optional

import structlog
from fastapi import Header, HTTPException, Request, status

from search_sync.core.config import Settings
from search_sync.services.connection_manager import ConnectionManager
from search_sync.services.event_publisher import EventPublisher
from search_sync.services.lifecycle_hooks import LifecycleHooks

logger = structlog.get_logger(__name__)


def create_connection_manager(settings: Settings) -> Optional[ConnectionManager]:
    """
    Create the Redis connection manager, if an endpoint is configured.

    Args:
        settings: Application settings

    Returns:
        The connection manager, or None when search sync is disabled
    """
    if not settings.search_sync_enabled:
        logger.info("Search sync: no Redis URL configured - extension disabled")
        return None

    return ConnectionManager(
        settings.REDIS_URL,
        max_retries=settings.REDIS_MAX_RETRIES,
        backoff_step_ms=settings.REDIS_BACKOFF_STEP_MS,
        backoff_cap_ms=settings.REDIS_BACKOFF_CAP_MS,
        health_check_interval=settings.REDIS_HEALTH_CHECK_INTERVAL,
        tls_verify=settings.REDIS_TLS_VERIFY,
        connect_timeout=settings.REDIS_CONNECT_TIMEOUT,
    )


def create_lifecycle_hooks(
        settings: Settings, connection: Optional[ConnectionManager]
) -> LifecycleHooks:
    """
    Wire the event publisher to the connection manager.

    Args:
        settings: Application settings
        connection: Connection manager, or None when search sync is disabled

    Returns:
        Lifecycle hooks bound to the publisher
    """
    if connection is None:
        return LifecycleHooks(None)

    publisher = EventPublisher(
        connection,
        stream=settings.SEARCH_SYNC_STREAM,
        suffixes=settings.SEARCH_SYNC_SUFFIXES,
        maxlen=settings.SEARCH_SYNC_STREAM_MAXLEN,
    )
    logger.info(
        "Search sync: initialized",
        stream=settings.SEARCH_SYNC_STREAM,
        suffixes=settings.SEARCH_SYNC_SUFFIXES,
    )
    return LifecycleHooks(publisher)


def get_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


def get_lifecycle_hooks(request: Request) -> LifecycleHooks:
    """Lifecycle hooks created in the application lifespan."""
    return request.app.state.hooks


def get_connection_manager(request: Request) -> Optional[ConnectionManager]:
    """Connection manager created in the application lifespan."""
    return request.app.state.connection_manager


async def verify_hook_token(
        request: Request,
        x_hook_token: Optional[str] = Header(None),
) -> None:
    """
    Check the shared hook secret when one is configured.

    Args:
        request: The incoming request
        x_hook_token: Value of the X-Hook-Token header

    Raises:
        HTTPException: If the token is missing or does not match
    """
    expected = get_settings(request).HOOK_TOKEN
    if expected is None:
        return

    if x_hook_token is None or not hmac.compare_digest(
            x_hook_token.encode(), expected.get_secret_value().encode()
    ):
        logger.warning("Rejected hook call with invalid token", path=request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid hook token",
        )
