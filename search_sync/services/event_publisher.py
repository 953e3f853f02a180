"""
Event publisher for the Search Sync service.

This module converts host change notifications into Redis stream entries.
Handling a notification never raises: the host transaction has already
committed when the notification fires, so indexing pipeline failures are
logged, counted and reported in the returned ``PublishResult`` only.
"""

import time
from typing import Callable, List, Optional, Sequence

import structlog

from search_sync.core.config import DEFAULT_SUFFIXES
from search_sync.schemas.events import (
    ChangeNotification,
    PublishResult,
    PublishStatus,
    StreamEntry,
)
from search_sync.services.classifier import classify
from search_sync.services.connection_manager import ConnectionManager
from search_sync.utils.metrics import (
    NOTIFICATIONS_SKIPPED,
    STREAM_ENTRIES_FAILED,
    STREAM_ENTRIES_PUBLISHED,
)

logger = structlog.get_logger(__name__)

DEFAULT_STREAM = "search:sync"


def now_millis() -> int:
    """Current time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class EventPublisher:
    """Publishes change notifications to the search sync stream."""

    def __init__(
            self,
            connection: ConnectionManager,
            stream: str = DEFAULT_STREAM,
            suffixes: Optional[Sequence[str]] = None,
            maxlen: Optional[int] = None,
            clock: Callable[[], int] = now_millis,
    ) -> None:
        """
        Initialize the event publisher.

        Args:
            connection: Connection manager used for availability and appends
            stream: Stream key entries are appended to
            suffixes: Ordered collection suffixes that mark a source as relevant
            maxlen: Optional approximate stream length cap
            clock: Millisecond clock stamped on each entry
        """
        self.connection = connection
        self.stream = stream
        self.suffixes: List[str] = list(DEFAULT_SUFFIXES if suffixes is None else suffixes)
        self.maxlen = maxlen
        self._clock = clock

    async def handle(self, notification: ChangeNotification) -> PublishResult:
        """
        Append one stream entry per record id of a notification.

        Args:
            notification: The committed change

        Returns:
            Outcome of the call; never raises
        """
        try:
            return await self._handle(notification)
        except Exception as e:
            logger.error(
                "Search sync: failed to handle change notification",
                collection=notification.source_name,
                action=notification.action.value,
                error=str(e),
            )
            return PublishResult(
                status=PublishStatus.FAILED,
                source_name=notification.source_name,
                action=notification.action,
                failed=len(notification.record_ids),
            )

    async def _handle(self, notification: ChangeNotification) -> PublishResult:
        if not notification.record_ids:
            return self._skipped(notification, PublishStatus.SKIPPED_EMPTY)

        classification = classify(notification.source_name, self.suffixes)
        if not classification.relevant:
            return self._skipped(notification, PublishStatus.SKIPPED_IRRELEVANT)

        if not self.connection.is_available():
            return self._skipped(notification, PublishStatus.SKIPPED_UNAVAILABLE)

        action = notification.action.value
        entry_ids: List[str] = []
        failed = 0

        for record_id in notification.record_ids:
            entry = StreamEntry(
                action=notification.action,
                tenant=classification.tenant,
                entity_type=classification.entity_kind,
                entity_id=record_id,
                collection=notification.source_name,
                timestamp=self._clock(),
            )
            if not self.connection.is_available():
                # Connection dropped earlier in this batch; already logged once
                failed += 1
                self._count_failed(entry)
                logger.debug(
                    "Search sync: connection unavailable, dropping event",
                    stream=self.stream,
                    collection=notification.source_name,
                    entity_id=record_id,
                    action=action,
                )
                continue

            try:
                entry_id = await self.connection.xadd(
                    self.stream, entry.to_fields(), maxlen=self.maxlen
                )
            except Exception as e:
                failed += 1
                self._count_failed(entry)
                logger.error(
                    "Search sync: failed to publish event",
                    stream=self.stream,
                    collection=notification.source_name,
                    entity_id=record_id,
                    action=action,
                    error=str(e),
                )
                continue

            entry_ids.append(entry_id)
            STREAM_ENTRIES_PUBLISHED.labels(
                stream=self.stream, entity_type=entry.entity_type, action=action
            ).inc()

        if failed == 0:
            status = PublishStatus.PUBLISHED
        elif entry_ids:
            status = PublishStatus.PARTIAL
        else:
            status = PublishStatus.FAILED

        logger.debug(
            "Search sync: published events",
            stream=self.stream,
            collection=notification.source_name,
            action=action,
            published=len(entry_ids),
            failed=failed,
        )

        return PublishResult(
            status=status,
            source_name=notification.source_name,
            action=notification.action,
            published=len(entry_ids),
            failed=failed,
            entry_ids=entry_ids,
        )

    def _count_failed(self, entry: StreamEntry) -> None:
        STREAM_ENTRIES_FAILED.labels(
            stream=self.stream, entity_type=entry.entity_type, action=entry.action.value
        ).inc()

    def _skipped(self,notification: ChangeNotification, status: PublishStatus) -> PublishResult:
        NOTIFICATIONS_SKIPPED.labels(reason=status.value).inc()
        return PublishResult(
            status=status,
            source_name=notification.source_name,
            action=notification.action,
        )
