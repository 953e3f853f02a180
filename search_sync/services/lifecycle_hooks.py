"""
Lifecycle hooks for the Search Sync service.

One bind point per host lifecycle kind. Each hook turns the host's payload
into a ``ChangeNotification`` and hands it to the event publisher. Like the
publisher, the hooks never raise into the host.
"""

from typing import Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from search_sync.schemas.events import (
    ActionKind,
    ChangeNotification,
    PublishResult,
    PublishStatus,
)
from search_sync.services.event_publisher import EventPublisher

logger = structlog.get_logger(__name__)

RecordKey = Union[int, str]


class LifecycleHooks:
    """Bind points for record-created, records-updated and records-deleted."""

    def __init__(self, publisher: Optional[EventPublisher] = None) -> None:
        """
        Initialize the hooks.

        Args:
            publisher: Event publisher, or None when no stream endpoint is configured
        """
        self.publisher = publisher

    @property
    def enabled(self) -> bool:
        return self.publisher is not None

    async def item_created(self, collection: str, key: RecordKey) -> PublishResult:
        """A single record was created."""
        return await self._dispatch(ActionKind.UPSERT, collection, [key])

    async def items_updated(self, collection: str, keys: Sequence[RecordKey]) -> PublishResult:
        """One or more records were updated."""
        return await self._dispatch(ActionKind.UPSERT, collection, keys)

    async def items_deleted(self, collection: str, keys: Sequence[RecordKey]) -> PublishResult:
        """One or more records were deleted."""
        return await self._dispatch(ActionKind.DELETE, collection, keys)

    async def _dispatch(
            self, action: ActionKind, collection: str, keys: Sequence[RecordKey]
    ) -> PublishResult:
        source_name = collection if isinstance(collection, str) else str(collection)

        if self.publisher is None:
            return PublishResult(
                status=PublishStatus.DISABLED, source_name=source_name, action=action
            )

        try:
            notification = ChangeNotification(
                action=action, source_name=collection, record_ids=list(keys)
            )
        except (TypeError, ValidationError) as e:
            logger.error(
                "Search sync: malformed change notification",
                collection=source_name,
                action=action.value,
                error=str(e),
            )
            return PublishResult(
                status=PublishStatus.FAILED, source_name=source_name, action=action
            )

        return await self.publisher.handle(notification)
