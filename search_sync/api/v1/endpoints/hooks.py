"""
Hook endpoints for the Search Sync service.

The host calls these after it commits a create, update or delete. Each call
returns 202 with the publish outcome; publishing problems never turn into an
error response.
"""

from typing import Any

from fastapi import APIRouter, Depends, status

from search_sync.core.dependencies import get_lifecycle_hooks, verify_hook_token
from search_sync.schemas.events import ItemCreatedEvent, ItemsChangedEvent, PublishResult
from search_sync.services.lifecycle_hooks import LifecycleHooks

router = APIRouter(dependencies=[Depends(verify_hook_token)])


@router.post(
    "/items.create",
    response_model=PublishResult,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Record created",
    description="Forward a record-created notification to the search sync stream.",
)
async def items_create(
        event: ItemCreatedEvent,
        hooks: LifecycleHooks = Depends(get_lifecycle_hooks),
) -> Any:
    """
    Handle the host's record-created hook.

    Args:
        event: Collection and key of the created record
        hooks: Lifecycle hooks

    Returns:
        Publish outcome
    """
    return await hooks.item_created(event.collection, event.key)


@router.post(
    "/items.update",
    response_model=PublishResult,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Records updated",
    description="Forward a records-updated notification to the search sync stream.",
)
async def items_update(
        event: ItemsChangedEvent,
        hooks: LifecycleHooks = Depends(get_lifecycle_hooks),
) -> Any:
    """Handle the host's records-updated hook."""
    return await hooks.items_updated(event.collection, event.keys)


@router.post(
    "/items.delete",
    response_model=PublishResult,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Records deleted",
    description="Forward a records-deleted notification to the search sync stream.",
)
async def items_delete(
        event: ItemsChangedEvent,
        hooks: LifecycleHooks = Depends(get_lifecycle_hooks),
) -> Any:
    """Handle the host's records-deleted hook."""
    return await hooks.items_deleted(event.collection, event.keys)
