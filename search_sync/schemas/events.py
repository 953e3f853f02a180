"""
Event schemas for the Search Sync service.

This module defines the Pydantic models passed between the host hooks, the
classifier, the publisher and the Redis stream.
"""

import enum
from typing import Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_ENTITY_KIND = "unknown"


class ActionKind(str, enum.Enum):
    """Kind of change carried by a notification."""
    UPSERT = "upsert"
    DELETE = "delete"


class PublishStatus(str, enum.Enum):
    """Outcome of handling a single change notification."""
    PUBLISHED = "published"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED_EMPTY = "skipped_empty"
    SKIPPED_IRRELEVANT = "skipped_irrelevant"
    SKIPPED_UNAVAILABLE = "skipped_unavailable"
    DISABLED = "disabled"


class ChangeNotification(BaseModel):
    """A committed create/update/delete on a host collection."""

    model_config = ConfigDict(frozen=True)

    action: ActionKind = Field(..., description="Kind of change")
    source_name: str = Field(..., description="Name of the host collection")
    record_ids: List[str] = Field(
        default_factory=list, description="Affected record identifiers, in order"
    )

    @field_validator("record_ids", mode="before")
    def stringify_ids(cls, v: List[Union[str, int]]) -> List[str]:
        """Host keys may be integers; stream entries always carry strings."""
        if isinstance(v, (list, tuple)):
            return [str(record_id) for record_id in v]
        return v


class ClassificationResult(BaseModel):
    """Relevance and derived tags for a source name."""

    model_config = ConfigDict(frozen=True)

    relevant: bool = Field(..., description="Whether the source is forwarded to the stream")
    tenant: str = Field(..., description="Source name with the matched suffix removed")
    entity_kind: str = Field(
        UNKNOWN_ENTITY_KIND, description="Matched suffix without its separator"
    )


class StreamEntry(BaseModel):
    """One append-only record written to the stream."""

    model_config = ConfigDict(frozen=True)

    action: ActionKind
    tenant: str
    entity_type: str
    entity_id: str
    collection: str
    timestamp: int = Field(..., description="Milliseconds since the epoch")

    def to_fields(self) -> Dict[str, str]:
        """
        Render the entry as the flat field mapping appended with XADD.

        Returns:
            Field name to string value mapping
        """
        return {
            "action": self.action.value,
            "tenant": self.tenant,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "collection": self.collection,
            "timestamp": str(self.timestamp),
        }


class PublishResult(BaseModel):
    """Observable outcome of ``EventPublisher.handle``."""

    status: PublishStatus = Field(..., description="Overall outcome")
    source_name: str = Field(..., description="Collection the notification came from")
    action: ActionKind = Field(..., description="Kind of change")
    published: int = Field(0, description="Number of entries appended")
    failed: int = Field(0, description="Number of entries dropped after a failed append")
    entry_ids: List[str] = Field(
        default_factory=list, description="Stream ids assigned to the appended entries"
    )


class ItemCreatedEvent(BaseModel):
    """Payload of the host's record-created hook."""
    collection: str = Field(..., description="Collection the record was created in")
    key: Union[int, str] = Field(..., description="Primary key of the created record")


class ItemsChangedEvent(BaseModel):
    """Payload of the host's records-updated and records-deleted hooks."""
    collection: str = Field(..., description="Collection the records belong to")
    keys: List[Union[int, str]] = Field(
        default_factory=list, description="Primary keys of the affected records"
    )
