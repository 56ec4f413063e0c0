"""Persisted record models.

Every value written through :class:`~readerstore.storage.service.StorageService`
is wrapped in a :class:`StoredRecord` and serialized as
``{"value": ..., "timestamp": <epoch-ms>, "ttl": <epoch-ms> | null}``.
``ttl`` is the absolute expiry instant, not a duration.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StorageType(StrEnum):
    LOCAL = "local"
    SESSION = "session"


class StoredRecord(BaseModel):
    """Envelope shared by state snapshots, cache entries and user data."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    value: Any
    timestamp: int = 0
    ttl: int | None = None

    def is_expired(self, now_ms: int) -> bool:
        """A record is valid iff it has no expiry or ``now < ttl``."""
        return self.ttl is not None and now_ms >= self.ttl


class CachedResponse(BaseModel):
    """Value of an API cache record."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    endpoint: str
    method: str = "GET"
    params: dict[str, Any] | None = None
    response: Any = None
    cached_at: int = 0


class StorageUsage(BaseModel):
    """Snapshot of storage usage and access counters."""

    model_config = ConfigDict(frozen=True)

    total_size: int = 0
    items: dict[StorageType, int] = Field(default_factory=dict)
    cache_items: int = 0
    user_items: int = 0
    reads: int = 0
    writes: int = 0
    hits: int = 0
    misses: int = 0
