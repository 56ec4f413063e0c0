"""TTL memoization of idempotent API reads."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from readerstore._constants import CATEGORY_CACHE
from readerstore.keys import generate_cache_key, normalize_params
from readerstore.result import Err, ErrorKind, Ok, Result
from readerstore.storage.records import CachedResponse, StorageType
from readerstore.storage.service import StorageService

_logger = logging.getLogger(__name__)


class ApiCache:
    """Response cache stored as ``<prefix>_cache_<key>`` records.

    Entries are written with an absolute expiry and are never returned
    once expired. On quota exhaustion only this cache's own entries are
    candidates for eviction.
    """

    def __init__(self, storage: StorageService, *, storage_type: StorageType = StorageType.LOCAL) -> None:
        self._storage = storage
        self._storage_type = storage_type

    @property
    def prefix(self) -> str:
        return self._storage.generate_key(CATEGORY_CACHE, "")

    def storage_key(self, key: str) -> str:
        return self._storage.generate_key(CATEGORY_CACHE, key)

    def keys(self) -> list[str]:
        """Storage keys of every entry currently held by this cache."""
        return self._storage.keys(self._storage_type, self.prefix)

    def ttl_for(self, endpoint: str) -> int:
        return self._storage.config.cache_ttl.for_endpoint(endpoint)

    # ------------------------------------------------------------------
    # Key-level operations
    # ------------------------------------------------------------------

    def put(self, key: str, value: Any, ttl: int) -> Result[None]:
        """Store *value* for *ttl* milliseconds."""
        return self._storage.set_item(
            self._storage_type,
            self.storage_key(key),
            value,
            ttl,
            evict_prefix=self.prefix,
        )

    def get(self, key: str) -> Result[Any]:
        """Return ``Ok(value)`` for a live entry; anything else is a miss."""
        return self._storage.get_item(self._storage_type, self.storage_key(key))

    def delete(self, key: str) -> Result[None]:
        return self._storage.remove_item(self._storage_type, self.storage_key(key))

    def clear(self, pattern: str | None = None) -> int:
        """Remove entries whose endpoint contains *pattern*, or all entries.

        Entries that cannot be decoded are removed as well. Returns the
        number of entries removed.
        """
        to_remove: list[str] = []
        for storage_key in self.keys():
            if pattern is None:
                to_remove.append(storage_key)
                continue
            peeked = self._storage.peek_record(self._storage_type, storage_key)
            if isinstance(peeked, Err):
                if peeked.kind is ErrorKind.CORRUPT_RECORD:
                    to_remove.append(storage_key)
                continue
            try:
                cached = CachedResponse.model_validate(peeked.value.value)
            except ValidationError:
                to_remove.append(storage_key)
                continue
            if pattern in cached.endpoint:
                to_remove.append(storage_key)

        removed = sum(1 for storage_key in to_remove if self._storage.remove_item(self._storage_type, storage_key).ok)
        _logger.debug("Cleared API cache pattern=%r removed=%d", pattern, removed)
        return removed

    # ------------------------------------------------------------------
    # Network-layer API
    # ------------------------------------------------------------------

    def cache_api_response(
        self,
        endpoint: str,
        method: str,
        params: Mapping[str, Any] | None,
        response: Any,
        ttl: int | None = None,
    ) -> bool:
        """Memoize *response*; the TTL defaults to the endpoint's category window."""
        effective_ttl = ttl if ttl is not None else self.ttl_for(endpoint)
        payload = CachedResponse(
            endpoint=endpoint,
            method=method.upper(),
            params=normalize_params(params),
            response=response,
            cached_at=self._storage.now(),
        )
        try:
            value = payload.model_dump(mode="json", by_alias=True)
        except PydanticSerializationError as e:
            _logger.warning("Response for %s %s is not serializable: %s", method, endpoint, e)
            return False
        result = self.put(generate_cache_key(endpoint, method, params), value, effective_ttl)
        if isinstance(result, Err):
            _logger.debug("Response for %s %s not cached: %s", method, endpoint, result.kind)
        return result.ok

    def lookup_api_response(
        self,
        endpoint: str,
        method: str,
        params: Mapping[str, Any] | None,
    ) -> Result[CachedResponse]:
        result = self.get(generate_cache_key(endpoint, method, params))
        if isinstance(result, Err):
            return result
        try:
            return Ok(CachedResponse.model_validate(result.value))
        except ValidationError:
            self.delete(generate_cache_key(endpoint, method, params))
            return Err(ErrorKind.CORRUPT_RECORD, endpoint)

    def get_cached_api_response(
        self,
        endpoint: str,
        method: str,
        params: Mapping[str, Any] | None,
    ) -> Any | None:
        """Return the memoized response, or ``None`` on a miss."""
        result = self.lookup_api_response(endpoint, method, params)
        if isinstance(result, Err):
            return None
        return result.value.response

    def clear_api_cache(self, pattern: str | None = None) -> int:
        return self.clear(pattern)
