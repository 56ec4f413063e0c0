"""Record layer shared by the API cache and state persistence.

The service owns key namespacing, record encoding, TTL checks and the
recovery policy for a full substrate. It never raises to its callers:
every operation returns a :class:`~readerstore.result.Result`.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from readerstore._constants import (
    CATEGORY_CACHE,
    CATEGORY_LOCAL,
    CATEGORY_TEMP,
    CATEGORY_USER,
    KEY_SEPARATOR,
    STORAGE_PROBE_KEY,
    now_ms,
)
from readerstore.config import StoreConfig
from readerstore.exceptions import (
    CorruptRecordError,
    QuotaExceededError,
    ReaderStoreError,
    StorageUnavailableError,
)
from readerstore.result import Err, ErrorKind, Ok, Result
from readerstore.storage.records import StorageType, StorageUsage, StoredRecord
from readerstore.storage.substrate import StorageSubstrate

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AccessStats:
    reads: int = 0
    writes: int = 0
    hits: int = 0
    misses: int = 0


class StorageService:
    """Namespaced, TTL-aware access to the durable and session substrates.

    Parameters
    ----------
    config : StoreConfig
        Supplies the key prefix and the eviction ratio.
    local : StorageSubstrate or None
        Durable substrate. ``None`` means durable storage is unavailable.
    session : StorageSubstrate or None
        Volatile substrate. ``None`` means session storage is unavailable.
    clock : callable
        Returns the current epoch time in milliseconds.
    """

    def __init__(
        self,
        config: StoreConfig,
        *,
        local: StorageSubstrate | None,
        session: StorageSubstrate | None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._config = config
        self._substrates: dict[StorageType, StorageSubstrate | None] = {
            StorageType.LOCAL: local,
            StorageType.SESSION: session,
        }
        self._clock = clock
        self._reported_unavailable: set[StorageType] = set()
        self.stats = AccessStats()

    @property
    def config(self) -> StoreConfig:
        return self._config

    def now(self) -> int:
        return self._clock()

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def generate_key(self, category: str, key: str, user_id: str | int | None = None) -> str:
        """Build ``<prefix>_<category>_<key>`` or ``<prefix>_user_<userId>_<key>``."""
        parts = [self._config.app_prefix]
        if user_id is not None and category == CATEGORY_USER:
            parts.extend((CATEGORY_USER, str(user_id)))
        else:
            parts.append(category)
        parts.append(key)
        return KEY_SEPARATOR.join(parts)

    @property
    def app_key_prefix(self) -> str:
        return f"{self._config.app_prefix}{KEY_SEPARATOR}"

    def keys(self, storage_type: StorageType, prefix: str) -> list[str]:
        """Return every key of *storage_type* starting with *prefix*."""
        substrate = self._available(storage_type)
        if substrate is None:
            return []
        found: list[str] = []
        for index in range(substrate.length):
            key = substrate.key(index)
            if key is not None and key.startswith(prefix):
                found.append(key)
        return found

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def is_available(self, storage_type: StorageType) -> bool:
        return self._available(storage_type) is not None

    def _available(self, storage_type: StorageType) -> StorageSubstrate | None:
        substrate = self._substrates.get(storage_type)
        if substrate is None:
            self._report_unavailable(storage_type, "not configured")
            return None
        try:
            # Read-only probe: a full substrate is still an available one.
            substrate.get_item(STORAGE_PROBE_KEY)
            _ = substrate.length
        except (ReaderStoreError, OSError) as e:
            self._report_unavailable(storage_type, str(e))
            return None
        return substrate

    def _report_unavailable(self, storage_type: StorageType, reason: str) -> None:
        if storage_type in self._reported_unavailable:
            return
        self._reported_unavailable.add(storage_type)
        _logger.warning("%s storage unavailable (%s); operations degrade to no-ops", storage_type, reason)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def set_item(
        self,
        storage_type: StorageType,
        key: str,
        value: Any,
        ttl: int | None = None,
        *,
        evict_prefix: str | None = None,
    ) -> Result[None]:
        """Write *value* under *key* with an optional lifetime in milliseconds.

        On quota exhaustion, the oldest records under *evict_prefix*
        (default: every record of this application) are evicted and the
        write is retried once.
        """
        substrate = self._available(storage_type)
        if substrate is None:
            return Err(ErrorKind.STORAGE_UNAVAILABLE, f"{storage_type} storage unavailable")

        now = self._clock()
        record = StoredRecord(value=value, timestamp=now, ttl=now + ttl if ttl is not None else None)
        try:
            payload = record.model_dump_json()
        except PydanticSerializationError as e:
            _logger.warning("Value for %s is not serializable: %s", key, e)
            return Err(ErrorKind.SERIALIZATION, str(e))

        try:
            substrate.set_item(key, payload)
        except QuotaExceededError as e:
            _logger.debug("Quota exceeded writing %s: %s", key, e)
            removed = self.evict_oldest(storage_type, evict_prefix or self.app_key_prefix)
            try:
                substrate.set_item(key, payload)
            except QuotaExceededError as retry_error:
                _logger.warning("Write of %s failed after evicting %d records: %s", key, removed, retry_error)
                return Err(ErrorKind.QUOTA_EXCEEDED, str(retry_error))
            except (StorageUnavailableError, OSError) as retry_error:
                self._report_unavailable(storage_type, str(retry_error))
                return Err(ErrorKind.STORAGE_UNAVAILABLE, str(retry_error))
        except (StorageUnavailableError, OSError) as e:
            self._report_unavailable(storage_type, str(e))
            return Err(ErrorKind.STORAGE_UNAVAILABLE, str(e))

        self.stats.writes += 1
        _logger.debug("Stored %s in %s storage (%d chars)", key, storage_type, len(payload))
        return Ok(None)

    def get_record(self, storage_type: StorageType, key: str) -> Result[StoredRecord]:
        """Read and validate the record under *key*.

        Expired and corrupt records are removed and reported as misses.
        """
        substrate = self._available(storage_type)
        if substrate is None:
            return Err(ErrorKind.STORAGE_UNAVAILABLE, f"{storage_type} storage unavailable")

        try:
            raw = substrate.get_item(key)
        except (StorageUnavailableError, OSError) as e:
            self._report_unavailable(storage_type, str(e))
            return Err(ErrorKind.STORAGE_UNAVAILABLE, str(e))
        if raw is None:
            self.stats.misses += 1
            return Err(ErrorKind.NOT_FOUND, key)

        try:
            record = StoredRecord.model_validate_json(raw)
        except ValidationError as e:
            error = CorruptRecordError(f"cannot decode record {key}: {e.error_count()} errors", key=key)
            _logger.warning("%s; removing it", error)
            self._discard(substrate, key)
            self.stats.misses += 1
            return Err(ErrorKind.CORRUPT_RECORD, key)

        if record.is_expired(self._clock()):
            _logger.debug("Record expired: %s", key)
            self._discard(substrate, key)
            self.stats.misses += 1
            return Err(ErrorKind.EXPIRED, key)

        self.stats.reads += 1
        self.stats.hits += 1
        return Ok(record)

    def peek_record(self, storage_type: StorageType, key: str) -> Result[StoredRecord]:
        """Decode the record under *key* without expiry checks, removal or stats."""
        substrate = self._available(storage_type)
        if substrate is None:
            return Err(ErrorKind.STORAGE_UNAVAILABLE, f"{storage_type} storage unavailable")
        try:
            raw = substrate.get_item(key)
        except (StorageUnavailableError, OSError) as e:
            self._report_unavailable(storage_type, str(e))
            return Err(ErrorKind.STORAGE_UNAVAILABLE, str(e))
        if raw is None:
            return Err(ErrorKind.NOT_FOUND, key)
        try:
            return Ok(StoredRecord.model_validate_json(raw))
        except ValidationError:
            return Err(ErrorKind.CORRUPT_RECORD, key)

    def get_item(self, storage_type: StorageType, key: str) -> Result[Any]:
        result = self.get_record(storage_type, key)
        if isinstance(result, Err):
            return result
        return Ok(result.value.value)

    def remove_item(self, storage_type: StorageType, key: str) -> Result[None]:
        substrate = self._available(storage_type)
        if substrate is None:
            return Err(ErrorKind.STORAGE_UNAVAILABLE, f"{storage_type} storage unavailable")
        if not self._discard(substrate, key):
            return Err(ErrorKind.STORAGE_UNAVAILABLE, key)
        return Ok(None)

    def _discard(self, substrate: StorageSubstrate, key: str) -> bool:
        try:
            substrate.remove_item(key)
        except (StorageUnavailableError, QuotaExceededError, OSError) as e:
            _logger.warning("Failed to remove %s: %s", key, e)
            return False
        return True

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def evict_oldest(self, storage_type: StorageType, prefix: str) -> int:
        """Remove the oldest share of records under *prefix*.

        Records are ordered by write timestamp; unparsable records sort
        first. Returns the number of records removed.
        """
        substrate = self._available(storage_type)
        if substrate is None:
            return 0

        entries: list[tuple[int, str]] = []
        for key in self.keys(storage_type, prefix):
            peeked = self.peek_record(storage_type, key)
            entries.append((peeked.value.timestamp if isinstance(peeked, Ok) else 0, key))

        entries.sort(key=lambda entry: entry[0])
        count = math.ceil(len(entries) * self._config.eviction_ratio)
        removed = 0
        for _, key in entries[:count]:
            if self._discard(substrate, key):
                removed += 1
        _logger.debug("Evicted %d of %d records under %s", removed, len(entries), prefix)
        return removed

    def cleanup_expired(self) -> int:
        """Remove expired and corrupt application records from both substrates."""
        now = self._clock()
        total = 0
        for storage_type in StorageType:
            substrate = self._available(storage_type)
            if substrate is None:
                continue
            stale: list[str] = []
            for key in self.keys(storage_type, self.app_key_prefix):
                peeked = self.peek_record(storage_type, key)
                if isinstance(peeked, Err):
                    if peeked.kind is ErrorKind.CORRUPT_RECORD:
                        stale.append(key)
                    continue
                if peeked.value.is_expired(now):
                    stale.append(key)
            for key in stale:
                if self._discard(substrate, key):
                    total += 1
            if stale:
                _logger.debug("Removed %d stale records from %s storage", len(stale), storage_type)
        return total

    def clear_prefix(self, prefix: str) -> int:
        """Remove every record under *prefix* from both substrates."""
        total = 0
        for storage_type in StorageType:
            substrate = self._available(storage_type)
            if substrate is None:
                continue
            for key in self.keys(storage_type, prefix):
                if self._discard(substrate, key):
                    total += 1
        return total

    def clear_all(self) -> int:
        """Remove every record of this application."""
        removed = self.clear_prefix(self.app_key_prefix)
        _logger.debug("Cleared %d application records", removed)
        return removed

    def total_size(self) -> int:
        """Characters used by this application's records across both substrates."""
        size = 0
        for storage_type in StorageType:
            substrate = self._available(storage_type)
            if substrate is None:
                continue
            for key in self.keys(storage_type, self.app_key_prefix):
                raw = substrate.get_item(key)
                if raw is not None:
                    size += len(raw)
        return size

    def storage_stats(self) -> StorageUsage:
        items: dict[StorageType, int] = {}
        cache_items = 0
        user_items = 0
        cache_prefix = self.generate_key(CATEGORY_CACHE, "")
        user_prefix = self.generate_key(CATEGORY_USER, "")
        for storage_type in StorageType:
            keys = self.keys(storage_type, self.app_key_prefix)
            items[storage_type] = len(keys)
            cache_items += sum(1 for key in keys if key.startswith(cache_prefix))
            user_items += sum(1 for key in keys if key.startswith(user_prefix))
        return StorageUsage(
            total_size=self.total_size(),
            items=items,
            cache_items=cache_items,
            user_items=user_items,
            reads=self.stats.reads,
            writes=self.stats.writes,
            hits=self.stats.hits,
            misses=self.stats.misses,
        )

    # ------------------------------------------------------------------
    # Durable / session helpers
    # ------------------------------------------------------------------

    def set_local(self, key: str, value: Any, ttl: int | None = None) -> Result[None]:
        return self.set_item(StorageType.LOCAL, self.generate_key(CATEGORY_LOCAL, key), value, ttl)

    def get_local(self, key: str) -> Result[Any]:
        return self.get_item(StorageType.LOCAL, self.generate_key(CATEGORY_LOCAL, key))

    def remove_local(self, key: str) -> Result[None]:
        return self.remove_item(StorageType.LOCAL, self.generate_key(CATEGORY_LOCAL, key))

    def set_session(self, key: str, value: Any) -> Result[None]:
        return self.set_item(StorageType.SESSION, self.generate_key(CATEGORY_TEMP, key), value)

    def get_session(self, key: str) -> Result[Any]:
        return self.get_item(StorageType.SESSION, self.generate_key(CATEGORY_TEMP, key))

    def remove_session(self, key: str) -> Result[None]:
        return self.remove_item(StorageType.SESSION, self.generate_key(CATEGORY_TEMP, key))

    # ------------------------------------------------------------------
    # Per-user data
    # ------------------------------------------------------------------

    def set_user_data(self, user_id: str | int, key: str, value: Any, *, permanent: bool = True) -> Result[None]:
        """Store user-scoped data; permanent data expires after the profile window."""
        storage_key = self.generate_key(CATEGORY_USER, key, user_id)
        if permanent:
            return self.set_item(StorageType.LOCAL, storage_key, value, self._config.cache_ttl.profile)
        return self.set_item(StorageType.SESSION, storage_key, value)

    def get_user_data(self, user_id: str | int, key: str, *, check_session: bool = True) -> Result[Any]:
        storage_key = self.generate_key(CATEGORY_USER, key, user_id)
        result = self.get_item(StorageType.LOCAL, storage_key)
        if isinstance(result, Err) and check_session:
            return self.get_item(StorageType.SESSION, storage_key)
        return result

    def remove_user_data(self, user_id: str | int, key: str | None = None) -> None:
        if key is None:
            self.clear_user_data(user_id)
            return
        storage_key = self.generate_key(CATEGORY_USER, key, user_id)
        for storage_type in StorageType:
            self.remove_item(storage_type, storage_key)

    def clear_user_data(self, user_id: str | int) -> int:
        removed = self.clear_prefix(self.generate_key(CATEGORY_USER, "", user_id))
        _logger.debug("Cleared %d records for user %s", removed, user_id)
        return removed
