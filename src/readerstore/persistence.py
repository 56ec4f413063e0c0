"""Snapshot and rehydration of allow-listed store paths."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from readerstore._constants import CATEGORY_LOCAL
from readerstore.result import Err, ErrorKind, Result
from readerstore.state.paths import is_related, split_path
from readerstore.storage.records import StorageType
from readerstore.storage.service import StorageService

_logger = logging.getLogger(__name__)


class PersistenceGateway:
    """Mirror a fixed set of store paths into durable storage.

    The snapshot is a single record whose value maps each allow-listed
    path to its last value. Persistence is best-effort: failures are
    logged and returned, never raised.
    """

    def __init__(self, storage: StorageService, persistent_paths: Sequence[str] | None = None) -> None:
        paths = storage.config.persistent_paths if persistent_paths is None else persistent_paths
        for path in paths:
            split_path(path)
        self._storage = storage
        self._paths: tuple[str, ...] = tuple(paths)

    @property
    def paths(self) -> tuple[str, ...]:
        return self._paths

    @property
    def storage_key(self) -> str:
        return self._storage.generate_key(CATEGORY_LOCAL, self._storage.config.state_key)

    def should_persist(self, path: str) -> bool:
        """Whether a mutation at *path* can change an allow-listed value."""
        return any(is_related(path, persistent) for persistent in self._paths)

    def persist(self, read: Callable[[str], Any]) -> Result[None]:
        """Write the current value of every allow-listed path.

        Paths whose value is ``None`` are left out of the snapshot.
        """
        snapshot: dict[str, Any] = {}
        for path in self._paths:
            value = read(path)
            if value is not None:
                snapshot[path] = value
        result = self._storage.set_item(StorageType.LOCAL, self.storage_key, snapshot)
        if isinstance(result, Err):
            _logger.warning("Could not persist state snapshot: %s %s", result.kind, result.detail)
        else:
            _logger.debug("Persisted state snapshot paths=%s", sorted(snapshot))
        return result

    def load(self) -> dict[str, Any]:
        """Return the persisted ``path -> value`` pairs for allow-listed paths."""
        result = self._storage.get_item(StorageType.LOCAL, self.storage_key)
        if isinstance(result, Err):
            if result.kind is ErrorKind.CORRUPT_RECORD:
                _logger.warning("Discarded corrupt state snapshot")
            return {}

        data = result.value
        if not isinstance(data, dict):
            _logger.warning("State snapshot is not an object; discarding it")
            self._storage.remove_item(StorageType.LOCAL, self.storage_key)
            return {}

        restored: dict[str, Any] = {}
        for path, value in data.items():
            if path in self._paths:
                restored[path] = value
            else:
                _logger.debug("Ignoring persisted path outside the allow-list: %s", path)
        return restored

    def clear(self) -> Result[None]:
        return self._storage.remove_item(StorageType.LOCAL, self.storage_key)

