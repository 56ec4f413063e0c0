"""Key-value storage substrates.

A substrate is the lowest layer: a flat string-to-string map with
index-based enumeration, mirroring the browser ``Storage`` interface the
mini-app was built on. Two implementations ship here:

* :class:`MemoryStorage` is volatile and lives as long as the process.
* :class:`FileStorage` is durable and keeps its map in one JSON file.

Both can enforce a quota and raise :class:`QuotaExceededError` when a write
would exceed it. Substrates raise; the record layer above them decides how
to recover.
"""

from __future__ import annotations

import contextlib
import errno
import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from readerstore.exceptions import QuotaExceededError, StorageUnavailableError

_logger = logging.getLogger(__name__)


@runtime_checkable
class StorageSubstrate(Protocol):
    """Minimal key-value interface shared by durable and volatile storage."""

    @property
    def length(self) -> int: ...

    def key(self, index: int) -> str | None: ...

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


def _entry_size(key: str, value: str) -> int:
    return len(key) + len(value)


class MemoryStorage:
    """Volatile in-process substrate.

    Parameters
    ----------
    max_items : int or None
        Maximum number of keys. ``None`` disables the limit.
    max_bytes : int or None
        Maximum total size of keys plus values, in characters.
    """

    def __init__(self, *, max_items: int | None = None, max_bytes: int | None = None) -> None:
        self._items: dict[str, str] = {}
        self._max_items = max_items
        self._max_bytes = max_bytes

    @property
    def length(self) -> int:
        return len(self._items)

    @property
    def used_bytes(self) -> int:
        return sum(_entry_size(k, v) for k, v in self._items.items())

    def key(self, index: int) -> str | None:
        if index < 0 or index >= len(self._items):
            return None
        return list(self._items)[index]

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_quota(key, value)
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def _check_quota(self, key: str, value: str) -> None:
        existing = self._items.get(key)
        if self._max_items is not None and existing is None and len(self._items) >= self._max_items:
            raise QuotaExceededError(
                f"item limit {self._max_items} reached",
                key=key,
                requested=_entry_size(key, value),
            )
        if self._max_bytes is not None:
            current = self.used_bytes
            if existing is not None:
                current -= _entry_size(key, existing)
            requested = _entry_size(key, value)
            if current + requested > self._max_bytes:
                raise QuotaExceededError(
                    f"byte limit {self._max_bytes} exceeded ({current} used, {requested} requested)",
                    key=key,
                    requested=requested,
                )


class FileStorage(MemoryStorage):
    """Durable substrate backed by a single JSON file.

    The file is read once on construction and rewritten atomically after
    every change. An unreadable file starts the substrate empty.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        max_items: int | None = None,
        max_bytes: int | None = None,
    ) -> None:
        super().__init__(max_items=max_items, max_bytes=max_bytes)
        self._path = Path(path)
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def set_item(self, key: str, value: str) -> None:
        self._check_quota(key, value)
        previous = self._items.get(key)
        self._items[key] = value
        try:
            self._flush()
        except (StorageUnavailableError, QuotaExceededError):
            if previous is None:
                self._items.pop(key, None)
            else:
                self._items[key] = previous
            raise

    def remove_item(self, key: str) -> None:
        if key not in self._items:
            return
        previous = self._items.pop(key)
        try:
            self._flush()
        except (StorageUnavailableError, QuotaExceededError):
            self._items[key] = previous
            raise

    def clear(self) -> None:
        super().clear()
        self._flush()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            _logger.warning("Invalid storage file %s, starting empty: %s", self._path.name, e)
            return
        except OSError as e:
            raise StorageUnavailableError(f"cannot read storage file {self._path}: {e}") from e
        if not isinstance(data, dict):
            _logger.warning("Storage file %s does not hold an object, starting empty", self._path.name)
            return
        self._items = {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self) -> None:
        """Write the map to disk atomically."""
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._items, f, ensure_ascii=False)
            tmp_path.replace(self._path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            if e.errno == errno.ENOSPC:
                raise QuotaExceededError(f"no space left for {self._path}") from e
            raise StorageUnavailableError(f"cannot write storage file {self._path}: {e}") from e
