"""Hierarchical, path-addressable application state.

This is the only component allowed to mutate the state tree. Every
mutation goes through :meth:`PathStore.set`, which persists allow-listed
paths and then notifies listeners synchronously.
"""

from __future__ import annotations

import copy
import logging
from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from readerstore._constants import initial_state, now_ms
from readerstore._redact import redact_for_log
from readerstore.config import StoreConfig
from readerstore.exceptions import ReentrancyLimitError, StoreNotReadyError
from readerstore.persistence import PersistenceGateway
from readerstore.state.paths import get_in, has_in, is_valid_path, set_in, split_path
from readerstore.state.subscriptions import Listener, Subscription, SubscriptionRegistry

_logger = logging.getLogger(__name__)


class StorePhase(StrEnum):
    HYDRATING = "hydrating"
    READY = "ready"


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    timestamp: int
    action: str
    path: str
    new_value: Any
    old_value: Any


class PathStore:
    """In-memory state tree addressed by dot paths.

    The store starts in :attr:`StorePhase.HYDRATING`, merges the persisted
    snapshot (if a persistence gateway is given) and only then becomes
    :attr:`StorePhase.READY`. Pass ``hydrate=False`` to defer that step to
    an explicit :meth:`hydrate` call; until then mutations and
    subscriptions raise :class:`StoreNotReadyError`.

    Values are copied on the way in and on the way out, so callers cannot
    mutate the tree behind the store's back.

    Listeners may mutate the store from inside a notification. Such nested
    mutations run immediately; beyond ``config.max_notify_depth`` levels
    they raise :class:`ReentrancyLimitError` into the listener instead.
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        *,
        persistence: PersistenceGateway | None = None,
        registry: SubscriptionRegistry | None = None,
        initial: Mapping[str, Any] | None = None,
        clock: Callable[[], int] = now_ms,
        hydrate: bool = True,
    ) -> None:
        self._config = config or StoreConfig()
        self._defaults: dict[str, Any] = initial_state() if initial is None else copy.deepcopy(dict(initial))
        self._tree: dict[str, Any] = copy.deepcopy(self._defaults)
        self._registry = registry or SubscriptionRegistry()
        self._persistence = persistence
        self._clock = clock
        self._depth = 0
        self._history: deque[HistoryEntry] = deque(maxlen=self._config.max_history_size)
        self._phase = StorePhase.HYDRATING
        if hydrate:
            self.hydrate()

    @property
    def phase(self) -> StorePhase:
        return self._phase

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry

    def hydrate(self) -> None:
        """Merge the persisted snapshot into the tree and become ready.

        Called by the constructor unless ``hydrate=False`` was given. A
        second call is a no-op.
        """
        if self._phase is StorePhase.READY:
            return
        if self._persistence is not None:
            restored = self._persistence.load()
            for path, value in restored.items():
                set_in(self._tree, split_path(path), copy.deepcopy(value))
            if restored:
                _logger.debug("Restored persisted paths: %s", sorted(restored))
        self._phase = StorePhase.READY

    def _require_ready(self) -> None:
        if self._phase is not StorePhase.READY:
            raise StoreNotReadyError(f"store is {self._phase}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, path: str) -> Any | None:
        """Return a copy of the value at *path*, or ``None`` if absent."""
        if not is_valid_path(path):
            return None
        return copy.deepcopy(get_in(self._tree, split_path(path)))

    def has(self, path: str) -> bool:
        """Whether a node exists at *path* (even if its value is ``None``)."""
        if not is_valid_path(path):
            return False
        return has_in(self._tree, split_path(path))

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._tree)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set(self, path: str, value: Any) -> None:
        self._mutate("SET", path, value)

    def update(self, path: str, partial: Mapping[str, Any]) -> None:
        """Shallow-merge *partial* onto the mapping at *path*."""
        current = get_in(self._tree, split_path(path))
        merged = dict(current) if isinstance(current, dict) else {}
        merged.update(partial)
        self._mutate("UPDATE", path, merged)

    def push(self, path: str, item: Any) -> None:
        """Append *item* to the list at *path* (a missing list counts as empty)."""
        current = get_in(self._tree, split_path(path))
        items = list(current) if isinstance(current, list) else []
        items.append(item)
        self._mutate("PUSH", path, items)

    def remove(self, path: str, predicate: Callable[[Any], bool]) -> None:
        """Drop every item of the list at *path* matching *predicate*."""
        current = self.get(path)
        items = current if isinstance(current, list) else []
        self._mutate("REMOVE", path, [item for item in items if not predicate(item)])

    def reset(self, path: str) -> None:
        """Restore the initial value at *path*, or ``None`` for unknown paths."""
        segments = split_path(path)
        default = get_in(self._defaults, segments) if has_in(self._defaults, segments) else None
        self._mutate("RESET", path, default)

    def subscribe(self, path: str, callback: Listener) -> Subscription:
        """Register *callback* for mutations at or below *path*."""
        split_path(path)
        self._require_ready()
        return self._registry.subscribe(path, callback)

    def _mutate(self, action: str, path: str, value: Any) -> None:
        segments = split_path(path)
        self._require_ready()
        if self._depth >= self._config.max_notify_depth:
            raise ReentrancyLimitError(
                f"nested mutation of {path} exceeds depth {self._config.max_notify_depth}",
                path=path,
                depth=self._depth,
            )

        old_value = get_in(self._tree, segments)
        new_value = copy.deepcopy(value)
        set_in(self._tree, segments, new_value)
        self._record(action, path, new_value, old_value)
        _logger.debug("%s %s: %r", action, path, redact_for_log(new_value))

        if self._persistence is not None and self._persistence.should_persist(path):
            self._persistence.persist(self.get)

        self._depth += 1
        try:
            self._registry.notify(path, copy.deepcopy(new_value), old_value, read=self.get)
        finally:
            self._depth -= 1

    # ------------------------------------------------------------------
    # Debug history
    # ------------------------------------------------------------------

    def _record(self, action: str, path: str, new_value: Any, old_value: Any) -> None:
        if not self._config.debug:
            return
        self._history.append(
            HistoryEntry(
                timestamp=self._clock(),
                action=action,
                path=path,
                new_value=copy.deepcopy(new_value),
                old_value=copy.deepcopy(old_value),
            )
        )

    def history(self) -> list[HistoryEntry]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()
