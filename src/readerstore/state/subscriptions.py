"""Path-keyed listener registry."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from typing import Any

from readerstore._redact import redact_for_log
from readerstore.exceptions import SubscriberError
from readerstore.state.paths import ancestors

_logger = logging.getLogger(__name__)

Listener = Callable[[Any, Any, str], None]


class Subscription:
    """Handle returned by :meth:`SubscriptionRegistry.subscribe`.

    Calling it unsubscribes. Repeated calls are no-ops and never touch
    other registrations, including later ones of the same callback.
    """

    __slots__ = ("path", "_registry", "_token")

    def __init__(self, registry: SubscriptionRegistry, path: str, token: int) -> None:
        self.path = path
        self._registry: SubscriptionRegistry | None = registry
        self._token = token

    @property
    def active(self) -> bool:
        return self._registry is not None and self._registry._is_registered(self.path, self._token)

    def __call__(self) -> None:
        registry, self._registry = self._registry, None
        if registry is not None:
            registry._discard(self.path, self._token)

    def __repr__(self) -> str:
        return f"Subscription(path={self.path!r}, active={self.active})"


class SubscriptionRegistry:
    """Listeners grouped by exact path.

    Every ``subscribe`` call creates an independent registration, so the
    same callback subscribed twice on one path fires twice.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, dict[int, Listener]] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, path: str, callback: Listener) -> Subscription:
        token = next(self._tokens)
        self._listeners.setdefault(path, {})[token] = callback
        _logger.debug("Subscribed to %s (token=%d)", path, token)
        return Subscription(self, path, token)

    def listeners(self, path: str) -> list[Listener]:
        return list(self._listeners.get(path, {}).values())

    def listener_count(self, path: str | None = None) -> int:
        if path is not None:
            return len(self._listeners.get(path, {}))
        return sum(len(group) for group in self._listeners.values())

    def paths(self) -> list[str]:
        return list(self._listeners)

    def clear(self) -> None:
        self._listeners.clear()

    def _is_registered(self, path: str, token: int) -> bool:
        return token in self._listeners.get(path, {})

    def _discard(self, path: str, token: int) -> None:
        group = self._listeners.get(path)
        if group is None:
            return
        group.pop(token, None)
        if not group:
            del self._listeners[path]
        _logger.debug("Unsubscribed from %s (token=%d)", path, token)

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    def notify(self, path: str, new_value: Any, old_value: Any, *, read: Callable[[str], Any]) -> int:
        """Notify exact-path listeners, then ancestor listeners.

        Ancestors are visited from the immediate parent up to the
        top-level segment and receive ``(read(ancestor), None, ancestor)``;
        they never get an old value. Returns the number of listeners that
        raised.
        """
        failures = self._dispatch(path, new_value, old_value)
        for ancestor in ancestors(path):
            if ancestor not in self._listeners:
                continue
            failures += self._dispatch(ancestor, read(ancestor), None)
        return failures

    def _dispatch(self, path: str, new_value: Any, old_value: Any) -> int:
        failures = 0
        # Listeners added mid-pass wait for the next mutation; removed ones are skipped.
        for token, callback in list(self._listeners.get(path, {}).items()):
            if not self._is_registered(path, token):
                continue
            try:
                callback(new_value, old_value, path)
            except Exception as e:
                failures += 1
                error = SubscriberError(f"listener for {path} raised {type(e).__name__}: {e}", path=path)
                _logger.warning("%s (value=%r)", error, redact_for_log(new_value), exc_info=True)
        return failures
