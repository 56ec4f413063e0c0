"""Typed accessors for well-known state paths.

A :class:`Lens` binds a path to the type of value stored there, so
controllers write ``USER_PROFILE.get(store)`` instead of passing raw
strings around. Every lens declared here is checked against the initial
state tree when this module is imported.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from readerstore._constants import PATH_SEPARATOR, initial_state
from readerstore.exceptions import InvalidPathError
from readerstore.state.paths import has_in, split_path

if TYPE_CHECKING:
    from readerstore.state.store import PathStore
    from readerstore.state.subscriptions import Subscription

T = TypeVar("T")


class Lens(Generic[T]):
    """A typed view of one store path."""

    __slots__ = ("path", "segments")

    def __init__(self, path: str) -> None:
        self.path = path
        self.segments = split_path(path)

    def __repr__(self) -> str:
        return f"Lens({self.path!r})"

    def child(self, segment: str) -> Lens[Any]:
        return Lens(f"{self.path}{PATH_SEPARATOR}{segment}")

    def get(self, store: PathStore) -> T | None:
        return store.get(self.path)

    def set(self, store: PathStore, value: T | None) -> None:
        store.set(self.path, value)

    def update(self, store: PathStore, partial: Mapping[str, Any]) -> None:
        store.update(self.path, partial)

    def subscribe(self, store: PathStore, callback: Callable[[T | None, T | None, str], None]) -> Subscription:
        return store.subscribe(self.path, callback)


USER: Lens[dict[str, Any]] = Lens("user")
USER_PROFILE: Lens[dict[str, Any]] = Lens("user.profile")
USER_AUTHENTICATED: Lens[bool] = Lens("user.isAuthenticated")
TELEGRAM_DATA: Lens[dict[str, Any]] = Lens("user.telegramData")

QUOTES: Lens[dict[str, Any]] = Lens("quotes")
QUOTE_ITEMS: Lens[list[dict[str, Any]]] = Lens("quotes.items")
RECENT_QUOTES: Lens[list[dict[str, Any]]] = Lens("quotes.recent")
QUOTES_TOTAL: Lens[int] = Lens("quotes.total")

STATS: Lens[dict[str, Any]] = Lens("stats")

WEEKLY_REPORTS: Lens[list[dict[str, Any]]] = Lens("reports.weekly")
MONTHLY_REPORTS: Lens[list[dict[str, Any]]] = Lens("reports.monthly")
CURRENT_REPORT: Lens[dict[str, Any]] = Lens("reports.current")

UI: Lens[dict[str, Any]] = Lens("ui")
CURRENT_PAGE: Lens[str] = Lens("ui.currentPage")
THEME: Lens[str] = Lens("ui.theme")
BOTTOM_NAV_VISIBLE: Lens[bool] = Lens("ui.bottomNavVisible")
ACTIVE_MODAL: Lens[dict[str, Any]] = Lens("ui.activeModal")
NOTIFICATIONS: Lens[list[dict[str, Any]]] = Lens("ui.notifications")

NETWORK: Lens[dict[str, Any]] = Lens("network")
LAST_SYNC: Lens[int] = Lens("network.lastSync")

WELL_KNOWN: tuple[Lens[Any], ...] = (
    USER,
    USER_PROFILE,
    USER_AUTHENTICATED,
    TELEGRAM_DATA,
    QUOTES,
    QUOTE_ITEMS,
    RECENT_QUOTES,
    QUOTES_TOTAL,
    STATS,
    WEEKLY_REPORTS,
    MONTHLY_REPORTS,
    CURRENT_REPORT,
    UI,
    CURRENT_PAGE,
    THEME,
    BOTTOM_NAV_VISIBLE,
    ACTIVE_MODAL,
    NOTIFICATIONS,
    NETWORK,
    LAST_SYNC,
)


def validate_schema(tree: Mapping[str, Any], lenses: Iterable[Lens[Any]]) -> None:
    """Raise :class:`InvalidPathError` if any lens does not resolve in *tree*."""
    unknown = [lens.path for lens in lenses if not has_in(dict(tree), lens.segments)]
    if unknown:
        raise InvalidPathError(f"paths missing from the state tree: {', '.join(unknown)}")


validate_schema(initial_state(), WELL_KNOWN)
