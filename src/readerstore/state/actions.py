"""Controller-facing operations built on the path store.

These wrap the common multi-step updates UI controllers perform (login,
quote bookkeeping, notifications) so that each one is expressed once.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any

from readerstore._constants import now_ms
from readerstore.state import schema
from readerstore.state.store import PathStore

#: Default display time of a notification, in milliseconds.
DEFAULT_NOTIFICATION_MS = 5000


class NotificationType(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class AppActions:
    def __init__(self, store: PathStore, *, clock: Callable[[], int] = now_ms) -> None:
        self._store = store
        self._clock = clock

    @property
    def store(self) -> PathStore:
        return self._store

    # ------------------------------------------------------------------
    # User
    # ------------------------------------------------------------------

    def set_user(self, profile: Mapping[str, Any]) -> None:
        schema.USER.update(self._store, {"profile": dict(profile), "isAuthenticated": True})

    def set_telegram_data(self, telegram_data: Mapping[str, Any]) -> None:
        schema.TELEGRAM_DATA.set(self._store, dict(telegram_data))

    def initialize_from_telegram(self, telegram_data: Mapping[str, Any] | None) -> bool:
        """Populate the user section from Telegram WebApp user data.

        Returns ``False`` when the data carries no user id.
        """
        if not telegram_data or not telegram_data.get("id"):
            return False

        first_name = telegram_data.get("first_name") or ""
        last_name = telegram_data.get("last_name") or ""
        schema.USER.update(
            self._store,
            {
                "profile": {
                    "id": telegram_data["id"],
                    "firstName": first_name,
                    "lastName": last_name,
                    "fullName": f"{first_name} {last_name}".strip(),
                    "username": telegram_data.get("username"),
                    "language": telegram_data.get("language_code") or "ru",
                },
                "telegramData": dict(telegram_data),
                "isAuthenticated": True,
            },
        )
        return True

    def current_user_id(self) -> Any | None:
        profile = schema.USER_PROFILE.get(self._store) or {}
        telegram_data = schema.TELEGRAM_DATA.get(self._store) or {}
        return profile.get("id") or telegram_data.get("id") or None

    def is_authenticated(self) -> bool:
        return bool(schema.USER_AUTHENTICATED.get(self._store))

    def logout(self) -> None:
        """Forget the user and reset every user-specific section."""
        schema.USER.update(self._store, {"profile": None, "isAuthenticated": False, "telegramData": None})
        for section in ("quotes", "stats", "reports", "achievements"):
            self._store.reset(section)

    # ------------------------------------------------------------------
    # Quotes and stats
    # ------------------------------------------------------------------

    def set_quotes(self, quotes: list[dict[str, Any]], total: int | None = None) -> None:
        schema.QUOTES.update(
            self._store,
            {
                "items": quotes,
                "total": total if total is not None else len(quotes),
                "lastUpdate": self._clock(),
                "loading": False,
            },
        )

    def add_quote(self, quote: Mapping[str, Any]) -> None:
        self._store.push(schema.QUOTE_ITEMS.path, dict(quote))
        schema.QUOTES.update(
            self._store,
            {"total": (schema.QUOTES_TOTAL.get(self._store) or 0) + 1, "lastUpdate": self._clock()},
        )

    def update_quote(self, quote_id: Any, updates: Mapping[str, Any]) -> None:
        quotes = schema.QUOTE_ITEMS.get(self._store) or []
        schema.QUOTE_ITEMS.set(
            self._store,
            [{**quote, **updates} if quote.get("id") == quote_id else quote for quote in quotes],
        )

    def remove_quote(self, quote_id: Any) -> None:
        self._store.remove(schema.QUOTE_ITEMS.path, lambda quote: quote.get("id") == quote_id)
        total = schema.QUOTES_TOTAL.get(self._store) or 0
        schema.QUOTES.update(self._store, {"total": max(total - 1, 0), "lastUpdate": self._clock()})

    def set_recent_quotes(self, quotes: list[dict[str, Any]]) -> None:
        schema.RECENT_QUOTES.set(self._store, quotes)

    def set_stats(self, stats: Mapping[str, Any]) -> None:
        schema.STATS.update(self._store, {**stats, "loading": False})

    def update_stats(self, updates: Mapping[str, Any]) -> None:
        schema.STATS.update(self._store, updates)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def set_weekly_reports(self, reports: list[dict[str, Any]]) -> None:
        schema.WEEKLY_REPORTS.set(self._store, reports)

    def set_monthly_reports(self, reports: list[dict[str, Any]]) -> None:
        schema.MONTHLY_REPORTS.set(self._store, reports)

    def set_current_report(self, report: Mapping[str, Any] | None) -> None:
        schema.CURRENT_REPORT.set(self._store, dict(report) if report is not None else None)

    # ------------------------------------------------------------------
    # UI
    # ------------------------------------------------------------------

    def set_current_page(self, page: str) -> None:
        schema.CURRENT_PAGE.set(self._store, page)

    def set_theme(self, theme: str) -> None:
        schema.THEME.set(self._store, theme)

    def set_loading(self, is_loading: bool, section: str = "ui") -> None:
        self._store.set(f"{section}.loading", is_loading)

    def show_bottom_nav(self) -> None:
        schema.BOTTOM_NAV_VISIBLE.set(self._store, True)

    def hide_bottom_nav(self) -> None:
        schema.BOTTOM_NAV_VISIBLE.set(self._store, False)

    def show_modal(self, modal_type: str, modal_data: Mapping[str, Any] | None = None) -> None:
        schema.UI.update(self._store, {"activeModal": {"type": modal_type, "data": dict(modal_data or {})}})

    def close_modal(self) -> None:
        schema.ACTIVE_MODAL.set(self._store, None)

    def add_notification(
        self,
        message: str,
        kind: NotificationType | str = NotificationType.INFO,
        duration: int = DEFAULT_NOTIFICATION_MS,
    ) -> str:
        """Queue a notification and return its id.

        A positive *duration* (milliseconds) makes the notification
        eligible for :meth:`prune_notifications` once it has elapsed.
        """
        now = self._clock()
        notification = {
            "id": uuid.uuid4().hex,
            "message": message,
            "type": str(NotificationType(kind)),
            "timestamp": now,
            "duration": duration,
            "expiresAt": now + duration if duration > 0 else None,
        }
        self._store.push(schema.NOTIFICATIONS.path, notification)
        return notification["id"]

    def remove_notification(self, notification_id: str) -> None:
        self._store.remove(schema.NOTIFICATIONS.path, lambda item: item.get("id") == notification_id)

    def prune_notifications(self) -> int:
        """Drop notifications whose display time has elapsed."""
        now = self._clock()
        notifications = schema.NOTIFICATIONS.get(self._store) or []
        expired = [n for n in notifications if n.get("expiresAt") is not None and now >= n["expiresAt"]]
        if expired:
            expired_ids = {n["id"] for n in expired}
            self._store.remove(schema.NOTIFICATIONS.path, lambda item: item.get("id") in expired_ids)
        return len(expired)

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    def set_network(self, network_state: Mapping[str, Any]) -> None:
        schema.NETWORK.update(self._store, network_state)

    def update_last_sync(self) -> None:
        schema.LAST_SYNC.set(self._store, self._clock())
