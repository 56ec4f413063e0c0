"""Internal constants shared across the library."""

from __future__ import annotations

import time
from typing import Any

APP_PREFIX = "reader-app"
STATE_KEY = "state"
KEY_SEPARATOR = "_"
PATH_SEPARATOR = "."

# Composite-key category names.
CATEGORY_LOCAL = "local"
CATEGORY_CACHE = "cache"
CATEGORY_TEMP = "temp"
CATEGORY_USER = "user"

STORAGE_PROBE_KEY = "__storage_test__"

DEFAULT_PERSISTENT_PATHS: tuple[str, ...] = ("user.profile", "ui.theme")

# ------------------------------------------------------------------
# Cache retention windows (milliseconds)
# ------------------------------------------------------------------

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS

TTL_QUOTES_MS = 10 * MINUTE_MS
TTL_STATS_MS = 5 * MINUTE_MS
TTL_REPORTS_MS = 30 * MINUTE_MS
TTL_CATALOG_MS = HOUR_MS
TTL_PROFILE_MS = 24 * HOUR_MS

EVICTION_RATIO = 0.25
MAX_NOTIFY_DEPTH = 32
MAX_HISTORY_SIZE = 50

# ------------------------------------------------------------------
# Initial state tree
# ------------------------------------------------------------------


def initial_state() -> dict[str, Any]:
    """Return a fresh copy of the application's initial state tree."""
    return {
        "user": {
            "profile": None,
            "isAuthenticated": False,
            "telegramData": None,
        },
        "quotes": {
            "items": [],
            "recent": [],
            "total": 0,
            "loading": False,
            "lastUpdate": None,
        },
        "stats": {
            "totalQuotes": 0,
            "thisWeek": 0,
            "currentStreak": 0,
            "longestStreak": 0,
            "favoriteAuthors": [],
            "loading": False,
        },
        "reports": {
            "weekly": [],
            "monthly": [],
            "current": None,
            "loading": False,
        },
        "achievements": {
            "items": [],
            "recent": [],
            "progress": {},
            "loading": False,
        },
        "catalog": {
            "books": [],
            "categories": [],
            "recommendations": [],
            "promoCodes": [],
            "loading": False,
        },
        "community": {
            "messages": [],
            "loading": False,
        },
        "ui": {
            "currentPage": "home",
            "loading": False,
            "theme": "light",
            "bottomNavVisible": True,
            "activeModal": None,
            "notifications": [],
        },
        "network": {
            "isOnline": True,
            "lastSync": None,
            "pendingRequests": [],
        },
    }


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)
