"""Store and cache configuration for readerstore."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from readerstore._constants import (
    APP_PREFIX,
    DEFAULT_PERSISTENT_PATHS,
    EVICTION_RATIO,
    MAX_HISTORY_SIZE,
    MAX_NOTIFY_DEPTH,
    STATE_KEY,
    TTL_CATALOG_MS,
    TTL_PROFILE_MS,
    TTL_QUOTES_MS,
    TTL_REPORTS_MS,
    TTL_STATS_MS,
)


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_paths(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclasses.dataclass(frozen=True)
class CacheTtl:
    """Default retention windows per resource category, in milliseconds.

    The category of an API response is picked by substring match of its
    endpoint, in field order. Endpoints matching none of them use
    ``default``.
    """

    quotes: int = TTL_QUOTES_MS
    stats: int = TTL_STATS_MS
    reports: int = TTL_REPORTS_MS
    catalog: int = TTL_CATALOG_MS
    profile: int = TTL_PROFILE_MS
    default: int = TTL_QUOTES_MS

    def for_endpoint(self, endpoint: str) -> int:
        """Return the retention window for *endpoint*."""
        for category in ("quotes", "stats", "reports", "catalog", "profile"):
            if category in endpoint:
                return int(getattr(self, category))
        return self.default


@dataclasses.dataclass(frozen=True)
class StoreConfig:
    """Store configuration.

    Parameters
    ----------
    app_prefix : str
        Namespace prepended to every storage key.
    state_key : str
        Logical key of the persisted state snapshot.
    persistent_paths : tuple[str, ...]
        Store paths mirrored into durable storage. Everything else is
        session-only.
    storage_dir : str or None
        Directory of the durable file substrate. ``None`` keeps durable
        storage in memory (useful for tests and ephemeral processes).
    max_notify_depth : int
        Maximum nesting of mutations triggered from inside listeners.
    max_history_size : int
        Number of change-log entries kept when ``debug`` is enabled.
    eviction_ratio : float
        Share of a layer's oldest records removed on quota exhaustion.
    debug : bool
        Keep an in-memory change log of store mutations.
    cache_ttl : CacheTtl
        Default cache retention table.
    """

    app_prefix: str = APP_PREFIX
    state_key: str = STATE_KEY
    persistent_paths: tuple[str, ...] = DEFAULT_PERSISTENT_PATHS
    storage_dir: str | None = None
    max_notify_depth: int = MAX_NOTIFY_DEPTH
    max_history_size: int = MAX_HISTORY_SIZE
    eviction_ratio: float = EVICTION_RATIO
    debug: bool = False
    cache_ttl: CacheTtl = dataclasses.field(default_factory=CacheTtl)

    def __post_init__(self) -> None:
        if not self.app_prefix:
            raise ValueError("app_prefix must be non-empty")
        if self.max_notify_depth < 1:
            raise ValueError("max_notify_depth must be at least 1")
        if not 0.0 < self.eviction_ratio <= 1.0:
            raise ValueError(f"eviction_ratio must be in (0, 1], got {self.eviction_ratio}")

    @classmethod
    def from_env(cls, **overrides: Any) -> StoreConfig:
        """Create configuration from ``READER_STORE_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "READER_STORE_APP_PREFIX": "app_prefix",
            "READER_STORE_STATE_KEY": "state_key",
            "READER_STORE_STORAGE_DIR": "storage_dir",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        paths_env = env.get("READER_STORE_PERSISTENT_PATHS")
        if paths_env is not None and "persistent_paths" not in overrides:
            config_kwargs["persistent_paths"] = _env_paths(paths_env)

        depth_env = env.get("READER_STORE_MAX_NOTIFY_DEPTH")
        if depth_env is not None and "max_notify_depth" not in overrides:
            config_kwargs["max_notify_depth"] = int(depth_env)

        history_env = env.get("READER_STORE_MAX_HISTORY_SIZE")
        if history_env is not None and "max_history_size" not in overrides:
            config_kwargs["max_history_size"] = int(history_env)

        ratio_env = env.get("READER_STORE_EVICTION_RATIO")
        if ratio_env is not None and "eviction_ratio" not in overrides:
            config_kwargs["eviction_ratio"] = float(ratio_env)

        if "debug" not in overrides:
            config_kwargs["debug"] = _env_bool(env.get("READER_STORE_DEBUG"), False)

        # Allow overriding the TTL table via a nested dict
        ttl_overrides = overrides.pop("cache_ttl", None)
        if isinstance(ttl_overrides, dict):
            config_kwargs["cache_ttl"] = CacheTtl(**ttl_overrides)
        elif isinstance(ttl_overrides, CacheTtl):
            config_kwargs["cache_ttl"] = ttl_overrides

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
