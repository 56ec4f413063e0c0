from __future__ import annotations

import pytest

from readerstore.config import CacheTtl, StoreConfig


def test_defaults() -> None:
    config = StoreConfig()
    assert config.app_prefix == "reader-app"
    assert config.persistent_paths == ("user.profile", "ui.theme")
    assert config.storage_dir is None
    assert config.max_notify_depth == 32
    assert config.eviction_ratio == 0.25
    assert config.debug is False


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("READER_STORE_APP_PREFIX", "reader-test")
    monkeypatch.setenv("READER_STORE_STORAGE_DIR", "/tmp/reader")
    monkeypatch.setenv("READER_STORE_PERSISTENT_PATHS", "ui.theme, ui.currentPage,,")
    monkeypatch.setenv("READER_STORE_MAX_NOTIFY_DEPTH", "8")
    monkeypatch.setenv("READER_STORE_EVICTION_RATIO", "0.5")
    monkeypatch.setenv("READER_STORE_DEBUG", "yes")

    config = StoreConfig.from_env()

    assert config.app_prefix == "reader-test"
    assert config.storage_dir == "/tmp/reader"
    assert config.persistent_paths == ("ui.theme", "ui.currentPage")
    assert config.max_notify_depth == 8
    assert config.eviction_ratio == 0.5
    assert config.debug is True


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("READER_STORE_DEBUG", "1")
    monkeypatch.setenv("READER_STORE_MAX_NOTIFY_DEPTH", "8")

    config = StoreConfig.from_env(debug=False, max_notify_depth=4, cache_ttl={"quotes": 1000})

    assert config.debug is False
    assert config.max_notify_depth == 4
    assert config.cache_ttl.quotes == 1000
    assert config.cache_ttl.stats == CacheTtl().stats


def test_unparsable_bool_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("READER_STORE_DEBUG", "maybe")
    assert StoreConfig.from_env().debug is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"app_prefix": ""},
        {"max_notify_depth": 0},
        {"eviction_ratio": 0.0},
        {"eviction_ratio": 1.5},
    ],
)
def test_invalid_values_are_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        StoreConfig(**kwargs)  # type: ignore[arg-type]


def test_ttl_lookup_order() -> None:
    ttl = CacheTtl(quotes=1, stats=2, reports=3, catalog=4, profile=5, default=6)
    assert ttl.for_endpoint("/quotes/stats") == 1
    assert ttl.for_endpoint("/stats") == 2
    assert ttl.for_endpoint("/reports/weekly") == 3
    assert ttl.for_endpoint("/catalog") == 4
    assert ttl.for_endpoint("/profile") == 5
    assert ttl.for_endpoint("/community") == 6
