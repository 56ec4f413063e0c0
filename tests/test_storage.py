from __future__ import annotations

import errno
import json
import logging
import os
from pathlib import Path
from typing import Any

import pytest
from conftest import BrokenStorage, FakeClock, ReadOnlyStorage

from readerstore._constants import HOUR_MS
from readerstore.config import StoreConfig
from readerstore.exceptions import QuotaExceededError, StorageUnavailableError
from readerstore.result import Err, ErrorKind, Ok
from readerstore.storage.records import StorageType, StoredRecord
from readerstore.storage.service import StorageService
from readerstore.storage.substrate import FileStorage, MemoryStorage, StorageSubstrate


def test_generate_key_formats(storage: StorageService) -> None:
    assert storage.generate_key("local", "state") == "reader-app_local_state"
    assert storage.generate_key("cache", "abc") == "reader-app_cache_abc"
    assert storage.generate_key("user", "settings", 42) == "reader-app_user_42_settings"
    assert storage.generate_key("user", "settings") == "reader-app_user_settings"


def test_local_round_trip_and_remove(storage: StorageService) -> None:
    assert storage.set_local("prefs", {"fontSize": 14}).ok
    assert storage.get_local("prefs").unwrap_or(None) == {"fontSize": 14}

    storage.remove_local("prefs")
    result = storage.get_local("prefs")
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.NOT_FOUND


def test_session_helpers_use_volatile_substrate(
    storage: StorageService, local: MemoryStorage, session: MemoryStorage
) -> None:
    storage.set_session("draft", "text")
    assert session.get_item("reader-app_temp_draft") is not None
    assert local.length == 0
    assert storage.get_session("draft").unwrap_or(None) == "text"
    storage.remove_session("draft")
    assert session.length == 0


def test_record_without_ttl_never_expires(storage: StorageService, clock: FakeClock) -> None:
    storage.set_local("k", 1)
    clock.advance(365 * 24 * HOUR_MS)
    assert storage.get_local("k").unwrap_or(None) == 1


def test_record_missing_optional_fields_is_valid(storage: StorageService, local: MemoryStorage) -> None:
    local.set_item("reader-app_local_legacy", json.dumps({"value": "old"}))
    result = storage.get_record(StorageType.LOCAL, "reader-app_local_legacy")
    assert isinstance(result, Ok)
    assert result.value.timestamp == 0
    assert result.value.ttl is None


def test_corrupt_record_is_removed_with_warning(
    storage: StorageService, local: MemoryStorage, caplog: pytest.LogCaptureFixture
) -> None:
    local.set_item("reader-app_local_bad", json.dumps({"timestamp": 1}))
    with caplog.at_level(logging.WARNING, logger="readerstore.storage.service"):
        result = storage.get_local("bad")

    assert isinstance(result, Err)
    assert result.kind is ErrorKind.CORRUPT_RECORD
    assert local.get_item("reader-app_local_bad") is None
    assert "reader-app_local_bad" in caplog.text


def test_peek_has_no_side_effects(storage: StorageService, local: MemoryStorage, clock: FakeClock) -> None:
    storage.set_local("k", 1, ttl=10)
    clock.advance(20)
    peeked = storage.peek_record(StorageType.LOCAL, "reader-app_local_k")

    assert isinstance(peeked, Ok)
    assert peeked.value.is_expired(clock.now)
    assert local.get_item("reader-app_local_k") is not None
    assert storage.stats.reads == 0


def test_cleanup_expired_sweeps_both_substrates(
    storage: StorageService, local: MemoryStorage, session: MemoryStorage, clock: FakeClock
) -> None:
    storage.set_local("fresh", 1, ttl=HOUR_MS)
    storage.set_local("stale", 2, ttl=10)
    storage.set_item(StorageType.SESSION, "reader-app_temp_stale", 3, ttl=10)
    local.set_item("reader-app_local_corrupt", "not json")
    local.set_item("other-app_key", "not ours")
    clock.advance(100)

    removed = storage.cleanup_expired()

    assert removed == 3
    assert storage.get_local("fresh").unwrap_or(None) == 1
    assert local.get_item("other-app_key") == "not ours"
    assert session.length == 0


def test_user_data_helpers(storage: StorageService, local: MemoryStorage, session: MemoryStorage) -> None:
    storage.set_user_data(42, "settings", {"lang": "ru"})
    storage.set_user_data(42, "draft", "text", permanent=False)
    storage.set_user_data(7, "settings", {"lang": "en"})

    assert local.get_item("reader-app_user_42_settings") is not None
    assert session.get_item("reader-app_user_42_draft") is not None
    assert storage.get_user_data(42, "settings").unwrap_or(None) == {"lang": "ru"}
    assert storage.get_user_data(42, "draft").unwrap_or(None) == "text"
    assert not storage.get_user_data(42, "draft", check_session=False).ok

    assert storage.clear_user_data(42) == 2
    assert storage.get_user_data(7, "settings").unwrap_or(None) == {"lang": "en"}


def test_permanent_user_data_expires_after_profile_window(storage: StorageService, clock: FakeClock) -> None:
    storage.set_user_data(1, "profile", {"id": 1})
    clock.advance(24 * HOUR_MS)
    assert not storage.get_user_data(1, "profile").ok


def test_remove_single_user_key(storage: StorageService) -> None:
    storage.set_user_data(5, "a", 1)
    storage.set_user_data(5, "b", 2)
    storage.remove_user_data(5, "a")
    assert not storage.get_user_data(5, "a").ok
    assert storage.get_user_data(5, "b").ok


def test_clear_all_leaves_foreign_keys(storage: StorageService, local: MemoryStorage) -> None:
    storage.set_local("a", 1)
    storage.set_session("b", 2)
    local.set_item("foreign", "x")

    assert storage.clear_all() == 2
    assert local.get_item("foreign") == "x"


def test_storage_stats(storage: StorageService) -> None:
    storage.set_local("a", 1)
    storage.set_item(StorageType.LOCAL, storage.generate_key("cache", "k"), [1], ttl=1000)
    storage.set_user_data(3, "s", {})
    storage.get_local("a")
    storage.get_local("missing")

    usage = storage.storage_stats()

    assert usage.items[StorageType.LOCAL] == 3
    assert usage.items[StorageType.SESSION] == 0
    assert usage.cache_items == 1
    assert usage.user_items == 1
    assert usage.writes == 3
    assert usage.hits == 1
    assert usage.misses == 1
    assert usage.total_size == storage.total_size() > 0


def test_unserializable_value_is_rejected(storage: StorageService) -> None:
    result = storage.set_local("k", {1, 2, object()})
    assert isinstance(result, Err)
    assert result.kind is ErrorKind.SERIALIZATION


def test_unavailable_storage_warns_once(clock: FakeClock, caplog: pytest.LogCaptureFixture) -> None:
    storage = StorageService(StoreConfig(), local=BrokenStorage(), session=None, clock=clock)
    with caplog.at_level(logging.WARNING, logger="readerstore.storage.service"):
        first = storage.set_local("a", 1)
        storage.get_local("a")
        storage.set_session("b", 2)

    assert isinstance(first, Err)
    assert first.kind is ErrorKind.STORAGE_UNAVAILABLE
    assert caplog.text.count("storage unavailable") == 2
    assert storage.cleanup_expired() == 0


def test_substrates_satisfy_protocol(tmp_path: Path) -> None:
    assert isinstance(MemoryStorage(), StorageSubstrate)
    assert isinstance(FileStorage(tmp_path / "s.json"), StorageSubstrate)


def test_memory_storage_quota() -> None:
    substrate = MemoryStorage(max_items=1)
    substrate.set_item("a", "1")
    substrate.set_item("a", "2")
    with pytest.raises(QuotaExceededError):
        substrate.set_item("b", "1")

    sized = MemoryStorage(max_bytes=10)
    sized.set_item("k", "12345")
    with pytest.raises(QuotaExceededError) as excinfo:
        sized.set_item("j", "123456")
    assert excinfo.value.key == "j"


def test_memory_storage_enumeration() -> None:
    substrate = MemoryStorage()
    substrate.set_item("a", "1")
    substrate.set_item("b", "2")
    assert substrate.length == 2
    assert [substrate.key(0), substrate.key(1), substrate.key(2)] == ["a", "b", None]
    substrate.remove_item("a")
    substrate.remove_item("missing")
    assert substrate.length == 1


def test_file_storage_survives_reopen(tmp_path: Path) -> None:
    path = tmp_path / "store" / "reader-app.json"
    first = FileStorage(path)
    first.set_item("k", "v")
    first.set_item("gone", "x")
    first.remove_item("gone")

    second = FileStorage(path)
    assert second.get_item("k") == "v"
    assert second.get_item("gone") is None
    assert not path.with_suffix(".json.tmp").exists()


def test_file_storage_starts_empty_on_invalid_file(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "reader-app.json"
    path.write_text("{broken", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        substrate = FileStorage(path)

    assert substrate.length == 0
    assert "Invalid storage file" in caplog.text


def test_service_over_file_storage(tmp_path: Path, clock: FakeClock) -> None:
    path = tmp_path / "reader-app.json"
    service = StorageService(StoreConfig(), local=FileStorage(path), session=MemoryStorage(), clock=clock)
    service.set_local("theme", "dark")

    reopened = StorageService(StoreConfig(), local=FileStorage(path), session=MemoryStorage(), clock=clock)
    assert reopened.get_local("theme").unwrap_or(None) == "dark"

    raw = json.loads(path.read_text(encoding="utf-8"))
    record = StoredRecord.model_validate_json(raw["reader-app_local_theme"])
    assert record.value == "dark"
    assert record.ttl is None


def test_os_errors_from_substrate_are_reported(clock: FakeClock) -> None:
    storage = StorageService(StoreConfig(), local=ReadOnlyStorage(), session=MemoryStorage(), clock=clock)

    written = storage.set_local("k", 1)
    removed = storage.remove_local("k")

    assert isinstance(written, Err)
    assert written.kind is ErrorKind.STORAGE_UNAVAILABLE
    assert isinstance(removed, Err)
    assert removed.kind is ErrorKind.STORAGE_UNAVAILABLE
    assert storage.stats.writes == 0


def _failing_replace(code: int) -> Any:
    def replace(self: Path, target: Any) -> Path:
        raise OSError(code, os.strerror(code))

    return replace


def test_file_storage_quota(tmp_path: Path) -> None:
    path = tmp_path / "reader-app.json"
    substrate = FileStorage(path, max_items=1)
    substrate.set_item("a", "1")

    with pytest.raises(QuotaExceededError):
        substrate.set_item("b", "2")

    assert FileStorage(path).get_item("b") is None


@pytest.mark.parametrize(
    ("code", "expected"),
    [(errno.ENOSPC, QuotaExceededError), (errno.EACCES, StorageUnavailableError)],
)
def test_file_storage_rolls_back_failed_flush(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, code: int, expected: type[Exception]
) -> None:
    path = tmp_path / "reader-app.json"
    substrate = FileStorage(path)
    substrate.set_item("k", "v1")
    monkeypatch.setattr(Path, "replace", _failing_replace(code))

    with pytest.raises(expected):
        substrate.set_item("k", "v2")
    with pytest.raises(expected):
        substrate.set_item("new", "x")
    with pytest.raises(expected):
        substrate.remove_item("k")

    assert substrate.get_item("k") == "v1"
    assert substrate.get_item("new") is None
    assert substrate.length == 1

    monkeypatch.undo()
    assert not path.with_suffix(".json.tmp").exists()
    assert FileStorage(path).get_item("k") == "v1"


def test_full_disk_write_reports_quota(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, clock: FakeClock) -> None:
    service = StorageService(
        StoreConfig(), local=FileStorage(tmp_path / "reader-app.json"), session=MemoryStorage(), clock=clock
    )
    service.set_local("a", 1)
    monkeypatch.setattr(Path, "replace", _failing_replace(errno.ENOSPC))

    result = service.set_local("b", 2)

    assert isinstance(result, Err)
    assert result.kind is ErrorKind.QUOTA_EXCEEDED
    assert service.get_local("a").unwrap_or(None) == 1
