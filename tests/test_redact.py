from __future__ import annotations

from readerstore._redact import redact_for_log


def test_redacts_telegram_auth_material() -> None:
    value = {"initData": "query_id=AAH&user=...", "hash": "abc123", "user": {"id": 1, "first_name": "Anna"}}
    redacted = redact_for_log(value)
    assert redacted["initData"] == "<redacted>"
    assert redacted["hash"] == "<redacted>"
    assert redacted["user"] == {"id": 1, "first_name": "Anna"}


def test_redacts_keys_case_insensitively() -> None:
    redacted = redact_for_log({"Authorization": "Bearer x", "apiKey": "k", "nested": [{"Token": "t"}]})
    assert redacted == {"Authorization": "<redacted>", "apiKey": "<redacted>", "nested": [{"Token": "<redacted>"}]}


def test_truncates_long_strings() -> None:
    redacted = redact_for_log("x" * 300, max_string=10)
    assert redacted.startswith("x" * 10)
    assert redacted.endswith("<truncated>")


def test_caps_long_sequences() -> None:
    redacted = redact_for_log(list(range(25)), max_items=5)
    assert redacted == [0, 1, 2, 3, 4, "<+20 more>"]


def test_scalars_pass_through() -> None:
    assert redact_for_log(None) is None
    assert redact_for_log(3) == 3
    assert redact_for_log(True) is True
    assert redact_for_log(b"abc") == "<bytes:3b>"


def test_does_not_mutate_input() -> None:
    value = {"token": "secret", "items": [1, 2]}
    redact_for_log(value)
    assert value == {"token": "secret", "items": [1, 2]}
