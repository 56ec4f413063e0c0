"""Explicit success/failure values for storage and cache operations.

Storage primitives never raise to their callers. Instead they return
:class:`Ok` or :class:`Err`, so a failed write or a cache miss is visible
and inspectable without any exception handling at the call site.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(StrEnum):
    STORAGE_UNAVAILABLE = "storage_unavailable"
    QUOTA_EXCEEDED = "quota_exceeded"
    CORRUPT_RECORD = "corrupt_record"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    SERIALIZATION = "serialization"


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap_or(self, default: Any) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err:
    kind: ErrorKind
    detail: str = ""

    @property
    def ok(self) -> bool:
        return False

    @property
    def is_miss(self) -> bool:
        """Whether this failure means "nothing usable stored" for a read."""
        return self.kind in (ErrorKind.NOT_FOUND, ErrorKind.EXPIRED, ErrorKind.CORRUPT_RECORD)

    def unwrap_or(self, default: T) -> T:
        return default


Result = Ok[T] | Err
