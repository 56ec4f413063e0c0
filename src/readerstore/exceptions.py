"""Custom exception hierarchy for readerstore."""

from __future__ import annotations


class ReaderStoreError(Exception):
    """Base exception for all readerstore errors."""


class StorageUnavailableError(ReaderStoreError):
    """Storage substrate is missing, disabled, or failed its probe."""


class QuotaExceededError(ReaderStoreError):
    """A write would exceed the substrate's allotted capacity.

    Raised by storage substrates. The record layer catches it and runs
    one eviction pass before retrying the write.
    """

    def __init__(self, message: str, *, key: str = "", requested: int = 0) -> None:
        self.key = key
        self.requested = requested
        super().__init__(message)


class CorruptRecordError(ReaderStoreError):
    """A persisted record could not be decoded."""

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class SubscriberError(ReaderStoreError):
    """A state listener raised while being notified.

    Never propagated to the mutating caller; wraps the original exception
    for logging.
    """

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class InvalidPathError(ReaderStoreError, ValueError):
    """A state path is empty or has empty segments."""


class StoreNotReadyError(ReaderStoreError):
    """The store is still rehydrating persisted state."""


class ReentrancyLimitError(ReaderStoreError):
    """Nested mutations from listeners exceeded the configured depth.

    Raised into the listener that attempted the nested mutation, never to
    the outermost caller.
    """

    def __init__(self, message: str, *, path: str = "", depth: int = 0) -> None:
        self.path = path
        self.depth = depth
        super().__init__(message)
