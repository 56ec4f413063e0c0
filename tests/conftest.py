from __future__ import annotations

import errno

import pytest

from readerstore.config import StoreConfig
from readerstore.exceptions import StorageUnavailableError
from readerstore.storage.service import StorageService
from readerstore.storage.substrate import MemoryStorage

START_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z


class FakeClock:
    """Epoch-milliseconds clock advanced by hand."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class BrokenStorage:
    """Substrate whose every operation fails, like a disabled browser storage."""

    @property
    def length(self) -> int:
        raise StorageUnavailableError("disabled")

    def key(self, index: int) -> str | None:
        raise StorageUnavailableError("disabled")

    def get_item(self, key: str) -> str | None:
        raise StorageUnavailableError("disabled")

    def set_item(self, key: str, value: str) -> None:
        raise StorageUnavailableError("disabled")

    def remove_item(self, key: str) -> None:
        raise StorageUnavailableError("disabled")


class ReadOnlyStorage(MemoryStorage):
    """Readable substrate whose writes fail like a read-only filesystem."""

    def set_item(self, key: str, value: str) -> None:
        raise PermissionError(errno.EROFS, "Read-only file system")

    def remove_item(self, key: str) -> None:
        raise PermissionError(errno.EROFS, "Read-only file system")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> StoreConfig:
    return StoreConfig()


@pytest.fixture
def local() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def session() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def storage(config: StoreConfig, local: MemoryStorage, session: MemoryStorage, clock: FakeClock) -> StorageService:
    return StorageService(config, local=local, session=session, clock=clock)
