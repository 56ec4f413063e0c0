"""readerstore - Reactive state store and persistent API cache for the Reader mini-app."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("readerstore")
except PackageNotFoundError:
    __version__ = "0+local"
from readerstore.cache import ApiCache
from readerstore.config import CacheTtl, StoreConfig
from readerstore.context import AppContext, create_context
from readerstore.exceptions import (
    CorruptRecordError,
    InvalidPathError,
    QuotaExceededError,
    ReaderStoreError,
    ReentrancyLimitError,
    StorageUnavailableError,
    StoreNotReadyError,
    SubscriberError,
)
from readerstore.keys import generate_cache_key
from readerstore.persistence import PersistenceGateway
from readerstore.result import Err, ErrorKind, Ok, Result
from readerstore.state.actions import AppActions, NotificationType
from readerstore.state.schema import Lens
from readerstore.state.store import HistoryEntry, PathStore, StorePhase
from readerstore.state.subscriptions import Subscription, SubscriptionRegistry
from readerstore.storage import (
    FileStorage,
    MemoryStorage,
    StorageService,
    StorageSubstrate,
    StorageType,
)

__all__ = [
    "__version__",
    "ApiCache",
    "AppActions",
    "AppContext",
    "CacheTtl",
    "CorruptRecordError",
    "Err",
    "ErrorKind",
    "FileStorage",
    "HistoryEntry",
    "InvalidPathError",
    "Lens",
    "MemoryStorage",
    "NotificationType",
    "Ok",
    "PathStore",
    "PersistenceGateway",
    "QuotaExceededError",
    "ReaderStoreError",
    "ReentrancyLimitError",
    "Result",
    "StorageService",
    "StorageSubstrate",
    "StorageType",
    "StorageUnavailableError",
    "StoreConfig",
    "StoreNotReadyError",
    "StorePhase",
    "Subscription",
    "SubscriptionRegistry",
    "create_context",
    "generate_cache_key",
]
