"""Storage layer.

Substrates hold raw strings; :class:`StorageService` adds key namespacing,
record encoding, expiry and quota recovery on top of them.
"""

from readerstore.storage.records import CachedResponse, StorageType, StorageUsage, StoredRecord
from readerstore.storage.service import StorageService
from readerstore.storage.substrate import FileStorage, MemoryStorage, StorageSubstrate

__all__ = [
    "CachedResponse",
    "FileStorage",
    "MemoryStorage",
    "StorageService",
    "StorageSubstrate",
    "StorageType",
    "StorageUsage",
    "StoredRecord",
]
