"""Process-wide wiring of the store, cache and storage layers.

:func:`create_context` is called once at startup; the returned
:class:`AppContext` is passed explicitly to every consumer instead of
being reached through a module global.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from readerstore._constants import now_ms
from readerstore.cache import ApiCache
from readerstore.config import StoreConfig
from readerstore.exceptions import StorageUnavailableError
from readerstore.persistence import PersistenceGateway
from readerstore.state.actions import AppActions
from readerstore.state.store import PathStore
from readerstore.storage.service import StorageService
from readerstore.storage.substrate import FileStorage, MemoryStorage, StorageSubstrate

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppContext:
    config: StoreConfig
    storage: StorageService
    cache: ApiCache
    persistence: PersistenceGateway
    store: PathStore
    actions: AppActions


def open_durable_storage(config: StoreConfig) -> StorageSubstrate | None:
    """Open the durable substrate described by *config*.

    Without a ``storage_dir`` durable data lives in memory. A directory
    that cannot be read yields ``None`` (durable storage unavailable).
    """
    if config.storage_dir is None:
        return MemoryStorage()
    path = Path(config.storage_dir) / f"{config.app_prefix}.json"
    try:
        return FileStorage(path)
    except StorageUnavailableError as e:
        _logger.warning("Durable storage unavailable: %s", e)
        return None


def create_context(
    config: StoreConfig | None = None,
    *,
    local: StorageSubstrate | None = None,
    session: StorageSubstrate | None = None,
    clock: Callable[[], int] = now_ms,
) -> AppContext:
    """Build every component, sweep stale records and rehydrate the store.

    Parameters
    ----------
    config : StoreConfig or None
        Defaults to :meth:`StoreConfig.from_env`.
    local, session : StorageSubstrate or None
        Substrates to use instead of the configured ones.
    clock : callable
        Epoch-milliseconds clock shared by every component.
    """
    config = config or StoreConfig.from_env()
    if local is None:
        local = open_durable_storage(config)
    if session is None:
        session = MemoryStorage()

    storage = StorageService(config, local=local, session=session, clock=clock)
    swept = storage.cleanup_expired()
    if swept:
        _logger.debug("Startup sweep removed %d stale records", swept)

    cache = ApiCache(storage)
    persistence = PersistenceGateway(storage)
    store = PathStore(config, persistence=persistence, clock=clock)
    actions = AppActions(store, clock=clock)
    _logger.debug("Context ready (prefix=%s, persistent=%s)", config.app_prefix, persistence.paths)
    return AppContext(
        config=config,
        storage=storage,
        cache=cache,
        persistence=persistence,
        store=store,
        actions=actions,
    )
