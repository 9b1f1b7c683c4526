"""API Dependencies - process-wide adapters handed to routes via FastAPI Depends.

Invariants:
    - Adapters are configured once in the lifespan and released on shutdown
    - Routes never construct adapters themselves (tests override these providers)
"""

import logging

from palette.config import Settings
from palette.core.domain_types import KeyValueBackend
from palette.core.ports import KeyValueStore, SearchBackend
from palette.infrastructure import database
from palette.infrastructure.kv_store import MemoryKeyValueStore, SqlKeyValueStore
from palette.infrastructure.search_client import ResilientSearchClient

logger = logging.getLogger(__name__)

# Singletons (initialized on startup)
search_backend: SearchBackend | None = None
kv_store: KeyValueStore | None = None


async def configure(settings: Settings) -> None:
    """Build the search client and history store from settings."""
    global search_backend, kv_store
    search_backend = ResilientSearchClient(
        settings.search_api_url,
        max_retries=settings.search_max_retries,
        base_delay_ms=settings.search_base_delay_ms,
        max_delay_ms=settings.search_max_delay_ms,
        timeout_seconds=settings.search_timeout_seconds,
    )
    if settings.kv_backend == KeyValueBackend.SQL:
        manager = database.init_db(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        await manager.create_schema()
        kv_store = SqlKeyValueStore(manager)
    else:
        kv_store = MemoryKeyValueStore()
    logger.info(f"Palette adapters configured (kv_backend={settings.kv_backend.value})")


async def release() -> None:
    global search_backend, kv_store
    if isinstance(search_backend, ResilientSearchClient):
        await search_backend.aclose()
    if database.db_manager is not None:
        await database.db_manager.dispose()
        database.db_manager = None
    search_backend = None
    kv_store = None


def get_search_backend() -> SearchBackend:
    """FastAPI dependency for the search service client."""
    if search_backend is None:
        raise RuntimeError("Search backend not configured")
    return search_backend


def get_kv_store() -> KeyValueStore:
    """FastAPI dependency for the history store."""
    if kv_store is None:
        raise RuntimeError("Key-value store not configured")
    return kv_store
