"""Key-Value Stores - durable history storage behind the KeyValueStore protocol.

Invariants:
    - Values are JSON documents; callers never share mutable state with the store
    - get() on a missing key returns None (never raises for absence)
    - SQL failures surface as StorageUnavailableError (mapped in DatabaseSessionManager)

Design Decisions:
    - MemoryKeyValueStore copies through a JSON round-trip, so non-serializable values
      fail the same way they would against the SQL store
    - SqlKeyValueStore upserts with merge(): one row per key, no history of values
"""

import json
import logging
from typing import Any

from sqlalchemy import delete, select

from palette.core.errors import StorageUnavailableError
from palette.infrastructure.database import DatabaseSessionManager
from palette.models.kv_entry import KeyValueEntry

logger = logging.getLogger(__name__)


def _copy(value: Any) -> Any:
    try:
        return json.loads(json.dumps(value))
    except (TypeError, ValueError) as e:
        raise StorageUnavailableError(f"value is not JSON-serializable ({e})", "set")


class MemoryKeyValueStore:
    """Process-local store (tests, single-process deployments)."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = {k: _copy(v) for k, v in (initial or {}).items()}

    async def get(self, key: str) -> Any | None:
        if key not in self._data:
            return None
        return _copy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = _copy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list_keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class SqlKeyValueStore:
    """SQLAlchemy-backed store (one row per key in palette_kv_entries)."""

    def __init__(self, manager: DatabaseSessionManager):
        self.manager = manager

    async def get(self, key: str) -> Any | None:
        async with self.manager.session() as db:
            entry = await db.get(KeyValueEntry, key)
            return None if entry is None else entry.value

    async def set(self, key: str, value: Any) -> None:
        document = _copy(value)
        async with self.manager.session() as db:
            await db.merge(KeyValueEntry(key=key, value=document))
            await db.commit()
        logger.debug("Stored key %s", key)

    async def delete(self, key: str) -> None:
        async with self.manager.session() as db:
            await db.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
            await db.commit()

    async def list_keys(self, prefix: str = "") -> list[str]:
        async with self.manager.session() as db:
            stmt = select(KeyValueEntry.key).order_by(KeyValueEntry.key)
            if prefix:
                stmt = stmt.where(KeyValueEntry.key.startswith(prefix, autoescape=True))
            rows = await db.execute(stmt)
            return list(rows.scalars().all())
