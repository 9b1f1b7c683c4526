"""Database Session Manager - tests for error mapping and health checks."""

import pytest
from sqlalchemy import text

from palette.core.errors import StorageUnavailableError


async def test_health_check_ok(db_manager):
    assert await db_manager.health_check()


async def test_operational_error_mapped(db_manager):
    with pytest.raises(StorageUnavailableError) as exc:
        async with db_manager.session() as db:
            await db.execute(text("SELECT * FROM no_such_table"))
    assert exc.value.code == "STORAGE_UNAVAILABLE"
    assert exc.value.http_status == 503


async def test_schema_created(db_manager):
    async with db_manager.session() as db:
        rows = await db.execute(text("SELECT COUNT(*) FROM palette_kv_entries"))
        assert rows.scalar_one() == 0
