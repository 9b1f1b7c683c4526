"""Infrastructure fixtures - in-memory SQLite session manager.

Invariants:
    - Every test gets a fresh in-memory SQLite database with the schema created
"""

import pytest

from palette.infrastructure.database import DatabaseSessionManager


@pytest.fixture
async def db_manager():
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    await manager.create_schema()
    yield manager
    await manager.dispose()
