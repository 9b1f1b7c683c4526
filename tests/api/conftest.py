"""API fixtures - FastAPI test client with adapters overridden.

Invariants:
    - Search backend is a FakeBackend; history lives in a MemoryKeyValueStore
    - Debounce shortened so ?wait=true returns quickly
    - Mounted palettes are closed after every test
"""

import pytest
from httpx import ASGITransport, AsyncClient

from palette.api.dependencies import get_kv_store, get_search_backend
from palette.api.routes import palette_sessions
from palette.config import Settings, get_settings
from palette.infrastructure.kv_store import MemoryKeyValueStore
from palette.main import app
from tests.fakes import FakeBackend


@pytest.fixture
def api_backend():
    return FakeBackend()


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
async def client(api_backend, kv):
    app.dependency_overrides[get_search_backend] = lambda: api_backend
    app.dependency_overrides[get_kv_store] = lambda: kv
    app.dependency_overrides[get_settings] = lambda: Settings(debounce_ms=5)

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    for session_id in list(palette_sessions._sessions):
        await palette_sessions._sessions.pop(session_id).session.close()


@pytest.fixture
async def palette_id(client):
    res = await client.post("/api/v1/palette/sessions", json={})
    assert res.status_code == 201
    return res.json()["id"]
