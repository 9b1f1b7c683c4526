"""Key-Value Stores - tests for the memory and SQLAlchemy-backed stores.

Tests cover:
    - get/set/delete/list_keys semantics shared by both stores
    - Values are copied (callers cannot mutate stored documents)
    - Non-serializable values rejected as StorageUnavailableError
"""

import pytest

from palette.core.errors import StorageUnavailableError
from palette.infrastructure.kv_store import MemoryKeyValueStore, SqlKeyValueStore


@pytest.fixture(params=["memory", "sql"])
async def kv(request, db_manager):
    if request.param == "memory":
        return MemoryKeyValueStore()
    return SqlKeyValueStore(db_manager)


async def test_missing_key_returns_none(kv):
    assert await kv.get("nope") is None


async def test_set_then_get(kv):
    await kv.set("default:recent-searches", ["ana", "bruno"])
    assert await kv.get("default:recent-searches") == ["ana", "bruno"]


async def test_set_overwrites(kv):
    await kv.set("k", {"popular": []})
    await kv.set("k", {"popular": [{"label": "Clients", "count": 2}]})
    assert await kv.get("k") == {"popular": [{"label": "Clients", "count": 2}]}


async def test_delete(kv):
    await kv.set("k", [1])
    await kv.delete("k")
    await kv.delete("k")
    assert await kv.get("k") is None


async def test_list_keys_by_prefix(kv):
    await kv.set("alice:recent-searches", [])
    await kv.set("alice:search-analytics", {})
    await kv.set("bob:recent-searches", [])
    assert await kv.list_keys("alice:") == [
        "alice:recent-searches", "alice:search-analytics",
    ]
    assert len(await kv.list_keys()) == 3


async def test_prefix_wildcards_are_literal(kv):
    await kv.set("a_b:x", 1)
    await kv.set("axb:x", 2)
    assert await kv.list_keys("a_b") == ["a_b:x"]


async def test_stored_value_is_a_copy(kv):
    value = ["ana"]
    await kv.set("k", value)
    value.append("bruno")
    fetched = await kv.get("k")
    fetched.append("carla")
    assert await kv.get("k") == ["ana"]


async def test_non_serializable_value_rejected(kv):
    with pytest.raises(StorageUnavailableError):
        await kv.set("k", {"when": object()})
