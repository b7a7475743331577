"""Tests for StateStore and its key-value backends."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from resource_watcher.storage import (
    InMemoryKeyValueStore,
    RedisKeyValueStore,
    StateStore,
    StoreError,
    build_key_value_store,
)

_ACCOUNT = "123456789012"


def _make_redis_client() -> MagicMock:
    """Mock redis.asyncio client whose pipeline records buffered commands."""
    client = MagicMock()
    client.exists = AsyncMock(return_value=0)
    client.lrange = AsyncMock(return_value=[])
    client.aclose = AsyncMock()

    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[1, 2])
    pipe.__aenter__ = AsyncMock(return_value=pipe)
    pipe.__aexit__ = AsyncMock(return_value=False)
    client.pipeline = MagicMock(return_value=pipe)
    client.pipe = pipe
    return client


class TestStateStoreInMemory:
    async def test_first_run_until_written(self) -> None:
        store = StateStore(InMemoryKeyValueStore())

        assert await store.is_first_run(_ACCOUNT) is True
        await store.write(_ACCOUNT, {"a", "b"})
        assert await store.is_first_run(_ACCOUNT) is False

    async def test_read_absent_returns_empty_set(self) -> None:
        store = StateStore(InMemoryKeyValueStore())
        assert await store.read(_ACCOUNT) == frozenset()

    async def test_write_replaces_previous_set(self) -> None:
        store = StateStore(InMemoryKeyValueStore())
        await store.write(_ACCOUNT, {"a", "b"})
        await store.write(_ACCOUNT, {"b", "c"})

        assert await store.read(_ACCOUNT) == frozenset({"b", "c"})

    async def test_empty_set_still_counts_as_observed(self) -> None:
        store = StateStore(InMemoryKeyValueStore())
        await store.write(_ACCOUNT, set())

        assert await store.is_first_run(_ACCOUNT) is False
        assert await store.read(_ACCOUNT) == frozenset()

    async def test_accounts_are_isolated(self) -> None:
        store = StateStore(InMemoryKeyValueStore())
        await store.write(_ACCOUNT, {"a"})

        assert await store.is_first_run("999999999999") is True
        assert await store.read("999999999999") == frozenset()

    async def test_legacy_list_without_marker_is_not_first_run(self) -> None:
        kv = InMemoryKeyValueStore()
        await kv.replace_list(StateStore.resources_key(_ACCOUNT), ["a"])

        assert await StateStore(kv).is_first_run(_ACCOUNT) is False

    def test_key_layout(self) -> None:
        assert StateStore.resources_key(_ACCOUNT) == f"aws:resources:{_ACCOUNT}"
        assert StateStore.marker_key(_ACCOUNT) == f"aws:resources:{_ACCOUNT}:observed"


class TestRedisKeyValueStore:
    async def test_replace_list_is_transactional_delete_then_push(self) -> None:
        client = _make_redis_client()
        kv = RedisKeyValueStore(client)

        await kv.replace_list("k", ["a", "b"])

        client.pipeline.assert_called_once_with(transaction=True)
        client.pipe.delete.assert_called_once_with("k")
        client.pipe.rpush.assert_called_once_with("k", "a", "b")
        client.pipe.execute.assert_awaited_once()

    async def test_replace_with_empty_list_only_deletes(self) -> None:
        client = _make_redis_client()

        await RedisKeyValueStore(client).replace_list("k", [])

        client.pipe.delete.assert_called_once_with("k")
        client.pipe.rpush.assert_not_called()

    async def test_exists_and_read(self) -> None:
        client = _make_redis_client()
        client.exists.return_value = 1
        client.lrange.return_value = ["a", "b"]
        kv = RedisKeyValueStore(client)

        assert await kv.exists("k") is True
        assert await kv.read_list("k") == ["a", "b"]
        client.lrange.assert_awaited_once_with("k", 0, -1)

    async def test_redis_errors_become_store_errors(self) -> None:
        client = _make_redis_client()
        client.exists.side_effect = RedisConnectionError("down")
        client.lrange.side_effect = RedisConnectionError("down")
        client.pipe.execute.side_effect = RedisConnectionError("down")
        kv = RedisKeyValueStore(client)

        with pytest.raises(StoreError, match="exists"):
            await kv.exists("k")
        with pytest.raises(StoreError, match="read list"):
            await kv.read_list("k")
        with pytest.raises(StoreError, match="replace list"):
            await kv.replace_list("k", ["a"])

    async def test_close(self) -> None:
        client = _make_redis_client()
        await RedisKeyValueStore(client).close()
        client.aclose.assert_awaited_once()


class TestBuildKeyValueStore:
    async def test_memory_uri(self) -> None:
        kv = await build_key_value_store("memory://")
        assert isinstance(kv, InMemoryKeyValueStore)

    async def test_unreachable_redis_raises_store_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        client = _make_redis_client()
        client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        monkeypatch.setattr("resource_watcher.storage.redis_store.redis.from_url", lambda *a, **k: client)

        with pytest.raises(StoreError, match="failed to connect to Redis"):
            await build_key_value_store("redis://localhost:6379")
