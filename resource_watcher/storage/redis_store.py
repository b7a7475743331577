"""Redis key-value backend (redis-py asyncio client)."""

from __future__ import annotations

from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from resource_watcher.observability.logging import get_logger
from resource_watcher.storage.state import StoreError

_logger = get_logger("storage.redis")

_CONNECT_TIMEOUT_SECONDS = 5.0


class RedisKeyValueStore:
    """Stores identifier lists as Redis lists.

    ``replace_list`` runs DEL and RPUSH inside one MULTI/EXEC transaction, so
    concurrent readers see either the old list or the new one, never an
    empty intermediate.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    async def connect(cls, uri: str) -> RedisKeyValueStore:
        """Open a client for *uri* and verify it with PING.

        Raises:
            StoreError: if the URI is invalid or the server is unreachable.
        """
        try:
            client = redis.from_url(
                uri,
                decode_responses=True,
                socket_connect_timeout=_CONNECT_TIMEOUT_SECONDS,
            )
            await client.ping()
        except (RedisError, ValueError, OSError) as exc:
            raise StoreError(f"failed to connect to Redis: {exc}") from exc
        _logger.info("redis_connected")
        return cls(client)

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._client.exists(key))
        except RedisError as exc:
            raise StoreError(f"failed to check if key exists in Redis: {exc}") from exc

    async def read_list(self, key: str) -> list[str]:
        try:
            return list(await self._client.lrange(key, 0, -1))
        except RedisError as exc:
            raise StoreError(f"failed to read list from Redis: {exc}") from exc

    async def replace_list(self, key: str, values: list[str]) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                if values:
                    pipe.rpush(key, *values)
                await pipe.execute()
        except RedisError as exc:
            raise StoreError(f"failed to replace list in Redis: {exc}") from exc

    async def close(self) -> None:
        await self._client.aclose()
