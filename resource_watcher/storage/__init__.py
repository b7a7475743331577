"""State storage for resource-watcher.

Submodules:
    state       -- StateStore over the KeyValueStore protocol.
    redis_store -- Redis backend (production).
    memory      -- In-process backend (``memory://``, tests).
"""

from __future__ import annotations

from resource_watcher.storage.memory import InMemoryKeyValueStore
from resource_watcher.storage.redis_store import RedisKeyValueStore
from resource_watcher.storage.state import KeyValueStore, StateStore, StoreError

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RedisKeyValueStore",
    "StateStore",
    "StoreError",
    "build_key_value_store",
]

_MEMORY_SCHEME = "memory://"


async def build_key_value_store(uri: str) -> KeyValueStore:
    """Return the backend selected by *uri*.

    Raises:
        StoreError: if a Redis backend cannot be reached.
    """
    if uri.startswith(_MEMORY_SCHEME):
        return InMemoryKeyValueStore()
    return await RedisKeyValueStore.connect(uri)
