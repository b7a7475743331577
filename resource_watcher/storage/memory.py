"""In-process key-value backend.

Selected with a ``memory://`` store URI for local dry runs; state is lost on
restart, so every restart is a first run.
"""

from __future__ import annotations

import asyncio


class InMemoryKeyValueStore:
    """Dict-backed implementation of the KeyValueStore protocol."""

    def __init__(self) -> None:
        self._data: dict[str, list[str]] = {}
        self._lock = asyncio.Lock()

    async def exists(self, key: str) -> bool:
        return key in self._data

    async def read_list(self, key: str) -> list[str]:
        return list(self._data.get(key, []))

    async def replace_list(self, key: str, values: list[str]) -> None:
        async with self._lock:
            if values:
                self._data[key] = list(values)
            else:
                self._data.pop(key, None)

    async def close(self) -> None:
        self._data.clear()
