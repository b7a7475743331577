"""Per-account record of the last reconciled resource set."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Protocol

from resource_watcher.models.resources import ResourceSet
from resource_watcher.observability.logging import get_logger

_logger = get_logger("storage.state")

_KEY_PREFIX = "aws:resources"


class StoreError(Exception):
    """Raised when the key-value backend cannot be read or written."""


class KeyValueStore(Protocol):
    """Minimal list-valued key-value backend."""

    async def exists(self, key: str) -> bool: ...

    async def read_list(self, key: str) -> list[str]: ...

    async def replace_list(self, key: str, values: list[str]) -> None: ...

    async def close(self) -> None: ...


class StateStore:
    """Durable last-known ResourceSet per account.

    Two keys are kept per account: the identifier list and an ``observed``
    marker holding the time of the last write. The marker lets an account
    whose current set is empty still count as observed, since an empty list
    cannot be told apart from a missing one in most list stores.
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    @staticmethod
    def resources_key(account_id: str) -> str:
        return f"{_KEY_PREFIX}:{account_id}"

    @staticmethod
    def marker_key(account_id: str) -> str:
        return f"{_KEY_PREFIX}:{account_id}:observed"

    async def is_first_run(self, account_id: str) -> bool:
        """True iff nothing has ever been stored for *account_id*."""
        if await self._kv.exists(self.marker_key(account_id)):
            return False
        return not await self._kv.exists(self.resources_key(account_id))

    async def read(self, account_id: str) -> ResourceSet:
        """Return the stored set, or an empty set when absent."""
        return frozenset(await self._kv.read_list(self.resources_key(account_id)))

    async def write(self, account_id: str, resources: Iterable[str]) -> None:
        """Replace the stored set for *account_id* with *resources*."""
        values = sorted(set(resources))
        await self._kv.replace_list(self.resources_key(account_id), values)
        await self._kv.replace_list(self.marker_key(account_id), [datetime.now(tz=UTC).isoformat()])
        _logger.debug("state_written", account_id=account_id, resources=len(values))

    async def close(self) -> None:
        await self._kv.close()
