"""Shared fixtures for resource-watcher integration tests.

Wires a real ResourceEnumerator, StateStore and Reconciler together over
in-process collaborators, so full cycles run without touching AWS or Redis.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import pytest

from resource_watcher.collector.enumerator import ResourceEnumerator
from resource_watcher.reconciler import Reconciler
from resource_watcher.storage import InMemoryKeyValueStore, StateStore
from tests.fakes import ACCOUNT_ID, RecordingNotifier, ScriptedListingClient

_FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv: InMemoryKeyValueStore) -> StateStore:
    return StateStore(kv)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_reconciler(
    store: StateStore,
    notifier: RecordingNotifier,
) -> Callable[..., Reconciler]:
    """Factory building a Reconciler over a scripted listing client."""

    def _make(
        client: ScriptedListingClient,
        ignore_patterns: Sequence[str] = (),
        include: Sequence[str] = (),
        exclude: Sequence[str] = (),
        timeout_seconds: float = 5.0,
        state_store: StateStore | None = None,
    ) -> Reconciler:
        return Reconciler(
            account_id=ACCOUNT_ID,
            client=client,
            enumerator=ResourceEnumerator(client, timeout_seconds=timeout_seconds),
            store=state_store or store,
            notifier=notifier,
            ignore_patterns=ignore_patterns,
            include_partitions=include,
            exclude_partitions=exclude,
            clock=lambda: _FIXED_NOW,
        )

    return _make
