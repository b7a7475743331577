"""Reconciliation of the live resource set against the last stored state.

One cycle walks ``IDLE -> ENUMERATING -> DIFFING -> NOTIFYING -> PERSISTING
-> IDLE``:

1. Discover regions, apply include/exclude, enumerate every region
   concurrently. A region that fails is skipped for this cycle and its
   previously stored identifiers are carried forward unchanged, along with
   every stored region-less identifier, so an outage is never reported as
   removals.
2. Drop identifiers matching an ignore pattern.
3. First run for the account: store the set and stop, no notification.
4. Otherwise diff against the stored set and notify once if anything moved.
5. Store the current set whether or not notification succeeded.

Discovery failure, every region failing, or a store error aborts the cycle
with nothing written; the previous state stays authoritative.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Protocol

import structlog

from resource_watcher.collector.enumerator import EnumerationError, ListingClient, PartitionTimeoutError
from resource_watcher.filters import filter_identifiers
from resource_watcher.identifiers import MalformedIdentifierError, parse_identifier
from resource_watcher.models.resources import (
    CycleOutcome,
    CycleResult,
    ReconcilerState,
    ResourceChange,
    ResourceSet,
    compute_changes,
)
from resource_watcher.observability.logging import get_logger
from resource_watcher.observability.metrics import cycles_total, partition_failures_total, tracked_resources
from resource_watcher.storage.state import StateStore, StoreError

_logger = get_logger("reconciler")


class Enumerator(Protocol):
    async def enumerate(self, partition: str) -> ResourceSet: ...


class Notifier(Protocol):
    async def notify(self, change: ResourceChange) -> bool: ...


class ReconcileError(Exception):
    """Base class for failures that abort a whole cycle."""


class PartitionDiscoveryError(ReconcileError):
    """Raised when the region list cannot be obtained or is empty."""


class NoPartitionsEnumeratedError(ReconcileError):
    """Raised when every selected region failed to enumerate."""


def select_partitions(available: Sequence[str], include: Sequence[str], exclude: Sequence[str]) -> list[str]:
    """Apply include/exclude lists to the discovered regions.

    A non-empty *include* keeps only those regions and ignores *exclude*.
    """
    if include:
        wanted = set(include)
        return [p for p in available if p in wanted]
    unwanted = set(exclude)
    return [p for p in available if p not in unwanted]


def identifiers_in_partitions(
    identifiers: ResourceSet,
    partitions: Sequence[str],
    include_regionless: bool = False,
) -> ResourceSet:
    """Return the identifiers whose region field names one of *partitions*.

    Region-less identifiers (S3 buckets, IAM) can be listed by any region's
    endpoint, so they are only selected when *include_regionless* is set.
    Malformed identifiers are never selected.
    """
    wanted = set(partitions)
    selected: set[str] = set()
    for identifier in identifiers:
        try:
            region = parse_identifier(identifier).region
        except MalformedIdentifierError:
            continue
        if (region and region in wanted) or (not region and include_regionless):
            selected.add(identifier)
    return frozenset(selected)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class Reconciler:
    """Runs reconciliation cycles for one account.

    Cycles are serialized with an internal lock, so a manual trigger and the
    scheduler can never interleave writes for the same account.
    """

    def __init__(
        self,
        account_id: str,
        client: ListingClient,
        enumerator: Enumerator,
        store: StateStore,
        notifier: Notifier,
        ignore_patterns: Sequence[str] = (),
        include_partitions: Sequence[str] = (),
        exclude_partitions: Sequence[str] = (),
        concurrency: int = 4,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.account_id = account_id
        self._client = client
        self._enumerator = enumerator
        self._store = store
        self._notifier = notifier
        self._ignore_patterns = list(ignore_patterns)
        self._include = list(include_partitions)
        self._exclude = list(exclude_partitions)
        self._concurrency = max(1, concurrency)
        self._clock = clock
        self._lock = asyncio.Lock()
        self._state = ReconcilerState.IDLE
        self._last_result: CycleResult | None = None

    @property
    def state(self) -> ReconcilerState:
        return self._state

    @property
    def last_result(self) -> CycleResult | None:
        return self._last_result

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run_cycle(self) -> CycleResult:
        """Run one full cycle and return its summary. Never raises for
        enumeration, store or notification failures."""
        async with self._lock:
            started = self._clock()
            result = CycleResult(
                account_id=self.account_id,
                outcome=CycleOutcome.ABORTED,
                started_at=started,
                finished_at=started,
            )
            with structlog.contextvars.bound_contextvars(account_id=self.account_id):
                try:
                    await self._reconcile(result)
                except (ReconcileError, StoreError) as exc:
                    result.outcome = CycleOutcome.ABORTED
                    result.error = str(exc)
                    _logger.error("cycle_aborted", error=str(exc), error_type=type(exc).__name__)
                finally:
                    self._state = ReconcilerState.IDLE
                    result.finished_at = self._clock()

                _logger.info(
                    "cycle_finished",
                    outcome=result.outcome.value,
                    resources=result.resource_count,
                    added=result.added_count,
                    removed=result.removed_count,
                    failed_partitions=result.failed_partitions,
                )
            cycles_total.labels(outcome=result.outcome.value).inc()
            self._last_result = result
            return result

    async def _reconcile(self, result: CycleResult) -> None:
        self._state = ReconcilerState.ENUMERATING
        current, failed = await self.gather_resources()
        result.failed_partitions = failed

        self._state = ReconcilerState.DIFFING
        filtered = self._filter(current)
        result.resource_count = len(filtered)
        if len(filtered) != len(current):
            _logger.info("identifiers_ignored", ignored=len(current) - len(filtered))

        if await self._store.is_first_run(self.account_id):
            _logger.info("first_run_detected", resources=len(filtered))
            await self._persist(filtered)
            result.outcome = CycleOutcome.FIRST_RUN
            return

        previous = await self._store.read(self.account_id)
        if failed:
            carried = self._filter(identifiers_in_partitions(previous, failed, include_regionless=True))
            if carried:
                _logger.info("failed_partitions_carried_forward", resources=len(carried), partitions=failed)
            filtered = filtered | carried
            result.resource_count = len(filtered)

        changes = compute_changes(previous, filtered)
        result.added_count = len(changes.added)
        result.removed_count = len(changes.removed)

        if changes.has_changes:
            self._state = ReconcilerState.NOTIFYING
            _logger.info("resource_changes_detected", added=len(changes.added), removed=len(changes.removed))
            change = ResourceChange(
                account_id=self.account_id,
                timestamp=self._clock(),
                added=list(changes.added),
                removed=list(changes.removed),
            )
            result.notified = True
            result.notification_ok = await self._notify(change)
            result.outcome = CycleOutcome.CHANGED
        else:
            _logger.info("no_resource_changes")
            result.outcome = CycleOutcome.UNCHANGED

        await self._persist(filtered)

    def _filter(self, identifiers: ResourceSet) -> ResourceSet:
        return frozenset(filter_identifiers(sorted(identifiers), self._ignore_patterns))

    async def _notify(self, change: ResourceChange) -> bool:
        try:
            ok = await self._notifier.notify(change)
        except Exception as exc:  # noqa: BLE001
            _logger.error("notification_error", error=str(exc))
            return False
        if not ok:
            _logger.error("notification_delivery_failed")
        return ok

    async def _persist(self, resources: ResourceSet) -> None:
        self._state = ReconcilerState.PERSISTING
        await self._store.write(self.account_id, resources)
        tracked_resources.labels(account_id=self.account_id).set(len(resources))

    async def gather_resources(self) -> tuple[ResourceSet, list[str]]:
        """Enumerate every selected region and merge the results.

        Returns the merged set and the sorted names of regions that failed.

        Raises:
            PartitionDiscoveryError: regions could not be listed or none remain.
            NoPartitionsEnumeratedError: every selected region failed.
        """
        try:
            available = await self._client.list_partitions()
        except Exception as exc:
            raise PartitionDiscoveryError(f"failed to list regions: {exc}") from exc

        partitions = select_partitions(available, self._include, self._exclude)
        if not partitions:
            raise PartitionDiscoveryError("no regions to monitor")

        semaphore = asyncio.Semaphore(self._concurrency)

        async def _one(partition: str) -> ResourceSet:
            async with semaphore:
                return await self._enumerator.enumerate(partition)

        results = await asyncio.gather(*(_one(p) for p in partitions), return_exceptions=True)

        merged: set[str] = set()
        failed: list[str] = []
        for partition, outcome in zip(partitions, results, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                reason = "timeout" if isinstance(outcome, PartitionTimeoutError) else "error"
                if not isinstance(outcome, EnumerationError):
                    reason = "unexpected"
                partition_failures_total.labels(reason=reason).inc()
                _logger.warning("partition_skipped", partition=partition, reason=reason, error=str(outcome))
                failed.append(partition)
                continue
            merged.update(outcome)

        if len(failed) == len(partitions):
            raise NoPartitionsEnumeratedError(f"all {len(partitions)} regions failed to enumerate")

        _logger.info(
            "resources_gathered",
            resources=len(merged),
            partitions=len(partitions),
            failed=len(failed),
        )
        return frozenset(merged), sorted(failed)
