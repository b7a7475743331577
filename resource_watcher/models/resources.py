"""Resource identifier, change and cycle data structures."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

# An unordered, deduplicated set of resource identifiers for one account.
ResourceSet = frozenset[str]


@dataclass(frozen=True)
class IdentifierParts:
    """The six colon-delimited fields of an ARN-style identifier."""

    prefix: str
    partition: str
    service: str
    region: str
    account: str
    resource: str

    def as_tuple(self) -> tuple[str, str, str, str, str, str]:
        return (self.prefix, self.partition, self.service, self.region, self.account, self.resource)


@dataclass(frozen=True)
class ResourcePage:
    """One page returned by the listing API."""

    items: list[str]
    next_token: str | None = None


@dataclass(frozen=True)
class ChangeSet:
    """Difference between two ResourceSets.

    Both sides are sorted lexicographically so notification bodies and
    assertions are reproducible.
    """

    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)


def compute_changes(previous: Iterable[str], current: Iterable[str]) -> ChangeSet:
    """Return what was added to and removed from *previous* to reach *current*."""
    prev = set(previous)
    curr = set(current)
    return ChangeSet(
        added=tuple(sorted(curr - prev)),
        removed=tuple(sorted(prev - curr)),
    )


@dataclass(frozen=True)
class ResourceChange:
    """Payload handed to the notifier for one account and cycle."""

    account_id: str
    timestamp: datetime
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


class ReconcilerState(StrEnum):
    """Phase of the reconciliation state machine."""

    IDLE = "idle"
    ENUMERATING = "enumerating"
    DIFFING = "diffing"
    NOTIFYING = "notifying"
    PERSISTING = "persisting"


class CycleOutcome(StrEnum):
    """How a reconciliation cycle ended."""

    FIRST_RUN = "first_run"
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    ABORTED = "aborted"


@dataclass
class CycleResult:
    """Summary of one reconciliation cycle."""

    account_id: str
    outcome: CycleOutcome
    started_at: datetime
    finished_at: datetime
    resource_count: int = 0
    added_count: int = 0
    removed_count: int = 0
    notified: bool = False
    notification_ok: bool | None = None
    failed_partitions: list[str] = field(default_factory=list)
    error: str = ""
