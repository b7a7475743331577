"""Core data structures for resource-watcher."""

from resource_watcher.models.config import WatcherConfig
from resource_watcher.models.resources import (
    ChangeSet,
    CycleOutcome,
    CycleResult,
    IdentifierParts,
    ReconcilerState,
    ResourceChange,
    ResourcePage,
    ResourceSet,
    compute_changes,
)

__all__ = [
    "ChangeSet",
    "CycleOutcome",
    "CycleResult",
    "IdentifierParts",
    "ReconcilerState",
    "ResourceChange",
    "ResourcePage",
    "ResourceSet",
    "WatcherConfig",
    "compute_changes",
]
