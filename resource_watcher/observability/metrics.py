"""Prometheus metrics exported on ``/metrics``."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

cycles_total = Counter(
    "watcher_cycles_total",
    "Reconciliation cycles by outcome.",
    ["outcome"],
)

partition_failures_total = Counter(
    "watcher_partition_failures_total",
    "Partitions skipped during a cycle.",
    ["reason"],
)

pages_requested_total = Counter(
    "watcher_pages_requested_total",
    "Listing API page requests.",
)

tracked_resources = Gauge(
    "watcher_tracked_resources",
    "Resources in the most recently persisted set.",
    ["account_id"],
)

notifications_total = Counter(
    "watcher_notifications_total",
    "Notification deliveries by channel and result.",
    ["channel", "success"],
)
