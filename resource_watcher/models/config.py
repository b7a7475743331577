"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class AWSConfig:
    """AWS session configuration."""

    region: str = "us-east-1"
    role_arn: str = ""


@dataclass
class RegionConfig:
    """Which regions are enumerated each cycle.

    A non-empty include list wins; the exclude list is only consulted when
    nothing is explicitly included.
    """

    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)


@dataclass
class EnumerationConfig:
    """Loop-safety limits for the paginated listing API."""

    max_page_requests: int = 50
    max_empty_pages: int = 1
    page_size: int = 100
    partition_timeout_seconds: float = 60.0
    partition_concurrency: int = 4


@dataclass
class StoreConfig:
    """Key-value store configuration."""

    redis_uri: str = "redis://localhost:6379"


@dataclass
class SchedulerConfig:
    """Reconciliation scheduling."""

    interval_seconds: int = 300


@dataclass
class NotificationConfig:
    """Notification system configuration."""

    mail_driver: str = "smtp"
    mail_from: str = ""
    mail_recipients: list[str] = field(default_factory=list)
    # SES region; empty means the watcher's AWS region.
    mail_region: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    webhook_url: str = ""


@dataclass
class APIConfig:
    """Admin REST API configuration."""

    enabled: bool = True
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class WatcherConfig:
    """Top-level resource-watcher configuration."""

    aws: AWSConfig = field(default_factory=AWSConfig)
    regions: RegionConfig = field(default_factory=RegionConfig)
    ignore_patterns: list[str] = field(default_factory=list)
    enumeration: EnumerationConfig = field(default_factory=EnumerationConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
