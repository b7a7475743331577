"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from resource_watcher.identifiers import MalformedIdentifierError, parse_identifier
from resource_watcher.models.config import (
    APIConfig,
    AWSConfig,
    EnumerationConfig,
    LogConfig,
    NotificationConfig,
    RegionConfig,
    SchedulerConfig,
    StoreConfig,
    WatcherConfig,
)

_VALID_MAIL_DRIVERS = {"smtp", "ses"}


class ConfigError(ValueError):
    """Raised when the environment does not describe a runnable configuration."""


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"WATCHER_{key}", default).strip()


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid WATCHER_{key}: {raw!r} is not an integer") from exc
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str) -> list[str]:
    raw = _env(key)
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ConfigError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_interval(value: int) -> int:
    if value <= 0:
        raise ConfigError(f"WATCHER_SLEEP_INTERVAL_SECONDS must be positive, got {value}")
    return value


def _validate_port(key: str, value: int) -> int:
    if not 1 <= value <= 65535:
        raise ConfigError(f"WATCHER_{key} must be between 1 and 65535, got {value}")
    return value


def _validate_patterns(patterns: list[str]) -> list[str]:
    for pattern in patterns:
        try:
            parse_identifier(pattern)
        except MalformedIdentifierError as exc:
            raise ConfigError(f"Invalid WATCHER_ARN_IGNORE_PATTERNS entry: {exc}") from exc
    return patterns


def _validate_notifications(cfg: NotificationConfig) -> NotificationConfig:
    if cfg.mail_driver not in _VALID_MAIL_DRIVERS:
        raise ConfigError(f"Unsupported mail driver: {cfg.mail_driver}. Must be one of {_VALID_MAIL_DRIVERS}")
    if not cfg.mail_from or not cfg.mail_recipients:
        raise ConfigError(
            "email configuration incomplete: WATCHER_MAIL_FROM and WATCHER_MAIL_RECIPIENTS are required"
        )
    if cfg.mail_driver == "smtp" and not (cfg.smtp_host and cfg.smtp_username and cfg.smtp_password):
        raise ConfigError(
            "incomplete SMTP configuration: WATCHER_SMTP_HOST, WATCHER_SMTP_USERNAME and "
            "WATCHER_SMTP_PASSWORD are required when using the smtp driver"
        )
    return cfg


def load_config() -> WatcherConfig:
    """Load configuration from WATCHER_* environment variables.

    Raises:
        ConfigError: if any value is malformed or a required setting is missing.
    """
    aws_region = _env("AWS_REGION", "us-east-1")
    return WatcherConfig(
        aws=AWSConfig(
            region=aws_region,
            role_arn=_env("AWS_ROLE_ARN"),
        ),
        regions=RegionConfig(
            include=_env_list("REGIONS_INCLUDE"),
            exclude=_env_list("REGIONS_EXCLUDE"),
        ),
        ignore_patterns=_validate_patterns(_env_list("ARN_IGNORE_PATTERNS")),
        enumeration=EnumerationConfig(
            max_page_requests=_env_int("MAX_PAGE_REQUESTS", 50, min_val=1, max_val=500),
            max_empty_pages=_env_int("MAX_EMPTY_PAGES", 1, min_val=1, max_val=3),
            page_size=_env_int("PAGE_SIZE", 100, min_val=1, max_val=100),
            partition_timeout_seconds=float(_env_int("PARTITION_TIMEOUT", 60, min_val=1)),
            partition_concurrency=_env_int("PARTITION_CONCURRENCY", 4, min_val=1, max_val=32),
        ),
        store=StoreConfig(
            redis_uri=_env("REDIS_URI", "redis://localhost:6379") or "redis://localhost:6379",
        ),
        scheduler=SchedulerConfig(
            interval_seconds=_validate_interval(_env_int("SLEEP_INTERVAL_SECONDS", 300)),
        ),
        notifications=_validate_notifications(
            NotificationConfig(
                mail_driver=_env("MAIL_DRIVER", "smtp").lower() or "smtp",
                mail_from=_env("MAIL_FROM"),
                mail_recipients=_env_list("MAIL_RECIPIENTS"),
                mail_region=_env("MAIL_REGION", aws_region) or aws_region,
                smtp_host=_env("SMTP_HOST"),
                smtp_port=_validate_port("SMTP_PORT", _env_int("SMTP_PORT", 587)),
                smtp_username=_env("SMTP_USERNAME"),
                smtp_password=_env("SMTP_PASSWORD"),
                smtp_use_tls=_env_bool("SMTP_USE_TLS", True),
                webhook_url=_env("WEBHOOK_URL"),
            )
        ),
        api=APIConfig(
            enabled=_env_bool("API_ENABLED", True),
            port=_validate_port("API_PORT", _env_int("API_PORT", 8080)),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
