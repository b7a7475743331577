"""Notification system for resource-watcher.

Delivers ResourceChange notices to one or more channels.

Exports:
    NotificationChannel        -- Abstract base for all channel implementations.
    NotificationDispatcher     -- Sends a change to every registered channel.
    EmailNotificationChannel   -- SMTP email channel via stdlib smtplib.
    SESNotificationChannel     -- Amazon SES channel via boto3.
    WebhookNotificationChannel -- Generic JSON POST webhook channel.
    build_notification_dispatcher -- Factory used by the application bootstrap.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from resource_watcher.notifications.email import EmailNotificationChannel, SMTPConfig
from resource_watcher.notifications.manager import NotificationChannel, NotificationDispatcher
from resource_watcher.notifications.ses import SESNotificationChannel
from resource_watcher.notifications.webhook import WebhookNotificationChannel

if TYPE_CHECKING:
    import boto3

    from resource_watcher.models.config import NotificationConfig

_log = structlog.get_logger(component="notifications")

__all__ = [
    "EmailNotificationChannel",
    "NotificationChannel",
    "NotificationDispatcher",
    "SESNotificationChannel",
    "SMTPConfig",
    "WebhookNotificationChannel",
    "build_notification_dispatcher",
]


def build_notification_dispatcher(
    config: NotificationConfig,
    session: boto3.Session | None = None,
) -> NotificationDispatcher:
    """Build a NotificationDispatcher from validated configuration.

    The mail driver picks exactly one mail channel:

    smtp:
        WATCHER_SMTP_HOST / PORT / USERNAME / PASSWORD / USE_TLS.
    ses:
        SES client created from *session* (the watcher's AWS session) in
        WATCHER_MAIL_REGION, which defaults to the watcher's AWS region.

    A JSON webhook channel is added when WATCHER_WEBHOOK_URL is set.

    Raises:
        ValueError: if the selected driver cannot be built.
    """
    channels: list[NotificationChannel] = []

    if config.mail_driver == "smtp":
        smtp_cfg = SMTPConfig(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            from_addr=config.mail_from,
            use_tls=config.smtp_use_tls,
        )
        channels.append(EmailNotificationChannel(smtp_config=smtp_cfg, recipients=config.mail_recipients))
        _log.info("email_channel_enabled", host=config.smtp_host, recipients=len(config.mail_recipients))
    elif config.mail_driver == "ses":
        if session is None:
            raise ValueError("SES mail driver requires an AWS session")
        channels.append(
            SESNotificationChannel(
                client=session.client("ses", region_name=config.mail_region or None),
                from_addr=config.mail_from,
                recipients=config.mail_recipients,
            )
        )
        _log.info("ses_channel_enabled", region=config.mail_region, recipients=len(config.mail_recipients))
    else:
        raise ValueError(f"unsupported mail driver: {config.mail_driver}")

    if config.webhook_url:
        try:
            channels.append(WebhookNotificationChannel(url=config.webhook_url))
            _log.info("webhook_channel_enabled")
        except ValueError as exc:
            _log.warning("webhook_channel_disabled", reason=str(exc))

    return NotificationDispatcher(channels=channels)
