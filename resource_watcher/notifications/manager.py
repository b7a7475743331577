"""Notification channel interface and dispatcher.

NotificationChannel    -- ABC every channel must implement.
NotificationDispatcher -- Fans a ResourceChange out to every registered
                          channel; one failing channel never blocks the others.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

import structlog

from resource_watcher.models.resources import ResourceChange
from resource_watcher.observability.metrics import notifications_total

_log = structlog.get_logger(component="notifications.manager")


class NotificationChannel(ABC):
    """Abstract base class for all notification channels.

    Every concrete channel must implement ``send``, which should not raise:
    return ``False`` instead.
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Human-readable channel identifier used in metrics and logs."""

    @abstractmethod
    async def send(self, change: ResourceChange) -> bool:
        """Deliver *change* via this channel.

        Returns:
            True  -- message accepted by the remote endpoint.
            False -- delivery failed (already logged inside implementation).
        """


class NotificationDispatcher:
    """Sends one ResourceChange to every registered channel concurrently.

    * Never raises: exceptions from individual channels are caught and logged.
    * No retries; a failed delivery is reported to the caller and dropped.
    """

    def __init__(self, channels: list[NotificationChannel]) -> None:
        self._channels = channels

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    async def notify(self, change: ResourceChange) -> bool:
        """Deliver *change* to all channels.

        Returns True only when every channel accepted the message. With no
        channels configured there is nothing to fail, so the result is True.
        """
        if not self._channels:
            _log.info("notification_skipped_no_channels", account_id=change.account_id)
            return True
        results = await asyncio.gather(*(self._send_one(ch, change) for ch in self._channels))
        return all(results)

    async def _send_one(self, channel: NotificationChannel, change: ResourceChange) -> bool:
        """Deliver to a single channel, recording metrics regardless of outcome."""
        try:
            success = await channel.send(change)
        except Exception as exc:  # noqa: BLE001
            _log.error(
                "notification_channel_unexpected_error",
                channel=channel.channel_name,
                account_id=change.account_id,
                error=str(exc),
            )
            success = False

        label = "true" if success else "false"
        notifications_total.labels(channel=channel.channel_name, success=label).inc()

        if success:
            _log.info(
                "notification_sent",
                channel=channel.channel_name,
                account_id=change.account_id,
                added=len(change.added),
                removed=len(change.removed),
            )
        else:
            _log.warning(
                "notification_failed",
                channel=channel.channel_name,
                account_id=change.account_id,
            )
        return success
