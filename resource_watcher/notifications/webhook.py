"""JSON webhook notification channel.

Each ResourceChange is POSTed as one JSON document::

    {
      "account_id": "123456789012",
      "timestamp": "2024-05-01T12:00:00+00:00",
      "added_resources": [...],
      "removed_resources": [...],
      "added_count": 1,
      "removed_count": 0
    }
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from resource_watcher.models.resources import ResourceChange
from resource_watcher.notifications.manager import NotificationChannel

_log = structlog.get_logger(component="notifications.webhook")

_BODY_PREVIEW_CHARS = 200


def build_payload(change: ResourceChange) -> dict[str, Any]:
    return {
        "account_id": change.account_id,
        "timestamp": change.timestamp.isoformat(),
        "added_resources": list(change.added),
        "removed_resources": list(change.removed),
        "added_count": len(change.added),
        "removed_count": len(change.removed),
    }


class WebhookNotificationChannel(NotificationChannel):
    """POSTs changes to *url*; any 2xx counts as delivered.

    Args:
        url:     Endpoint URL.
        headers: Extra request headers, e.g. ``Authorization``.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
    ) -> None:
        if not url:
            raise ValueError("Webhook url must not be empty")
        self._url = url
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._timeout = timeout

    @property
    def channel_name(self) -> str:
        return "webhook"

    async def send(self, change: ResourceChange) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, headers=self._headers) as client:
                response = await client.post(self._url, json=build_payload(change))
        except httpx.TimeoutException:
            _log.warning("webhook_request_timeout", url=self._url, account_id=change.account_id)
            return False
        except httpx.HTTPError as exc:
            _log.warning("webhook_http_error", url=self._url, error=str(exc), account_id=change.account_id)
            return False

        if not response.is_success:
            _log.warning(
                "webhook_non_2xx_response",
                status_code=response.status_code,
                body=response.text[:_BODY_PREVIEW_CHARS],
                account_id=change.account_id,
            )
        return response.is_success
