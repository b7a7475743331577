"""Amazon SES notification channel."""

from __future__ import annotations

import asyncio
import functools
from typing import Any

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from resource_watcher.models.resources import ResourceChange
from resource_watcher.notifications.manager import NotificationChannel
from resource_watcher.notifications.render import build_html, build_subject

_log = structlog.get_logger(component="notifications.ses")


class SESNotificationChannel(NotificationChannel):
    """Delivers resource changes through SES ``SendEmail``.

    Args:
        client:     boto3 SES client.
        from_addr:  Verified sender identity.
        recipients: Recipient email addresses.
    """

    def __init__(self, client: Any, from_addr: str, recipients: list[str]) -> None:
        if not from_addr:
            raise ValueError("SES from_addr must not be empty")
        if not recipients:
            raise ValueError("SES recipients must not be empty")
        self._client = client
        self._from_addr = from_addr
        self._recipients = list(recipients)

    @property
    def channel_name(self) -> str:
        return "ses"

    async def send(self, change: ResourceChange) -> bool:
        loop = asyncio.get_running_loop()
        request = functools.partial(
            self._client.send_email,
            Source=self._from_addr,
            Destination={"ToAddresses": self._recipients},
            Message={
                "Subject": {"Data": build_subject(change), "Charset": "UTF-8"},
                "Body": {"Html": {"Data": build_html(change), "Charset": "UTF-8"}},
            },
        )
        try:
            response = await loop.run_in_executor(None, request)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            _log.warning("ses_client_error", code=code, error=str(exc), account_id=change.account_id)
            return False
        except BotoCoreError as exc:
            _log.warning("ses_transport_error", error=str(exc), account_id=change.account_id)
            return False
        _log.debug("ses_message_accepted", message_id=response.get("MessageId", ""))
        return True
