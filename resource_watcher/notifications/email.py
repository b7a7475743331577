"""SMTP email notification channel.

Change notices go out as a multipart message (plain text plus HTML) through
``smtplib``. The blocking session runs on the default executor.
"""

from __future__ import annotations

import asyncio
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import structlog

from resource_watcher.models.resources import ResourceChange
from resource_watcher.notifications.manager import NotificationChannel
from resource_watcher.notifications.render import build_html, build_plain, build_subject

_log = structlog.get_logger(component="notifications.email")

_IMPLICIT_TLS_PORT = 465


@dataclass(frozen=True)
class SMTPConfig:
    """SMTP connection parameters.

    ``use_tls`` means implicit TLS (SMTP_SSL) on port 465 and STARTTLS on any
    other port. With ``use_tls`` off the session stays in plain text.
    """

    host: str
    port: int
    username: str
    password: str
    from_addr: str
    use_tls: bool = True
    timeout: float = 10.0

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("SMTP host must not be empty")
        if not self.from_addr:
            raise ValueError("SMTP from_addr must not be empty")

    @property
    def implicit_tls(self) -> bool:
        return self.use_tls and self.port == _IMPLICIT_TLS_PORT


class EmailNotificationChannel(NotificationChannel):
    """Mails each ResourceChange to a fixed recipient list."""

    def __init__(self, smtp_config: SMTPConfig, recipients: list[str]) -> None:
        if not recipients:
            raise ValueError("Email recipients must not be empty")
        self._smtp = smtp_config
        self._recipients = list(recipients)

    @property
    def channel_name(self) -> str:
        return "email"

    async def send(self, change: ResourceChange) -> bool:
        msg = self.build_message(change)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._deliver, msg)
        except smtplib.SMTPException as exc:
            _log.warning(
                "email_smtp_error",
                error=str(exc),
                account_id=change.account_id,
                host=self._smtp.host,
            )
            return False
        except OSError as exc:
            _log.warning(
                "email_connection_error",
                error=str(exc),
                account_id=change.account_id,
                host=self._smtp.host,
            )
            return False
        return True

    def _connect(self, context: ssl.SSLContext) -> smtplib.SMTP:
        cfg = self._smtp
        if cfg.implicit_tls:
            return smtplib.SMTP_SSL(cfg.host, cfg.port, context=context, timeout=cfg.timeout)
        return smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout)

    def _deliver(self, msg: MIMEMultipart) -> None:
        """Blocking SMTP session; runs on an executor thread."""
        cfg = self._smtp
        context = ssl.create_default_context()
        with self._connect(context) as server:
            if cfg.use_tls and not cfg.implicit_tls:
                server.ehlo()
                server.starttls(context=context)
            server.ehlo()
            if cfg.username:
                server.login(cfg.username, cfg.password)
            server.send_message(msg)

    def build_message(self, change: ResourceChange) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = build_subject(change)
        msg["From"] = self._smtp.from_addr
        msg["To"] = ", ".join(self._recipients)
        for body, subtype in ((build_plain(change), "plain"), (build_html(change), "html")):
            msg.attach(MIMEText(body, subtype, "utf-8"))
        return msg
