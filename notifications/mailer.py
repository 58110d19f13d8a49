"""
Outbound email over SMTP.

``smtplib`` is blocking, so every send is offloaded to a worker thread via
``asyncio.to_thread()`` and never stalls the event loop.  Sends never raise:
the outcome comes back as a ``DeliveryResult`` for the caller to log.
"""

from __future__ import annotations

import asyncio
import logging
import re
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel

from config.settings import Settings
from notifications.templates import password_reset_email, verification_email

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")


class DeliveryResult(BaseModel):
    to: str
    subject: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailDispatcher:
    """Send account emails through the configured SMTP relay."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @property
    def sender(self) -> str:
        return formataddr((self._settings.mail_from_name, self._settings.smtp_user))

    def _build_message(self, to: str, subject: str, html: str, text: Optional[str]) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg["Message-ID"] = make_msgid()
        msg.set_content(text or _TAG_RE.sub("", html))
        msg.add_alternative(html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        s = self._settings
        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_seconds) as server:
            if s.smtp_use_tls:
                server.starttls()
            if s.smtp_user:
                server.login(s.smtp_user, s.smtp_password)
            server.send_message(msg)

    async def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> DeliveryResult:
        msg = self._build_message(to, subject, html, text)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email %r to %s: %s", subject, to, exc)
            if self._settings.debug:
                logger.debug("Undelivered email body for %s:\n%s", to, msg.get_body(("plain",)).get_content())
            return DeliveryResult(to=to, subject=subject, success=False, error=str(exc))

        logger.info("Email %r sent to %s", subject, to)
        return DeliveryResult(
            to=to,
            subject=subject,
            success=True,
            message_id=msg.get("Message-ID"),
        )

    def _link(self, path: str, token: str) -> str:
        return f"{self._settings.store_url.rstrip('/')}{path}?token={quote(token)}"

    async def send_verification_email(self, email: str, token: str) -> DeliveryResult:
        url = self._link("/auth/verify-email", token)
        subject, html, text = verification_email(url, self._settings.mail_from_name)
        return await self.send(email, subject, html, text)

    async def send_password_reset_email(self, email: str, token: str) -> DeliveryResult:
        url = self._link("/auth/reset-password", token)
        subject, html, text = password_reset_email(url, self._settings.mail_from_name)
        return await self.send(email, subject, html, text)
