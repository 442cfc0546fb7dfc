"""
Contact notification by email.

Delivery is best effort: an unconfigured transport is a no-op and a failed
delivery is logged and dropped. Neither ever reaches the HTTP caller.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from config import Settings
from schemas import Contact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmtpConfig:
    host: str
    user: str
    password: str
    destination: str
    port: int = 587
    secure: bool = False
    sender_name: str = "Portfolio Contact"

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["SmtpConfig"]:
        """Return a config only when host, credentials and destination are all set."""
        if not (settings.smtp_host and settings.smtp_user and settings.smtp_pass and settings.contact_dest):
            return None
        return cls(
            host=settings.smtp_host,
            user=settings.smtp_user,
            password=settings.smtp_pass,
            destination=settings.contact_dest,
            port=settings.smtp_port,
            secure=settings.smtp_secure,
            sender_name=settings.contact_sender_name,
        )


class NotificationDispatcher:
    def __init__(self, config: Optional[SmtpConfig] = None, timeout: float = 10.0):
        self.config = config
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return self.config is not None

    def build_message(self, contact: Contact) -> EmailMessage:
        cfg = self.config
        msg = EmailMessage()
        msg["From"] = formataddr((cfg.sender_name, cfg.user))
        msg["To"] = cfg.destination
        msg["Subject"] = f"New contact from {contact.name or contact.email or 'visitor'}"
        msg.set_content(f"Name: {contact.name}\nEmail: {contact.email}\nMessage:\n{contact.message}")
        return msg

    async def notify(self, contact: Contact) -> bool:
        """Try to email the contact. Returns whether a message was delivered."""
        if not self.configured:
            logger.debug("SMTP not configured, skipping notification for contact %s", contact.id)
            return False
        try:
            message = self.build_message(contact)
            await asyncio.to_thread(self._send, message)
        except Exception:
            logger.exception("Failed sending notification for contact %s", contact.id)
            return False
        logger.info("Sent notification for contact %s to %s", contact.id, self.config.destination)
        return True

    def _send(self, message: EmailMessage) -> None:
        cfg = self.config
        context = ssl.create_default_context()
        if cfg.secure:
            smtp = smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=self.timeout, context=context)
        else:
            smtp = smtplib.SMTP(cfg.host, cfg.port, timeout=self.timeout)
        with smtp:
            if not cfg.secure:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls(context=context)
                    smtp.ehlo()
            smtp.login(cfg.user, cfg.password)
            smtp.send_message(message)
