"""Transactional email transports.

A transport delivers one already-rendered message. Every implementation
raises ``DispatchError`` on failure so callers handle a single error type
regardless of the configured backend.
"""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import List, Optional

import httpx
import structlog

from pricedrop.config import settings
from pricedrop.core.exceptions import DispatchError

logger = structlog.get_logger(__name__)


class EmailTransport(ABC):
    """Delivers a rendered email to one recipient."""

    # Upper bound on one send, in seconds
    timeout: float = 0.0

    def __init__(self, from_email: Optional[str] = None, from_name: Optional[str] = None):
        self.from_email = from_email or settings.EMAIL_FROM
        self.from_name = from_name or settings.EMAIL_FROM_NAME

    @abstractmethod
    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        """Send one message.

        Raises:
            DispatchError: If the message was not accepted for delivery
        """


class SendGridTransport(EmailTransport):
    """SendGrid v3 mail send API over httpx."""

    API_URL = "https://api.sendgrid.com/v3/mail/send"

    def __init__(
        self,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else settings.SENDGRID_API_KEY
        self.http_client = http_client
        self.timeout = timeout

    def _payload(self, to: str, subject: str, html_body: str, text_body: str) -> dict:
        return {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": subject,
            # text/plain must precede text/html
            "content": [
                {"type": "text/plain", "value": text_body},
                {"type": "text/html", "value": html_body},
            ],
        }

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        if not self.api_key:
            raise DispatchError(to, "SENDGRID_API_KEY is not configured")

        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = self._payload(to, subject, html_body, text_body)
        try:
            if self.http_client is not None:
                response = await self.http_client.post(self.API_URL, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.API_URL, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DispatchError(to, f"SendGrid returned {e.response.status_code}: {e.response.text[:200]}") from e
        except httpx.HTTPError as e:
            raise DispatchError(to, e) from e

        logger.info("email_sent", transport="sendgrid", subject=subject)


class SmtpTransport(EmailTransport):
    """SMTP delivery; smtplib is blocking so each send runs in a worker thread."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        timeout: float = 30.0,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USERNAME
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self.timeout = timeout

    def build_message(self, to: str, subject: str, html_body: str, text_body: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.from_name, self.from_email))
        message["To"] = to
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        # Port 465 is implicit TLS; anything else upgrades with STARTTLS
        if self.port == 465:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with server:
            if self.port != 465 and self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(message)

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        try:
            message = self.build_message(to, subject, html_body, text_body)
            await asyncio.to_thread(self._send_sync, message)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            raise DispatchError(to, e) from e

        logger.info("email_sent", transport="smtp", subject=subject)


@dataclass
class SentEmail:
    to: str
    subject: str
    html_body: str
    text_body: str


class LogTransport(EmailTransport):
    """Logs messages instead of sending them (development default).

    The most recent ``max_outbox`` messages are kept on ``outbox`` for
    inspection.
    """

    def __init__(self, max_outbox: int = 100, **kwargs):
        super().__init__(**kwargs)
        self.max_outbox = max(1, max_outbox)
        self.outbox: List[SentEmail] = []

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        self.outbox.append(SentEmail(to, subject, html_body, text_body))
        del self.outbox[:-self.max_outbox]
        logger.info("email_logged", transport="log", to=to, subject=subject)


def get_email_transport(name: Optional[str] = None) -> EmailTransport:
    """Build the transport selected by ``EMAIL_TRANSPORT``."""
    name = (name or settings.EMAIL_TRANSPORT).lower()
    if name == "sendgrid":
        return SendGridTransport()
    if name == "smtp":
        return SmtpTransport()
    if name != "log":
        logger.warning("unknown_email_transport", transport=name, fallback="log")
    return LogTransport()
