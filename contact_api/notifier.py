"""Best-effort email notification for new submissions.

``EmailNotifier.notify`` never raises: transport, authentication and timeout
failures are classified into ``NotificationError`` subclasses and returned
inside a ``NotificationResult``. Callers use the result for logging only.
"""
from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

from .config import EmailSettings
from .email_templates import render_html, render_subject, render_text
from .schemas import Submission

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when a notification could not be delivered."""
    pass


class NotificationAuthError(NotificationError):
    """SMTP server rejected the configured credentials."""
    pass


class NotificationTimeoutError(NotificationError):
    """Sending did not finish within the configured timeout."""
    pass


@dataclass(frozen=True)
class NotificationResult:
    """Advisory outcome of one notification attempt."""
    delivered: bool
    attempted: bool
    error: NotificationError | None = None

    @classmethod
    def sent(cls) -> NotificationResult:
        return cls(delivered=True, attempted=True)

    @classmethod
    def skipped(cls) -> NotificationResult:
        return cls(delivered=False, attempted=False)

    @classmethod
    def failed(cls, error: NotificationError) -> NotificationResult:
        return cls(delivered=False, attempted=True, error=error)


class MailTransport(Protocol):
    def send(self, message: EmailMessage) -> None: ...

    def check(self) -> None: ...


class SmtpTransport:
    """Blocking SMTP client: STARTTLS on submission ports, implicit TLS when secure."""

    def __init__(self, config: EmailSettings) -> None:
        self.host, self.port = config.endpoint()
        self.secure = config.secure
        self.user = config.user
        self.password = config.password.get_secret_value() if config.password else None
        self.timeout = config.timeout
        self.context = ssl.create_default_context()
        if not config.tls_verify:
            self.context.check_hostname = False
            self.context.verify_mode = ssl.CERT_NONE

    def _connect(self) -> smtplib.SMTP:
        if self.secure:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=self.context)
        client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        client.ehlo()
        client.starttls(context=self.context)
        client.ehlo()
        return client

    def _login(self, client: smtplib.SMTP) -> None:
        if self.user and self.password:
            client.login(self.user, self.password)

    def send(self, message: EmailMessage) -> None:
        with self._connect() as client:
            self._login(client)
            client.send_message(message)

    def check(self) -> None:
        with self._connect() as client:
            self._login(client)
            client.noop()


def classify_error(exc: BaseException) -> NotificationError:
    """Map an underlying transport exception onto the notification taxonomy."""
    if isinstance(exc, NotificationError):
        return exc
    if isinstance(exc, smtplib.SMTPAuthenticationError):
        return NotificationAuthError(f"SMTP authentication failed: {exc}")
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return NotificationTimeoutError("Timed out sending notification email")
    return NotificationError(f"{type(exc).__name__}: {exc}")


class EmailNotifier:
    """Send one email per submission to a fixed recipient.

    Configuration is read once at construction. Without a sender user and
    password the notifier is disabled and ``notify`` reports
    ``attempted=False`` without touching the network.
    """

    def __init__(self, config: EmailSettings, transport: MailTransport | None = None) -> None:
        self.config = config
        self.enabled = config.enabled
        self.sender = config.user
        self.recipient = config.recipient
        self.timeout = config.timeout
        self.transport = transport
        if self.enabled and self.transport is None:
            self.transport = SmtpTransport(config)
        if not self.enabled:
            logger.warning(
                "Email notifications are disabled: EMAIL_USER and EMAIL_PASS must both be set"
            )

    def build_message(self, record: Submission) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = self.recipient
        message["Subject"] = render_subject(record)
        if isinstance(record.email, str) and record.email:
            message["Reply-To"] = record.email
        message.set_content(render_text(record))
        message.add_alternative(render_html(record, brand=self.config.brand), subtype="html")
        return message

    async def _send(self, record: Submission) -> None:
        """Send the notification, raising ``NotificationError`` on any failure."""
        try:
            message = self.build_message(record)
            await asyncio.wait_for(
                asyncio.to_thread(self.transport.send, message),
                timeout=self.timeout,
            )
        except (smtplib.SMTPException, OSError, ValueError, asyncio.TimeoutError) as e:
            raise classify_error(e) from e

    async def notify(self, record: Submission) -> NotificationResult:
        if not self.enabled:
            return NotificationResult.skipped()
        try:
            await self._send(record)
        except NotificationError as e:
            return NotificationResult.failed(e)
        except Exception as e:
            # Anything the transport raises outside the known families.
            return NotificationResult.failed(classify_error(e))
        return NotificationResult.sent()

    async def verify(self) -> bool:
        """Check connectivity and credentials once, logging the outcome."""
        if not self.enabled:
            return False
        try:
            await asyncio.wait_for(asyncio.to_thread(self.transport.check), timeout=self.timeout)
        except Exception as e:
            error = classify_error(e)
            logger.warning(f"Email configuration error: {error}")
            logger.warning(
                "Email notifications may fail. Check that the SMTP credentials are valid "
                "(for Gmail, use a 16 character App Password with 2-Step Verification enabled)"
            )
            return False
        logger.info(f"Email server is ready; notifications will be sent to {self.recipient}")
        return True
