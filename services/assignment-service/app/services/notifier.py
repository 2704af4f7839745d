"""
Outbound email notifications.
"""
import asyncio
import smtplib
from email.message import EmailMessage
from typing import Protocol

from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    async def send(self, to_email: str, subject: str, body: str) -> None: ...


class SMTPNotifier:
    """
    Plain-text email over SMTP. Sending happens in a worker thread so the
    caller's event loop is not blocked.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        sender: str = settings.EMAIL_FROM,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def _build_message(self, to_email: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        if self.port == 465:
            smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with smtp:
            if self.port != 465 and self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    async def send(self, to_email: str, subject: str, body: str) -> None:
        message = self._build_message(to_email, subject, body)
        await asyncio.to_thread(self._send_sync, message)
        logger.info(f"Email '{subject}' sent to {to_email}")


class LogNotifier:
    """Development notifier: writes the email to the log instead of sending it."""

    async def send(self, to_email: str, subject: str, body: str) -> None:
        logger.info(f"[email] to={to_email} subject={subject!r} body={body!r}")


def build_notifier() -> Notifier:
    if not settings.SMTP_HOST:
        return LogNotifier()
    return SMTPNotifier(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        sender=settings.EMAIL_FROM,
    )


async def send_welcome_email(notifier: Notifier, to_email: str) -> None:
    """Best-effort welcome email for a new directory entry; failures are logged only."""
    try:
        await notifier.send(
            to_email,
            "Welcome to the app",
            "Hi,\n\nThanks for signing up. We're glad to have you onboard!\n",
        )
    except Exception as e:
        logger.warning(f"Welcome email to {to_email} failed: {e}")
