"""Email client for SMTP and alternative backends.

Backends:
- SMTP: Production email delivery via aiosmtplib
- Console: Log emails (development)
- File: Write emails to JSON files (testing)
"""

from __future__ import annotations

import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

import aiosmtplib

from editorial_reminders.core.settings import get_email_settings
from editorial_reminders.core.settings.email import EmailSettings
from editorial_reminders.utils.retry import RetryError, retry

from .schemas import EmailMessage, EmailResult, EmailStatus

logger = logging.getLogger(__name__)

# Transport failures worth another attempt; protocol rejections are not
_TRANSIENT_ERRORS = (
    OSError,
    TimeoutError,
    aiosmtplib.SMTPConnectError,
    aiosmtplib.SMTPServerDisconnected,
    aiosmtplib.SMTPTimeoutError,
)


class BaseEmailClient(ABC):
    """Abstract base class for email clients."""

    @abstractmethod
    async def send(self, message: EmailMessage) -> EmailResult:
        """Send an email message and report the outcome without raising."""


class SMTPClient(BaseEmailClient):
    """SMTP email client using aiosmtplib.

    A connection is opened per send. Transient transport errors are retried
    with backoff; every failure is reported as an EmailResult.
    """

    def __init__(self, settings: EmailSettings) -> None:
        self.settings = settings
        logger.info(
            "SMTP client initialized",
            extra={
                "host": settings.smtp_host,
                "port": settings.smtp_port,
                "use_tls": settings.use_tls,
                "use_ssl": settings.use_ssl,
            },
        )

    async def send(self, message: EmailMessage) -> EmailResult:
        mime_message = self._build_mime_message(message)
        message_id = mime_message["Message-ID"]

        try:
            errors = await self._deliver(mime_message)
        except RetryError as e:
            logger.error(
                "SMTP delivery failed after retries",
                extra={"message_id": message_id, "attempts": e.attempts},
            )
            return EmailResult.failure_result(
                error=str(e.last_exception),
                error_code="SMTP_UNAVAILABLE",
            )
        except aiosmtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed: {e}")
            return EmailResult.failure_result(error=str(e), error_code="AUTH_FAILED")
        except aiosmtplib.SMTPRecipientsRefused as e:
            logger.error(f"All recipients refused: {e}")
            return EmailResult.failure_result(error=str(e), error_code="RECIPIENTS_REFUSED")
        except aiosmtplib.SMTPException as e:
            logger.error(f"SMTP error: {e}")
            return EmailResult.failure_result(error=str(e), error_code="SMTP_ERROR")

        rejected = list(errors)
        accepted = [r for r in message.to if r not in errors]
        if rejected:
            logger.warning(
                "Some recipients rejected",
                extra={"message_id": message_id, "rejected": rejected},
            )

        logger.info(
            "Email sent successfully",
            extra={
                "message_id": message_id,
                "recipients": len(accepted),
                "subject": message.subject[:50],
            },
        )
        return EmailResult(
            success=bool(accepted),
            message_id=message_id,
            status=EmailStatus.SENT if accepted else EmailStatus.FAILED,
            error=None if accepted else "All recipients rejected",
            recipients_accepted=accepted,
            recipients_rejected=rejected,
        )

    @retry(max_attempts=3, initial_delay=1.0, max_delay=10.0, exceptions=_TRANSIENT_ERRORS)
    async def _deliver(self, mime_message: MIMEMultipart) -> dict[str, object]:
        smtp = aiosmtplib.SMTP(
            hostname=self.settings.smtp_host,
            port=self.settings.smtp_port,
            use_tls=self.settings.use_ssl,  # Implicit TLS
            start_tls=self.settings.use_tls,  # STARTTLS
            timeout=self.settings.timeout,
        )
        async with smtp:
            if self.settings.requires_auth:
                await smtp.login(
                    self.settings.smtp_username,
                    self.settings.smtp_password.get_secret_value(),
                )
            errors, _response = await smtp.send_message(mime_message)
        return dict(errors)

    def _build_mime_message(self, message: EmailMessage) -> MIMEMultipart:
        mime_msg = MIMEMultipart("alternative")

        from_email = message.from_email or self.settings.default_from_email
        from_name = message.from_name or self.settings.default_from_name
        mime_msg["From"] = f"{from_name} <{from_email}>" if from_name else from_email
        mime_msg["To"] = ", ".join(message.to)
        mime_msg["Subject"] = message.subject
        mime_msg["Message-ID"] = f"<{uuid.uuid4()}@{self.settings.smtp_host}>"
        mime_msg["Date"] = datetime.now(UTC).strftime("%a, %d %b %Y %H:%M:%S +0000")
        if message.reply_to:
            mime_msg["Reply-To"] = message.reply_to
        for key, value in message.headers.items():
            mime_msg[key] = value

        if message.body_text:
            mime_msg.attach(MIMEText(message.body_text, "plain", "utf-8"))
        if message.body_html:
            mime_msg.attach(MIMEText(message.body_html, "html", "utf-8"))
        return mime_msg


class ConsoleClient(BaseEmailClient):
    """Console email client for development; logs instead of sending."""

    def __init__(self, settings: EmailSettings) -> None:
        self.settings = settings
        logger.info("Console email client initialized (development mode)")

    async def send(self, message: EmailMessage) -> EmailResult:
        message_id = f"console-{uuid.uuid4()}"
        logger.info(
            "Email logged to console",
            extra={
                "message_id": message_id,
                "to": message.to,
                "subject": message.subject,
                "body_text": (message.body_text or "")[:500],
            },
        )
        return EmailResult.success_result(
            message_id=message_id,
            recipients=list(message.to),
            backend="console",
        )


class FileClient(BaseEmailClient):
    """File email client for testing; writes each message as JSON."""

    def __init__(self, settings: EmailSettings) -> None:
        self.settings = settings
        self.output_dir = Path(settings.file_path)
        logger.info(f"File email client initialized (output: {self.output_dir})")

    async def send(self, message: EmailMessage) -> EmailResult:
        message_id = f"file-{uuid.uuid4()}"
        timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S_%f")
        filepath = self.output_dir / f"{timestamp}_{message_id}.json"

        email_data = {
            "message_id": message_id,
            "timestamp": datetime.now(UTC).isoformat(),
            "from_email": message.from_email or self.settings.default_from_email,
            "from_name": message.from_name or self.settings.default_from_name,
            "to": list(message.to),
            "reply_to": message.reply_to,
            "subject": message.subject,
            "body_text": message.body_text,
            "body_html": message.body_html,
            "tags": message.tags,
            "template_name": message.template_name,
        }

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            filepath.write_text(json.dumps(email_data, indent=2, default=str), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write email to file: {e}")
            return EmailResult.failure_result(
                error=str(e),
                error_code="FILE_WRITE_ERROR",
                backend="file",
            )

        logger.info(
            "Email written to file",
            extra={"message_id": message_id, "filepath": str(filepath), "to": message.to},
        )
        return EmailResult.success_result(
            message_id=message_id,
            recipients=list(message.to),
            backend="file",
        )


class EmailClient:
    """Delegates to the backend selected in EmailSettings."""

    def __init__(self, settings: EmailSettings) -> None:
        self.settings = settings
        self._backend: BaseEmailClient

        if settings.backend == "smtp":
            self._backend = SMTPClient(settings)
        elif settings.backend == "console":
            self._backend = ConsoleClient(settings)
        elif settings.backend == "file":
            self._backend = FileClient(settings)
        else:
            raise ValueError(f"Unknown email backend: {settings.backend}")

    async def send(self, message: EmailMessage) -> EmailResult:
        if not self.settings.enabled:
            logger.warning("Email sending is disabled")
            return EmailResult.failure_result(
                error="Email sending is disabled",
                error_code="EMAIL_DISABLED",
                backend=self.settings.backend,
            )
        return await self._backend.send(message)


def get_email_client(settings: EmailSettings | None = None) -> EmailClient:
    """Get an email client for the given (or cached) settings."""
    return EmailClient(settings or get_email_settings())
