"""Email schemas and data models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, EmailStr, Field, model_validator


class EmailStatus(StrEnum):
    """Email delivery status."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class EmailMessage(BaseModel):
    """A complete email message ready for sending.

    Example:
        message = EmailMessage(
            to=["reviewer@example.com"],
            subject='Due Tomorrow: Review for "Coral reefs"',
            body_text="...",
            body_html="<p>...</p>",
        )
    """

    to: list[EmailStr] = Field(min_length=1, description="Primary recipients")
    reply_to: EmailStr | None = Field(default=None, description="Reply-to address")

    from_email: EmailStr | None = Field(default=None, description="Sender email address")
    from_name: str | None = Field(default=None, max_length=100, description="Sender display name")

    subject: str = Field(min_length=1, max_length=500, description="Email subject line")
    body_text: str | None = Field(default=None, description="Plain text body")
    body_html: str | None = Field(default=None, description="HTML body")

    headers: dict[str, str] = Field(default_factory=dict, description="Additional email headers")
    tags: list[str] = Field(default_factory=list, description="Tags for tracking/filtering")
    template_name: str | None = Field(
        default=None,
        description="Template name used to generate this email",
    )

    @model_validator(mode="after")
    def _require_body(self) -> EmailMessage:
        if self.body_text is None and self.body_html is None:
            msg = "Either body_text or body_html must be provided"
            raise ValueError(msg)
        return self


class EmailResult(BaseModel):
    """Result of an email send operation.

    Example:
        result = await email_service.send(to, subject, body_html=html, body=text)
        if not result.success:
            errors.append(f"Email failed: {result.error}")
    """

    success: bool = Field(description="Whether the email was sent successfully")
    message_id: str | None = Field(default=None, description="Message ID from the mail server")
    status: EmailStatus = Field(default=EmailStatus.PENDING)
    error: str | None = Field(default=None, description="Error message if failed")
    error_code: str | None = Field(default=None, description="Error code for programmatic handling")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    recipients_accepted: list[str] = Field(default_factory=list)
    recipients_rejected: list[str] = Field(default_factory=list)
    backend: str = Field(default="smtp", description="Backend used for sending")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def success_result(
        cls,
        message_id: str | None = None,
        recipients: list[str] | None = None,
        backend: str = "smtp",
    ) -> EmailResult:
        """Create a success result."""
        return cls(
            success=True,
            message_id=message_id,
            status=EmailStatus.SENT,
            recipients_accepted=recipients or [],
            backend=backend,
        )

    @classmethod
    def failure_result(
        cls,
        error: str,
        error_code: str | None = None,
        backend: str = "smtp",
    ) -> EmailResult:
        """Create a failure result."""
        return cls(
            success=False,
            status=EmailStatus.FAILED,
            error=error,
            error_code=error_code,
            backend=backend,
        )
