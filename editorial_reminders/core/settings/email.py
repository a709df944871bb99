"""Email service settings for SMTP configuration.

Environment variables use EMAIL_ prefix.
Example: EMAIL_ENABLED=true, EMAIL_SMTP_HOST=smtp.example.com
"""

from __future__ import annotations

from pathlib import Path
from tempfile import gettempdir
from typing import Literal

from pydantic import EmailStr, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EMAIL_FILE_DIR = Path(gettempdir()) / "editorial_reminder_emails"


class EmailSettings(BaseSettings):
    """Email delivery configuration.

    Supports multiple backends:
    - smtp: Standard SMTP/SMTPS delivery
    - console: Log emails (development)
    - file: Write emails to files (testing)
    """

    enabled: bool = Field(
        default=False,
        description="Enable email sending functionality",
    )

    backend: Literal["smtp", "console", "file"] = Field(
        default="smtp",
        description="Email backend: smtp (production), console (dev), file (testing)",
    )

    # SMTP Configuration
    smtp_host: str = Field(default="localhost", min_length=1, max_length=255)
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_username: str | None = Field(default=None, max_length=255)
    smtp_password: SecretStr | None = Field(default=None)

    use_tls: bool = Field(
        default=True,
        description="Use STARTTLS (port 587). Set False for SSL (port 465) or plain (port 25)",
    )
    use_ssl: bool = Field(
        default=False,
        description="Use implicit SSL/TLS (port 465). Mutually exclusive with use_tls",
    )

    # Sender Configuration
    default_from_email: EmailStr = Field(
        default="noreply@colloquium.example.com",
        description="Default sender email address",
    )
    default_from_name: str = Field(
        default="Colloquium",
        max_length=100,
        description="Default sender display name",
    )

    # Delivery Settings
    timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="SMTP connection timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum retry attempts for transient SMTP failures",
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0.1,
        le=60.0,
        description="Initial delay between retry attempts in seconds",
    )

    file_path: str = Field(
        default=str(DEFAULT_EMAIL_FILE_DIR),
        description="Directory for file backend to write emails (development/testing only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @model_validator(mode="after")
    def validate_tls_ssl_exclusive(self) -> EmailSettings:
        """Ensure TLS and SSL are mutually exclusive."""
        if self.use_tls and self.use_ssl:
            msg = "use_tls and use_ssl are mutually exclusive"
            raise ValueError(msg)
        return self

    @model_validator(mode="after")
    def validate_smtp_auth(self) -> EmailSettings:
        """Username and password must be provided together."""
        if (self.smtp_username is None) != (self.smtp_password is None):
            msg = "Both smtp_username and smtp_password must be provided together"
            raise ValueError(msg)
        return self

    @property
    def is_configured(self) -> bool:
        """Check if email is properly configured for sending."""
        if not self.enabled:
            return False
        if self.backend == "smtp":
            return bool(self.smtp_host)
        return True

    @property
    def requires_auth(self) -> bool:
        return self.smtp_username is not None and self.smtp_password is not None
