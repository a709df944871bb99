"""Deadline reminder settings.

Environment variables use REMINDER_ prefix.
Example: REMINDER_DEFAULT_INTERVALS='[7, 3, 1]', REMINDER_SEND_HOUR=9

Values here are the fallback reminder configuration used when the journal
has not stored its own, plus the operational knobs of the scanner and
processor.
"""

from __future__ import annotations

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReminderSettings(BaseSettings):
    """Reminder scheduling and delivery configuration."""

    # ──────────────────────────────────────────────────────────────
    # Fallback reminder configuration
    # ──────────────────────────────────────────────────────────────

    enabled: bool = Field(
        default=True,
        description="Default for the journal-level reminder toggle",
    )

    default_intervals: list[int] = Field(
        default_factory=lambda: [7, 3, 1],
        description="Days before the due date at which reminders are sent",
    )

    overdue_enabled: bool = Field(
        default=True,
        description="Send escalating reminders after the due date has passed",
    )

    overdue_interval_days: int = Field(
        default=3,
        ge=1,
        le=60,
        description="Days between overdue reminders",
    )

    overdue_max_reminders: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Maximum number of overdue reminders per assignment",
    )

    # ──────────────────────────────────────────────────────────────
    # Scheduling
    # ──────────────────────────────────────────────────────────────

    reference_timezone: str = Field(
        default="UTC",
        description="IANA timezone in which the daily send hour is interpreted",
    )

    send_hour: int = Field(
        default=9,
        ge=0,
        le=23,
        description="Local hour at which reminders are delivered",
    )

    stale_grace_minutes: int = Field(
        default=60,
        ge=0,
        le=24 * 60,
        description="Upcoming reminders older than this are dropped, not caught up",
    )

    overdue_late_delay_seconds: int = Field(
        default=60,
        ge=0,
        le=3600,
        description="Delay for an overdue reminder discovered after today's send hour",
    )

    scan_cron: str = Field(
        default="0 8 * * *",
        description="Crontab expression for the reconciliation scan",
    )

    config_cache_ttl_seconds: float = Field(
        default=60.0,
        ge=0.0,
        le=3600.0,
        description="How long the resolved reminder configuration is cached",
    )

    # ──────────────────────────────────────────────────────────────
    # Delivery
    # ──────────────────────────────────────────────────────────────

    delivery_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Upper bound for a single channel delivery attempt",
    )

    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Base URL used to build links in reminder content",
    )

    bot_username: str = Field(default="bot-editorial")
    bot_email: str = Field(default="bot-editorial@system.local")
    bot_name: str = Field(default="Editorial Bot")

    model_config = SettingsConfigDict(
        env_prefix="REMINDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("default_intervals")
    @classmethod
    def _validate_intervals(cls, value: list[int]) -> list[int]:
        if any(days < 0 for days in value):
            msg = "default_intervals must be non-negative"
            raise ValueError(msg)
        return sorted(set(value), reverse=True)

    @field_validator("reference_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            msg = f"unknown timezone: {value}"
            raise ValueError(msg) from e
        return value

    @field_validator("frontend_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.reference_timezone)
