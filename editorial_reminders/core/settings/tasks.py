"""Task execution settings.

Environment variables use TASK_ prefix.
Example: TASK_MAX_RETRIES=5
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TaskSettings(BaseSettings):
    """Taskiq worker and retry configuration."""

    # ──────────────────────────────────────────────────────────────
    # Retry policy
    # ──────────────────────────────────────────────────────────────

    max_retries: int = Field(
        default=3,
        ge=0,
        le=20,
        description="Retries for a reminder job whose every delivery channel failed",
    )

    retry_delay_seconds: float = Field(
        default=60.0,
        ge=0.0,
        le=3600.0,
        description="Base delay between retries",
    )

    use_jitter: bool = Field(
        default=True,
        description="Add random jitter to retry delays",
    )

    use_delay_exponent: bool = Field(
        default=True,
        description="Grow retry delay exponentially with each attempt",
    )

    # ──────────────────────────────────────────────────────────────
    # Scheduler
    # ──────────────────────────────────────────────────────────────

    scheduler_enabled: bool = Field(
        default=True,
        description="Run the APScheduler cron that triggers reminder scans",
    )

    scheduler_misfire_grace_seconds: int = Field(
        default=3600,
        ge=1,
        description="How late a missed scan may still run",
    )

    model_config = SettingsConfigDict(
        env_prefix="TASK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
