"""Pydantic schemas for the reminders feature.

Configuration models serialize with camelCase keys, matching the JSON the
admin UI stores in ``journal_settings.reminder_settings``.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ReminderInterval(_CamelModel):
    """One "N days before the due date" reminder and its channels."""

    days_before: int = Field(..., ge=0, description="Days before the due date")
    enabled: bool = True
    email_enabled: bool = True
    conversation_enabled: bool = True


class OverdueReminderSettings(_CamelModel):
    """Escalating reminders sent every ``interval_days`` after the due date."""

    enabled: bool = True
    interval_days: int = Field(default=3, ge=1)
    max_reminders: int = Field(default=3, ge=1)


def _default_intervals() -> list[ReminderInterval]:
    return [ReminderInterval(days_before=days) for days in (7, 3, 1)]


class ReminderConfig(_CamelModel):
    """Effective reminder configuration for the journal.

    ``enabled`` is false when reminders are off globally or review reminders
    are off; both mean "do nothing".
    """

    enabled: bool = True
    intervals: list[ReminderInterval] = Field(default_factory=_default_intervals)
    overdue_reminders: OverdueReminderSettings = Field(default_factory=OverdueReminderSettings)

    @field_validator("intervals")
    @classmethod
    def _sort_intervals(cls, value: list[ReminderInterval]) -> list[ReminderInterval]:
        return sorted(value, key=lambda interval: interval.days_before, reverse=True)

    @property
    def enabled_intervals(self) -> list[ReminderInterval]:
        return [interval for interval in self.intervals if interval.enabled]

    @property
    def max_enabled_days(self) -> int:
        return max((interval.days_before for interval in self.enabled_intervals), default=0)

    @property
    def has_work(self) -> bool:
        """Whether a scan could schedule anything under this configuration."""
        if not self.enabled:
            return False
        return bool(self.enabled_intervals) or self.overdue_reminders.enabled

    def resolve_interval(self, days_before: int) -> ReminderInterval | None:
        """Find the interval governing ``days_before`` at fire time.

        Negative values are overdue milestones: they deliver on both channels
        while overdue reminders are enabled. Returns None when the interval
        is disabled, removed, or reminders are off.
        """
        if not self.enabled:
            return None
        if days_before >= 0:
            for interval in self.intervals:
                if interval.days_before == days_before and interval.enabled:
                    return interval
            return None
        if self.overdue_reminders.enabled:
            # days_before is negative here; the ge=0 bound applies to configured intervals only.
            return ReminderInterval.model_construct(
                days_before=days_before,
                enabled=True,
                email_enabled=True,
                conversation_enabled=True,
            )
        return None


class DeadlineReminderJob(_CamelModel):
    """Payload of a delayed reminder job.

    ``scheduled_for`` identifies the schedule the job was created for; a job
    whose record has since been re-armed with a different time is stale.
    """

    reminder_id: UUID
    assignment_id: UUID
    days_before: int
    scheduled_for: datetime | None = None


class CreateOutcome(StrEnum):
    CREATED = "CREATED"
    REARMED = "REARMED"
    ALREADY_EXISTS = "ALREADY_EXISTS"


class ProcessOutcome(StrEnum):
    """What the processor did with a fired job."""

    NOT_FOUND = "NOT_FOUND"
    SKIPPED = "SKIPPED"
    SUPERSEDED = "SUPERSEDED"
    CANCELLED = "CANCELLED"
    SENT = "SENT"


class ScheduleStatus(StrEnum):
    SCHEDULED = "SCHEDULED"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    STALE = "STALE"
    FAILED = "FAILED"


class ScheduleResult(BaseModel):
    """Outcome of scheduling one (assignment, interval) pair."""

    model_config = ConfigDict(frozen=True)

    assignment_id: UUID
    days_before: int
    job_key: str
    status: ScheduleStatus
    scheduled_for: datetime | None = None
    reminder_id: UUID | None = None
    rearmed: bool = False
    error: str | None = None

    @property
    def scheduled(self) -> bool:
        return self.status is ScheduleStatus.SCHEDULED


class ScanSummary(BaseModel):
    """Result of one scanner run; per-item failures are data, not exceptions."""

    assignments_examined: int = 0
    results: list[ScheduleResult] = Field(default_factory=list)
    skipped_reason: str | None = None

    @property
    def reminders_scheduled(self) -> int:
        return sum(1 for result in self.results if result.scheduled)

    @property
    def failures(self) -> list[ScheduleResult]:
        return [result for result in self.results if result.status is ScheduleStatus.FAILED]

    def add(self, results: list[ScheduleResult]) -> None:
        self.results.extend(results)

    def to_log_extra(self) -> dict[str, int | str | None]:
        return {
            "assignments_examined": self.assignments_examined,
            "reminders_scheduled": self.reminders_scheduled,
            "failures": len(self.failures),
            "skipped_reason": self.skipped_reason,
        }


class ManualReminderResult(BaseModel):
    success: bool
    error: str | None = None
    days_before: int | None = None
    email_sent: bool = False
    conversation_posted: bool = False
