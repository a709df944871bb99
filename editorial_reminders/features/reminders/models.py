"""SQLAlchemy models for the reminders feature."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Enum, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from editorial_reminders.core.database import UTCDateTime, UUIDTimestampedBase


class ReminderStatus(StrEnum):
    PENDING = "PENDING"
    QUEUED = "QUEUED"
    SENT = "SENT"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES: frozenset[ReminderStatus] = frozenset(
    {ReminderStatus.SENT, ReminderStatus.FAILED, ReminderStatus.CANCELLED}
)

# Statuses that bulk cancellation may overwrite.
CANCELLABLE_STATUSES: frozenset[ReminderStatus] = frozenset(
    {ReminderStatus.PENDING, ReminderStatus.QUEUED}
)

# Statuses a delivery outcome or a reschedule may still overwrite.
UNSENT_STATUSES: frozenset[ReminderStatus] = frozenset(
    {ReminderStatus.PENDING, ReminderStatus.QUEUED, ReminderStatus.FAILED}
)

# Statuses that count as "this interval is already handled" during a scan.
SCHEDULED_STATUSES: frozenset[ReminderStatus] = frozenset(
    {ReminderStatus.QUEUED, ReminderStatus.SENT}
)


class DeadlineReminder(UUIDTimestampedBase):
    """Persistent record of one reminder for one assignment and interval.

    ``days_before`` is positive or zero for reminders ahead of the due date
    and negative for overdue milestones (``-3`` is three days overdue).
    Records are never deleted, only transitioned; at most one exists per
    ``(assignment_id, days_before)``.
    """

    __tablename__ = "deadline_reminders"
    __table_args__ = (
        UniqueConstraint("assignment_id", "days_before", name="uq_deadline_reminders_assignment_days"),
        Index("ix_deadline_reminders_status_scheduled_for", "status", "scheduled_for"),
    )

    assignment_id: Mapped[UUID] = mapped_column(
        ForeignKey("review_assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    days_before: Mapped[int] = mapped_column(Integer(), nullable=False)
    scheduled_for: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[ReminderStatus] = mapped_column(
        Enum(ReminderStatus, native_enum=False, length=16),
        default=ReminderStatus.PENDING,
        nullable=False,
    )
    job_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text(), nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_overdue_milestone(self) -> bool:
        return self.days_before < 0

    def __repr__(self) -> str:
        return (
            f"DeadlineReminder(id={self.id}, job_key={self.job_key!r}, "
            f"status={self.status}, scheduled_for={self.scheduled_for})"
        )


class JournalSettings(UUIDTimestampedBase):
    """Journal-wide settings row; only ``reminder_settings`` is read here.

    ``reminder_settings`` holds the camelCase JSON edited in the admin UI::

        {"enabled": true,
         "reviewReminders": {"enabled": true, "intervals": [...],
                             "overdueReminders": {...}}}
    """

    __tablename__ = "journal_settings"

    name: Mapped[str] = mapped_column(String(255), default="default", nullable=False)
    reminder_settings: Mapped[dict[str, Any] | None] = mapped_column(JSON(), nullable=True)
