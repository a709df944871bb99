"""Pure time arithmetic for reminder scheduling.

All functions take ``now`` explicitly and return timezone-aware UTC
datetimes, so they are deterministic under test.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime, time, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

    from editorial_reminders.features.reminders.schemas import OverdueReminderSettings

DAY = timedelta(days=1)


def generate_job_key(assignment_id: UUID | str, days_before: int) -> str:
    """Deterministic dedupe key for one (assignment, interval) pair."""
    return f"reminder-{assignment_id}-{days_before}"


def send_time_on(day: datetime, tz: ZoneInfo, send_hour: int) -> datetime:
    """The send hour on ``day``'s calendar date in ``tz``, as UTC."""
    local_date = day.astimezone(tz).date()
    return datetime.combine(local_date, time(hour=send_hour), tzinfo=tz).astimezone(UTC)


def calculate_reminder_time(
    due_date: datetime,
    days_before: int,
    *,
    tz: ZoneInfo,
    send_hour: int = 9,
) -> datetime:
    """Send time for a reminder ``days_before`` days ahead of ``due_date``.

    The due date's calendar day in ``tz`` is shifted by whole days, then
    the time is set to ``send_hour``.

    Example:
        A due date of 2024-01-10 17:00 UTC with ``days_before=3`` in UTC
        gives 2024-01-07 09:00 UTC.
    """
    local_date = due_date.astimezone(tz).date() - timedelta(days=days_before)
    return datetime.combine(local_date, time(hour=send_hour), tzinfo=tz).astimezone(UTC)


def is_stale(scheduled_for: datetime, now: datetime, grace: timedelta) -> bool:
    """True when a send time is further in the past than the grace window."""
    return scheduled_for < now - grace


def days_past_due(due_date: datetime, now: datetime) -> int:
    return math.floor((now - due_date) / DAY)


def days_until_due(due_date: datetime, now: datetime) -> int:
    """Whole days remaining, rounded up; zero or negative once due."""
    return math.ceil((due_date - now) / DAY)


def overdue_milestones(
    due_date: datetime,
    now: datetime,
    settings: OverdueReminderSettings,
) -> list[int]:
    """Negative ``days_before`` values of the overdue milestones already reached.

    Milestones are ``-intervalDays * i`` for ``i`` in ``1..maxReminders``.
    Empty unless the due date is in the past and overdue reminders are on.
    """
    if not settings.enabled or due_date >= now:
        return []

    elapsed = days_past_due(due_date, now)
    return [
        -(i * settings.interval_days)
        for i in range(1, settings.max_reminders + 1)
        if elapsed >= i * settings.interval_days
    ]


def overdue_send_time(
    now: datetime,
    *,
    tz: ZoneInfo,
    send_hour: int = 9,
    late_delay: timedelta = timedelta(minutes=1),
) -> datetime:
    """Today's send hour, or ``now + late_delay`` once it has passed."""
    anchor = send_time_on(now, tz, send_hour)
    if anchor < now:
        return now + late_delay
    return anchor
