"""Periodic reconciliation of review assignments against reminder records.

The scanner runs on a cron trigger. For every active assignment with a due
date inside the look-ahead window (or already past), it creates the reminder
records the configuration calls for and schedules one delayed job per new
record. Running it twice is harmless: ``create_if_absent`` only reports new
work once per ``(assignment, interval)`` pair.

Each record is committed before its job is queued, so a job can never fire
for a record that was rolled back.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from editorial_reminders.core.services.base import BaseService
from editorial_reminders.core.settings import get_reminder_settings
from editorial_reminders.features.assignments.repository import (
    ReviewAssignmentRepository,
    get_review_assignment_repository,
)
from editorial_reminders.features.reminders.config import (
    ReminderConfigProvider,
    get_reminder_config_provider,
)
from editorial_reminders.features.reminders.exceptions import ReminderSchedulingError
from editorial_reminders.features.reminders.models import SCHEDULED_STATUSES
from editorial_reminders.features.reminders.queue import ReminderJobQueue, TaskiqReminderJobQueue
from editorial_reminders.features.reminders.repository import (
    DeadlineReminderRepository,
    get_deadline_reminder_repository,
)
from editorial_reminders.features.reminders.scheduling import (
    DAY,
    calculate_reminder_time,
    generate_job_key,
    is_stale,
    overdue_milestones,
    overdue_send_time,
)
from editorial_reminders.features.reminders.schemas import (
    CreateOutcome,
    DeadlineReminderJob,
    ReminderConfig,
    ScanSummary,
    ScheduleResult,
    ScheduleStatus,
)

if TYPE_CHECKING:
    from collections.abc import Set
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from editorial_reminders.core.settings.reminders import ReminderSettings


class DeadlineScanner(BaseService):
    """Creates and schedules missing reminders for active assignments.

    Example:
        async with get_async_session() as session:
            summary = await DeadlineScanner(session).scan()
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        config_provider: ReminderConfigProvider | None = None,
        job_queue: ReminderJobQueue | None = None,
        settings: ReminderSettings | None = None,
        assignment_repository: ReviewAssignmentRepository | None = None,
        reminder_repository: DeadlineReminderRepository | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._config_provider = config_provider or get_reminder_config_provider()
        self._queue = job_queue or TaskiqReminderJobQueue()
        self._settings = settings or get_reminder_settings()
        self._assignments = assignment_repository or get_review_assignment_repository()
        self._reminders = reminder_repository or get_deadline_reminder_repository()

    @property
    def stale_grace(self) -> timedelta:
        return timedelta(minutes=self._settings.stale_grace_minutes)

    async def scan(self, now: datetime | None = None) -> ScanSummary:
        """Schedule every missing reminder; per-item failures are reported, not raised."""
        now = now or datetime.now(UTC)
        config = await self._config_provider.get_config()

        if not config.enabled:
            self.logger.info("Review reminders are disabled", extra={"operation": "reminders.scan"})
            return ScanSummary(skipped_reason="reminders_disabled")
        if not config.has_work:
            self.logger.info("No reminder intervals enabled", extra={"operation": "reminders.scan"})
            return ScanSummary(skipped_reason="no_intervals_enabled")

        look_ahead = now + (config.max_enabled_days + 1) * DAY
        assignments = await self._assignments.find_due_for_reminders(
            self._session,
            look_ahead=look_ahead,
            now=now,
        )
        # Plain values only: a per-item rollback expires ORM instances.
        targets = [(a.id, a.due_date) for a in assignments if a.due_date is not None]
        existing = await self._reminders.existing_days_by_assignment(
            self._session,
            [assignment_id for assignment_id, _ in targets],
            SCHEDULED_STATUSES,
        )

        summary = ScanSummary(assignments_examined=len(targets))
        for assignment_id, due_date in targets:
            summary.add(
                await self.schedule_for_assignment(
                    assignment_id,
                    due_date,
                    config,
                    existing.get(assignment_id, set()),
                    now=now,
                )
            )

        log_extra = {**summary.to_log_extra(), "operation": "reminders.scan"}
        if summary.failures:
            self.logger.warning("Deadline scan completed with failures", extra=log_extra)
        else:
            self.logger.info("Deadline scan complete", extra=log_extra)
        return summary

    async def schedule_for_assignment(
        self,
        assignment_id: UUID,
        due_date: datetime,
        config: ReminderConfig,
        existing_days: Set[int],
        *,
        now: datetime,
    ) -> list[ScheduleResult]:
        """Schedule the upcoming and overdue reminders one assignment is missing.

        ``existing_days`` holds the ``days_before`` values already handled;
        they are skipped without touching the store.
        """
        tz = self._settings.tzinfo
        results: list[ScheduleResult] = []

        for interval in config.enabled_intervals:
            days_before = interval.days_before
            if days_before in existing_days:
                continue

            scheduled_for = calculate_reminder_time(
                due_date,
                days_before,
                tz=tz,
                send_hour=self._settings.send_hour,
            )
            if is_stale(scheduled_for, now, self.stale_grace):
                self._lazy.debug(
                    lambda: f"reminders.scan: drop stale {generate_job_key(assignment_id, days_before)} at {scheduled_for}"
                )
                results.append(
                    ScheduleResult(
                        assignment_id=assignment_id,
                        days_before=days_before,
                        job_key=generate_job_key(assignment_id, days_before),
                        status=ScheduleStatus.STALE,
                        scheduled_for=scheduled_for,
                    )
                )
                continue

            results.append(await self._schedule_one(assignment_id, days_before, scheduled_for))

        milestones = overdue_milestones(due_date, now, config.overdue_reminders)
        if milestones:
            fire_at = overdue_send_time(
                now,
                tz=tz,
                send_hour=self._settings.send_hour,
                late_delay=timedelta(seconds=self._settings.overdue_late_delay_seconds),
            )
            for days_before in milestones:
                if days_before in existing_days:
                    continue
                results.append(await self._schedule_one(assignment_id, days_before, fire_at))

        return results

    async def _schedule_one(
        self,
        assignment_id: UUID,
        days_before: int,
        scheduled_for: datetime,
    ) -> ScheduleResult:
        job_key = generate_job_key(assignment_id, days_before)

        def result(status: ScheduleStatus, **kwargs: object) -> ScheduleResult:
            return ScheduleResult(
                assignment_id=assignment_id,
                days_before=days_before,
                job_key=job_key,
                status=status,
                scheduled_for=scheduled_for,
                **kwargs,
            )

        try:
            created = await self._reminders.create_if_absent(
                self._session,
                assignment_id=assignment_id,
                days_before=days_before,
                scheduled_for=scheduled_for,
            )
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            self.logger.exception(
                "Failed to create reminder record",
                extra={"job_key": job_key, "operation": "reminders.scan.create"},
            )
            return result(ScheduleStatus.FAILED, error=str(e))

        if created.outcome is CreateOutcome.ALREADY_EXISTS:
            self._lazy.debug(lambda: f"reminders.scan: {job_key} already exists")
            return result(ScheduleStatus.ALREADY_EXISTS)

        job = DeadlineReminderJob(
            reminder_id=created.reminder_id,
            assignment_id=assignment_id,
            days_before=days_before,
            scheduled_for=scheduled_for,
        )
        try:
            await self._queue.schedule(job, scheduled_for, job_key)
        except ReminderSchedulingError as e:
            await self._record_schedule_failure(created.reminder_id, job_key, str(e))
            return result(ScheduleStatus.FAILED, reminder_id=created.reminder_id, error=str(e))

        self.logger.info(
            "Scheduled reminder",
            extra={
                "job_key": job_key,
                "reminder_id": str(created.reminder_id),
                "days_before": days_before,
                "scheduled_for": scheduled_for.isoformat(),
                "rearmed": created.outcome is CreateOutcome.REARMED,
                "operation": "reminders.scan.schedule",
            },
        )
        return result(
            ScheduleStatus.SCHEDULED,
            reminder_id=created.reminder_id,
            rearmed=created.outcome is CreateOutcome.REARMED,
        )

    async def _record_schedule_failure(self, reminder_id: UUID, job_key: str, error: str) -> None:
        self.logger.error(
            "Failed to queue reminder job",
            extra={"job_key": job_key, "error": error, "operation": "reminders.scan.schedule"},
        )
        try:
            await self._reminders.mark_failed(self._session, reminder_id, error)
            await self._session.commit()
        except SQLAlchemyError:
            await self._session.rollback()
            self.logger.exception(
                "Failed to mark reminder as failed",
                extra={"job_key": job_key, "operation": "reminders.scan.schedule"},
            )
