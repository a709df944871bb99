"""Unit tests for ReminderLifecycleService."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from editorial_reminders.features.assignments.models import AssignmentStatus
from editorial_reminders.features.reminders.lifecycle import ReminderLifecycleService
from editorial_reminders.features.reminders.models import ReminderStatus
from editorial_reminders.features.reminders.repository import DeadlineReminderRepository

NOW = datetime(2024, 1, 5, 8, 0, tzinfo=UTC)


@pytest.fixture
def service(db_session, config_provider, job_queue, reminder_settings) -> ReminderLifecycleService:
    return ReminderLifecycleService(
        db_session,
        config_provider=config_provider,
        job_queue=job_queue,
        settings=reminder_settings,
    )


async def _statuses(db_session, assignment_id) -> dict[int, ReminderStatus]:
    records = await DeadlineReminderRepository().list_for_assignment(db_session, assignment_id)
    return {r.days_before: r.status for r in records}


class TestCancelReminders:
    """Tests for cancellation on completion or decline."""

    @pytest.mark.asyncio
    async def test_cancels_only_outstanding(self, db_session, service, make_assignment, make_reminder):
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))
        await make_reminder(assignment.id, 7, status=ReminderStatus.SENT)
        await make_reminder(assignment.id, 3, status=ReminderStatus.QUEUED)
        await make_reminder(assignment.id, 1, status=ReminderStatus.PENDING)
        await make_reminder(assignment.id, 0, status=ReminderStatus.FAILED)

        count = await service.cancel_reminders_for_assignment(assignment.id)

        assert count == 2
        assert await _statuses(db_session, assignment.id) == {
            7: ReminderStatus.SENT,
            3: ReminderStatus.CANCELLED,
            1: ReminderStatus.CANCELLED,
            0: ReminderStatus.FAILED,
        }

    @pytest.mark.asyncio
    async def test_nothing_to_cancel(self, service, make_assignment):
        assignment = await make_assignment(due_date=None)

        assert await service.cancel_reminders_for_assignment(assignment.id) == 0


class TestRescheduleReminders:
    """Tests for rescheduling after a due date change."""

    @pytest.mark.asyncio
    async def test_sent_intervals_not_resent(self, db_session, service, job_queue, make_assignment, make_reminder):
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))
        await make_reminder(assignment.id, 3, status=ReminderStatus.SENT)
        await make_reminder(assignment.id, 1, status=ReminderStatus.QUEUED)

        assignment.due_date = datetime(2024, 1, 20, 17, tzinfo=UTC)
        await db_session.commit()

        scheduled = await service.reschedule_reminders_for_assignment(assignment.id, now=NOW)

        # 7 is new, 1 is re-armed, 3 stays SENT
        assert scheduled == 2
        assert sorted(job_queue.job_keys) == sorted(
            [f"reminder-{assignment.id}-7", f"reminder-{assignment.id}-1"]
        )
        assert await _statuses(db_session, assignment.id) == {
            7: ReminderStatus.QUEUED,
            3: ReminderStatus.SENT,
            1: ReminderStatus.QUEUED,
        }

    @pytest.mark.asyncio
    async def test_rearmed_record_gets_new_time(self, db_session, service, job_queue, make_assignment, make_reminder):
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))
        original = await make_reminder(assignment.id, 3, scheduled_for=datetime(2024, 1, 7, 9, tzinfo=UTC))

        assignment.due_date = datetime(2024, 1, 12, 17, tzinfo=UTC)
        await db_session.commit()
        await service.reschedule_reminders_for_assignment(assignment.id, now=NOW)

        await db_session.refresh(original)
        assert original.status is ReminderStatus.QUEUED
        assert original.scheduled_for == datetime(2024, 1, 9, 9, tzinfo=UTC)
        job = next(job for job, _, key in job_queue.scheduled if key == original.job_key)
        assert job.reminder_id == original.id
        assert job.scheduled_for == original.scheduled_for

    @pytest.mark.asyncio
    async def test_failed_interval_is_rearmed(self, db_session, service, job_queue, make_assignment, make_reminder):
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))
        failed = await make_reminder(assignment.id, 3, status=ReminderStatus.FAILED)

        assignment.due_date = datetime(2024, 1, 20, 17, tzinfo=UTC)
        await db_session.commit()
        scheduled = await service.reschedule_reminders_for_assignment(assignment.id, now=NOW)

        assert scheduled == 3
        await db_session.refresh(failed)
        assert failed.status is ReminderStatus.QUEUED
        assert failed.scheduled_for == datetime(2024, 1, 17, 9, tzinfo=UTC)
        assert failed.error_message is None
        assert failed.job_key in job_queue.job_keys

    @pytest.mark.asyncio
    async def test_includes_overdue_milestones(self, db_session, service, job_queue, make_assignment):
        assignment = await make_assignment(due_date=NOW - timedelta(days=7))

        scheduled = await service.reschedule_reminders_for_assignment(assignment.id, now=NOW)

        assert scheduled == 2
        assert sorted(job_queue.job_keys) == sorted(
            [f"reminder-{assignment.id}--3", f"reminder-{assignment.id}--6"]
        )

    @pytest.mark.asyncio
    async def test_inactive_assignment_only_cancels(self, db_session, service, job_queue, make_assignment, make_reminder):
        assignment = await make_assignment(
            due_date=datetime(2024, 1, 10, 17, tzinfo=UTC),
            status=AssignmentStatus.COMPLETED,
        )
        await make_reminder(assignment.id, 3)

        assert await service.reschedule_reminders_for_assignment(assignment.id, now=NOW) == 0
        assert job_queue.scheduled == []
        assert await _statuses(db_session, assignment.id) == {3: ReminderStatus.CANCELLED}

    @pytest.mark.asyncio
    async def test_cleared_due_date(self, db_session, service, job_queue, make_assignment, make_reminder):
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))
        await make_reminder(assignment.id, 3)
        assignment.due_date = None
        await db_session.commit()

        assert await service.reschedule_reminders_for_assignment(assignment.id, now=NOW) == 0
        assert await _statuses(db_session, assignment.id) == {3: ReminderStatus.CANCELLED}

    @pytest.mark.asyncio
    async def test_reminders_disabled(self, service, job_queue, make_assignment, store_journal_settings):
        await store_journal_settings({"enabled": False})
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))

        assert await service.reschedule_reminders_for_assignment(assignment.id, now=NOW) == 0
        assert job_queue.scheduled == []

    @pytest.mark.asyncio
    async def test_missing_assignment(self, service):
        assert await service.reschedule_reminders_for_assignment(uuid4(), now=NOW) == 0
