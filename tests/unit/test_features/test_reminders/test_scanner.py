"""Unit tests for DeadlineScanner."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from editorial_reminders.features.assignments.models import AssignmentStatus
from editorial_reminders.features.reminders.exceptions import ReminderSchedulingError
from editorial_reminders.features.reminders.models import ReminderStatus
from editorial_reminders.features.reminders.queue import InMemoryReminderJobQueue
from editorial_reminders.features.reminders.repository import DeadlineReminderRepository
from editorial_reminders.features.reminders.scanner import DeadlineScanner
from editorial_reminders.features.reminders.schemas import ScheduleStatus

NOW = datetime(2024, 1, 5, 8, 0, tzinfo=UTC)


class FailingQueue(InMemoryReminderJobQueue):
    """Rejects jobs whose dedupe key ends with one of ``fail_suffixes``."""

    def __init__(self, *fail_suffixes: str) -> None:
        super().__init__()
        self.fail_suffixes = fail_suffixes

    async def schedule(self, job, fire_at, dedupe_key):
        if dedupe_key.endswith(self.fail_suffixes):
            raise ReminderSchedulingError("broker unavailable")
        await super().schedule(job, fire_at, dedupe_key)


@pytest.fixture
def scanner_factory(db_session, config_provider, reminder_settings):
    def _build(queue) -> DeadlineScanner:
        return DeadlineScanner(
            db_session,
            config_provider=config_provider,
            job_queue=queue,
            settings=reminder_settings,
        )

    return _build


@pytest.fixture
def scanner(scanner_factory, job_queue) -> DeadlineScanner:
    return scanner_factory(job_queue)


async def _records(db_session, assignment_id):
    return await DeadlineReminderRepository().list_for_assignment(db_session, assignment_id)


# ──────────────────────────────────────────────────────────────
# Upcoming reminders
# ──────────────────────────────────────────────────────────────


class TestUpcomingReminders:
    """Tests for scheduling reminders ahead of the due date."""

    @pytest.mark.asyncio
    async def test_schedules_future_intervals(self, db_session, scanner, job_queue, make_assignment):
        """Due in 5 days: the 3 and 1 day reminders are scheduled, the 7 day one is stale."""
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))

        summary = await scanner.scan(now=NOW)

        assert summary.assignments_examined == 1
        assert summary.reminders_scheduled == 2
        assert sorted(job_queue.job_keys) == sorted(
            [f"reminder-{assignment.id}-3", f"reminder-{assignment.id}-1"]
        )
        fire_times = {key: fire_at for _, fire_at, key in job_queue.scheduled}
        assert fire_times[f"reminder-{assignment.id}-3"] == datetime(2024, 1, 7, 9, tzinfo=UTC)
        assert fire_times[f"reminder-{assignment.id}-1"] == datetime(2024, 1, 9, 9, tzinfo=UTC)

        stale = [r for r in summary.results if r.status is ScheduleStatus.STALE]
        assert [r.days_before for r in stale] == [7]

        records = await _records(db_session, assignment.id)
        assert {(r.days_before, r.status) for r in records} == {
            (3, ReminderStatus.QUEUED),
            (1, ReminderStatus.QUEUED),
        }

    @pytest.mark.asyncio
    async def test_job_payload_matches_record(self, db_session, scanner, job_queue, make_assignment):
        assignment = await make_assignment(due_date=datetime(2024, 1, 8, 12, tzinfo=UTC))

        await scanner.scan(now=NOW)

        job, fire_at, key = job_queue.scheduled[0]
        record = await DeadlineReminderRepository().get(db_session, job.reminder_id)
        assert record is not None
        assert record.job_key == key
        assert job.assignment_id == assignment.id
        assert job.scheduled_for == fire_at == record.scheduled_for

    @pytest.mark.asyncio
    async def test_scan_is_idempotent(self, db_session, scanner, job_queue, make_assignment):
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))

        await scanner.scan(now=NOW)
        second = await scanner.scan(now=NOW)

        assert second.reminders_scheduled == 0
        assert len(job_queue.scheduled) == 2
        assert len(await _records(db_session, assignment.id)) == 2

    @pytest.mark.asyncio
    async def test_within_grace_window_is_scheduled(self, scanner, job_queue, make_assignment):
        """A 09:00 send time discovered at 09:30 still goes out."""
        assignment = await make_assignment(due_date=datetime(2024, 1, 8, 12, tzinfo=UTC))

        await scanner.scan(now=datetime(2024, 1, 5, 9, 30, tzinfo=UTC))

        assert f"reminder-{assignment.id}-3" in job_queue.job_keys

    @pytest.mark.asyncio
    async def test_past_grace_window_is_dropped(self, db_session, scanner, job_queue, make_assignment):
        assignment = await make_assignment(due_date=datetime(2024, 1, 8, 12, tzinfo=UTC))

        await scanner.scan(now=datetime(2024, 1, 5, 10, 30, tzinfo=UTC))

        assert f"reminder-{assignment.id}-3" not in job_queue.job_keys
        assert all(r.days_before != 3 for r in await _records(db_session, assignment.id))

    @pytest.mark.asyncio
    async def test_outside_look_ahead_is_ignored(self, scanner, job_queue, make_assignment):
        await make_assignment(due_date=NOW + timedelta(days=30))

        summary = await scanner.scan(now=NOW)

        assert summary.assignments_examined == 0
        assert job_queue.scheduled == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [AssignmentStatus.PENDING, AssignmentStatus.COMPLETED, AssignmentStatus.DECLINED],
    )
    async def test_inactive_assignments_are_ignored(self, scanner, job_queue, make_assignment, status):
        await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC), status=status)

        summary = await scanner.scan(now=NOW)

        assert summary.assignments_examined == 0
        assert job_queue.scheduled == []

    @pytest.mark.asyncio
    async def test_undated_assignments_are_ignored(self, scanner, make_assignment):
        await make_assignment(due_date=None)

        summary = await scanner.scan(now=NOW)

        assert summary.assignments_examined == 0

    @pytest.mark.asyncio
    async def test_sent_interval_not_recreated(self, scanner, job_queue, make_assignment, make_reminder):
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))
        await make_reminder(assignment.id, 3, status=ReminderStatus.SENT)

        await scanner.scan(now=NOW)

        assert job_queue.job_keys == [f"reminder-{assignment.id}-1"]

    @pytest.mark.asyncio
    async def test_failed_record_is_not_rescheduled(self, scanner, job_queue, make_assignment, make_reminder):
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))
        await make_reminder(assignment.id, 3, status=ReminderStatus.FAILED)

        summary = await scanner.scan(now=NOW)

        assert f"reminder-{assignment.id}-3" not in job_queue.job_keys
        existing = [r for r in summary.results if r.status is ScheduleStatus.ALREADY_EXISTS]
        assert [r.days_before for r in existing] == [3]


# ──────────────────────────────────────────────────────────────
# Overdue escalation
# ──────────────────────────────────────────────────────────────


class TestOverdueReminders:
    """Tests for escalation after the due date."""

    @pytest.mark.asyncio
    async def test_milestones_capped(self, db_session, scanner, job_queue, make_assignment):
        assignment = await make_assignment(due_date=NOW - timedelta(days=10))

        await scanner.scan(now=NOW)

        records = await _records(db_session, assignment.id)
        assert sorted(r.days_before for r in records) == [-9, -6, -3]
        assert f"reminder-{assignment.id}--12" not in job_queue.job_keys

    @pytest.mark.asyncio
    async def test_overdue_fires_at_todays_anchor(self, scanner, job_queue, make_assignment):
        """Discovered at 08:00, before the 09:00 anchor."""
        await make_assignment(due_date=NOW - timedelta(days=4))

        await scanner.scan(now=NOW)

        [(_, fire_at, _)] = job_queue.scheduled
        assert fire_at == datetime(2024, 1, 5, 9, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_overdue_after_anchor_fires_soon(self, scanner, job_queue, make_assignment):
        now = datetime(2024, 1, 5, 15, 0, tzinfo=UTC)
        await make_assignment(due_date=now - timedelta(days=4))

        await scanner.scan(now=now)

        [(_, fire_at, _)] = job_queue.scheduled
        assert fire_at == now + timedelta(seconds=60)

    @pytest.mark.asyncio
    async def test_existing_milestones_skipped(self, scanner, job_queue, make_assignment, make_reminder):
        assignment = await make_assignment(due_date=NOW - timedelta(days=7))
        await make_reminder(assignment.id, -3, status=ReminderStatus.SENT)

        await scanner.scan(now=NOW)

        assert job_queue.job_keys == [f"reminder-{assignment.id}--6"]

    @pytest.mark.asyncio
    async def test_overdue_disabled(self, scanner, job_queue, make_assignment, store_journal_settings):
        await store_journal_settings({"reviewReminders": {"overdueReminders": {"enabled": False}}})
        await make_assignment(due_date=NOW - timedelta(days=10))

        await scanner.scan(now=NOW)

        assert job_queue.scheduled == []


# ──────────────────────────────────────────────────────────────
# Configuration and failures
# ──────────────────────────────────────────────────────────────


class TestScanConfiguration:
    @pytest.mark.asyncio
    async def test_disabled_does_nothing(self, scanner, job_queue, make_assignment, store_journal_settings):
        await store_journal_settings({"enabled": False})
        await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))

        summary = await scanner.scan(now=NOW)

        assert summary.skipped_reason == "reminders_disabled"
        assert job_queue.scheduled == []

    @pytest.mark.asyncio
    async def test_nothing_enabled(self, scanner, store_journal_settings):
        await store_journal_settings(
            {
                "reviewReminders": {
                    "intervals": [{"daysBefore": 3, "enabled": False}],
                    "overdueReminders": {"enabled": False},
                }
            }
        )

        summary = await scanner.scan(now=NOW)

        assert summary.skipped_reason == "no_intervals_enabled"

    @pytest.mark.asyncio
    async def test_disabled_interval_not_scheduled(self, scanner, job_queue, make_assignment, store_journal_settings):
        await store_journal_settings(
            {"reviewReminders": {"intervals": [{"daysBefore": 3, "enabled": False}, {"daysBefore": 1}]}}
        )
        assignment = await make_assignment(due_date=datetime(2024, 1, 6, 17, tzinfo=UTC))

        await scanner.scan(now=NOW)

        assert job_queue.job_keys == [f"reminder-{assignment.id}-1"]


class TestQueueFailures:
    """A rejected job fails its record and the scan continues."""

    @pytest.mark.asyncio
    async def test_failure_marks_record_failed(self, db_session, scanner_factory, make_assignment):
        queue = FailingQueue("-3")
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))

        summary = await scanner_factory(queue).scan(now=NOW)

        assert [r.job_key for r in summary.failures] == [f"reminder-{assignment.id}-3"]
        assert queue.job_keys == [f"reminder-{assignment.id}-1"]

        records = {r.days_before: r for r in await _records(db_session, assignment.id)}
        assert records[3].status is ReminderStatus.FAILED
        assert "broker unavailable" in records[3].error_message
        assert records[1].status is ReminderStatus.QUEUED

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_other_assignments(self, scanner_factory, make_assignment):
        first = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))
        second = await make_assignment(due_date=datetime(2024, 1, 11, 17, tzinfo=UTC))
        queue = FailingQueue(f"{first.id}-3", f"{first.id}-1")

        summary = await scanner_factory(queue).scan(now=NOW)

        assert len(summary.failures) == 2
        assert sorted(queue.job_keys) == sorted([f"reminder-{second.id}-3", f"reminder-{second.id}-1"])
