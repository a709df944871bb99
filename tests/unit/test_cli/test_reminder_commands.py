"""Tests for the reminder CLI commands.

Testing approach:
- Uses Click's CliRunner for command invocation
- Replaces the runtime context and handlers so no database or broker is needed
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

from click.testing import CliRunner
import pytest

from editorial_reminders.cli.commands import reminders as reminder_commands
from editorial_reminders.cli.main import cli
from editorial_reminders.features.reminders.schemas import ManualReminderResult, ReminderConfig

# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def no_runtime(monkeypatch):
    """Skip broker startup and connection teardown."""

    @asynccontextmanager
    async def _runtime(*, broker=False):
        yield

    monkeypatch.setattr(reminder_commands, "_runtime", _runtime)


@pytest.fixture
def fake_session():
    """Patch get_async_session with a context manager yielding a mock session."""
    session = MagicMock()

    @asynccontextmanager
    async def _session():
        yield session

    with patch("editorial_reminders.infra.database.get_async_session", _session):
        yield session


def scan_summary(**overrides):
    return {
        "assignments_examined": 3,
        "reminders_scheduled": 2,
        "failures": 0,
        "skipped_reason": None,
        "failed_job_keys": [],
        **overrides,
    }


# =============================================================================
# scan
# =============================================================================


class TestScanCommand:
    """Tests for `reminders scan`."""

    def test_scan_success(self, cli_runner):
        with patch(
            "editorial_reminders.tasks.reminders.handle_deadline_scan",
            AsyncMock(return_value=scan_summary()),
        ):
            result = cli_runner.invoke(cli, ["reminders", "scan"], obj={})

        assert result.exit_code == 0
        assert "Assignments examined: 3" in result.output
        assert "Reminders scheduled: 2" in result.output

    def test_scan_skipped(self, cli_runner):
        with patch(
            "editorial_reminders.tasks.reminders.handle_deadline_scan",
            AsyncMock(return_value=scan_summary(skipped_reason="reminders_disabled")),
        ):
            result = cli_runner.invoke(cli, ["reminders", "scan"], obj={})

        assert result.exit_code == 0
        assert "Scan skipped: reminders_disabled" in result.output

    def test_scan_failures_exit_nonzero(self, cli_runner):
        summary = scan_summary(failures=1, failed_job_keys=["reminder-a1-3"])
        with patch(
            "editorial_reminders.tasks.reminders.handle_deadline_scan",
            AsyncMock(return_value=summary),
        ):
            result = cli_runner.invoke(cli, ["reminders", "scan"], obj={})

        assert result.exit_code == 1
        assert "Failed: reminder-a1-3" in result.output


# =============================================================================
# Lifecycle commands
# =============================================================================


class TestLifecycleCommands:
    """Tests for `reminders cancel` and `reminders reschedule`."""

    def test_cancel(self, cli_runner, fake_session):
        assignment_id = uuid4()
        service = MagicMock()
        service.cancel_reminders_for_assignment = AsyncMock(return_value=2)

        with patch("editorial_reminders.features.reminders.ReminderLifecycleService", return_value=service):
            result = cli_runner.invoke(cli, ["reminders", "cancel", str(assignment_id)], obj={})

        assert result.exit_code == 0
        assert "Cancelled 2 reminder(s)" in result.output
        service.cancel_reminders_for_assignment.assert_awaited_once_with(assignment_id)

    def test_reschedule(self, cli_runner, fake_session):
        assignment_id = uuid4()
        service = MagicMock()
        service.reschedule_reminders_for_assignment = AsyncMock(return_value=3)

        with patch("editorial_reminders.features.reminders.ReminderLifecycleService", return_value=service):
            result = cli_runner.invoke(cli, ["reminders", "reschedule", str(assignment_id)], obj={})

        assert result.exit_code == 0
        assert "Scheduled 3 reminder(s)" in result.output

    def test_invalid_uuid(self, cli_runner):
        result = cli_runner.invoke(cli, ["reminders", "cancel", "not-a-uuid"], obj={})

        assert result.exit_code == 2


# =============================================================================
# send-manual
# =============================================================================


class TestSendManualCommand:
    """Tests for `reminders send-manual`."""

    def _invoke(self, cli_runner, result_value):
        service = MagicMock()
        service.send_manual_reminder = AsyncMock(return_value=result_value)
        with patch("editorial_reminders.features.reminders.ManualReminderService", return_value=service):
            result = cli_runner.invoke(
                cli,
                ["reminders", "send-manual", str(uuid4()), "--sender-id", str(uuid4()), "-m", "Any update?"],
                obj={},
            )
        return result, service

    def test_success(self, cli_runner, fake_session):
        result, service = self._invoke(
            cli_runner,
            ManualReminderResult(success=True, days_before=2, email_sent=True, conversation_posted=True),
        )

        assert result.exit_code == 0
        assert "Reminder sent" in result.output
        assert service.send_manual_reminder.await_args.kwargs["custom_message"] == "Any update?"

    def test_partial_failure_warns(self, cli_runner, fake_session):
        result, _ = self._invoke(
            cli_runner,
            ManualReminderResult(success=True, error="Email failed: smtp down", conversation_posted=True),
        )

        assert result.exit_code == 0
        assert "Email failed: smtp down" in result.output

    def test_failure_exits_nonzero(self, cli_runner, fake_session):
        result, _ = self._invoke(cli_runner, ManualReminderResult(success=False, error="Assignment not found"))

        assert result.exit_code == 1
        assert "Assignment not found" in result.output


def test_config_prints_camel_case_json(cli_runner):
    provider = MagicMock()
    provider.get_config = AsyncMock(return_value=ReminderConfig())

    with patch("editorial_reminders.features.reminders.get_reminder_config_provider", return_value=provider):
        result = cli_runner.invoke(cli, ["reminders", "config"], obj={})

    assert result.exit_code == 0
    assert '"overdueReminders"' in result.output
    assert '"daysBefore": 7' in result.output
