"""Reminder operations commands.

Example:bash
    # Run the reconciliation scan once, now
    editorial-reminders reminders scan

    # After a due date change
    editorial-reminders reminders reschedule 6f1c...

    # Nudge a reviewer by hand
    editorial-reminders reminders send-manual 6f1c... --sender-id 2b9e... -m "Any update?"
"""

from __future__ import annotations

import json
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING
from uuid import UUID

import click

from editorial_reminders.cli.utils import coro, error, header, info, success, warning

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@asynccontextmanager
async def _runtime(*, broker: bool = False) -> AsyncIterator[None]:
    """Start the connections a one-off command needs and close them after."""
    from editorial_reminders.infra.database import close_database
    from editorial_reminders.infra.realtime import stop_broadcaster
    from editorial_reminders.infra.tasks import start_taskiq, stop_taskiq

    if broker:
        await start_taskiq()
    try:
        yield
    finally:
        if broker:
            await stop_taskiq()
        await stop_broadcaster()
        await close_database()


@click.group(name="reminders")
def reminders() -> None:
    """Deadline reminder commands."""


@reminders.command()
@coro
async def scan() -> None:
    """Run the deadline reminder scan immediately."""
    from editorial_reminders.tasks.reminders import handle_deadline_scan

    header("Deadline reminder scan")
    async with _runtime(broker=True):
        summary = await handle_deadline_scan()

    if summary["skipped_reason"]:
        warning(f"Scan skipped: {summary['skipped_reason']}")
        return

    info(f"Assignments examined: {summary['assignments_examined']}")
    success(f"Reminders scheduled: {summary['reminders_scheduled']}")
    if summary["failed_job_keys"]:
        for job_key in summary["failed_job_keys"]:
            error(f"Failed: {job_key}")
        sys.exit(1)


@reminders.command()
@click.argument("assignment_id", type=click.UUID)
@coro
async def cancel(assignment_id: UUID) -> None:
    """Cancel the outstanding reminders of an assignment."""
    from editorial_reminders.features.reminders import ReminderLifecycleService
    from editorial_reminders.infra.database import get_async_session

    async with _runtime(), get_async_session() as session:
        count = await ReminderLifecycleService(session).cancel_reminders_for_assignment(assignment_id)

    success(f"Cancelled {count} reminder(s)")


@reminders.command()
@click.argument("assignment_id", type=click.UUID)
@coro
async def reschedule(assignment_id: UUID) -> None:
    """Reschedule an assignment's reminders from its current due date."""
    from editorial_reminders.features.reminders import ReminderLifecycleService
    from editorial_reminders.infra.database import get_async_session

    async with _runtime(broker=True), get_async_session() as session:
        count = await ReminderLifecycleService(session).reschedule_reminders_for_assignment(assignment_id)

    success(f"Scheduled {count} reminder(s)")


@reminders.command(name="send-manual")
@click.argument("assignment_id", type=click.UUID)
@click.option("--sender-id", type=click.UUID, required=True, help="User sending the reminder")
@click.option("--sender-name", default=None, help="Display name shown in the email")
@click.option("-m", "--message", "custom_message", default=None, help="Personal note for the reviewer")
@coro
async def send_manual(
    assignment_id: UUID,
    sender_id: UUID,
    sender_name: str | None,
    custom_message: str | None,
) -> None:
    """Send a one-off reminder to the reviewer right now."""
    from editorial_reminders.features.reminders import ManualReminderService
    from editorial_reminders.infra.database import get_async_session

    async with _runtime(), get_async_session() as session:
        result = await ManualReminderService(session).send_manual_reminder(
            assignment_id,
            sender_id=sender_id,
            sender_name=sender_name,
            custom_message=custom_message,
        )

    if not result.success:
        error(result.error or "Reminder failed")
        sys.exit(1)

    success("Reminder sent")
    info(f"Email sent: {result.email_sent}")
    info(f"Conversation posted: {result.conversation_posted}")
    if result.error:
        warning(result.error)


@reminders.command(name="list")
@click.argument("assignment_id", type=click.UUID)
@coro
async def list_reminders(assignment_id: UUID) -> None:
    """List every reminder record of an assignment."""
    from editorial_reminders.features.reminders import get_deadline_reminder_repository
    from editorial_reminders.infra.database import get_async_session

    async with _runtime(), get_async_session() as session:
        records = await get_deadline_reminder_repository().list_for_assignment(session, assignment_id)

    if not records:
        info("No reminders found")
        return

    click.echo(f"{'Days':>5}  {'Status':<10} {'Scheduled for':<26} {'Sent at':<26} Error")
    for record in records:
        sent_at = record.sent_at.isoformat() if record.sent_at else "-"
        click.echo(
            f"{record.days_before:>5}  {record.status.value:<10} "
            f"{record.scheduled_for.isoformat():<26} {sent_at:<26} {record.error_message or ''}"
        )


@reminders.command(name="config")
@coro
async def show_config() -> None:
    """Show the effective reminder configuration as JSON."""
    from editorial_reminders.features.reminders import get_reminder_config_provider

    async with _runtime():
        config = await get_reminder_config_provider().get_config()

    click.echo(json.dumps(config.model_dump(mode="json", by_alias=True), indent=2))
