"""Reminder task definitions.

This module provides:
- The reconciliation scan (triggered by APScheduler)
- Delayed processing of individual reminder jobs

The ``handle_*`` coroutines hold the logic and run without a broker; the
taskiq tasks are thin wrappers registered only when RabbitMQ is configured.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from taskiq import Context, TaskiqDepends

from editorial_reminders.core.settings import get_task_settings
from editorial_reminders.features.reminders.processor import ReminderProcessor
from editorial_reminders.features.reminders.scanner import DeadlineScanner
from editorial_reminders.features.reminders.schemas import DeadlineReminderJob
from editorial_reminders.infra.database.session import get_async_session
from editorial_reminders.infra.tasks.broker import broker
from editorial_reminders.infra.tasks.middleware import retry_attempt

if TYPE_CHECKING:
    from editorial_reminders.features.reminders.config import SessionFactory

logger = logging.getLogger(__name__)


async def handle_deadline_scan(session_factory: SessionFactory = get_async_session) -> dict[str, Any]:
    """Run one scan and return a JSON-friendly summary."""
    async with session_factory() as session:
        summary = await DeadlineScanner(session).scan()

    return {
        **summary.to_log_extra(),
        "failed_job_keys": [result.job_key for result in summary.failures],
    }


async def handle_deadline_reminder(
    job: dict[str, Any],
    *,
    is_retry: bool = False,
    session_factory: SessionFactory = get_async_session,
) -> dict[str, Any]:
    """Process one reminder job payload.

    Raises:
        ReminderDeliveryError: If every delivery channel failed (the task retries)
    """
    payload = DeadlineReminderJob.model_validate(job)
    async with session_factory() as session:
        outcome = await ReminderProcessor(session).process(payload, is_retry=is_retry)

    return {
        "status": outcome.value,
        "reminder_id": str(payload.reminder_id),
        "days_before": payload.days_before,
    }


if broker is not None:

    @broker.task(task_name="reminders.scan_deadline_reminders")
    async def scan_deadline_reminders() -> dict[str, Any]:
        """Schedule any missing deadline reminders.

        Scheduled: REMINDER_SCAN_CRON (default daily at 08:00).
        """
        logger.info("Starting deadline reminder scan")
        try:
            return await handle_deadline_scan()
        except Exception:
            logger.exception("Deadline reminder scan failed")
            raise

    @broker.task(
        task_name="reminders.process_deadline_reminder",
        retry_on_error=True,
        max_retries=get_task_settings().max_retries,
    )
    async def process_deadline_reminder(
        job: dict[str, Any],
        context: Context = TaskiqDepends(),  # noqa: B008
    ) -> dict[str, Any]:
        """Deliver one reminder at its send time.

        Retried by SimpleRetryMiddleware when ReminderDeliveryError propagates.
        """
        attempt = retry_attempt(context.message.labels)
        return await handle_deadline_reminder(job, is_retry=attempt > 0)
