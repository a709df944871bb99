"""APScheduler integration for the reminder reconciliation scan.

APScheduler decides WHEN the scan runs; the scan itself executes on a
Taskiq worker so that only one process touches the database per trigger.

Architecture:
    APScheduler (in-process cron) → scan_deadline_reminders.kiq() → RabbitMQ → worker
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from editorial_reminders.core.settings import get_reminder_settings, get_task_settings
from editorial_reminders.infra.tasks.broker import broker

logger = logging.getLogger(__name__)

SCAN_JOB_ID = "deadline_reminder_scan"

scheduler = AsyncIOScheduler(
    timezone=get_reminder_settings().reference_timezone,
    job_defaults={
        "coalesce": True,  # Combine missed runs into one
        "max_instances": 1,
        "misfire_grace_time": get_task_settings().scheduler_misfire_grace_seconds,
    },
)


async def _schedule_scan() -> None:
    """Wrapper to properly await the Taskiq kiq() call."""
    from editorial_reminders.tasks.reminders import scan_deadline_reminders

    task = await scan_deadline_reminders.kiq()
    logger.info(
        "Deadline reminder scan enqueued",
        extra={"task_id": task.task_id, "operation": "reminders.scan.trigger"},
    )


def setup_scheduled_jobs() -> None:
    """Register the reminder scan with APScheduler.

    Call during startup AFTER the Taskiq broker is initialized.
    """
    if broker is None:
        logger.warning("Taskiq broker not configured, skipping job scheduling")
        return

    reminder_settings = get_reminder_settings()
    trigger = CronTrigger.from_crontab(
        reminder_settings.scan_cron,
        timezone=reminder_settings.reference_timezone,
    )
    scheduler.add_job(
        func=_schedule_scan,
        trigger=trigger,
        id=SCAN_JOB_ID,
        name="Scan review assignments for due reminders",
        replace_existing=True,
    )
    logger.info("Scheduled jobs configured", extra={"jobs": [SCAN_JOB_ID], "cron": reminder_settings.scan_cron})


def start_scheduler() -> None:
    """Register jobs and start the scheduler."""
    if not get_task_settings().scheduler_enabled:
        logger.info("Scheduler disabled by configuration")
        return

    setup_scheduled_jobs()
    if not scheduler.running:
        scheduler.start()
        logger.info("APScheduler started")


def stop_scheduler() -> None:
    """Shut down the scheduler without waiting for running jobs."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("APScheduler stopped")
