"""Scheduler process commands.

The scheduler process owns the cron trigger for the reconciliation scan.
Run exactly one per deployment; workers run separately:

    editorial-reminders scheduler run
    taskiq worker editorial_reminders.infra.tasks.broker:broker
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from datetime import datetime

import click

from editorial_reminders.cli.utils import coro, error, header, info, success, warning

logger = logging.getLogger(__name__)


@click.group(name="scheduler")
def scheduler() -> None:
    """Scheduled job management commands."""


@scheduler.command()
@coro
async def run() -> None:
    """Run the APScheduler process until interrupted."""
    from editorial_reminders.infra.database import close_database, init_database
    from editorial_reminders.infra.realtime import stop_broadcaster
    from editorial_reminders.infra.tasks import broker, start_taskiq, stop_taskiq
    from editorial_reminders.infra.tasks.scheduler import start_scheduler, stop_scheduler

    if broker is None:
        error("RabbitMQ is not configured; nothing would run the scan")
        sys.exit(1)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await init_database()
    await start_taskiq()
    try:
        start_scheduler()
        success("Scheduler running, press Ctrl+C to stop")
        await stop_event.wait()
    finally:
        info("Shutting down")
        stop_scheduler()
        await stop_taskiq()
        await stop_broadcaster()
        await close_database()
        logger.info("Scheduler process stopped")


@scheduler.command(name="list")
def list_jobs() -> None:
    """List the configured scheduled jobs and their next run times."""
    from editorial_reminders.infra.tasks import broker
    from editorial_reminders.infra.tasks.scheduler import scheduler as apscheduler
    from editorial_reminders.infra.tasks.scheduler import setup_scheduled_jobs

    header("Scheduled Jobs")
    if broker is None:
        warning("RabbitMQ is not configured; no jobs are registered")
        return

    setup_scheduled_jobs()
    now = datetime.now(apscheduler.timezone)
    for job in apscheduler.get_jobs():
        next_run = job.trigger.get_next_fire_time(None, now)
        click.echo(f"{job.id:<28} {job.name:<45} next: {next_run.isoformat() if next_run else 'never'}")


