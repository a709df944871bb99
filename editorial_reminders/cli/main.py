"""Main CLI entry point for editorial-reminders management commands."""

import click

from editorial_reminders.cli.commands import database, reminders, scheduler
from editorial_reminders.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="editorial-reminders")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Editorial Reminders CLI - deadline reminders for review assignments.

    \b
    Command Groups:
      db         Database connectivity and tables
      reminders  Scan, cancel, reschedule and manual reminders
      scheduler  The cron process that triggers the daily scan

    \b
    Quick Start:
      editorial-reminders db init                  # Test database connection
      editorial-reminders scheduler run            # Start the cron process
      editorial-reminders reminders scan           # Scan once, now
      taskiq worker editorial_reminders.infra.tasks.broker:broker
    """
    ctx.ensure_object(dict)


cli.add_command(database.db)
cli.add_command(reminders.reminders)
cli.add_command(scheduler.scheduler)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
