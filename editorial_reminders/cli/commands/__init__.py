"""CLI command modules."""

from editorial_reminders.cli.commands import database, reminders, scheduler

__all__ = [
    "database",
    "reminders",
    "scheduler",
]
