"""Taskiq broker and APScheduler integration.

Import the broker and lifecycle helpers from ``broker``; the scheduler is
imported separately by the process that owns the cron trigger.
"""

from editorial_reminders.infra.tasks.broker import broker, start_taskiq, stop_taskiq

__all__ = ["broker", "start_taskiq", "stop_taskiq"]
