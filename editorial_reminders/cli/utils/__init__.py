"""CLI utilities for running async operations and formatting output."""

from editorial_reminders.cli.utils.async_runner import coro
from editorial_reminders.cli.utils.formatters import error, header, info, success, warning

__all__ = [
    "coro",
    "error",
    "header",
    "info",
    "success",
    "warning",
]
