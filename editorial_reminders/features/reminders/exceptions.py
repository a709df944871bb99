"""Reminder feature exceptions."""

from __future__ import annotations

from typing import Any


class ReminderError(Exception):
    """Base exception for reminder scheduling and delivery."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ReminderDeliveryError(ReminderError):
    """Every applicable delivery channel failed.

    Raised out of the processing task so the task queue retries it.
    """

    def __init__(self, errors: list[str], details: dict[str, Any] | None = None) -> None:
        self.errors = list(errors)
        super().__init__(f"Reminder failed: {'; '.join(self.errors)}", details)


class ReminderSchedulingError(ReminderError):
    """The job queue rejected a reminder job."""
