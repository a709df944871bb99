"""Delayed job scheduling for reminder delivery.

The scanner depends on the ``ReminderJobQueue`` protocol; production uses
``TaskiqReminderJobQueue``, which kicks the processing task with a
``delay`` label so the broker holds it until the send time.

There is no queue-level cancel. A cancelled reminder's job still fires and
the processor drops it after reading the record's status.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from editorial_reminders.features.reminders.exceptions import ReminderSchedulingError

if TYPE_CHECKING:
    from editorial_reminders.features.reminders.schemas import DeadlineReminderJob

logger = logging.getLogger(__name__)


class ReminderJobQueue(Protocol):
    async def schedule(self, job: DeadlineReminderJob, fire_at: datetime, dedupe_key: str) -> None:
        """Arrange for ``job`` to run at ``fire_at``.

        Raises:
            ReminderSchedulingError: If the queue rejected the job.
        """
        ...


def delay_seconds(fire_at: datetime, now: datetime | None = None) -> int:
    """Whole seconds from ``now`` until ``fire_at``; zero when already due."""
    now = now or datetime.now(UTC)
    return max(0, int((fire_at - now).total_seconds()))


class TaskiqReminderJobQueue:
    """Schedules reminder jobs as delayed taskiq messages.

    Args:
        task: The registered ``process_deadline_reminder`` task (anything with
            ``kicker()``), resolved lazily when omitted.
    """

    def __init__(self, task: Any | None = None) -> None:
        self._task = task

    def _resolve_task(self) -> Any:
        if self._task is None:
            from editorial_reminders.tasks.reminders import process_deadline_reminder

            self._task = process_deadline_reminder
        return self._task

    async def schedule(self, job: DeadlineReminderJob, fire_at: datetime, dedupe_key: str) -> None:
        delay = delay_seconds(fire_at)
        try:
            task = self._resolve_task()
            await (
                task.kicker()
                .with_task_id(dedupe_key)
                .with_labels(delay=delay, job_key=dedupe_key)
                .kiq(job.model_dump(mode="json", by_alias=True))
            )
        except Exception as e:
            raise ReminderSchedulingError(
                f"Failed to schedule reminder job: {e}",
                details={"job_key": dedupe_key, "fire_at": fire_at.isoformat()},
            ) from e

        logger.info(
            "Reminder job scheduled",
            extra={
                "job_key": dedupe_key,
                "fire_at": fire_at.isoformat(),
                "delay_seconds": delay,
                "operation": "reminders.queue.schedule",
            },
        )


class InMemoryReminderJobQueue:
    """Records scheduled jobs without running them; for local runs and tests."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[DeadlineReminderJob, datetime, str]] = []

    async def schedule(self, job: DeadlineReminderJob, fire_at: datetime, dedupe_key: str) -> None:
        self.scheduled.append((job, fire_at, dedupe_key))

    @property
    def job_keys(self) -> list[str]:
        return [key for _, _, key in self.scheduled]
