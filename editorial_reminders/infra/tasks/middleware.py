"""Taskiq middlewares for the reminder worker.

RetryDelayMiddleware:
    SimpleRetryMiddleware re-kicks a failed task with the labels of the
    original message, which include the ``delay`` label used to hold a
    reminder until its send time. Without intervention a retry would wait
    that whole delay again. This middleware swaps it for a retry backoff.

LogContextMiddleware:
    Binds ``task_id`` and ``task_name`` to the logging context for the
    duration of each task execution.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Any

from taskiq import TaskiqMiddleware

from editorial_reminders.infra.logging import clear_log_context, set_log_context

if TYPE_CHECKING:
    from taskiq import TaskiqMessage, TaskiqResult

logger = logging.getLogger(__name__)

RETRY_LABEL = "_retries"
DELAY_LABEL = "delay"


def retry_attempt(labels: dict[str, Any]) -> int:
    """Return how many times this message has already been retried."""
    try:
        return int(labels.get(RETRY_LABEL, 0))
    except (TypeError, ValueError):
        return 0


class RetryDelayMiddleware(TaskiqMiddleware):
    """Replace the scheduling delay of retried messages with a backoff.

    Example:
        broker.with_middlewares(
            SimpleRetryMiddleware(default_retry_count=3),
            RetryDelayMiddleware(base_delay=60.0),
        )
    """

    def __init__(
        self,
        base_delay: float = 60.0,
        *,
        use_delay_exponent: bool = True,
        use_jitter: bool = True,
        max_delay: float = 3600.0,
    ) -> None:
        super().__init__()
        self.base_delay = base_delay
        self.use_delay_exponent = use_delay_exponent
        self.use_jitter = use_jitter
        self.max_delay = max_delay

    def compute_delay(self, attempt: int) -> float:
        delay = self.base_delay
        if self.use_delay_exponent:
            delay *= 2 ** max(attempt - 1, 0)
        delay = min(delay, self.max_delay)
        if self.use_jitter:
            delay += random.uniform(0, delay * 0.1)
        return delay

    def pre_send(self, message: TaskiqMessage) -> TaskiqMessage:
        attempt = retry_attempt(message.labels)
        if attempt > 0:
            delay = self.compute_delay(attempt)
            message.labels[DELAY_LABEL] = int(delay)
            logger.info(
                "Retrying task",
                extra={
                    "task_name": message.task_name,
                    "attempt": attempt,
                    "delay_seconds": int(delay),
                },
            )
        return message


class LogContextMiddleware(TaskiqMiddleware):
    """Tag every log line emitted by a task with its id and name."""

    def pre_execute(self, message: TaskiqMessage) -> TaskiqMessage:
        set_log_context(task_id=message.task_id, task_name=message.task_name)
        return message

    def post_execute(self, message: TaskiqMessage, result: TaskiqResult[Any]) -> None:
        if result.is_err:
            logger.warning(
                "Task finished with error",
                extra={"task_id": message.task_id, "error": str(result.error)},
            )
        clear_log_context()
