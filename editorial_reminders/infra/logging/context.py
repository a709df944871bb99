"""Context management for structured logging.

Reminder jobs run concurrently inside one worker process. Binding
``reminder_id`` / ``assignment_id`` to a ContextVar keeps every log line
emitted while processing a job tagged with the job it belongs to, without
threading the ids through each call.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

# Each async task gets its own copy automatically
_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the logging context of the current task.

    Example:
        ```python
        set_log_context(reminder_id=str(job.reminder_id))
        logger.info("Processing reminder")  # includes reminder_id
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current task."""
    _log_context.set({})


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind fields for the duration of a block, restoring the previous context after.

    Example:
        ```python
        with log_context(reminder_id=str(reminder_id), job_key=job_key):
            await processor.process(job)
        ```
    """
    token = _log_context.set({**_log_context.get(), **kwargs})
    try:
        yield
    finally:
        _log_context.reset(token)


class ContextInjectingFilter(logging.Filter):
    """Logging filter that copies the ContextVar fields onto each LogRecord.

    Installed on the root logger by ``configure_logging`` so that
    JSONFormatter emits the fields without any change to call sites.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            # Don't overwrite existing attributes
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
