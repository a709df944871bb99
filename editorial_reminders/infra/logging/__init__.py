"""Logging infrastructure.

Structured logging with:
- JSONL format for log aggregation
- Automatic context injection (reminder_id, assignment_id, job_key)
- QueueHandler + QueueListener for non-blocking I/O
- Lazy evaluation for expensive debug messages
- OpenTelemetry trace correlation

Basic usage:
    from editorial_reminders.infra.logging import log_context
    import logging

    logger = logging.getLogger(__name__)

    with log_context(reminder_id="...", job_key="reminder-a1-3"):
        logger.info("Processing reminder")  # includes both fields

    from editorial_reminders.infra.logging import get_lazy_logger

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Expensive: {describe(batch)}")
"""

from editorial_reminders.infra.logging.config import (
    configure_logging,
    setup_logging,
    shutdown,
)
from editorial_reminders.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    set_log_context,
)
from editorial_reminders.infra.logging.formatters import JSONFormatter
from editorial_reminders.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
