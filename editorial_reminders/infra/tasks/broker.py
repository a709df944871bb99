"""Taskiq broker configuration for reminder processing.

Reminder jobs are delayed taskiq messages on RabbitMQ (taskiq-aio-pika).
The ``delay`` label holds a message in the broker's delay queue until the
reminder's send time; the worker then runs the processing task.

Run worker:
    taskiq worker editorial_reminders.infra.tasks.broker:broker

Architecture:
    APScheduler cron → scan task → delayed process tasks → RabbitMQ → worker
"""

from __future__ import annotations

import logging

from taskiq.middlewares import SimpleRetryMiddleware
from taskiq_aio_pika import AioPikaBroker

from editorial_reminders.core.settings import get_rabbit_settings, get_task_settings
from editorial_reminders.infra.logging.config import setup_logging
from editorial_reminders.infra.tasks.middleware import LogContextMiddleware, RetryDelayMiddleware

logger = logging.getLogger(__name__)

rabbit_settings = get_rabbit_settings()
task_settings = get_task_settings()
setup_logging()

TASK_QUEUE = "reminder-tasks"

broker: AioPikaBroker | None = None


def _can_create_broker() -> bool:
    """Check if broker can be created based on configuration."""
    if not rabbit_settings.is_configured:
        logger.warning("RabbitMQ not configured - reminder tasks disabled")
        return False
    return True


if _can_create_broker():
    # SimpleRetryMiddleware must come first so RetryDelayMiddleware sees
    # the retry label on re-kicked messages.
    broker = AioPikaBroker(
        url=rabbit_settings.url,
        queue_name=rabbit_settings.get_prefixed_queue(TASK_QUEUE),
        qos=rabbit_settings.prefetch_count,
        declare_exchange=True,
        declare_queues=True,
    ).with_middlewares(
        SimpleRetryMiddleware(default_retry_count=task_settings.max_retries),
        RetryDelayMiddleware(
            base_delay=task_settings.retry_delay_seconds,
            use_delay_exponent=task_settings.use_delay_exponent,
            use_jitter=task_settings.use_jitter,
        ),
        LogContextMiddleware(),
    )

    logger.info(
        "Taskiq reminder broker configured",
        extra={
            "queue": rabbit_settings.get_prefixed_queue(TASK_QUEUE),
            "max_retries": task_settings.max_retries,
        },
    )


async def start_taskiq() -> None:
    """Start the Taskiq broker for enqueuing.

    Executing tasks needs a separate worker process:
        taskiq worker editorial_reminders.infra.tasks.broker:broker

    Raises:
        ConnectionError: If unable to connect to RabbitMQ.
    """
    if broker is None:
        logger.warning("Taskiq broker not configured, skipping startup")
        return

    logger.info("Starting Taskiq broker")

    try:
        await broker.startup()
        logger.info("Taskiq broker started successfully")
    except Exception as e:
        logger.exception("Failed to start Taskiq broker", extra={"error": str(e)})
        raise


async def stop_taskiq() -> None:
    """Stop the Taskiq broker, closing its RabbitMQ connection."""
    if broker is None:
        logger.debug("Taskiq broker not configured, skipping shutdown")
        return

    logger.info("Stopping Taskiq broker")

    try:
        await broker.shutdown()
        logger.info("Taskiq broker stopped successfully")
    except Exception as e:
        logger.exception("Error stopping Taskiq broker", extra={"error": str(e)})


# Importing the task module registers its tasks with the broker; the worker
# only imports this module.
if broker is not None:
    import editorial_reminders.tasks.reminders  # noqa: F401
