"""Modular Pydantic Settings v2 configuration.

One frozen settings class per domain, each with its own env prefix:

    LOG_       LoggingSettings
    DB_        PostgresSettings
    RABBIT_    RabbitSettings
    REDIS_     RedisSettings
    EMAIL_     EmailSettings
    TASK_      TaskSettings
    REMINDER_  ReminderSettings

Import settings via cached loaders:
    from editorial_reminders.core.settings import get_reminder_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file
"""

from __future__ import annotations

from .email import EmailSettings
from .loader import (
    clear_all_caches,
    get_db_settings,
    get_email_settings,
    get_logging_settings,
    get_rabbit_settings,
    get_redis_settings,
    get_reminder_settings,
    get_task_settings,
)
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings
from .redis import RedisSettings
from .reminders import ReminderSettings
from .tasks import TaskSettings

__all__ = [
    "EmailSettings",
    "LoggingSettings",
    "PostgresSettings",
    "RabbitSettings",
    "RedisSettings",
    "ReminderSettings",
    "TaskSettings",
    "clear_all_caches",
    "get_db_settings",
    "get_email_settings",
    "get_logging_settings",
    "get_rabbit_settings",
    "get_redis_settings",
    "get_reminder_settings",
    "get_task_settings",
]
