"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from editorial_reminders.core.settings import get_reminder_settings

    settings = get_reminder_settings()  # First call: loads and validates
    settings = get_reminder_settings()  # Subsequent calls: cached instance

Testing:
    clear_all_caches() forces every loader to re-read the environment.
"""

from __future__ import annotations

from functools import lru_cache

from .email import EmailSettings
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings
from .redis import RedisSettings
from .reminders import ReminderSettings
from .tasks import TaskSettings


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    """Get cached database settings."""
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_email_settings() -> EmailSettings:
    """Get cached email settings."""
    return EmailSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    """Get cached RabbitMQ settings."""
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_redis_settings() -> RedisSettings:
    """Get cached Redis settings."""
    return RedisSettings()


@lru_cache(maxsize=1)
def get_reminder_settings() -> ReminderSettings:
    """Get cached reminder settings."""
    return ReminderSettings()


@lru_cache(maxsize=1)
def get_task_settings() -> TaskSettings:
    """Get cached task settings."""
    return TaskSettings()


def clear_all_caches() -> None:
    """Clear all settings caches.

    Useful in tests to force reload of settings after env changes.
    """
    get_db_settings.cache_clear()
    get_email_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_rabbit_settings.cache_clear()
    get_redis_settings.cache_clear()
    get_reminder_settings.cache_clear()
    get_task_settings.cache_clear()
