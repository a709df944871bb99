"""Reminder configuration provider with a short-lived in-process cache.

The journal's reminder configuration lives in the ``journal_settings`` row
and changes rarely; the scanner and every processed job read it. The
provider caches the resolved ``ReminderConfig`` for ``ttl`` seconds and
exposes ``invalidate()`` for settings writers.

Resolution order:
    1. ``journal_settings.reminder_settings`` JSON (camelCase, nested)
    2. ``ReminderSettings`` (REMINDER_ env vars / .env) for anything missing
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy import select

from editorial_reminders.core.services.base import BaseService
from editorial_reminders.core.settings import get_reminder_settings
from editorial_reminders.features.reminders.models import JournalSettings
from editorial_reminders.features.reminders.schemas import (
    OverdueReminderSettings,
    ReminderConfig,
    ReminderInterval,
)
from editorial_reminders.infra.database.session import get_async_session

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession

    from editorial_reminders.core.settings.reminders import ReminderSettings

SessionFactory = Callable[[], "AbstractAsyncContextManager[AsyncSession]"]


def config_from_settings(settings: ReminderSettings) -> ReminderConfig:
    """Build the fallback configuration from environment settings."""
    return ReminderConfig(
        enabled=settings.enabled,
        intervals=[ReminderInterval(days_before=days) for days in settings.default_intervals],
        overdue_reminders=OverdueReminderSettings(
            enabled=settings.overdue_enabled,
            interval_days=settings.overdue_interval_days,
            max_reminders=settings.overdue_max_reminders,
        ),
    )


def config_from_journal(data: dict[str, Any] | None, fallback: ReminderConfig) -> ReminderConfig:
    """Merge the stored journal JSON over ``fallback``.

    Raises:
        pydantic.ValidationError: If the stored intervals or overdue settings are malformed.
    """
    if not data:
        return fallback

    review = data.get("reviewReminders") or {}
    enabled = bool(data.get("enabled", fallback.enabled)) and bool(review.get("enabled", True))

    intervals = fallback.intervals
    if review.get("intervals") is not None:
        intervals = [ReminderInterval.model_validate(item) for item in review["intervals"]]

    overdue = fallback.overdue_reminders
    if review.get("overdueReminders") is not None:
        overdue = OverdueReminderSettings.model_validate(review["overdueReminders"])

    return ReminderConfig(enabled=enabled, intervals=intervals, overdue_reminders=overdue)


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    config: ReminderConfig
    expires_at: float


class ReminderConfigProvider(BaseService):
    """Serves the effective ``ReminderConfig`` with a TTL cache.

    Example:
        provider = get_reminder_config_provider()
        config = await provider.get_config()
        interval = config.resolve_interval(3)

        # after the admin saves new settings
        provider.invalidate()
    """

    def __init__(
        self,
        *,
        session_factory: SessionFactory = get_async_session,
        settings: ReminderSettings | None = None,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._settings = settings or get_reminder_settings()
        self._ttl = self._settings.config_cache_ttl_seconds if ttl is None else ttl
        self._clock = clock
        self._entry: _CacheEntry | None = None
        self._lock = asyncio.Lock()

    async def get_config(self) -> ReminderConfig:
        """Return the cached configuration, reloading it once the TTL has passed."""
        entry = self._entry
        if entry is not None and self._clock() < entry.expires_at:
            return entry.config

        async with self._lock:
            # Another caller may have refreshed while we waited.
            entry = self._entry
            if entry is not None and self._clock() < entry.expires_at:
                return entry.config

            config = await self._load()
            self._entry = _CacheEntry(config=config, expires_at=self._clock() + self._ttl)
            self._lazy.debug(lambda: f"reminders.config loaded: {config.model_dump(by_alias=True)}")
            return config

    def invalidate(self) -> None:
        """Drop the cached configuration; the next read reloads it."""
        self._entry = None
        self.logger.info("Reminder configuration cache invalidated", extra={"operation": "reminders.config.invalidate"})

    async def _load(self) -> ReminderConfig:
        fallback = config_from_settings(self._settings)
        async with self._session_factory() as session:
            result = await session.execute(
                select(JournalSettings.reminder_settings).order_by(JournalSettings.created_at.asc()).limit(1)
            )
            stored = result.scalar_one_or_none()

        try:
            return config_from_journal(stored, fallback)
        except ValidationError as e:
            self.logger.warning(
                "Stored reminder settings are invalid, using defaults",
                extra={"error": str(e), "operation": "reminders.config.load"},
            )
            return fallback


_provider: ReminderConfigProvider | None = None


def get_reminder_config_provider() -> ReminderConfigProvider:
    """Get the process-wide provider (lazy singleton) so the cache is shared."""
    global _provider
    if _provider is None:
        _provider = ReminderConfigProvider()
    return _provider
