"""Database engine and session management (SQLAlchemy asyncio + asyncpg)."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from editorial_reminders.core.settings import get_db_settings
from editorial_reminders.utils.retry import retry

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating it on first use."""
    global _engine
    if _engine is None:
        db_settings = get_db_settings()
        _engine = create_async_engine(db_settings.url, **db_settings.sqlalchemy_engine_kwargs())
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory bound to the process-wide engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Example:
        async with get_async_session() as session:
            reminder = await repo.get(session, reminder_id)
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


@retry(max_attempts=5, initial_delay=1.0, max_delay=30.0, exceptions=(OSError, ConnectionError))
async def init_database() -> None:
    """Verify the database is reachable, retrying while it starts up."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database connection established", extra={"operation": "db.init"})


async def close_database() -> None:
    """Dispose the engine; called at worker shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        logger.info("Closing database connection")
        await _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = [
    "close_database",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
