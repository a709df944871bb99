"""Database commands.

Example:bash
    # Check connectivity
    editorial-reminders db init

    # Create missing tables (development databases only)
    editorial-reminders db create-tables
"""

import sys

import click
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from editorial_reminders.cli.utils import coro, error, header, info, success
from editorial_reminders.core.settings import get_db_settings


@click.group(name="db")
def db() -> None:
    """Database management commands."""


@db.command()
@coro
async def init() -> None:
    """Initialize database connection and verify connectivity."""
    from editorial_reminders.infra.database import close_database, get_async_session

    db_settings = get_db_settings()
    info(f"Connecting to: {db_settings.host}:{db_settings.port}/{db_settings.name}")

    try:
        async with get_async_session() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar_one()
        success("Database connected successfully!")
    except (SQLAlchemyError, OSError) as e:
        error(f"Database connection failed: {e}")
        sys.exit(1)
    finally:
        await close_database()


@db.command(name="create-tables")
@coro
async def create_tables() -> None:
    """Create any missing tables for the reminder models."""
    from editorial_reminders.core.database import Base
    from editorial_reminders.features import assignments, conversations, reminders  # noqa: F401
    from editorial_reminders.infra.database import close_database, get_engine

    header("Creating tables")
    try:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        for table in sorted(Base.metadata.tables):
            info(table)
        success("Tables created")
    except SQLAlchemyError as e:
        error(f"Failed to create tables: {e}")
        sys.exit(1)
    finally:
        await close_database()
