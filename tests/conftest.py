"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests free of RabbitMQ, Redis and SMTP
    - Database Fixtures: SQLAlchemy engine, session, and session factory
    - Data Factories: users, manuscripts, assignments, conversations
    - Service Fixtures: config provider, job queue, email and broadcaster fakes
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Ensure tests run without external infrastructure
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("EMAIL_BACKEND", "console")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("REMINDER_REFERENCE_TIMEZONE", "UTC")

from editorial_reminders.core.database import Base  # noqa: E402
from editorial_reminders.core.settings import ReminderSettings, clear_all_caches  # noqa: E402
from editorial_reminders.features.assignments.models import (  # noqa: E402
    AssignmentStatus,
    Manuscript,
    ReviewAssignment,
    User,
)
from editorial_reminders.features.conversations.models import (  # noqa: E402
    Conversation,
    ConversationType,
)
from editorial_reminders.features.conversations.service import ConversationService  # noqa: E402
from editorial_reminders.features.reminders.config import ReminderConfigProvider  # noqa: E402
from editorial_reminders.features.reminders.models import (  # noqa: E402
    DeadlineReminder,
    JournalSettings,
    ReminderStatus,
)
from editorial_reminders.features.reminders.queue import InMemoryReminderJobQueue  # noqa: E402
from editorial_reminders.features.reminders.scheduling import generate_job_key  # noqa: E402
from editorial_reminders.infra.email import EmailResult  # noqa: E402
from editorial_reminders.infra.realtime import RealtimeBroadcaster  # noqa: E402

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture(autouse=True)
def _reset_settings_caches():
    """Re-read settings for every test so monkeypatched env vars apply."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite.

    One shared connection (StaticPool) keeps the in-memory database alive.
    The connect/begin hooks let SAVEPOINTs behave as they do on PostgreSQL.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create async database session.

    Example:
        async def test_create_user(db_session):
            user = User(email="test@example.com", username="test")
            db_session.add(user)
            await db_session.commit()
            assert user.id is not None
    """
    async_session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def session_factory(db_session: AsyncSession):
    """Session factory that hands out the test session without closing it.

    Matches the ``get_async_session`` signature used by the task handlers
    and the config provider.
    """

    @asynccontextmanager
    async def factory() -> AsyncIterator[AsyncSession]:
        yield db_session

    return factory


# ============================================================================
# Data Factories
# ============================================================================


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for persisted users."""
    counter = {"n": 0}

    async def _make(**overrides: Any) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=overrides.pop("email", f"user{n}@example.com"),
            username=overrides.pop("username", f"user{n}"),
            name=overrides.pop("name", f"User {n}"),
            **overrides,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest.fixture
def make_assignment(db_session: AsyncSession, make_user):
    """Factory for persisted review assignments with reviewer and manuscript.

    Example:
        assignment = await make_assignment(due_date=datetime(2024, 1, 10, 17, tzinfo=UTC))
    """

    async def _make(
        *,
        due_date: datetime | None,
        status: AssignmentStatus = AssignmentStatus.ACCEPTED,
        title: str = "Coral reef resilience under warming oceans",
        reviewer: User | None = None,
    ) -> ReviewAssignment:
        reviewer = reviewer or await make_user(name="Ada Reviewer")
        manuscript = Manuscript(title=title)
        db_session.add(manuscript)
        await db_session.flush()

        assignment = ReviewAssignment(
            manuscript_id=manuscript.id,
            reviewer_id=reviewer.id,
            status=status,
            due_date=due_date,
            reviewer=reviewer,
            manuscript=manuscript,
        )
        db_session.add(assignment)
        await db_session.commit()
        return assignment

    return _make


@pytest.fixture
def make_conversation(db_session: AsyncSession):
    async def _make(manuscript_id: UUID, type_: ConversationType = ConversationType.EDITORIAL) -> Conversation:
        conversation = Conversation(manuscript_id=manuscript_id, type=type_, title="Editorial discussion")
        db_session.add(conversation)
        await db_session.commit()
        return conversation

    return _make


@pytest.fixture
def make_reminder(db_session: AsyncSession):
    """Factory for reminder records in a given state."""

    async def _make(
        assignment_id: UUID,
        days_before: int,
        *,
        status: ReminderStatus = ReminderStatus.QUEUED,
        scheduled_for: datetime | None = None,
    ) -> DeadlineReminder:
        reminder = DeadlineReminder(
            assignment_id=assignment_id,
            days_before=days_before,
            scheduled_for=scheduled_for or datetime(2024, 1, 7, 9, tzinfo=UTC),
            status=status,
            job_key=generate_job_key(assignment_id, days_before),
        )
        db_session.add(reminder)
        await db_session.commit()
        return reminder

    return _make


@pytest.fixture
def store_journal_settings(db_session: AsyncSession):
    async def _store(data: dict[str, Any] | None) -> JournalSettings:
        row = JournalSettings(name="Journal of Testing", reminder_settings=data)
        db_session.add(row)
        await db_session.commit()
        return row

    return _store


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def reminder_settings() -> ReminderSettings:
    """Reminder settings with the documented defaults in UTC."""
    return ReminderSettings(reference_timezone="UTC", send_hour=9, stale_grace_minutes=60)


@pytest.fixture
def config_provider(session_factory, reminder_settings: ReminderSettings) -> ReminderConfigProvider:
    """Config provider without caching so each test sees its stored settings."""
    return ReminderConfigProvider(session_factory=session_factory, settings=reminder_settings, ttl=0)


@pytest.fixture
def job_queue() -> InMemoryReminderJobQueue:
    return InMemoryReminderJobQueue()


@pytest.fixture
def email_service() -> AsyncMock:
    """Email service fake that reports success by default."""
    service = AsyncMock()
    service.send_template.return_value = EmailResult.success_result(message_id="msg-1", backend="console")
    return service


@pytest.fixture
def broadcaster() -> AsyncMock:
    return AsyncMock(spec=RealtimeBroadcaster)


@pytest.fixture
def conversation_service(
    db_session: AsyncSession,
    broadcaster: AsyncMock,
    reminder_settings: ReminderSettings,
) -> ConversationService:
    return ConversationService(db_session, broadcaster=broadcaster, settings=reminder_settings)
