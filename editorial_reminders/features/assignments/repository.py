"""Repositories for review assignments and users."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_, select

from editorial_reminders.core.database import BaseRepository
from editorial_reminders.features.assignments.models import (
    ACTIVE_STATUSES,
    ReviewAssignment,
    User,
    UserRole,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


class ReviewAssignmentRepository(BaseRepository[ReviewAssignment]):
    """Repository for ReviewAssignment.

    Inherits get/get_by/create from BaseRepository. Reviewer and
    manuscript are always eager-loaded by the model's relationships.
    """

    def __init__(self) -> None:
        super().__init__(ReviewAssignment)

    async def find_due_for_reminders(
        self,
        session: AsyncSession,
        *,
        look_ahead: datetime,
        now: datetime | None = None,
    ) -> Sequence[ReviewAssignment]:
        """Find active, dated assignments due inside the window or already overdue.

        Args:
            session: Database session
            look_ahead: Upper bound on the due date for upcoming assignments
            now: Reference time (defaults to now)

        Returns:
            Assignments ordered by due date
        """
        now = now or datetime.now(UTC)
        stmt = (
            select(ReviewAssignment)
            .where(
                ReviewAssignment.status.in_(ACTIVE_STATUSES),
                ReviewAssignment.due_date.is_not(None),
                or_(
                    ReviewAssignment.due_date <= look_ahead,
                    ReviewAssignment.due_date < now,
                ),
            )
            .order_by(ReviewAssignment.due_date.asc())
        )
        result = await session.execute(stmt)
        items = result.unique().scalars().all()

        self._logger.info(
            "Found active assignments with deadlines",
            extra={
                "count": len(items),
                "look_ahead": look_ahead.isoformat(),
                "operation": "db.find_due_for_reminders",
            },
        )
        return items


class UserRepository(BaseRepository[User]):
    def __init__(self) -> None:
        super().__init__(User)

    async def get_by_username(self, session: AsyncSession, username: str) -> User | None:
        return await self.get_by(session, User.username, username)

    async def get_or_create_bot(
        self,
        session: AsyncSession,
        *,
        username: str,
        email: str,
        name: str,
    ) -> User:
        """Return the bot user, inserting it if missing.

        Concurrent callers race on the unique username; the loser's insert
        is a no-op and both read back the same row.
        """
        stmt = self.upsert_statement(
            session,
            {
                "id": uuid.uuid4(),
                "username": username,
                "email": email,
                "name": name,
                "role": UserRole.BOT,
            },
        ).on_conflict_do_nothing()
        await session.execute(stmt)

        user = await self.get_by_username(session, username)
        if user is None:
            # The conflicting row was the email, held by another username.
            return await self.get_by_or_raise(session, User.email, email)
        return user


_assignment_repository: ReviewAssignmentRepository | None = None
_user_repository: UserRepository | None = None


def get_review_assignment_repository() -> ReviewAssignmentRepository:
    """Get ReviewAssignmentRepository instance (lazy singleton)."""
    global _assignment_repository
    if _assignment_repository is None:
        _assignment_repository = ReviewAssignmentRepository()
    return _assignment_repository


def get_user_repository() -> UserRepository:
    """Get UserRepository instance (lazy singleton)."""
    global _user_repository
    if _user_repository is None:
        _user_repository = UserRepository()
    return _user_repository
