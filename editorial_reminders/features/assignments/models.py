"""SQLAlchemy models for review assignments and the records they reference.

These tables belong to the editorial platform; the reminder service reads
them and only ever writes bot users.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from sqlalchemy import Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from editorial_reminders.core.database import UTCDateTime, UUIDTimestampedBase


class UserRole(StrEnum):
    ADMIN = "ADMIN"
    EDITOR_IN_CHIEF = "EDITOR_IN_CHIEF"
    ACTION_EDITOR = "ACTION_EDITOR"
    USER = "USER"
    BOT = "BOT"


class AssignmentStatus(StrEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DECLINED = "DECLINED"


# Only these assignments receive reminders.
ACTIVE_STATUSES: frozenset[AssignmentStatus] = frozenset(
    {AssignmentStatus.ACCEPTED, AssignmentStatus.IN_PROGRESS}
)


class User(UUIDTimestampedBase):
    """Platform user; reviewers, editors and bots."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=32),
        default=UserRole.USER,
        nullable=False,
    )

    @property
    def display_name(self) -> str:
        return self.name or self.username


class Manuscript(UUIDTimestampedBase):
    __tablename__ = "manuscripts"

    title: Mapped[str] = mapped_column(Text(), nullable=False)


class ReviewAssignment(UUIDTimestampedBase):
    """A reviewer's obligation to review a manuscript by a due date."""

    __tablename__ = "review_assignments"

    manuscript_id: Mapped[UUID] = mapped_column(
        ForeignKey("manuscripts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reviewer_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[AssignmentStatus] = mapped_column(
        Enum(AssignmentStatus, native_enum=False, length=32),
        default=AssignmentStatus.PENDING,
        nullable=False,
    )
    due_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    # Many-to-one; joined so async callers never trigger a lazy load.
    reviewer: Mapped[User] = relationship(lazy="joined")
    manuscript: Mapped[Manuscript] = relationship(lazy="joined")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
