"""SQLAlchemy models for manuscript conversations and their messages."""

from __future__ import annotations

from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from editorial_reminders.core.database import UUIDTimestampedBase


class ConversationType(StrEnum):
    EDITORIAL = "EDITORIAL"
    PRIVATE = "PRIVATE"


class MessagePrivacy(StrEnum):
    PUBLIC = "PUBLIC"
    AUTHOR_VISIBLE = "AUTHOR_VISIBLE"
    REVIEWER_ONLY = "REVIEWER_ONLY"
    EDITOR_ONLY = "EDITOR_ONLY"
    ADMIN_ONLY = "ADMIN_ONLY"


class Conversation(UUIDTimestampedBase):
    """A discussion thread attached to a manuscript."""

    __tablename__ = "conversations"

    manuscript_id: Mapped[UUID] = mapped_column(
        ForeignKey("manuscripts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[ConversationType] = mapped_column(
        Enum(ConversationType, native_enum=False, length=32),
        default=ConversationType.EDITORIAL,
        nullable=False,
    )
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Message(UUIDTimestampedBase):
    """A message posted to a conversation, by a person or a bot."""

    __tablename__ = "messages"

    conversation_id: Mapped[UUID] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text(), nullable=False)
    privacy: Mapped[MessagePrivacy] = mapped_column(
        Enum(MessagePrivacy, native_enum=False, length=32),
        default=MessagePrivacy.AUTHOR_VISIBLE,
        nullable=False,
    )
    is_bot: Mapped[bool] = mapped_column(Boolean(), default=False, nullable=False)
    # ``metadata`` is reserved on declarative classes
    message_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSON(),
        nullable=True,
    )

    def to_event(self) -> dict[str, Any]:
        """Serialize for the ``new-message`` live update."""
        return {
            "id": str(self.id),
            "content": self.content,
            "conversationId": str(self.conversation_id),
            "authorId": str(self.author_id),
            "isBot": self.is_bot,
            "privacy": self.privacy.value,
            "createdAt": self.created_at.isoformat(),
        }
