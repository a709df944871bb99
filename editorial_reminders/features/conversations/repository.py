"""Repositories for conversations and messages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from editorial_reminders.core.database import BaseRepository
from editorial_reminders.features.conversations.models import (
    Conversation,
    ConversationType,
    Message,
)

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


class ConversationRepository(BaseRepository[Conversation]):
    def __init__(self) -> None:
        super().__init__(Conversation)

    async def find_editorial_for_manuscript(
        self,
        session: AsyncSession,
        manuscript_id: UUID,
    ) -> Conversation | None:
        """Return the manuscript's editorial conversation (oldest first), if any."""
        stmt = (
            select(Conversation)
            .where(
                Conversation.manuscript_id == manuscript_id,
                Conversation.type == ConversationType.EDITORIAL,
            )
            .order_by(Conversation.created_at.asc())
            .limit(1)
        )
        result = await session.execute(stmt)
        conversation = result.scalars().first()

        self._lazy.debug(
            lambda: f"db.find_editorial_for_manuscript({manuscript_id}) -> "
            f"{conversation.id if conversation else 'none'}"
        )
        return conversation


class MessageRepository(BaseRepository[Message]):
    def __init__(self) -> None:
        super().__init__(Message)


_conversation_repository: ConversationRepository | None = None
_message_repository: MessageRepository | None = None


def get_conversation_repository() -> ConversationRepository:
    """Get ConversationRepository instance (lazy singleton)."""
    global _conversation_repository
    if _conversation_repository is None:
        _conversation_repository = ConversationRepository()
    return _conversation_repository


def get_message_repository() -> MessageRepository:
    """Get MessageRepository instance (lazy singleton)."""
    global _message_repository
    if _message_repository is None:
        _message_repository = MessageRepository()
    return _message_repository
