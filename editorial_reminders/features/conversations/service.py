"""Posting messages to manuscript conversations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from editorial_reminders.core.services.base import BaseService
from editorial_reminders.core.settings import get_reminder_settings
from editorial_reminders.features.assignments.repository import (
    UserRepository,
    get_user_repository,
)
from editorial_reminders.features.conversations.models import Message, MessagePrivacy
from editorial_reminders.features.conversations.repository import (
    ConversationRepository,
    MessageRepository,
    get_conversation_repository,
    get_message_repository,
)
from editorial_reminders.infra.realtime import RealtimeBroadcaster, conversation_topic, get_broadcaster

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from editorial_reminders.core.settings.reminders import ReminderSettings
    from editorial_reminders.features.assignments.models import User
    from editorial_reminders.features.conversations.models import Conversation


class ConversationService(BaseService):
    """Creates conversation messages and announces them to live clients.

    ``post_message`` only flushes; the caller owns the transaction and should
    call ``announce`` once the message is committed.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        broadcaster: RealtimeBroadcaster | None = None,
        settings: ReminderSettings | None = None,
        conversation_repository: ConversationRepository | None = None,
        message_repository: MessageRepository | None = None,
        user_repository: UserRepository | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._broadcaster = broadcaster or get_broadcaster()
        self._settings = settings or get_reminder_settings()
        self._conversations = conversation_repository or get_conversation_repository()
        self._messages = message_repository or get_message_repository()
        self._users = user_repository or get_user_repository()

    async def find_editorial_conversation(self, manuscript_id: UUID) -> Conversation | None:
        return await self._conversations.find_editorial_for_manuscript(self._session, manuscript_id)

    async def get_or_create_bot_user(self) -> User:
        """Return the editorial bot, creating it on first use."""
        return await self._users.get_or_create_bot(
            self._session,
            username=self._settings.bot_username,
            email=self._settings.bot_email,
            name=self._settings.bot_name,
        )

    async def post_message(
        self,
        conversation_id: UUID,
        content: str,
        *,
        author_id: UUID,
        privacy: MessagePrivacy = MessagePrivacy.EDITOR_ONLY,
        is_bot: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        message = await self._messages.create(
            self._session,
            Message(
                conversation_id=conversation_id,
                author_id=author_id,
                content=content,
                privacy=privacy,
                is_bot=is_bot,
                message_metadata=metadata,
            ),
        )

        self.logger.info(
            "Conversation message posted",
            extra={
                "conversation_id": str(conversation_id),
                "message_id": str(message.id),
                "is_bot": is_bot,
                "operation": "conversations.post_message",
            },
        )
        return message

    async def announce(self, message: Message) -> None:
        """Broadcast a ``new-message`` event for a committed message. Never raises."""
        await self._broadcaster.broadcast(
            conversation_topic(message.conversation_id),
            {"type": "new-message", "message": message.to_event()},
        )
