"""Manuscript conversations: models, repositories and the posting service."""

from editorial_reminders.features.conversations.models import (
    Conversation,
    ConversationType,
    Message,
    MessagePrivacy,
)
from editorial_reminders.features.conversations.repository import (
    ConversationRepository,
    MessageRepository,
    get_conversation_repository,
    get_message_repository,
)
from editorial_reminders.features.conversations.service import ConversationService

__all__ = [
    "Conversation",
    "ConversationRepository",
    "ConversationService",
    "ConversationType",
    "Message",
    "MessagePrivacy",
    "MessageRepository",
    "get_conversation_repository",
    "get_message_repository",
]
