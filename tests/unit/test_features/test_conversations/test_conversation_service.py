"""Unit tests for ConversationService."""
from __future__ import annotations

import pytest

from editorial_reminders.features.assignments.models import Manuscript, UserRole
from editorial_reminders.features.conversations.models import ConversationType, MessagePrivacy
from editorial_reminders.infra.realtime import conversation_topic


@pytest.fixture
async def manuscript(db_session):
    manuscript = Manuscript(title="Soil carbon flux in boreal peatlands")
    db_session.add(manuscript)
    await db_session.commit()
    return manuscript


class TestFindEditorialConversation:
    """Tests for locating the manuscript's editorial conversation."""

    @pytest.mark.asyncio
    async def test_ignores_other_conversation_types(self, conversation_service, manuscript, make_conversation):
        await make_conversation(manuscript.id, ConversationType.PRIVATE)
        editorial = await make_conversation(manuscript.id)

        found = await conversation_service.find_editorial_conversation(manuscript.id)

        assert found is not None
        assert found.id == editorial.id

    @pytest.mark.asyncio
    async def test_none_without_editorial(self, conversation_service, manuscript):
        assert await conversation_service.find_editorial_conversation(manuscript.id) is None


class TestBotUser:
    """Tests for the editorial bot account."""

    @pytest.mark.asyncio
    async def test_created_once(self, db_session, conversation_service):
        first = await conversation_service.get_or_create_bot_user()
        await db_session.commit()
        second = await conversation_service.get_or_create_bot_user()

        assert first.id == second.id
        assert first.username == "bot-editorial"
        assert first.role is UserRole.BOT
        assert first.display_name == "Editorial Bot"


class TestPostAndAnnounce:
    """Tests for posting and broadcasting messages."""

    @pytest.mark.asyncio
    async def test_post_then_announce(
        self, db_session, conversation_service, broadcaster, manuscript, make_conversation, make_user
    ):
        conversation = await make_conversation(manuscript.id)
        author = await make_user()

        message = await conversation_service.post_message(
            conversation.id,
            "Hello reviewers",
            author_id=author.id,
            metadata={"type": "note"},
        )
        await db_session.commit()
        broadcaster.broadcast.assert_not_awaited()

        await conversation_service.announce(message)

        assert message.privacy is MessagePrivacy.EDITOR_ONLY
        assert message.is_bot is False
        topic, payload = broadcaster.broadcast.await_args.args
        assert topic == conversation_topic(conversation.id)
        assert payload["type"] == "new-message"
        assert payload["message"]["content"] == "Hello reviewers"
        assert payload["message"]["conversationId"] == str(conversation.id)
        assert payload["message"]["authorId"] == str(author.id)
