"""Unit tests for ManualReminderService."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from editorial_reminders.features.assignments.models import AssignmentStatus
from editorial_reminders.features.conversations.models import Message, MessagePrivacy
from editorial_reminders.features.conversations.service import ConversationService
from editorial_reminders.features.reminders.content import MANUAL_TEMPLATE
from editorial_reminders.features.reminders.manual import ManualReminderService
from editorial_reminders.features.reminders.models import DeadlineReminder
from editorial_reminders.infra.email import EmailResult

NOW = datetime(2024, 1, 5, 8, 0, tzinfo=UTC)
DUE = datetime(2024, 1, 10, 17, tzinfo=UTC)


@pytest.fixture
def service(db_session, email_service, conversation_service, reminder_settings) -> ManualReminderService:
    return ManualReminderService(
        db_session,
        email_service=email_service,
        conversation_service=conversation_service,
        settings=reminder_settings,
    )


@pytest.fixture
async def editor(make_user):
    return await make_user(name="Grace Editor")


@pytest.fixture
async def assignment(make_assignment):
    return await make_assignment(due_date=DUE)


async def _reminder_count(db_session) -> int:
    return await db_session.scalar(select(func.count()).select_from(DeadlineReminder))


class TestValidation:
    """Tests for assignments that cannot be reminded."""

    @pytest.mark.asyncio
    async def test_missing_assignment(self, service, editor, email_service):
        result = await service.send_manual_reminder(uuid4(), sender_id=editor.id, now=NOW)

        assert result.success is False
        assert result.error == "Assignment not found"
        email_service.send_template.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inactive_assignment(self, service, editor, make_assignment):
        assignment = await make_assignment(due_date=DUE, status=AssignmentStatus.COMPLETED)

        result = await service.send_manual_reminder(assignment.id, sender_id=editor.id, now=NOW)

        assert result.success is False
        assert result.error == "Cannot send reminder: assignment status is COMPLETED"

    @pytest.mark.asyncio
    async def test_no_due_date(self, service, editor, make_assignment):
        assignment = await make_assignment(due_date=None)

        result = await service.send_manual_reminder(assignment.id, sender_id=editor.id, now=NOW)

        assert result.success is False
        assert result.error == "Cannot send reminder: no due date set for this assignment"


class TestDelivery:
    """Tests for the manual email and conversation post."""

    @pytest.mark.asyncio
    async def test_emails_and_posts_as_sender(
        self, db_session, service, editor, email_service, broadcaster, assignment, make_conversation
    ):
        conversation = await make_conversation(assignment.manuscript_id)

        result = await service.send_manual_reminder(
            assignment.id,
            sender_id=editor.id,
            custom_message="Could you send an update by Friday?",
            now=NOW,
        )

        assert result.success is True
        assert result.error is None
        assert result.days_before == 6
        assert result.email_sent and result.conversation_posted

        kwargs = email_service.send_template.await_args.kwargs
        assert kwargs["template"] == MANUAL_TEMPLATE
        assert kwargs["subject"] == 'Review Reminder: "Coral reef resilience under warming ocea..."'
        assert kwargs["context"]["sender_name"] == "Grace Editor"
        assert kwargs["context"]["custom_message"] == "Could you send an update by Friday?"

        message = (await db_session.execute(select(Message))).scalar_one()
        assert message.conversation_id == conversation.id
        assert message.author_id == editor.id
        assert message.is_bot is False
        assert message.privacy is MessagePrivacy.EDITOR_ONLY
        assert message.message_metadata["manual"] is True
        assert message.message_metadata["customMessage"] == "Could you send an update by Friday?"
        assert "Review Reminder (Manual)" in message.content
        broadcaster.broadcast.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_creates_no_reminder_record(self, db_session, service, editor, assignment):
        await service.send_manual_reminder(assignment.id, sender_id=editor.id, now=NOW)

        assert await _reminder_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_explicit_sender_name_wins(self, service, editor, email_service, assignment):
        await service.send_manual_reminder(assignment.id, sender_id=editor.id, sender_name="Managing Editor", now=NOW)

        assert email_service.send_template.await_args.kwargs["context"]["sender_name"] == "Managing Editor"

    @pytest.mark.asyncio
    async def test_email_failure_with_post_is_success(
        self, service, editor, email_service, assignment, make_conversation
    ):
        await make_conversation(assignment.manuscript_id)
        email_service.send_template.return_value = EmailResult.failure_result(error="smtp down")

        result = await service.send_manual_reminder(assignment.id, sender_id=editor.id, now=NOW)

        assert result.success is True
        assert result.email_sent is False
        assert result.conversation_posted is True
        assert result.error == "Email failed: smtp down"

    @pytest.mark.asyncio
    async def test_email_failure_without_conversation(self, service, editor, email_service, assignment):
        email_service.send_template.return_value = EmailResult.failure_result(error="smtp down")

        result = await service.send_manual_reminder(assignment.id, sender_id=editor.id, now=NOW)

        assert result.success is False
        assert result.error == "Email failed: smtp down"

    @pytest.mark.asyncio
    async def test_both_channels_fail(
        self, db_session, editor, email_service, broadcaster, reminder_settings, assignment, make_conversation
    ):
        await make_conversation(assignment.manuscript_id)
        email_service.send_template.side_effect = ConnectionError("refused")
        messages = AsyncMock()
        messages.create.side_effect = RuntimeError("insert failed")
        service = ManualReminderService(
            db_session,
            email_service=email_service,
            conversation_service=ConversationService(
                db_session,
                broadcaster=broadcaster,
                settings=reminder_settings,
                message_repository=messages,
            ),
            settings=reminder_settings,
        )

        result = await service.send_manual_reminder(assignment.id, sender_id=editor.id, now=NOW)

        assert result.success is False
        assert result.error == "Email failed: refused; Conversation post failed: insert failed"
        broadcaster.broadcast.assert_not_awaited()
