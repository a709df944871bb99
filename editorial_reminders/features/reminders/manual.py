"""Editor-initiated reminders, sent immediately and outside the schedule."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from editorial_reminders.core.services.base import BaseService
from editorial_reminders.core.settings import get_reminder_settings
from editorial_reminders.features.assignments.repository import (
    ReviewAssignmentRepository,
    UserRepository,
    get_review_assignment_repository,
    get_user_repository,
)
from editorial_reminders.features.conversations.models import MessagePrivacy
from editorial_reminders.features.conversations.service import ConversationService
from editorial_reminders.features.reminders.content import (
    MANUAL_TEMPLATE,
    build_links,
    conversation_message,
    email_context,
    manual_subject_line,
)
from editorial_reminders.features.reminders.scheduling import days_until_due
from editorial_reminders.features.reminders.schemas import ManualReminderResult
from editorial_reminders.infra.email import get_email_service

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from editorial_reminders.core.settings.reminders import ReminderSettings
    from editorial_reminders.infra.email import EmailService


class ManualReminderService(BaseService):
    """Sends a one-off reminder on behalf of an editor.

    No reminder record is created; the scheduled reminders are unaffected.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        email_service: EmailService | None = None,
        conversation_service: ConversationService | None = None,
        settings: ReminderSettings | None = None,
        assignment_repository: ReviewAssignmentRepository | None = None,
        user_repository: UserRepository | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._email = email_service or get_email_service()
        self._settings = settings or get_reminder_settings()
        self._conversations = conversation_service or ConversationService(session, settings=self._settings)
        self._assignments = assignment_repository or get_review_assignment_repository()
        self._users = user_repository or get_user_repository()

    async def send_manual_reminder(
        self,
        assignment_id: UUID,
        *,
        sender_id: UUID,
        sender_name: str | None = None,
        custom_message: str | None = None,
        now: datetime | None = None,
    ) -> ManualReminderResult:
        """Email the reviewer and post to the editorial conversation as the sender.

        Returns:
            ManualReminderResult; ``success`` when at least one channel delivered
        """
        now = now or datetime.now(UTC)
        assignment = await self._assignments.get(self._session, assignment_id)
        if assignment is None:
            return ManualReminderResult(success=False, error="Assignment not found")
        if not assignment.is_active:
            return ManualReminderResult(
                success=False,
                error=f"Cannot send reminder: assignment status is {assignment.status.value}",
            )
        if assignment.due_date is None:
            return ManualReminderResult(
                success=False,
                error="Cannot send reminder: no due date set for this assignment",
            )

        if sender_name is None:
            sender = await self._users.get(self._session, sender_id)
            sender_name = sender.display_name if sender else None

        reviewer = assignment.reviewer
        manuscript = assignment.manuscript
        days_before = days_until_due(assignment.due_date, now)
        conversation = await self._conversations.find_editorial_conversation(manuscript.id)
        links = build_links(
            self._settings.frontend_url,
            manuscript.id,
            conversation.id if conversation else None,
        )
        tz = self._settings.tzinfo
        errors: list[str] = []
        email_sent = False
        conversation_posted = False

        try:
            async with asyncio.timeout(self._settings.delivery_timeout_seconds):
                result = await self._email.send_template(
                    to=reviewer.email,
                    template=MANUAL_TEMPLATE,
                    subject=manual_subject_line(days_before, manuscript.title, custom_message),
                    context=email_context(
                        reviewer_name=reviewer.display_name,
                        manuscript_title=manuscript.title,
                        due_date=assignment.due_date,
                        days_before=days_before,
                        links=links,
                        tz=tz,
                        bot_name=self._settings.bot_name,
                        custom_message=custom_message,
                        sender_name=sender_name,
                    ),
                )
            email_sent = result.success
            if not result.success:
                errors.append(f"Email failed: {result.error}")
        except TimeoutError:
            errors.append("Email failed: timed out")
        except Exception as e:
            errors.append(f"Email failed: {e}")
            self.logger.exception("Error sending manual reminder email", extra={"operation": "reminders.manual"})

        message = None
        if conversation is not None:
            try:
                async with self._session.begin_nested():
                    message = await self._conversations.post_message(
                        conversation.id,
                        conversation_message(
                            reviewer.username,
                            days_before,
                            assignment.due_date,
                            tz=tz,
                            sent_at=now,
                            manual=True,
                            custom_message=custom_message,
                        ),
                        author_id=sender_id,
                        privacy=MessagePrivacy.EDITOR_ONLY,
                        is_bot=False,
                        metadata={
                            "type": "deadline_reminder",
                            "assignmentId": str(assignment_id),
                            "daysBefore": days_before,
                            "manual": True,
                            "customMessage": custom_message,
                        },
                    )
                conversation_posted = True
            except Exception as e:
                errors.append(f"Conversation post failed: {e}")
                self.logger.exception("Failed to post manual reminder", extra={"operation": "reminders.manual"})

        await self._session.commit()
        if message is not None:
            await self._conversations.announce(message)

        success = email_sent or conversation_posted
        self.logger.info(
            "Manual reminder sent" if success else "Manual reminder failed",
            extra={
                "assignment_id": str(assignment_id),
                "email_sent": email_sent,
                "conversation_posted": conversation_posted,
                "operation": "reminders.manual",
            },
        )
        return ManualReminderResult(
            success=success,
            error="; ".join(errors) or None,
            days_before=days_before,
            email_sent=email_sent,
            conversation_posted=conversation_posted,
        )
