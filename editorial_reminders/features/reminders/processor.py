"""Fire-time processing of a single reminder job.

The processor re-validates everything at fire time (record status,
assignment status, interval configuration) because any of them may have
changed since the job was queued. It is idempotent through status gating: a
job for a record that is already SENT or CANCELLED does nothing.

Delivery goes to two independent channels. One succeeding is enough for
SENT; the other's error is kept in ``error_message``. When every attempted
channel fails the record becomes FAILED and ``ReminderDeliveryError`` is
raised so the task queue retries the job.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from editorial_reminders.core.services.base import BaseService
from editorial_reminders.core.settings import get_reminder_settings
from editorial_reminders.features.assignments.repository import (
    ReviewAssignmentRepository,
    get_review_assignment_repository,
)
from editorial_reminders.features.conversations.models import MessagePrivacy
from editorial_reminders.features.conversations.service import ConversationService
from editorial_reminders.features.reminders.config import (
    ReminderConfigProvider,
    get_reminder_config_provider,
)
from editorial_reminders.features.reminders.content import (
    AUTOMATED_TEMPLATE,
    build_links,
    conversation_message,
    email_context,
    subject_line,
)
from editorial_reminders.features.reminders.exceptions import ReminderDeliveryError
from editorial_reminders.features.reminders.models import ReminderStatus
from editorial_reminders.features.reminders.repository import (
    DeadlineReminderRepository,
    get_deadline_reminder_repository,
)
from editorial_reminders.features.reminders.schemas import ProcessOutcome
from editorial_reminders.infra.email import get_email_service
from editorial_reminders.infra.logging import log_context

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from editorial_reminders.core.settings.reminders import ReminderSettings
    from editorial_reminders.features.assignments.models import ReviewAssignment
    from editorial_reminders.features.conversations.models import Conversation, Message
    from editorial_reminders.features.reminders.models import DeadlineReminder
    from editorial_reminders.features.reminders.schemas import DeadlineReminderJob, ReminderInterval
    from editorial_reminders.infra.email import EmailService


@dataclass
class _Delivery:
    email_sent: bool = False
    conversation_posted: bool = False
    errors: list[str] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)

    @property
    def any_succeeded(self) -> bool:
        return self.email_sent or self.conversation_posted


class ReminderProcessor(BaseService):
    """Delivers one reminder job and records the outcome.

    Example:
        async with get_async_session() as session:
            outcome = await ReminderProcessor(session).process(job)
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        config_provider: ReminderConfigProvider | None = None,
        email_service: EmailService | None = None,
        conversation_service: ConversationService | None = None,
        settings: ReminderSettings | None = None,
        reminder_repository: DeadlineReminderRepository | None = None,
        assignment_repository: ReviewAssignmentRepository | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._config_provider = config_provider or get_reminder_config_provider()
        self._email = email_service or get_email_service()
        self._settings = settings or get_reminder_settings()
        self._conversations = conversation_service or ConversationService(session, settings=self._settings)
        self._reminders = reminder_repository or get_deadline_reminder_repository()
        self._assignments = assignment_repository or get_review_assignment_repository()

    async def process(self, job: DeadlineReminderJob, *, is_retry: bool = False) -> ProcessOutcome:
        """Process a fired job.

        Args:
            job: The job payload
            is_retry: True when the task queue is re-running a failed attempt;
                only then is a FAILED record processed again.

        Raises:
            ReminderDeliveryError: If every attempted delivery channel failed
        """
        with log_context(reminder_id=str(job.reminder_id), assignment_id=str(job.assignment_id)):
            return await self._process(job, is_retry=is_retry)

    async def _process(self, job: DeadlineReminderJob, *, is_retry: bool) -> ProcessOutcome:
        reminder = await self._reminders.get(self._session, job.reminder_id)
        if reminder is None:
            self.logger.info("Reminder not found, skipping", extra={"operation": "reminders.process"})
            return ProcessOutcome.NOT_FOUND

        if self._should_skip(reminder, is_retry=is_retry):
            self.logger.info(
                "Reminder already finalized, skipping",
                extra={"status": reminder.status.value, "operation": "reminders.process"},
            )
            return ProcessOutcome.SKIPPED

        if job.scheduled_for is not None and job.scheduled_for != reminder.scheduled_for:
            self.logger.info(
                "Job superseded by a newer schedule, skipping",
                extra={
                    "job_scheduled_for": job.scheduled_for.isoformat(),
                    "record_scheduled_for": reminder.scheduled_for.isoformat(),
                    "operation": "reminders.process",
                },
            )
            return ProcessOutcome.SUPERSEDED

        assignment = await self._assignments.get(self._session, reminder.assignment_id)
        if assignment is None or not assignment.is_active:
            return await self._cancel(
                reminder,
                reason="assignment_inactive",
                status=assignment.status.value if assignment else None,
            )
        if assignment.due_date is None:
            return await self._cancel(reminder, reason="due_date_cleared")

        config = await self._config_provider.get_config()
        interval = config.resolve_interval(reminder.days_before)
        if interval is None:
            return await self._cancel(reminder, reason="interval_disabled")

        delivery = await self._deliver(reminder, assignment, interval)
        return await self._record_outcome(reminder, delivery)

    @staticmethod
    def _should_skip(reminder: DeadlineReminder, *, is_retry: bool) -> bool:
        if reminder.status in (ReminderStatus.SENT, ReminderStatus.CANCELLED):
            return True
        return reminder.status is ReminderStatus.FAILED and not is_retry

    async def _cancel(self, reminder: DeadlineReminder, *, reason: str, **extra: object) -> ProcessOutcome:
        await self._reminders.mark_cancelled(self._session, reminder.id)
        await self._session.commit()
        self.logger.info(
            "Reminder cancelled at fire time",
            extra={"reason": reason, **extra, "operation": "reminders.process"},
        )
        return ProcessOutcome.CANCELLED

    async def _deliver(
        self,
        reminder: DeadlineReminder,
        assignment: ReviewAssignment,
        interval: ReminderInterval,
    ) -> _Delivery:
        delivery = _Delivery()
        conversation = await self._conversations.find_editorial_conversation(assignment.manuscript_id)

        if interval.email_enabled:
            await self._send_email(reminder, assignment, conversation, delivery)

        if interval.conversation_enabled and conversation is not None:
            await self._post_to_conversation(reminder, assignment, conversation, delivery)

        return delivery

    async def _send_email(
        self,
        reminder: DeadlineReminder,
        assignment: ReviewAssignment,
        conversation: Conversation | None,
        delivery: _Delivery,
    ) -> None:
        reviewer = assignment.reviewer
        manuscript = assignment.manuscript
        links = build_links(
            self._settings.frontend_url,
            manuscript.id,
            conversation.id if conversation else None,
        )
        try:
            async with asyncio.timeout(self._settings.delivery_timeout_seconds):
                result = await self._email.send_template(
                    to=reviewer.email,
                    template=AUTOMATED_TEMPLATE,
                    subject=subject_line(reminder.days_before, manuscript.title),
                    context=email_context(
                        reviewer_name=reviewer.display_name,
                        manuscript_title=manuscript.title,
                        due_date=assignment.due_date,
                        days_before=reminder.days_before,
                        links=links,
                        tz=self._settings.tzinfo,
                        bot_name=self._settings.bot_name,
                    ),
                )
        except TimeoutError:
            delivery.errors.append("Email failed: timed out")
            self.logger.warning("Reminder email timed out", extra={"operation": "reminders.process.email"})
            return
        except Exception as e:
            delivery.errors.append(f"Email failed: {e}")
            self.logger.exception("Error sending reminder email", extra={"operation": "reminders.process.email"})
            return

        if result.success:
            delivery.email_sent = True
            self.logger.info(
                "Reminder email sent",
                extra={"message_id": result.message_id, "operation": "reminders.process.email"},
            )
        else:
            delivery.errors.append(f"Email failed: {result.error}")
            self.logger.warning(
                "Failed to send reminder email",
                extra={"error": result.error, "operation": "reminders.process.email"},
            )

    async def _post_to_conversation(
        self,
        reminder: DeadlineReminder,
        assignment: ReviewAssignment,
        conversation: Conversation,
        delivery: _Delivery,
    ) -> None:
        content = conversation_message(
            assignment.reviewer.username,
            reminder.days_before,
            assignment.due_date,
            tz=self._settings.tzinfo,
            sent_at=datetime.now(UTC),
        )
        try:
            async with asyncio.timeout(self._settings.delivery_timeout_seconds):
                # Savepoint so a failed post leaves the outer transaction usable.
                async with self._session.begin_nested():
                    bot = await self._conversations.get_or_create_bot_user()
                    message = await self._conversations.post_message(
                        conversation.id,
                        content,
                        author_id=bot.id,
                        privacy=MessagePrivacy.EDITOR_ONLY,
                        is_bot=True,
                        metadata={
                            "type": "deadline_reminder",
                            "assignmentId": str(assignment.id),
                            "daysBefore": reminder.days_before,
                            "reminderId": str(reminder.id),
                            "automated": True,
                        },
                    )
        except TimeoutError:
            delivery.errors.append("Conversation post failed: timed out")
            self.logger.warning("Reminder conversation post timed out", extra={"operation": "reminders.process.conversation"})
            return
        except Exception as e:
            delivery.errors.append(f"Conversation post failed: {e}")
            self.logger.exception(
                "Failed to post reminder to conversation",
                extra={"conversation_id": str(conversation.id), "operation": "reminders.process.conversation"},
            )
            return

        delivery.conversation_posted = True
        delivery.messages.append(message)

    async def _record_outcome(self, reminder: DeadlineReminder, delivery: _Delivery) -> ProcessOutcome:
        reminder_id = reminder.id
        joined = "; ".join(delivery.errors) if delivery.errors else None

        if delivery.any_succeeded or not delivery.errors:
            await self._reminders.mark_sent(self._session, reminder_id, error_message=joined)
            await self._session.commit()
            for message in delivery.messages:
                await self._conversations.announce(message)

            if not delivery.any_succeeded:
                self.logger.info(
                    "Reminder had no delivery channels to execute",
                    extra={"operation": "reminders.process"},
                )
            else:
                self.logger.info(
                    "Reminder sent" + (" with partial failures" if joined else ""),
                    extra={
                        "email_sent": delivery.email_sent,
                        "conversation_posted": delivery.conversation_posted,
                        "error": joined,
                        "operation": "reminders.process",
                    },
                )
            return ProcessOutcome.SENT

        if not await self._reminders.mark_failed(self._session, reminder_id, joined or ""):
            # Cancelled or already sent while delivering.
            await self._session.commit()
            return ProcessOutcome.SKIPPED
        await self._session.commit()
        self.logger.error(
            "Reminder delivery failed on every channel",
            extra={"error": joined, "operation": "reminders.process"},
        )
        raise ReminderDeliveryError(delivery.errors, details={"reminder_id": str(reminder_id)})
