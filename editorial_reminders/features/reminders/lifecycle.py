"""Cancellation and rescheduling driven by assignment lifecycle events.

Assignment code calls these when a review is completed or declined
(cancel) or when its due date changes (reschedule).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from editorial_reminders.core.services.base import BaseService
from editorial_reminders.core.settings import get_reminder_settings
from editorial_reminders.features.assignments.repository import (
    ReviewAssignmentRepository,
    get_review_assignment_repository,
)
from editorial_reminders.features.reminders.config import (
    ReminderConfigProvider,
    get_reminder_config_provider,
)
from editorial_reminders.features.reminders.models import ReminderStatus
from editorial_reminders.features.reminders.repository import (
    DeadlineReminderRepository,
    get_deadline_reminder_repository,
)
from editorial_reminders.features.reminders.scanner import DeadlineScanner

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from editorial_reminders.core.settings.reminders import ReminderSettings
    from editorial_reminders.features.reminders.queue import ReminderJobQueue


class ReminderLifecycleService(BaseService):
    """Cancels and re-creates an assignment's reminders.

    Example:
        async with get_async_session() as session:
            service = ReminderLifecycleService(session)
            await service.reschedule_reminders_for_assignment(assignment_id)
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        config_provider: ReminderConfigProvider | None = None,
        job_queue: ReminderJobQueue | None = None,
        settings: ReminderSettings | None = None,
        assignment_repository: ReviewAssignmentRepository | None = None,
        reminder_repository: DeadlineReminderRepository | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._config_provider = config_provider or get_reminder_config_provider()
        self._settings = settings or get_reminder_settings()
        self._assignments = assignment_repository or get_review_assignment_repository()
        self._reminders = reminder_repository or get_deadline_reminder_repository()
        self._scanner = DeadlineScanner(
            session,
            config_provider=self._config_provider,
            job_queue=job_queue,
            settings=self._settings,
            assignment_repository=self._assignments,
            reminder_repository=self._reminders,
        )

    async def cancel_reminders_for_assignment(self, assignment_id: UUID) -> int:
        """Cancel the assignment's PENDING and QUEUED reminders.

        SENT, FAILED and CANCELLED records are left as they are. Jobs already
        queued still fire and find their record CANCELLED.

        Returns:
            Number of reminders cancelled
        """
        count = await self._reminders.cancel_pending_for_assignment(self._session, assignment_id)
        await self._session.commit()
        return count

    async def reschedule_reminders_for_assignment(
        self,
        assignment_id: UUID,
        *,
        now: datetime | None = None,
    ) -> int:
        """Cancel every non-SENT reminder, then schedule afresh from the current due date.

        FAILED records are cancelled too, so that each interval is re-armed
        with the new send time. Intervals already SENT are not sent again.

        Returns:
            Number of reminders scheduled (0 when the assignment is missing,
            inactive, undated, or reminders are disabled)
        """
        now = now or datetime.now(UTC)
        await self._reminders.cancel_unsent_for_assignment(self._session, assignment_id)
        await self._session.commit()

        assignment = await self._assignments.get(self._session, assignment_id)
        if assignment is None or assignment.due_date is None or not assignment.is_active:
            self.logger.info(
                "Assignment not eligible for reminders",
                extra={"assignment_id": str(assignment_id), "operation": "reminders.reschedule"},
            )
            return 0

        config = await self._config_provider.get_config()
        if not config.enabled:
            return 0

        due_date = assignment.due_date
        existing = await self._reminders.existing_days_by_assignment(
            self._session,
            [assignment_id],
            (ReminderStatus.SENT,),
        )
        results = await self._scanner.schedule_for_assignment(
            assignment_id,
            due_date,
            config,
            existing.get(assignment_id, set()),
            now=now,
        )
        scheduled = sum(1 for result in results if result.scheduled)

        self.logger.info(
            "Reminders rescheduled",
            extra={
                "assignment_id": str(assignment_id),
                "scheduled": scheduled,
                "due_date": due_date.isoformat(),
                "operation": "reminders.reschedule",
            },
        )
        return scheduled
