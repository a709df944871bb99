"""Repository for deadline reminder records.

Every state change is a single conditional statement so that concurrent
scanners and workers never need locks: the unique ``job_key`` arbitrates
creation, and status predicates arbitrate transitions.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select, update

from editorial_reminders.core.database import BaseRepository
from editorial_reminders.features.reminders.models import (
    CANCELLABLE_STATUSES,
    UNSENT_STATUSES,
    DeadlineReminder,
    ReminderStatus,
)
from editorial_reminders.features.reminders.scheduling import generate_job_key
from editorial_reminders.features.reminders.schemas import CreateOutcome

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True, slots=True)
class CreateResult:
    """Tagged result of ``create_if_absent``; ``reminder_id`` is None for ALREADY_EXISTS."""

    outcome: CreateOutcome
    reminder_id: UUID | None = None

    @property
    def is_new_work(self) -> bool:
        return self.outcome is not CreateOutcome.ALREADY_EXISTS


class DeadlineReminderRepository(BaseRepository[DeadlineReminder]):
    """Repository for DeadlineReminder.

    Inherits get/get_by/create from BaseRepository.
    """

    def __init__(self) -> None:
        super().__init__(DeadlineReminder)

    async def create_if_absent(
        self,
        session: AsyncSession,
        *,
        assignment_id: UUID,
        days_before: int,
        scheduled_for: datetime,
        status: ReminderStatus = ReminderStatus.QUEUED,
    ) -> CreateResult:
        """Insert the record for ``(assignment_id, days_before)`` unless one exists.

        A CANCELLED record is re-armed in place (status reset, new
        ``scheduled_for``, outcome metadata cleared) so that the pair keeps
        exactly one record. Any other existing record is left untouched.

        Returns:
            CreateResult tagged CREATED, REARMED or ALREADY_EXISTS
        """
        new_id = uuid.uuid4()
        now = datetime.now(UTC)
        job_key = generate_job_key(assignment_id, days_before)

        stmt = self.upsert_statement(
            session,
            {
                "id": new_id,
                "assignment_id": assignment_id,
                "days_before": days_before,
                "scheduled_for": scheduled_for,
                "status": status,
                "job_key": job_key,
                "created_at": now,
                "updated_at": now,
            },
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["job_key"],
            set_={
                "status": status,
                "scheduled_for": stmt.excluded.scheduled_for,
                "sent_at": None,
                "error_message": None,
                "updated_at": now,
            },
            where=DeadlineReminder.status == ReminderStatus.CANCELLED,
        ).returning(DeadlineReminder.id)

        result = await session.execute(stmt)
        returned_id = result.scalar_one_or_none()

        if returned_id is None:
            outcome = CreateResult(CreateOutcome.ALREADY_EXISTS)
        elif returned_id == new_id:
            outcome = CreateResult(CreateOutcome.CREATED, returned_id)
        else:
            outcome = CreateResult(CreateOutcome.REARMED, returned_id)

        self._lazy.debug(lambda: f"db.create_if_absent: {job_key} -> {outcome.outcome}")
        return outcome

    async def _transition(
        self,
        session: AsyncSession,
        reminder_id: UUID,
        *,
        allowed_from: Iterable[ReminderStatus],
        **values: object,
    ) -> bool:
        stmt = (
            update(DeadlineReminder)
            .where(
                DeadlineReminder.id == reminder_id,
                DeadlineReminder.status.in_(list(allowed_from)),
            )
            .values(updated_at=datetime.now(UTC), **values)
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        if not result.rowcount:
            self._logger.warning(
                "Reminder status transition not applied",
                extra={
                    "reminder_id": str(reminder_id),
                    "target_status": str(values.get("status")),
                    "operation": "db.transition",
                },
            )
            return False
        return True

    async def mark_sent(
        self,
        session: AsyncSession,
        reminder_id: UUID,
        *,
        error_message: str | None = None,
        sent_at: datetime | None = None,
    ) -> bool:
        """Record a delivery; False if the record was cancelled or sent meanwhile."""
        return await self._transition(
            session,
            reminder_id,
            allowed_from=UNSENT_STATUSES,
            status=ReminderStatus.SENT,
            sent_at=sent_at or datetime.now(UTC),
            error_message=error_message,
        )

    async def mark_failed(self, session: AsyncSession, reminder_id: UUID, error_message: str) -> bool:
        return await self._transition(
            session,
            reminder_id,
            allowed_from=UNSENT_STATUSES,
            status=ReminderStatus.FAILED,
            error_message=error_message,
        )

    async def mark_cancelled(self, session: AsyncSession, reminder_id: UUID) -> bool:
        """Cancel one reminder unless it was already SENT.

        FAILED is accepted because a retried job may find its assignment closed.
        """
        return await self._transition(
            session,
            reminder_id,
            allowed_from=UNSENT_STATUSES,
            status=ReminderStatus.CANCELLED,
        )

    async def cancel_pending_for_assignment(self, session: AsyncSession, assignment_id: UUID) -> int:
        """Bulk-transition the assignment's PENDING/QUEUED reminders to CANCELLED.

        Returns:
            Number of records cancelled
        """
        return await self._cancel_for_assignment(
            session, assignment_id, CANCELLABLE_STATUSES, operation="db.cancel_pending_for_assignment"
        )

    async def cancel_unsent_for_assignment(self, session: AsyncSession, assignment_id: UUID) -> int:
        """Cancel every record that was not SENT, FAILED included.

        Used ahead of a reschedule so that each cancelled pair can be
        re-armed by ``create_if_absent``.
        """
        return await self._cancel_for_assignment(
            session, assignment_id, UNSENT_STATUSES, operation="db.cancel_unsent_for_assignment"
        )

    async def _cancel_for_assignment(
        self,
        session: AsyncSession,
        assignment_id: UUID,
        statuses: Iterable[ReminderStatus],
        *,
        operation: str,
    ) -> int:
        stmt = (
            update(DeadlineReminder)
            .where(
                DeadlineReminder.assignment_id == assignment_id,
                DeadlineReminder.status.in_(list(statuses)),
            )
            .values(status=ReminderStatus.CANCELLED, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        count = result.rowcount or 0

        self._logger.info(
            "Cancelled reminders",
            extra={"assignment_id": str(assignment_id), "count": count, "operation": operation},
        )
        return count

    async def existing_days_by_assignment(
        self,
        session: AsyncSession,
        assignment_ids: Sequence[UUID],
        statuses: Iterable[ReminderStatus],
    ) -> dict[UUID, set[int]]:
        """Map each assignment to the ``days_before`` values it has in ``statuses``."""
        if not assignment_ids:
            return {}

        stmt = select(DeadlineReminder.assignment_id, DeadlineReminder.days_before).where(
            DeadlineReminder.assignment_id.in_(list(assignment_ids)),
            DeadlineReminder.status.in_(list(statuses)),
        )
        result = await session.execute(stmt)

        existing: dict[UUID, set[int]] = defaultdict(set)
        for assignment_id, days_before in result.all():
            existing[assignment_id].add(days_before)
        return dict(existing)

    async def list_for_assignment(self, session: AsyncSession, assignment_id: UUID) -> Sequence[DeadlineReminder]:
        stmt = (
            select(DeadlineReminder)
            .where(DeadlineReminder.assignment_id == assignment_id)
            .order_by(DeadlineReminder.days_before.desc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()


_reminder_repository: DeadlineReminderRepository | None = None


def get_deadline_reminder_repository() -> DeadlineReminderRepository:
    """Get DeadlineReminderRepository instance (lazy singleton)."""
    global _reminder_repository
    if _reminder_repository is None:
        _reminder_repository = DeadlineReminderRepository()
    return _reminder_repository
