"""Review assignments, reviewers and manuscripts (read-mostly)."""

from editorial_reminders.features.assignments.models import (
    ACTIVE_STATUSES,
    AssignmentStatus,
    Manuscript,
    ReviewAssignment,
    User,
    UserRole,
)
from editorial_reminders.features.assignments.repository import (
    ReviewAssignmentRepository,
    UserRepository,
    get_review_assignment_repository,
    get_user_repository,
)

__all__ = [
    "ACTIVE_STATUSES",
    "AssignmentStatus",
    "Manuscript",
    "ReviewAssignment",
    "ReviewAssignmentRepository",
    "User",
    "UserRepository",
    "UserRole",
    "get_review_assignment_repository",
    "get_user_repository",
]
