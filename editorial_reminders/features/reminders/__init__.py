"""Deadline reminders for review assignments.

Components:
    - DeadlineReminderRepository: the reminder store
    - ReminderConfigProvider: TTL-cached journal configuration
    - DeadlineScanner: periodic reconciliation, creates and schedules reminders
    - ReminderProcessor: fire-time validation and delivery
    - ReminderLifecycleService: cancel and reschedule on assignment changes
    - ManualReminderService: editor-initiated reminders
"""

from editorial_reminders.features.reminders.config import (
    ReminderConfigProvider,
    get_reminder_config_provider,
)
from editorial_reminders.features.reminders.exceptions import (
    ReminderDeliveryError,
    ReminderError,
    ReminderSchedulingError,
)
from editorial_reminders.features.reminders.lifecycle import ReminderLifecycleService
from editorial_reminders.features.reminders.manual import ManualReminderService
from editorial_reminders.features.reminders.models import DeadlineReminder, JournalSettings, ReminderStatus
from editorial_reminders.features.reminders.processor import ReminderProcessor
from editorial_reminders.features.reminders.queue import ReminderJobQueue, TaskiqReminderJobQueue
from editorial_reminders.features.reminders.repository import (
    DeadlineReminderRepository,
    get_deadline_reminder_repository,
)
from editorial_reminders.features.reminders.scanner import DeadlineScanner
from editorial_reminders.features.reminders.schemas import (
    CreateOutcome,
    DeadlineReminderJob,
    ManualReminderResult,
    ProcessOutcome,
    ReminderConfig,
    ScanSummary,
    ScheduleResult,
)

__all__ = [
    "CreateOutcome",
    "DeadlineReminder",
    "DeadlineReminderJob",
    "DeadlineReminderRepository",
    "DeadlineScanner",
    "JournalSettings",
    "ManualReminderResult",
    "ManualReminderService",
    "ProcessOutcome",
    "ReminderConfig",
    "ReminderConfigProvider",
    "ReminderDeliveryError",
    "ReminderError",
    "ReminderJobQueue",
    "ReminderLifecycleService",
    "ReminderProcessor",
    "ReminderSchedulingError",
    "ReminderStatus",
    "ScanSummary",
    "ScheduleResult",
    "TaskiqReminderJobQueue",
    "get_deadline_reminder_repository",
    "get_reminder_config_provider",
]
