"""Subject lines, urgency styling and message bodies for reminders.

Emails are rendered from the ``review_reminder`` and
``manual_review_reminder`` Jinja templates; this module supplies their
context and the plain Markdown body posted to conversations.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from uuid import UUID
    from zoneinfo import ZoneInfo

AUTOMATED_TEMPLATE = "review_reminder"
MANUAL_TEMPLATE = "manual_review_reminder"

SUBJECT_TITLE_LIMIT = 50
MANUAL_SUBJECT_TITLE_LIMIT = 40


def urgency_color(days_before: int) -> str:
    if days_before <= 0:
        return "#dc2626"
    if days_before <= 1:
        return "#ea580c"
    if days_before <= 3:
        return "#d97706"
    return "#2563eb"


def urgency_emoji(days_before: int) -> str:
    if days_before <= 0:
        return "⚠️"
    if days_before <= 1:
        return "⏰"
    if days_before <= 3:
        return "📅"
    return "📧"


def _plural_days(count: int) -> str:
    return f"{count} day" if count == 1 else f"{count} days"


def urgency_text(days_before: int) -> str:
    if days_before < 0:
        return f"{_plural_days(abs(days_before))} overdue"
    if days_before == 0:
        return "Due today"
    if days_before == 1:
        return "Due tomorrow"
    return f"Due in {days_before} days"


def truncate_title(title: str, limit: int = SUBJECT_TITLE_LIMIT) -> str:
    if len(title) > limit:
        return title[: limit - 3] + "..."
    return title


def subject_line(days_before: int, manuscript_title: str) -> str:
    title = truncate_title(manuscript_title)
    if days_before < 0:
        return f'OVERDUE: Review for "{title}" was due {_plural_days(abs(days_before))} ago'
    if days_before == 0:
        return f'DUE TODAY: Review for "{title}"'
    if days_before == 1:
        return f'Due Tomorrow: Review for "{title}"'
    if days_before <= 3:
        return f'Reminder: Review for "{title}" due in {days_before} days'
    return f'Review Reminder: "{title}" due in {days_before} days'


def manual_subject_line(days_before: int, manuscript_title: str, custom_message: str | None) -> str:
    if not custom_message:
        return subject_line(days_before, manuscript_title)
    title = manuscript_title[:MANUAL_SUBJECT_TITLE_LIMIT]
    if len(manuscript_title) > MANUAL_SUBJECT_TITLE_LIMIT:
        title += "..."
    return f'Review Reminder: "{title}"'


def format_long_date(value: datetime, tz: ZoneInfo) -> str:
    """``Wednesday, January 10, 2024``"""
    local = value.astimezone(tz)
    return f"{local:%A}, {local:%B} {local.day}, {local.year}"


def format_short_date(value: datetime, tz: ZoneInfo) -> str:
    """``Jan 10, 2024``"""
    local = value.astimezone(tz)
    return f"{local:%b} {local.day}, {local.year}"


def format_timestamp(value: datetime, tz: ZoneInfo) -> str:
    local = value.astimezone(tz)
    return f"{format_short_date(value, tz)}, {local:%I:%M %p} {local.tzname()}"


@dataclass(frozen=True, slots=True)
class ReminderLinks:
    submit_url: str
    conversation_url: str


def build_links(frontend_url: str, manuscript_id: UUID, conversation_id: UUID | None) -> ReminderLinks:
    """Review form link, and the conversation link (manuscript page without one)."""
    base = frontend_url.rstrip("/")
    if conversation_id is not None:
        conversation_url = f"{base}/conversations/{conversation_id}"
    else:
        conversation_url = f"{base}/manuscripts/{manuscript_id}"
    return ReminderLinks(
        submit_url=f"{base}/manuscripts/{manuscript_id}/review",
        conversation_url=conversation_url,
    )


def email_context(
    *,
    reviewer_name: str,
    manuscript_title: str,
    due_date: datetime,
    days_before: int,
    links: ReminderLinks,
    tz: ZoneInfo,
    bot_name: str,
    custom_message: str | None = None,
    sender_name: str | None = None,
) -> dict[str, Any]:
    """Template context shared by the automated and manual reminder emails."""
    return {
        "reviewer_name": reviewer_name,
        "manuscript_title": manuscript_title,
        "formatted_due_date": format_long_date(due_date, tz),
        "days_before": days_before,
        "overdue_days": abs(days_before) if days_before < 0 else 0,
        "urgency_color": urgency_color(days_before),
        "urgency_text": urgency_text(days_before),
        "submit_url": links.submit_url,
        "conversation_url": links.conversation_url,
        "bot_name": bot_name,
        "custom_message": custom_message,
        "sender_name": sender_name,
    }


def conversation_message(
    reviewer_username: str,
    days_before: int,
    due_date: datetime,
    *,
    tz: ZoneInfo,
    sent_at: datetime,
    manual: bool = False,
    custom_message: str | None = None,
) -> str:
    """Markdown body of the reminder posted to the editorial conversation."""
    header = "Review Reminder (Manual)" if manual else "Review Reminder"
    lines = [
        f"{urgency_emoji(days_before)} **{header}**",
        "",
        f"**Reviewer:** @{reviewer_username}",
        f"**Due Date:** {format_short_date(due_date, tz)}",
        f"**Status:** {urgency_text(days_before)}",
    ]
    if custom_message:
        lines += ["", f"**Message:** {custom_message}"]
    lines += ["", f"_Reminder sent at {format_timestamp(sent_at, tz)}_"]
    return "\n".join(lines)
