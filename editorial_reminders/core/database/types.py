"""Custom SQLAlchemy column types.

Types included:
- UTCDateTime: timezone-aware datetimes that round-trip as UTC on every dialect
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, TypeDecorator

if TYPE_CHECKING:
    from sqlalchemy.engine import Dialect


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware timestamp column normalized to UTC.

    PostgreSQL stores TIMESTAMP WITH TIME ZONE and returns aware values.
    SQLite has no timezone support and hands back naive datetimes, which
    breaks comparisons against ``datetime.now(UTC)``. This type converts on
    bind and tags naive results as UTC on read.

    Example:
        >>> class DeadlineReminder(UUIDTimestampedBase):
        ...     scheduled_for: Mapped[datetime] = mapped_column(UTCDateTime())

    Raises:
        ValueError: When binding a naive datetime.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            msg = "UTCDateTime requires a timezone-aware datetime"
            raise ValueError(msg)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


__all__ = ["UTCDateTime"]
