"""Core database package: declarative base, mixins, column types and repository.

Base Classes and Mixins:
    - Base: Declarative base with constraint naming convention
    - UUIDPKMixin: UUID v4 primary key
    - TimestampMixin: created_at, updated_at tracking
    - UUIDTimestampedBase: UUID PK + timestamps

Repository:
    - BaseRepository[T]: Reads, create and dialect-aware upserts with explicit sessions

Custom Types:
    - UTCDateTime: Timezone-aware timestamps on PostgreSQL and SQLite

Exceptions:
    - RepositoryError, NotFoundError
"""

from __future__ import annotations

from .base import NAMING_CONVENTION, Base, TimestampMixin, UUIDPKMixin, UUIDTimestampedBase
from .repository import BaseRepository, NotFoundError, RepositoryError
from .types import UTCDateTime

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "NotFoundError",
    "RepositoryError",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDPKMixin",
    "UUIDTimestampedBase",
]
