"""Minimal generic repository for SQLAlchemy models.

Provides basic reads and writes with explicit session passing.
For complex queries, use the session directly - this is a convenience, not a cage.

Example:
    class ReviewAssignmentRepository(BaseRepository[ReviewAssignment]):
        async def find_active(self, session: AsyncSession) -> Sequence[ReviewAssignment]:
            stmt = select(ReviewAssignment).where(ReviewAssignment.status.in_(ACTIVE))
            result = await session.execute(stmt)
            return result.scalars().all()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar, cast

from sqlalchemy import Insert, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from editorial_reminders.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute


class RepositoryError(Exception):
    """A repository call could not be carried out."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message} (" + ", ".join(f"{k}={v!r}" for k, v in self.details.items()) + ")"


class NotFoundError(RepositoryError):
    """A lookup that must find a row found none, e.g. the editorial bot after an insert race."""

    def __init__(self, model_name: str, identifier: dict[str, Any]) -> None:
        self.model_name = model_name
        self.identifier = identifier
        criteria = ", ".join(f"{k}={v!r}" for k, v in identifier.items())
        super().__init__(f"{model_name} not found with {criteria}", details={"model": model_name, **identifier})


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Minimal generic repository.

    Provides:
        - get(session, id) -> T | None
        - get_by(session, attr, value) -> T | None
        - get_by_or_raise(session, attr, value) -> T (raises NotFoundError)
        - create(session, instance) -> T
        - upsert_statement(session, values) -> dialect INSERT supporting ON CONFLICT

    Session is always explicit - no hidden state.
    """

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        """Initialize repository with model class.

        Args:
            model: SQLAlchemy model class (e.g., DeadlineReminder)
        """
        self.model = model
        # Standard logger for INFO/WARNING/ERROR
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    async def get(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        options: Iterable[Any] | None = None,
    ) -> T | None:
        """Get entity by primary key.

        Args:
            session: Database session
            id: Primary key value
            options: SQLAlchemy loader options (e.g., selectinload)

        Returns:
            Entity if found, None otherwise
        """
        if options:
            stmt = select(self.model).where(self._pk_attr() == id).options(*options)
            result = await session.execute(stmt)
            instance = result.scalar_one_or_none()
        else:
            instance = await session.get(self.model, id)

        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def get_by(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
        *,
        options: Iterable[Any] | None = None,
    ) -> T | None:
        """Get entity by arbitrary attribute."""
        stmt = select(self.model).where(attr == value)
        if options:
            stmt = stmt.options(*options)
        result = await session.execute(stmt)
        instance = result.scalars().first()

        self._lazy.debug(
            lambda: f"db.get_by: {self.model.__name__}.{attr.key}={value!r} -> {'found' if instance else 'not found'}"
        )
        return instance

    async def get_by_or_raise(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
    ) -> T:
        instance = await self.get_by(session, attr, value)
        if instance is None:
            self._logger.warning(
                "Entity not found",
                extra={"entity": self.model.__name__, "field": attr.key, "operation": "db.get_by_or_raise"},
            )
            raise NotFoundError(self.model.__name__, {attr.key: value})
        return instance

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Persist a new entity.

        Adds to session, flushes to get generated values (like id),
        and refreshes to ensure instance is up-to-date.
        """
        session.add(instance)
        await session.flush()
        await session.refresh(instance)

        entity_id = getattr(instance, "id", None)
        self._lazy.debug(lambda: f"db.create: {self.model.__name__}(id={entity_id})")
        return instance

    def upsert_statement(self, session: AsyncSession, values: dict[str, Any]) -> Insert:
        """Build a dialect-specific INSERT that supports ON CONFLICT clauses.

        PostgreSQL in production, SQLite in tests. Both expose
        ``on_conflict_do_nothing`` and ``on_conflict_do_update`` with the
        same signature.

        Raises:
            RepositoryError: If the bound dialect has no ON CONFLICT support
        """
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(self.model).values(**values)
        if dialect == "sqlite":
            return sqlite_insert(self.model).values(**values)
        raise RepositoryError(
            "Dialect does not support ON CONFLICT upserts",
            details={"dialect": dialect, "entity": self.model.__name__},
        )

    def _pk_attr(self) -> InstrumentedAttribute[Any]:
        """Get primary key attribute, falling back to ``id``."""
        mapper = sa_inspect(self.model, raiseerr=False)
        pk_cols = getattr(mapper, "primary_key", None)
        if pk_cols:
            return cast("InstrumentedAttribute[Any]", getattr(self.model, pk_cols[0].name))

        attr = getattr(self.model, "id", None)
        if attr is None:
            raise AttributeError(f"{self.model.__name__} has no 'id' attribute")
        return cast("InstrumentedAttribute[Any]", attr)


__all__ = ["BaseRepository", "NotFoundError", "RepositoryError"]
