"""Core service primitives."""

from editorial_reminders.core.services.base import BaseService

__all__ = ["BaseService"]
