"""Base service class for business logic."""

from __future__ import annotations

import logging

from editorial_reminders.infra.logging import get_lazy_logger


class BaseService:
    """Base class for all service classes.

    Loggers:
        - self.logger: Standard logger for INFO/WARNING/ERROR (always evaluated)
        - self._lazy: Lazy logger for DEBUG (zero overhead when DEBUG disabled)

    Example:
        class DeadlineScanner(BaseService):
            def __init__(self, config_provider: ReminderConfigProvider):
                super().__init__()
                self._config_provider = config_provider

            async def scan(self) -> ScanSummary:
                self.logger.info("Scan started", extra={"operation": "reminders.scan"})
                self._lazy.debug(lambda: f"Config: {config.model_dump()}")
    """

    def __init__(self) -> None:
        class_name = self.__class__.__name__
        self.logger = logging.getLogger(class_name)
        self._lazy = get_lazy_logger(class_name)
