"""High-level email service with template support."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from editorial_reminders.core.settings import get_email_settings

from .client import EmailClient, get_email_client
from .schemas import EmailMessage, EmailResult
from .templates import EmailTemplateRenderer, get_template_renderer

if TYPE_CHECKING:
    from editorial_reminders.core.settings.email import EmailSettings

logger = logging.getLogger(__name__)


class EmailService:
    """Send plain or templated email through the configured backend.

    Example:
        service = get_email_service()
        result = await service.send_template(
            to="reviewer@example.com",
            template="review_reminder",
            subject='Due Tomorrow: Review for "Coral reefs"',
            context={"reviewer_name": "Ada"},
        )
    """

    def __init__(
        self,
        client: EmailClient,
        renderer: EmailTemplateRenderer,
        settings: EmailSettings,
    ) -> None:
        self.client = client
        self.renderer = renderer
        self.settings = settings

        logger.info(
            "Email service initialized",
            extra={"enabled": settings.enabled, "backend": settings.backend},
        )

    async def send(
        self,
        to: str | list[str],
        subject: str,
        body: str | None = None,
        body_html: str | None = None,
        *,
        from_email: str | None = None,
        from_name: str | None = None,
        tags: list[str] | None = None,
        template_name: str | None = None,
    ) -> EmailResult:
        """Send an email directly.

        Returns:
            EmailResult with delivery status.
        """
        recipients = [to] if isinstance(to, str) else list(to)
        message = EmailMessage(
            to=recipients,
            from_email=from_email,
            from_name=from_name,
            subject=subject,
            body_text=body,
            body_html=body_html,
            tags=tags or [],
            template_name=template_name,
        )
        return await self.client.send(message)

    async def send_template(
        self,
        to: str | list[str],
        template: str,
        subject: str,
        context: dict[str, Any] | None = None,
        *,
        from_email: str | None = None,
        from_name: str | None = None,
    ) -> EmailResult:
        """Render ``template`` and send it.

        Raises:
            TemplateNotFoundError: If template doesn't exist.
        """
        html_content, text_content = self.renderer.render(template, **(context or {}))
        return await self.send(
            to,
            subject,
            body=text_content,
            body_html=html_content,
            from_email=from_email,
            from_name=from_name,
            tags=[f"template:{template}"],
            template_name=template,
        )


@lru_cache(maxsize=1)
def get_email_service() -> EmailService:
    """Get the process-wide email service."""
    settings = get_email_settings()
    return EmailService(get_email_client(settings), get_template_renderer(), settings)
