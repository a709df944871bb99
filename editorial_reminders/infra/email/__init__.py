"""Email infrastructure: SMTP/console/file clients, Jinja2 templates, service."""

from .client import EmailClient, get_email_client
from .schemas import EmailMessage, EmailResult, EmailStatus
from .service import EmailService, get_email_service
from .templates import EmailTemplateRenderer, TemplateNotFoundError, get_template_renderer

__all__ = [
    "EmailClient",
    "EmailMessage",
    "EmailResult",
    "EmailService",
    "EmailStatus",
    "EmailTemplateRenderer",
    "TemplateNotFoundError",
    "get_email_client",
    "get_email_service",
    "get_template_renderer",
]
