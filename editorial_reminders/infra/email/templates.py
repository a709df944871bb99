"""Email template rendering with Jinja2.

Templates live in ``infra/email/templates`` as ``<name>.html`` and
``<name>.txt`` pairs; when only HTML exists a text version is derived.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from html import unescape
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateNotFoundError(Exception):
    """Raised when an email template cannot be found."""


class EmailTemplateRenderer:
    """Jinja2-based email template renderer.

    Example:
        renderer = get_template_renderer()
        html, text = renderer.render(
            "review_reminder",
            reviewer_name="Ada",
            manuscript_title="Coral reefs",
        )
    """

    def __init__(self, template_dir: Path = TEMPLATE_DIR) -> None:
        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["html_to_text"] = self._html_to_text

    def render(self, template_name: str, **context: Any) -> tuple[str | None, str | None]:
        """Render the HTML and text versions of a template.

        Returns:
            Tuple of (html_content, text_content).

        Raises:
            TemplateNotFoundError: If neither HTML nor text template exists.
        """
        html_content = None
        text_content = None

        try:
            html_content = self.env.get_template(f"{template_name}.html").render(**context)
        except TemplateNotFound:
            logger.debug(f"No HTML template found for: {template_name}")

        try:
            text_content = self.env.get_template(f"{template_name}.txt").render(**context)
        except TemplateNotFound:
            logger.debug(f"No text template found for: {template_name}")

        if html_content and not text_content:
            text_content = self._html_to_text(html_content)

        if html_content is None and text_content is None:
            msg = (
                f"No template found for: {template_name} "
                f"(looked for {template_name}.html and {template_name}.txt)"
            )
            raise TemplateNotFoundError(msg)

        return html_content, text_content

    @staticmethod
    def _html_to_text(html: str) -> str:
        """Basic HTML to plain text conversion."""
        html = re.sub(
            r'<a[^>]+href=["\']([^"\']+)["\'][^>]*>([^<]+)</a>',
            r"\2 (\1)",
            html,
            flags=re.IGNORECASE,
        )
        html = re.sub(r"</?(p|div|h[1-6])[^>]*>", r"\n\n", html, flags=re.IGNORECASE)
        html = re.sub(r"<br\s*/?>", r"\n", html, flags=re.IGNORECASE)
        html = re.sub(r"<[^>]+>", "", html)
        text = unescape(html)
        text = re.sub(r" +", " ", text)
        text = re.sub(r"\n\s*\n", "\n\n", text)
        return text.strip()


@lru_cache(maxsize=1)
def get_template_renderer() -> EmailTemplateRenderer:
    """Get cached email template renderer."""
    return EmailTemplateRenderer()
