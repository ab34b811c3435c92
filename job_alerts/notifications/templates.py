"""Template rendering for digest e-mails using Jinja2.

HTML templates are autoescaped; the plain-text body is not, so that company
names such as "AT&T" survive untouched. StrictUndefined turns a missing
context key into an error instead of an empty string.
"""

import logging
from typing import Any, Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from .models import Digest, NotificationTemplateError

logger = logging.getLogger(__name__)


def build_digest_context(digest: Digest, subject: str) -> Dict[str, Any]:
    """Flatten a Digest into template variables."""
    return {
        "subject": subject,
        "greeting_name": digest.recipient.greeting_name,
        "alert_name": digest.alert.name,
        "job_count": digest.job_count,
        "jobs": digest.jobs,
        "personalization": digest.personalization,
        "manage_url": digest.manage_url,
    }


class TemplateRenderer:
    """Renders subject, HTML and plain-text bodies from package templates."""

    def __init__(
        self,
        template_dir: str = "email_templates",
        subject_template: str = "digest_subject.j2",
        html_template: str = "digest_body.html.j2",
        text_template: str = "digest_body.txt.j2",
    ):
        self.subject_template_name = subject_template
        self.html_template_name = html_template
        self.text_template_name = text_template

        self.env = Environment(
            loader=PackageLoader("job_alerts.notifications", template_dir),
            autoescape=select_autoescape(enabled_extensions=("html.j2", "html"), default=False),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, context: Dict[str, Any]) -> Dict[str, str]:
        """Render all templates with ``context``.

        Returns:
            Dictionary with ``subject`` (single line), ``html_body`` and ``text_body``

        Raises:
            NotificationTemplateError: If template rendering fails
        """
        try:
            subject = self.env.get_template(self.subject_template_name).render(context)
            html_body = self.env.get_template(self.html_template_name).render(context)
            text_body = self.env.get_template(self.text_template_name).render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e

        return {
            "subject": " ".join(subject.split()),
            "html_body": html_body,
            "text_body": text_body,
        }
