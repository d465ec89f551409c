"""HTML email rendering.

Templates are rendered with Jinja2 autoescaping. Submission fields arrive
already escaped by ``sanitize`` and are marked safe so they are not escaped a
second time; everything else (client IP, timestamp, site name) goes through
autoescaping.
"""

from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from markupsafe import Markup

from contactrelay.core.validation import ContactSubmission

TEMPLATES_DIR = Path(__file__).parent / "templates"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


class EmailRenderer:
    """Render the notification and auto-response emails."""

    NOTIFICATION_TEMPLATE = "contact_notification.html"
    AUTO_RESPONSE_TEMPLATE = "auto_response.html"

    def __init__(self, site_name: str = "Landing Page", templates_dir: Path = TEMPLATES_DIR) -> None:
        self.site_name = site_name
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            undefined=StrictUndefined,
        )

    def _submission_context(self, submission: ContactSubmission) -> dict:
        return {
            "name": Markup(submission.name),
            "email": Markup(submission.email),
            "message": Markup(submission.message),
            "site_name": self.site_name,
        }

    def render_notification(
        self,
        submission: ContactSubmission,
        client_ip: str,
        timestamp: datetime | None = None,
    ) -> str:
        """Render the email delivered to the site owner.

        Args:
            submission: Sanitized submission
            client_ip: Address the submission came from
            timestamp: Server-side receive time, defaults to now (UTC)

        Returns:
            HTML body
        """
        timestamp = timestamp or datetime.now(timezone.utc)
        template = self.env.get_template(self.NOTIFICATION_TEMPLATE)
        return template.render(
            **self._submission_context(submission),
            client_ip=client_ip,
            timestamp=timestamp.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT),
            year=timestamp.year,
        )

    def render_auto_response(self, submission: ContactSubmission) -> str:
        """Render the thank-you email sent back to the submitter."""
        template = self.env.get_template(self.AUTO_RESPONSE_TEMPLATE)
        return template.render(**self._submission_context(submission))
