"""
Auto-reply to the submitter
"""
import logging
from typing import Optional

from contactrelay.config import SmtpConfig
from contactrelay.core.validation import ContactSubmission
from contactrelay.errors import DeliveryError, NotificationError
from contactrelay.mail import EmailRenderer, MailSender


class AutoResponder:
    """Send a thank-you email back to whoever filled in the form"""

    name = "auto_response"

    def __init__(
        self,
        renderer: EmailRenderer,
        sender: MailSender,
        enabled: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.renderer = renderer
        self.sender = sender
        self.enabled = enabled
        self.logger = logger or logging.getLogger(__name__)

    @property
    def subject(self) -> str:
        return f"Thanks for contacting {self.renderer.site_name}"

    async def notify(
        self,
        submission: ContactSubmission,
        client_ip: str,
        smtp_config: SmtpConfig,
    ) -> None:
        if not self.enabled:
            return

        body = self.renderer.render_auto_response(submission)
        try:
            await self.sender.send(
                smtp_config,
                self.renderer.site_name,
                submission.email,
                self.subject,
                body,
            )
        except DeliveryError as e:
            raise NotificationError(f"Auto-response to {submission.email} failed ({e.kind})") from e

        self.logger.info("Auto-response sent to %s", submission.email)
