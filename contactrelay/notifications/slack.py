"""
Slack webhook notification
"""
import html
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from contactrelay.config import NotificationConfig, SmtpConfig
from contactrelay.core.validation import ContactSubmission
from contactrelay.errors import NotificationError


class SlackNotifier:
    """Post new submissions to a Slack incoming webhook.

    An unset webhook URL disables the notifier; it is not an error.
    """

    name = "slack"

    def __init__(
        self,
        config: NotificationConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.transport = transport
        self.logger = logger or logging.getLogger(__name__)

    @property
    def enabled(self) -> bool:
        return bool(self.config.slack_webhook_url)

    def build_payload(
        self,
        submission: ContactSubmission,
        client_ip: str,
        timestamp: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Build the webhook JSON body"""
        timestamp = timestamp or datetime.now(timezone.utc)
        return {
            "channel": self.config.slack_channel,
            "username": self.config.slack_username,
            "icon_emoji": self.config.slack_icon_emoji,
            "attachments": [
                {
                    "color": "good",
                    "title": "New contact message",
                    "text": "A new message was received from the website",
                    "fields": [
                        {"title": "Name", "value": html.unescape(submission.name), "short": True},
                        {"title": "Email", "value": submission.email, "short": True},
                        {"title": "IP", "value": client_ip, "short": True},
                        {
                            "title": "Date",
                            "value": timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                            "short": True,
                        },
                        {"title": "Message", "value": html.unescape(submission.message), "short": False},
                    ],
                    "ts": int(timestamp.timestamp()),
                }
            ],
        }

    async def notify(
        self,
        submission: ContactSubmission,
        client_ip: str,
        smtp_config: SmtpConfig,
    ) -> None:
        """Post the submission to Slack

        Raises:
            NotificationError: If the webhook call fails or is rejected
        """
        if not self.enabled:
            return

        payload = self.build_payload(submission, client_ip)
        try:
            async with httpx.AsyncClient(
                timeout=self.config.slack_timeout, transport=self.transport
            ) as client:
                response = await client.post(self.config.slack_webhook_url, json=payload)
        except httpx.HTTPError as e:
            raise NotificationError(f"Slack webhook request failed: {e}") from e

        if not response.is_success:
            raise NotificationError(f"Slack webhook returned HTTP {response.status_code}")

        self.logger.info("Slack notification sent")
