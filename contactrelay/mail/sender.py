"""SMTP delivery.

Delivery is awaited by the request handler and bounded by the configured
timeout. Failures are classified for the logs and raised as DeliveryError,
whose client-facing message never includes the SMTP server's reply.
"""

import asyncio
import logging
import ssl
from email.message import EmailMessage
from email.utils import formataddr, formatdate, make_msgid

import aiosmtplib

from contactrelay.config import SmtpConfig
from contactrelay.errors import DeliveryError

logger = logging.getLogger(__name__)


def build_message(
    config: SmtpConfig,
    from_display: str,
    to_email: str,
    subject: str,
    html_body: str,
    reply_to: str | None = None,
) -> EmailMessage:
    """Build an HTML email sent from the configured SMTP account."""
    message = EmailMessage()
    message["From"] = formataddr((from_display, config.user))
    message["To"] = to_email
    message["Subject"] = subject
    message["Date"] = formatdate(localtime=False)
    message["Message-ID"] = make_msgid()
    if reply_to:
        message["Reply-To"] = reply_to
    message.set_content(html_body, subtype="html", charset="utf-8")
    return message


def classify_smtp_error(error: BaseException) -> str:
    """Map an exception raised during delivery to a DeliveryError kind."""
    if isinstance(error, aiosmtplib.SMTPAuthenticationError):
        return DeliveryError.AUTH
    if isinstance(
        error,
        (
            aiosmtplib.SMTPRecipientsRefused,
            aiosmtplib.SMTPRecipientRefused,
            aiosmtplib.SMTPSenderRefused,
        ),
    ):
        return DeliveryError.REJECTED
    if isinstance(
        error,
        (
            aiosmtplib.SMTPConnectError,
            aiosmtplib.SMTPServerDisconnected,
            aiosmtplib.SMTPTimeoutError,
            ssl.SSLError,
            TimeoutError,
            OSError,
        ),
    ):
        return DeliveryError.TRANSPORT
    return DeliveryError.GENERIC


class MailSender:
    """Send HTML email through an authenticated SMTP session."""

    async def send(
        self,
        config: SmtpConfig,
        from_display: str,
        to_email: str,
        subject: str,
        html_body: str,
        reply_to: str | None = None,
    ) -> None:
        """Deliver one message.

        Args:
            config: SMTP account and server
            from_display: Display name for the From header
            to_email: Recipient address
            subject: Subject line
            html_body: Rendered HTML body
            reply_to: Optional Reply-To address

        Raises:
            DeliveryError: If the message could not be delivered
        """
        message = build_message(config, from_display, to_email, subject, html_body, reply_to)

        try:
            await asyncio.wait_for(
                aiosmtplib.send(
                    message,
                    hostname=config.host,
                    port=config.port,
                    username=config.user,
                    password=config.password,
                    use_tls=config.use_tls,
                    start_tls=False if config.use_tls else None,
                    timeout=config.timeout,
                ),
                timeout=config.timeout,
            )
        except (aiosmtplib.SMTPException, OSError, TimeoutError) as e:
            kind = classify_smtp_error(e)
            if kind == DeliveryError.TRANSPORT:
                logger.error(
                    "SMTP connection to %s:%s failed: %r", config.host, config.port, e
                )
            elif kind == DeliveryError.AUTH:
                logger.error("SMTP authentication failed for %s: %s", config.user, e)
            else:
                logger.error("SMTP delivery to %s failed (%s): %s", to_email, kind, e)
            raise DeliveryError(kind, detail=str(e)) from e

        logger.info("Email delivered to %s via %s:%s", to_email, config.host, config.port)
