"""Email rendering and SMTP delivery."""

from contactrelay.mail.renderer import EmailRenderer
from contactrelay.mail.sender import MailSender, build_message, classify_smtp_error

__all__ = ["EmailRenderer", "MailSender", "build_message", "classify_smtp_error"]
