"""Sanitization and validation of contact form submissions.

Sanitizing happens before validation so the rules see exactly the text that
ends up in the HTML email. Every field is evaluated; for each field the first
failing rule is reported, and fields are reported in name, email, message
order.
"""

import re

from pydantic import BaseModel, ConfigDict

from contactrelay.errors import ValidationError

MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 254
MIN_MESSAGE_LENGTH = 10
MAX_MESSAGE_LENGTH = 2000

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# Letters (accented included), spaces, hyphens, and apostrophes in escaped form.
NAME_PATTERN = re.compile(r"^(?:[^\W\d_]| |-|&#x27;)+$")

# C0 and C1 control characters, except tab and newline.
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")

# An ampersand that does not already start a character reference.
BARE_AMPERSAND = re.compile(r"&(?!(?:[a-zA-Z][a-zA-Z0-9]*|#[0-9]+|#[xX][0-9a-fA-F]+);)")

HTML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
}


class ContactSubmission(BaseModel):
    """A contact form submission.

    Attributes:
        name: Submitter's name
        email: Submitter's email address
        message: Message body
    """

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    message: str


def escape_html(text: str) -> str:
    """HTML-escape text, leaving existing character references intact."""
    text = BARE_AMPERSAND.sub("&amp;", text)
    for char, entity in HTML_ESCAPES.items():
        text = text.replace(char, entity)
    return text


def sanitize(text: str) -> str:
    """Strip control characters, HTML-escape, and trim.

    Newlines and tabs survive. Applying it twice gives the same result as
    applying it once.
    """
    text = CONTROL_CHARS.sub("", text)
    text = escape_html(text)
    return text.strip()


def _check_name(name: str) -> str | None:
    if not name:
        return "Name is required"
    if len(name) > MAX_NAME_LENGTH:
        return f"Name cannot exceed {MAX_NAME_LENGTH} characters"
    if not NAME_PATTERN.match(name):
        return "Name can only contain letters and spaces"
    return None


def _check_email(email: str) -> str | None:
    if not email:
        return "Email is required"
    if len(email) > MAX_EMAIL_LENGTH:
        return f"Email cannot exceed {MAX_EMAIL_LENGTH} characters"
    if not EMAIL_PATTERN.match(email):
        return "Email format is not valid"
    return None


def _check_message(message: str) -> str | None:
    if not message:
        return "Message is required"
    if len(message) < MIN_MESSAGE_LENGTH:
        return f"Message must be at least {MIN_MESSAGE_LENGTH} characters"
    if len(message) > MAX_MESSAGE_LENGTH:
        return f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters"
    return None


def validate_submission(raw: ContactSubmission) -> ContactSubmission:
    """Sanitize and validate a raw submission.

    Args:
        raw: Submission exactly as decoded from the request

    Returns:
        A new submission holding the sanitized values

    Raises:
        ValidationError: If any field fails; ``field_errors`` holds one message
            per failing field
    """
    cleaned = ContactSubmission(
        name=sanitize(raw.name),
        email=sanitize(raw.email),
        message=sanitize(raw.message),
    )

    checks = (
        ("name", _check_name(cleaned.name)),
        ("email", _check_email(cleaned.email)),
        ("message", _check_message(cleaned.message)),
    )
    field_errors = {field: error for field, error in checks if error}
    if field_errors:
        raise ValidationError(field_errors)

    return cleaned
