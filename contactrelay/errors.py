"""Error taxonomy for the contact relay.

Every error that can reach a client derives from ContactRelayError and carries
the HTTP status and the message that is safe to show. Server-side details
(missing variable names, raw SMTP replies) stay in the logs.
"""

import math

from fastapi import status


class ContactRelayError(Exception):
    """Base class for errors rendered as a JSON error body."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, public_message: str | None = None) -> None:
        self.public_message = public_message or self.default_message
        super().__init__(self.public_message)

    @property
    def headers(self) -> dict[str, str]:
        """Extra response headers for this error."""
        return {}


class ConfigurationError(ContactRelayError):
    """Missing or invalid server configuration."""

    default_message = (
        "The server is not configured to send messages right now. "
        "Please contact the site administrator."
    )

    def __init__(self, missing: list[str] | None = None) -> None:
        self.missing = missing or []
        super().__init__()


class ValidationError(ContactRelayError):
    """Submitted contact data failed validation."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, field_errors: dict[str, str]) -> None:
        self.field_errors = field_errors
        super().__init__(next(iter(field_errors.values())))


class RequestDecodeError(ContactRelayError):
    """The request body could not be decoded."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = (
        "Could not decode the request body. Send a JSON object with "
        "name, email and message."
    )


class OriginNotAllowedError(ContactRelayError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Origin not allowed"


class MethodNotAllowedError(ContactRelayError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    default_message = "Method not allowed. Only POST is accepted."

    def __init__(self, allow: str = "POST, OPTIONS", public_message: str | None = None) -> None:
        self.allow = allow
        super().__init__(public_message)

    @property
    def headers(self) -> dict[str, str]:
        return {"Allow": self.allow}


class UnauthorizedError(ContactRelayError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class RateLimitError(ContactRelayError):
    """Client exceeded the contact form rate limit."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, retry_after: float) -> None:
        self.retry_after = max(1, math.ceil(retry_after))
        minutes = max(1, round(self.retry_after / 60))
        super().__init__(
            "Too many requests. Please try again in "
            f"{minutes} minute{'s' if minutes != 1 else ''}."
        )

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class DeliveryError(ContactRelayError):
    """SMTP delivery failed.

    Attributes:
        kind: One of ``transport``, ``auth``, ``rejected`` or ``generic``.
            Transport failures map to 503, everything else to 500.
    """

    TRANSPORT = "transport"
    AUTH = "auth"
    REJECTED = "rejected"
    GENERIC = "generic"

    default_message = "Could not send your message. Please try again later."

    def __init__(self, kind: str, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__()

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if self.kind == self.TRANSPORT:
            return status.HTTP_503_SERVICE_UNAVAILABLE
        return status.HTTP_500_INTERNAL_SERVER_ERROR


class NotificationError(Exception):
    """Best-effort fan-out failed. Logged, never surfaced to the client."""
