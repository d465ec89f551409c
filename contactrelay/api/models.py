"""Data models for API endpoints.

This module defines Pydantic models for request decoding and JSON responses.
"""

from datetime import datetime, timezone
from typing import Literal

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from contactrelay.errors import ContactRelayError, ValidationError


def utc_timestamp() -> str:
    """Current time as an RFC 3339 UTC string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ContactFormRequest(BaseModel):
    """Raw contact form body.

    Fields are not validated here beyond being strings; sanitizing and the
    content rules happen afterwards so every field gets a specific message.
    Missing fields decode as empty strings.

    Attributes:
        name: Full name of the person submitting the form
        email: Email address to reply to
        message: Message content
    """

    model_config = ConfigDict(extra="ignore")

    name: str = Field(default="", examples=["Jane Doe"])
    email: str = Field(default="", examples=["jane@example.com"])
    message: str = Field(default="", examples=["Hello, I am interested in your services."])


class ContactFormResponse(BaseModel):
    """Contact form success response.

    Attributes:
        message: Confirmation shown to the user
        status: HTTP status code of the response
        timestamp: RFC 3339 UTC timestamp of the response
    """

    message: str = Field(..., examples=["Message sent successfully! We'll get back to you soon."])
    status: int = Field(default=200)
    timestamp: str = Field(default_factory=utc_timestamp)


class ErrorResponse(BaseModel):
    """Error body returned by every endpoint.

    Attributes:
        error: Message safe to show the user
        status: HTTP status code of the response
        timestamp: RFC 3339 UTC timestamp of the response
        fields: Per-field validation messages, only for validation errors
    """

    error: str
    status: int
    timestamp: str = Field(default_factory=utc_timestamp)
    fields: dict[str, str] | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy"] = "healthy"
    timestamp: str = Field(default_factory=utc_timestamp)
    version: str
    service: str


def error_response(
    exc: ContactRelayError,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render a ContactRelayError as a JSON error response.

    Args:
        exc: The error to render
        headers: Extra headers (CORS), merged with the error's own headers

    Returns:
        JSONResponse carrying an ErrorResponse body
    """
    body = ErrorResponse(
        error=exc.public_message,
        status=exc.status_code,
        fields=exc.field_errors if isinstance(exc, ValidationError) else None,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
        headers={**(headers or {}), **exc.headers},
    )
