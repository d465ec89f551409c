"""Contact form API endpoint.

This module implements the contact form relay: CORS and origin checks, rate
limiting, decoding, validation, SMTP delivery of the notification email and
the best-effort fan-out that follows it.
"""

import html
import logging
import time

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError
from starlette.formparsers import MultiPartException

from contactrelay.api.models import ContactFormRequest, ContactFormResponse, ErrorResponse, error_response
from contactrelay.config import ConfigLoader, ServiceConfig
from contactrelay.core.analytics import SubmissionAnalytics, country_for_ip
from contactrelay.core.client_ip import get_client_ip
from contactrelay.core.rate_limiter import RateLimiter
from contactrelay.core.validation import ContactSubmission, validate_submission
from contactrelay.errors import (
    ContactRelayError,
    DeliveryError,
    MethodNotAllowedError,
    OriginNotAllowedError,
    RequestDecodeError,
    ValidationError,
)
from contactrelay.mail import EmailRenderer, MailSender
from contactrelay.notifications import NotificationDispatcher

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api", tags=["contact"])

SUCCESS_MESSAGE = "Message sent successfully! We'll get back to you soon."

# Every method is routed here so that origin and rate checks run before the
# method check.
CONTACT_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def decode_submission(request: Request) -> ContactSubmission:
    """Decode a JSON or form-encoded contact body.

    Args:
        request: Incoming request

    Returns:
        Unsanitized submission; missing fields are empty strings

    Raises:
        RequestDecodeError: If the body is not a JSON object or form with
            string fields
    """
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith(FORM_CONTENT_TYPES):
            form = await request.form()
            data = {key: value for key, value in form.items() if isinstance(value, str)}
        else:
            data = await request.json()
    except (ValueError, UnicodeDecodeError, MultiPartException) as e:
        raise RequestDecodeError() from e

    if not isinstance(data, dict):
        raise RequestDecodeError()

    try:
        form_data = ContactFormRequest.model_validate(data)
    except PydanticValidationError as e:
        raise RequestDecodeError() from e

    return ContactSubmission(name=form_data.name, email=form_data.email, message=form_data.message)


class ContactService:
    """Request pipeline behind ``/api/contact``.

    Attributes:
        service_config: Allowed origin and site name
        config_loader: Source of the per-request SMTP configuration
        limiter: Per-IP rate limiter
        renderer: Email template renderer
        sender: SMTP sender
        dispatcher: Fan-out for Slack and the auto-response
        analytics: Attempt counters
    """

    def __init__(
        self,
        service_config: ServiceConfig,
        config_loader: ConfigLoader,
        limiter: RateLimiter,
        renderer: EmailRenderer,
        sender: MailSender,
        dispatcher: NotificationDispatcher,
        analytics: SubmissionAnalytics,
    ) -> None:
        self.service_config = service_config
        self.config_loader = config_loader
        self.limiter = limiter
        self.renderer = renderer
        self.sender = sender
        self.dispatcher = dispatcher
        self.analytics = analytics

    def cors_headers(self) -> dict[str, str]:
        """CORS headers sent on every contact response."""
        return {
            "Access-Control-Allow-Origin": self.service_config.allowed_origin,
            "Access-Control-Allow-Methods": "POST, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Max-Age": "86400",
        }

    def check_origin(self, request: Request) -> None:
        """Reject browsers posting from another site.

        Raises:
            OriginNotAllowedError: If an Origin header is present and differs
                from the allowed origin (unless that is ``*``)
        """
        allowed = self.service_config.allowed_origin
        origin = request.headers.get("origin")
        if origin and allowed != "*" and origin != allowed:
            raise OriginNotAllowedError()

    def subject_for(self, submission: ContactSubmission) -> str:
        return f"New contact message from {html.unescape(submission.name)} - {self.service_config.site_name}"

    async def process(self, request: Request, client_ip: str) -> str:
        """Run every step after the preflight short-circuit.

        Returns:
            Confirmation message for the user

        Raises:
            ContactRelayError: At the first failing step
        """
        self.check_origin(request)
        self.limiter.allow(client_ip)

        if request.method != "POST":
            raise MethodNotAllowedError()

        raw = await decode_submission(request)
        submission = validate_submission(raw)

        smtp_config = self.config_loader.load_smtp_config()

        body = self.renderer.render_notification(submission, client_ip)
        await self.sender.send(
            smtp_config,
            smtp_config.from_name,
            smtp_config.to_email,
            self.subject_for(submission),
            body,
            reply_to=submission.email,
        )

        self.dispatcher.dispatch(submission, client_ip, smtp_config)
        return SUCCESS_MESSAGE

    def record(self, client_ip: str, status_code: int) -> None:
        success = status_code == status.HTTP_200_OK
        self.analytics.record(
            success=success,
            country=country_for_ip(client_ip),
            error="" if success else f"HTTP {status_code}",
        )

    async def handle(self, request: Request) -> Response:
        """Handle one request to the contact endpoint.

        Args:
            request: Incoming request of any method

        Returns:
            Response carrying CORS headers
        """
        started = time.perf_counter()
        peer_host = request.client.host if request.client else None
        client_ip = get_client_ip(request.headers, peer_host)
        cors = self.cors_headers()

        logger.info("Contact request received - method: %s, ip: %s", request.method, client_ip)

        if request.method == "OPTIONS":
            return Response(status_code=status.HTTP_200_OK, headers=cors)

        try:
            message = await self.process(request, client_ip)

        except ValidationError as e:
            logger.warning("Contact form validation failed for %s: %s", client_ip, e.field_errors)
            self.record(client_ip, e.status_code)
            return error_response(e, headers=cors)

        except DeliveryError as e:
            logger.error("Contact email for %s not delivered (%s)", client_ip, e.kind)
            self.record(client_ip, e.status_code)
            return error_response(e, headers=cors)

        except ContactRelayError as e:
            logger.warning("Contact request from %s rejected: %s", client_ip, e.public_message)
            self.record(client_ip, e.status_code)
            return error_response(e, headers=cors)

        except Exception:
            # Unexpected errors
            logger.error("Contact form processing failed for %s", client_ip, exc_info=True)
            self.record(client_ip, status.HTTP_500_INTERNAL_SERVER_ERROR)
            return error_response(ContactRelayError(), headers=cors)

        self.record(client_ip, status.HTTP_200_OK)
        logger.info(
            "Contact email sent - ip: %s, duration: %.3fs",
            client_ip,
            time.perf_counter() - started,
        )
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=ContactFormResponse(message=message).model_dump(),
            headers=cors,
        )


@router.api_route(
    "/contact",
    methods=CONTACT_METHODS,
    response_model=ContactFormResponse,
    responses={
        200: {"description": "Message delivered"},
        400: {"model": ErrorResponse, "description": "Invalid input"},
        403: {"model": ErrorResponse, "description": "Origin not allowed"},
        405: {"model": ErrorResponse, "description": "Method not allowed"},
        429: {"model": ErrorResponse, "description": "Rate limited"},
        500: {"model": ErrorResponse, "description": "Server or delivery failure"},
        503: {"model": ErrorResponse, "description": "Mail server unavailable"},
    },
    summary="Submit the contact form",
    description="""
    Relay a contact form to the site owner's inbox.

    **Body:** JSON `{name, email, message}` or a form-encoded body with the same fields.

    **Validation Rules:**
    - Name: required, up to 100 characters, letters and spaces
    - Email: required, up to 254 characters, `local@domain.tld`
    - Message: 10-2000 characters

    **Rate Limiting:** a fixed number of messages per client IP per window;
    exceeding it blocks the IP for a while. `OPTIONS` is never limited.
    """,
)
async def submit_contact_form(request: Request) -> Response:
    """Submit a contact form.

    Args:
        request: FastAPI request object

    Returns:
        JSON confirmation or error, with CORS headers
    """
    service: ContactService = request.app.state.contact_service
    return await service.handle(request)
