"""Admin analytics endpoint."""

import hmac
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from contactrelay.core.analytics import AnalyticsSnapshot
from contactrelay.errors import MethodNotAllowedError, UnauthorizedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analytics"])

ADMIN_KEY_HEADER = "X-Admin-Key"


def check_admin_key(request: Request) -> None:
    """Require the admin key header.

    Raises:
        UnauthorizedError: If no admin key is configured or the header does
            not match it
    """
    expected = request.app.state.config.service.admin_key
    provided = request.headers.get(ADMIN_KEY_HEADER, "")
    if not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Unauthorized analytics request")
        raise UnauthorizedError()


@router.api_route(
    "/analytics",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    response_model=AnalyticsSnapshot,
    summary="Contact form analytics",
    description=f"Aggregate contact form counts. Requires the `{ADMIN_KEY_HEADER}` header.",
)
async def get_analytics(request: Request) -> JSONResponse:
    check_admin_key(request)
    if request.method != "GET":
        raise MethodNotAllowedError(allow="GET", public_message="Method not allowed")

    snapshot = request.app.state.analytics.snapshot()
    return JSONResponse(
        content=snapshot.model_dump(mode="json"),
        headers={"Access-Control-Allow-Origin": "*"},
    )
