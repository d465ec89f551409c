"""FastAPI application factory for the contact relay.

This module wires the contact pipeline, the health and analytics endpoints,
the rate limiter's lifecycle and optional static file serving.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from contactrelay.api.analytics import router as analytics_router
from contactrelay.api.contact import ContactService
from contactrelay.api.contact import router as contact_router
from contactrelay.api.health import router as health_router
from contactrelay.api.models import ErrorResponse, error_response
from contactrelay.config import AppConfig, ConfigLoader
from contactrelay.core.analytics import SubmissionAnalytics
from contactrelay.core.rate_limiter import RateLimiter
from contactrelay.errors import ContactRelayError
from contactrelay.mail import EmailRenderer, MailSender
from contactrelay.notifications import AutoResponder, NotificationDispatcher, SlackNotifier
from contactrelay.version import __version__

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the service.

    Args:
        level: Log level name
    """
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Starts the rate limiter sweep and, on shutdown, lets outstanding
    notifications finish before stopping it.

    Args:
        app: FastAPI application instance

    Yields:
        None during application runtime
    """
    # Startup
    config: AppConfig = app.state.config
    logger.info("Starting %s", config.service.service_name)
    logger.info("Version: %s", __version__)
    if config.service.allowed_origin == "*":
        logger.warning("ALLOWED_ORIGIN is '*', contact form accepts any origin")

    service: ContactService = app.state.contact_service
    await service.limiter.start()

    yield

    # Shutdown
    await service.dispatcher.drain()
    await service.limiter.stop()
    logger.info("Shutting down %s", config.service.service_name)


def create_app(
    config: Optional[AppConfig] = None,
    config_loader: Optional[ConfigLoader] = None,
    sender: Optional[MailSender] = None,
    limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Process configuration, loaded from the environment if omitted
        config_loader: Loader used for the per-request SMTP configuration
        sender: SMTP sender, replaceable in tests
        limiter: Rate limiter, replaceable in tests

    Returns:
        Configured FastAPI application instance
    """
    if config_loader is None:
        config_loader = ConfigLoader()
    if config is None:
        config = config_loader.load()
    configure_logging(config.logging.level)

    if sender is None:
        sender = MailSender()
    renderer = EmailRenderer(site_name=config.service.site_name)
    dispatcher = NotificationDispatcher(
        [
            SlackNotifier(config.notifications),
            AutoResponder(renderer, sender, enabled=config.notifications.auto_response_enabled),
        ]
    )
    analytics = SubmissionAnalytics()

    app = FastAPI(
        title="Contact Relay API",
        description="""
        Contact form relay for a static landing page.

        ## Features

        - **Contact Form**: Validated, rate limited relay of messages to email
        - **Notifications**: Optional Slack webhook and auto-response
        - **Health**: Liveness and version
        - **Analytics**: Aggregate counts behind an admin key
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.config = config
    app.state.analytics = analytics
    app.state.contact_service = ContactService(
        service_config=config.service,
        config_loader=config_loader,
        limiter=limiter if limiter is not None else RateLimiter(config.rate_limit),
        renderer=renderer,
        sender=sender,
        dispatcher=dispatcher,
        analytics=analytics,
    )

    @app.exception_handler(ContactRelayError)
    async def contact_relay_error_handler(request: Request, exc: ContactRelayError) -> JSONResponse:
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Render framework HTTP errors (404, 405) in the same error shape."""
        body = ErrorResponse(error=str(exc.detail), status=exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(exclude_none=True),
            headers=getattr(exc, "headers", None),
        )

    # Include routers
    app.include_router(contact_router)
    app.include_router(health_router)
    app.include_router(analytics_router)

    static_dir = config.service.static_dir
    if static_dir:
        if os.path.isdir(static_dir):
            app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
            logger.info("Serving static files from %s", static_dir)
        else:
            logger.warning("STATIC_DIR %s is not a directory, static files disabled", static_dir)

    return app


def main() -> None:
    """Main entry point for running the API server.

    This function is used by the contactrelay-api command.
    """
    import uvicorn

    uvicorn.run(
        "contactrelay.api.app:create_app",
        factory=True,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8080")),
        log_level="info",
    )


if __name__ == "__main__":
    main()
