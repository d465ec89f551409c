"""HTTP API for the contact relay.

This module provides the FastAPI application and its routers.
"""

from contactrelay.api.app import create_app
from contactrelay.api.contact import router as contact_router

__all__ = ["create_app", "contact_router"]
