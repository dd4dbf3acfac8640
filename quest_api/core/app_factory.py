"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build isolated instances.
"""

from __future__ import annotations

from fastapi import FastAPI

from quest_api.api.routes import account_router, checkout_router, health_router, waitlist_router
from quest_api.core.config import settings
from quest_api.core.exception_handlers import setup_exception_handlers
from quest_api.core.logging import configure_logging
from quest_api.core.middleware import request_id_middleware
from quest_api.core.openapi import apply_openapi_customizations


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Quest Learning API",
        description=(
            "Protected server-side handlers for the Quest Learning platform: "
            "waitlist signup, premium checkout and current-user lookup. Every "
            "handler is rate limited per IP and/or per user and validates its "
            "body against a strict whitelist schema."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(waitlist_router, prefix="/v1")
    app.include_router(checkout_router, prefix="/v1")
    app.include_router(account_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
