from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build a fresh app with its own database engine.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import admin_router, health_router, submissions_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.db.session import dispose_engine, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create tables on startup and release the engine on shutdown."""
    await init_db()
    logger.info(
        "app.started",
        extra={
            "app_env": settings.app_env,
            "rate_limit_backend": settings.app.rate_limit_backend,
            "rate_limit_strategy": settings.app.rate_limit_strategy,
        },
    )
    try:
        yield
    finally:
        await dispose_engine()
        logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Spot Vigilante API",
        description=(
            "Citizen incident reporting API. Anyone can submit a report with photos "
            "and a video link (rate limited per client address); an administrator "
            "reviews reports through the PENDING, APPROVED, REJECTED and "
            "INVESTIGATING statuses."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(submissions_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags)
    apply_openapi_customizations(app)

    return app
