"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated apps with their own components.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from recipe_market.api.routes import community_router, health_router, history_router
from recipe_market.core.config import settings
from recipe_market.core.exception_handlers import setup_exception_handlers
from recipe_market.core.logging import configure_logging
from recipe_market.core.middleware import request_id_middleware
from recipe_market.services.container import ServiceContainer, build_services

logger = logging.getLogger(__name__)


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        services: Prebuilt components; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    container = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("app.startup", extra={"app_env": settings.app_env})
        try:
            yield
        finally:
            await app.state.services.aclose()
            logger.info("app.shutdown")

    app = FastAPI(
        title="Recipe Market API",
        description=(
            "Local-state services for a prompt recipe marketplace: cooldowns for "
            "community actions, a cached community listing with background "
            "refresh, and a bounded history of generated images."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = container

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(community_router, prefix="/v1")
    app.include_router(history_router, prefix="/v1")
    app.include_router(health_router)

    return app
