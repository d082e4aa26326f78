"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.redis_client import close_redis_client
from app.api.routes import health_router, self_router, users_router
from app.core.config import settings
from app.core.database import init_db
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if settings.database.auto_create:
        init_db()
    logger.info(
        "app.startup",
        extra={
            "service_name": settings.app.service_name,
            "instance_id": settings.app.instance_id,
            "app_env": settings.app_env,
            "rate_limit_backend": settings.rate_limit.backend,
        },
    )
    try:
        yield
    finally:
        close_redis_client()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="User Service",
        description=(
            "User account service: registration, login issuing a signed bearer "
            "token, and authenticated profile read/update. Requests under /v1 "
            "are throttled by a fixed-window rate limiter backed by Redis."
        ),
        version="1.2.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(users_router, prefix="/v1")
    app.include_router(self_router, prefix="/v1")

    apply_openapi_customizations(app)

    return app
