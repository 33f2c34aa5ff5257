"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import get_settings
from shared.logger import configure_logging

from .dependencies import ServiceContainer, get_container, set_container
from .error_normalizer import ErrorNormalizer, register_error_handlers
from .middleware.request_context import RequestContextMiddleware
from .routes import auth, health, users

API_PREFIX = "/api/v1"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Opens the container's connections on startup and closes them on
    shutdown. Configuration errors raised here abort startup.
    """
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    container = get_container()
    await container.startup()
    logger.info(
        "Starting %s",
        settings.app_name,
        extra={
            "host": settings.host,
            "port": settings.port,
            "storage_backend": container.settings.storage_backend,
            "event_transport": container.settings.event_transport,
        },
    )
    try:
        yield
    finally:
        logger.info("Shutting down %s", settings.app_name)
        await container.shutdown()


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Preconfigured service container; the default one is
            built from settings on first use

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()
    if container is not None:
        set_container(container)

    app = FastAPI(
        title="scs-user API",
        description="User accounts, authentication and account verification",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=f"{API_PREFIX}/docs" if settings.debug else None,
        redoc_url=f"{API_PREFIX}/redoc" if settings.debug else None,
    )

    normalizer = ErrorNormalizer()
    register_error_handlers(app, normalizer)

    app.add_middleware(RequestContextMiddleware, normalizer=normalizer)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=["X-Request-Id"],
    )

    # Register routes
    app.include_router(health.router, prefix=API_PREFIX, tags=["health"])
    app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["auth"])
    app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["users"])

    return app


# Application instance for uvicorn
app = create_app()
