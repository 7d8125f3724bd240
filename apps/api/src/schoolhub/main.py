"""
SchoolHub API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Logging
- Database and Redis connections, gathered in the service container
- Error handlers
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from schoolhub.api import api_router
from schoolhub.core.config import Settings, get_settings
from schoolhub.core.container import Services, build_services
from schoolhub.core.database import create_engine, create_session_maker
from schoolhub.core.errors import ServiceError, service_error_handler, validation_error_handler
from schoolhub.core.policy import validate_policy_table
from schoolhub.core.redis import close_redis, init_redis

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to run with, loaded from the environment if omitted
        services: Prebuilt service container. When given, the lifespan does
            not open (or close) any connection of its own.
    """
    settings = settings or (services.settings if services else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Startup refuses to continue if the container's policy table is
        incomplete. Redis being down is tolerated: the rate limiter then
        fails open.
        """
        configure_logging(settings)

        if services is not None:
            validate_policy_table(services.policies)
            app.state.services = services
            yield
            return

        logger.info(f"Starting SchoolHub API in {settings.python_env} mode...")

        engine = create_engine(settings)
        redis = await init_redis(settings)
        try:
            container = build_services(settings, create_session_maker(engine), redis)
            validate_policy_table(container.policies)
            app.state.services = container
            logger.info("Service container ready")

            yield  # Application runs here
        finally:
            logger.info("Shutting down SchoolHub API...")
            await close_redis(redis)
            await engine.dispose()
            logger.info("Cleanup complete")

    app = FastAPI(
        title="SchoolHub API",
        description="Multi-tenant school management API",
        version="0.1.0",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    if services is not None:
        app.state.services = services

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(api_router, prefix="/api/v1")

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Liveness check for container orchestration."""
        return {"status": "healthy"}

    @app.get("/ready", tags=["Health"])
    async def readiness_check(request: Request):
        """Readiness check: the database must answer, Redis is reported only."""
        container: Services = request.app.state.services

        try:
            async with container.session_maker() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Readiness check failed: database unreachable: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "unavailable", "database": "error"},
            )

        return {
            "status": "ready",
            "database": "connected",
            "redis": "connected" if container.redis is not None else "unavailable",
        }

    return app


app = create_app()
