"""FastAPI application factory and lifecycle management.

Run with ``uvicorn subscription_backend.main:create_app --factory`` or
``python -m subscription_backend``.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from subscription_backend import __version__
from subscription_backend.config import Config, get_config
from subscription_backend.logging_config import configure_logging, get_logger
from subscription_backend.middleware import ContextMiddleware, RequestLoggingMiddleware
from subscription_backend.services.auth import AuthenticationError
from subscription_backend.services.container import BillingServices, build_services

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log startup and shutdown."""
    services: BillingServices = app.state.services
    logger.info(
        "backend_started",
        version=__version__,
        store=type(services.store).__name__,
        plan=services.settings.plan.name,
    )
    try:
        yield
    finally:
        logger.info("backend_stopped")


def create_app(
    config: Optional[Config] = None,
    services: Optional[BillingServices] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Configuration (defaults to the global one, loaded from the environment)
        services: Prebuilt service bundle; built from config when omitted

    Raises:
        ConfigurationError: If required settings are missing or invalid
    """
    log_level = os.getenv("LOG_LEVEL", "INFO")
    json_format = os.getenv("LOG_FORMAT", "json").lower() == "json"
    configure_logging(log_level=log_level, json_format=json_format)

    if services is None:
        services = build_services(config or get_config())
    settings = services.settings

    app = FastAPI(
        title="Subscription Backend",
        description="Razorpay subscription billing with Firebase authentication",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    include_request_details = os.getenv("LOG_REQUEST_DETAILS", "true").lower() == "true"
    app.add_middleware(RequestLoggingMiddleware, include_request_details=include_request_details)
    app.add_middleware(ContextMiddleware)

    from subscription_backend.api.subscriptions import router as subscriptions_router
    from subscription_backend.api.webhooks import router as webhooks_router

    app.include_router(subscriptions_router)
    app.include_router(webhooks_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Liveness check."""
        return {
            "service": "subscription-backend",
            "status": "running",
            "version": __version__,
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Detailed health check."""
        current: BillingServices = app.state.services
        return {
            "status": "healthy",
            "store": type(current.store).__name__,
            "plan": current.settings.plan.name,
        }

    @app.exception_handler(AuthenticationError)
    async def authentication_exception_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        logger.info("authentication_failed", path=request.url.path, reason=str(exc))
        return JSONResponse(status_code=401, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("request_invalid", path=request.url.path, errors=len(exc.errors()))
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            exc_info=True,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    logger.info("app_created", endpoints=len(app.routes))
    return app
