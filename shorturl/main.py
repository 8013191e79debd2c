"""Main application module.

This module builds the FastAPI application: it wires the configured
repository and the shortening service into the application state, includes
routes, and configures middleware and exception handlers.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from shorturl.api import build_api_router
from shorturl.core.config import Settings, settings as default_settings
from shorturl.core.logging import setup_logging
from shorturl.core.telemetry import instrument_app, setup_telemetry, shutdown_telemetry
from shorturl.middleware.logging import RequestLoggingMiddleware
from shorturl.repositories import RepositoryError, create_repository
from shorturl.services.encoder import Base62Encoder
from shorturl.services.exceptions import TokenSpaceExhaustedError
from shorturl.services.shortener import ShortenerService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the repository on startup and close it on shutdown."""
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT.value}")

    repository = create_repository(settings)
    await repository.open()
    logger.info(f"Using {repository.backend_name} storage")

    app.state.repository = repository
    app.state.shortener_service = ShortenerService(
        repository=repository,
        encoder=Base62Encoder(settings.TOKEN_LENGTH),
        base_url=settings.BASE_URL,
        max_attempts=settings.TOKEN_MAX_ATTEMPTS,
    )
    try:
        yield
    finally:
        logger.info(f"Shutting down {settings.APP_NAME}")
        await repository.close()
        shutdown_telemetry()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to build the application from; the module
            singleton by default

    Returns:
        FastAPI: The configured application
    """
    settings = settings or default_settings

    setup_logging(settings)
    setup_telemetry(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    if settings.REQUEST_LOGGING_ENABLED:
        app.add_middleware(RequestLoggingMiddleware)

    app.include_router(build_api_router(settings.API_PREFIX))
    register_exception_handlers(app, settings)
    instrument_app(app, settings)
    return app


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Map service and repository exceptions to HTTP responses."""

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors with detailed information."""
        logger.warning(f"Request validation error: {exc}")
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())}
        )

    @app.exception_handler(TokenSpaceExhaustedError)
    async def token_space_exhausted_handler(request: Request, exc: TokenSpaceExhaustedError):
        logger.error(f"Token generation exhausted for {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=503,
            content={"detail": str(exc)}
        )

    @app.exception_handler(RepositoryError)
    async def repository_exception_handler(request: Request, exc: RepositoryError):
        """Storage failures become 500 responses carrying an error id."""
        error_id = f"error-{time.time()}"
        logger.opt(exception=exc).error(
            f"Storage error in {request.method} {request.url.path} [{error_id}]"
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": str(exc) if settings.DEBUG else "Internal server error",
                "error_id": error_id,
            }
        )


app = create_app()
