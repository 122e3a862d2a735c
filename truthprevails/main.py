# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Main FastAPI application for the Truth Prevails API."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from truthprevails import __version__
from truthprevails.api import auth, files, status, tamper_detection, verification
from truthprevails.context import AppContext
from truthprevails.shared.config import Settings, settings as default_settings
from truthprevails.shared.errors import TruthPrevailsError

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events.

    Handles startup and shutdown tasks.
    """
    ctx: AppContext = app.state.context
    logger.info(f"Starting {ctx.settings.service_name} ({ctx.settings.environment})")

    if ctx.settings.database_auto_create:
        await ctx.database.create_tables()
        logger.info("Database tables ready")

    for feature, state in ctx.feature_status().items():
        if state["available"]:
            logger.info(f"Feature {feature}: available ({state.get('backend') or 'configured'})")
        else:
            logger.warning(f"Feature {feature}: unavailable ({state['reason']})")

    yield  # Application is running

    # Shutdown
    logger.info(f"Shutting down {ctx.settings.service_name}")
    await ctx.close()


def _field_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": ".".join(loc) or None, "message": message})
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TruthPrevailsError)
    async def handle_service_error(request: Request, exc: TruthPrevailsError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning(f"{request.method} {request.url.path}: {exc.message} ({exc.details})")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "errors": _field_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(exc)},
        )


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration (defaults to the environment)
        context: Pre-built collaborators (tests)
    """
    if context is None:
        settings = settings or default_settings
        configure_logging(settings)
        context = AppContext.from_settings(settings)
    settings = context.settings

    app = FastAPI(
        title="Truth Prevails API",
        description="File notarization: content hashing, hash registry, public verification and tamper heuristics",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_origins_list != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router)
    app.include_router(files.router)
    app.include_router(verification.router)
    app.include_router(tamper_detection.router)
    app.include_router(status.router)

    @app.get("/")
    async def root():
        """Root endpoint with basic info."""
        return {
            "service": settings.service_name,
            "version": __version__,
            "environment": settings.environment,
            "registryBackend": settings.registry_backend,
        }

    return app


def main():
    """Main entry point."""
    uvicorn.run(
        "truthprevails.main:create_app",
        factory=True,
        host=default_settings.api_host,
        port=default_settings.api_port,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
