"""
FastAPI Application Entry Point.

This is the main application file for the FleetCheck backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fleetcheck.app.core.config import settings
from fleetcheck.app.api.v1.router import router as api_v1_router
from fleetcheck.app.core.observability import ObservabilityMiddleware, configure_logging
from fleetcheck.app.db.session import engine, Base, AsyncSessionLocal
from fleetcheck.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from fleetcheck.app.services.templates import ensure_default_template

# Import models to ensure they are registered with Base
from fleetcheck.app.models.user import User
from fleetcheck.app.models.audit_log import AuditLog
from fleetcheck.app.models.vehicle import Vehicle, Trailer
from fleetcheck.app.models.assignment import Assignment
from fleetcheck.app.models.checklist import ChecklistTemplate, ChecklistSubmission

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    3. Seeds the default checklist template when none is active.
    """
    configure_logging(settings.log_level)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if settings.seed_default_template:
        async with AsyncSessionLocal() as session:
            await ensure_default_template(session)

    if not settings.archive_enabled:
        logger.warning("Archive integration not configured; reports will not be uploaded")

    logger.info(f"{settings.app_name} started")
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Driver assignment and daily vehicle checklist backend",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "archive_enabled": settings.archive_enabled,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the FleetCheck API",
        "docs": "/docs",
        "health": "/health",
    }
