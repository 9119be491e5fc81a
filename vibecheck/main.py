"""
Main application for VibeCheck.

This module sets up the FastAPI application with CORS and the API routers.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from vibecheck.core.config import settings
from vibecheck.core.logging import logger
from vibecheck.core.database import init_db
from vibecheck.core.exceptions import DomainError, UpstreamUnavailable, ValidationError
from vibecheck.api.deps import close_stores
from vibecheck.api.health import router as health_router
from vibecheck.api.models import router as models_router
from vibecheck.api.reports import router as reports_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan events for the FastAPI application.

    Args:
        app: FastAPI application.
    """
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} (store: {settings.STORE_BACKEND})")

    if settings.STORE_BACKEND == "sql":
        logger.info("Initializing database")
        init_db()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.PROJECT_NAME}")
    await close_stores()


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.DESCRIPTION,
    version=settings.VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        Basic API information.
    """
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "description": settings.DESCRIPTION
    }


# Error handlers
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """
    Rejected report submission.

    Returns:
        422 response naming the offending field.
    """
    logger.info(f"Rejected report: {exc}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.message, "field": exc.field}
    )


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """
    Unknown enum value reached the scoring code; this is a bug, not bad input.
    """
    logger.error(f"Domain error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)}
    )


@app.exception_handler(UpstreamUnavailable)
async def upstream_error_handler(request: Request, exc: UpstreamUnavailable):
    """
    Report store or analytics backend failure.

    Returns:
        503 response the client may retry.
    """
    logger.error(f"Upstream unavailable: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc), "retryable": exc.retryable}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Args:
        request: Request that caused the exception.
        exc: Exception that was raised.

    Returns:
        JSON response with error details.
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


# Include routers
app.include_router(
    reports_router,
    prefix="/api/reports",
    tags=["Reports"]
)

app.include_router(
    models_router,
    prefix="/api/models",
    tags=["Models"]
)

app.include_router(
    health_router,
    prefix="/api/health",
    tags=["Health"]
)


# Run the application
if __name__ == "__main__":
    uvicorn.run(
        "vibecheck.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG
    )
