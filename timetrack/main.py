# timetrack/main.py
"""
FastAPI application entry point.
"""

import os
import sys
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from timetrack import __version__
from timetrack.core.exceptions import (
    ApprovalError,
    NotFoundError,
    RangeError,
    RecalculationFailure,
    SegmentServiceError,
    StorageError,
    TimetrackError,
    ValidationWarning,
)
from timetrack.core.logging_config import get_logger, setup_logging
from timetrack.core.request_logging import RequestLoggingMiddleware
from timetrack.core.sentry_config import init_sentry
from timetrack.core.storage import load_calendar_rules
from timetrack.database.database import create_tables, get_db
from timetrack.routes.admin import router as admin_router
from timetrack.routes.intervals import router as intervals_router
from timetrack.routes.overrides import router as overrides_router
from timetrack.routes.reports import router as reports_router

# Setup logging before anything else logs
setup_logging()
logger = get_logger(__name__)

sentry_enabled = init_sentry()

ERROR_STATUS_CODES: list[tuple[type[TimetrackError], int]] = [
    (NotFoundError, 404),
    (RangeError, 422),
    (ValidationWarning, 409),
    (ApprovalError, 409),
    (RecalculationFailure, 503),
    (SegmentServiceError, 503),
    (StorageError, 500),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(
        "Application starting up",
        extra={
            "extra_fields": {
                "production": os.getenv("PRODUCTION", "false").lower() == "true",
                "python_version": sys.version,
            }
        },
    )

    try:
        rules = load_calendar_rules()
        logger.info(f"Calendar rules loaded (timezone {rules.timezone})")
    except Exception as e:
        logger.error(f"Calendar rules validation failed: {e}", exc_info=True)
        raise

    try:
        create_tables()
        logger.info("Database tables created/verified")
    except Exception as e:
        logger.error(f"Failed to create database tables: {e}", exc_info=True)
        raise

    yield

    logger.info("Application shutting down")


app = FastAPI(
    title="Timetrack",
    description="Work interval segmentation, approval and payroll totals",
    version=__version__,
    lifespan=lifespan,
)

IS_PRODUCTION = os.getenv("PRODUCTION", "false").lower() == "true"
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()]

if IS_PRODUCTION:
    if not CORS_ORIGINS:
        logger.warning(
            "Production mode but no CORS_ORIGINS set. CORS will block all cross-origin requests. "
            "Set CORS_ORIGINS environment variable if you need to allow specific origins."
        )
    allowed_origins = CORS_ORIGINS
    allowed_methods = ["GET", "POST", "PUT", "DELETE"]
    logger.info(f"CORS configured for production with origins: {allowed_origins}")
else:
    allowed_origins = ["*"]
    allowed_methods = ["*"]
    logger.info("CORS configured for development (permissive)")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=allowed_methods,
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(intervals_router)
app.include_router(overrides_router)
app.include_router(reports_router)
app.include_router(admin_router)


@app.exception_handler(TimetrackError)
async def timetrack_error_handler(request: Request, exc: TimetrackError):
    status_code = next((code for cls, code in ERROR_STATUS_CODES if isinstance(exc, cls)), 400)
    if status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    else:
        logger.info(f"{exc.code}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"code": exc.code, "detail": exc.message})


@app.get("/health", tags=["health"])
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint for monitoring.

    Returns 503 Service Unavailable if the database connection fails.
    """
    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "service": "timetrack",
            "version": __version__,
            "database": "connected",
        }
    except Exception as e:
        logger.error(f"Health check failed - database connection error: {e}", exc_info=True)
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "service": "timetrack",
                "database": "disconnected",
                "error": "Database connection failed",
            },
        ) from e
