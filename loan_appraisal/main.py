"""
Main FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from loan_appraisal.api import router as api_router
from loan_appraisal.calculations.errors import (
    AppraisalError,
    ExperimentTooLargeError,
    InvalidInputError,
)
from loan_appraisal.config import get_settings
from loan_appraisal.db.database import init_db

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"{settings.app_name} started ({settings.app_env})")
    yield


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Loan appraisal and scenario experimentation service",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    """Domain invariant violations name the offending field."""
    return JSONResponse(
        status_code=422,
        content={"detail": exc.message, "field": exc.field, "error": type(exc).__name__},
    )


@app.exception_handler(ExperimentTooLargeError)
async def experiment_too_large_handler(request: Request, exc: ExperimentTooLargeError):
    return JSONResponse(
        status_code=413,
        content={
            "detail": str(exc),
            "variant_count": exc.variant_count,
            "limit": exc.limit,
            "error": type(exc).__name__,
        },
    )


@app.exception_handler(AppraisalError)
async def appraisal_error_handler(request: Request, exc: AppraisalError):
    logger.error(f"Unhandled appraisal error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "version": "0.1.0",
        "engine_version": settings.engine_version,
    }
