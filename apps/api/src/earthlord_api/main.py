"""FastAPI application entry point."""

import logging
import sys
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import DataError, IntegrityError, OperationalError

from earthlord_api.config import settings
from earthlord_api.database import dispose_engine
from earthlord_api.errors import EarthLordError, PersistenceError
from earthlord_api.routes import (
    buildings_router,
    inventory_router,
    templates_router,
    territories_router,
    tracking_router,
)
from earthlord_shared import GeometryError, InsufficientPoints

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure logging for the API process."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("EarthLord API starting...")
    yield
    await dispose_engine()


app = FastAPI(
    title="EarthLord API",
    description="Territory and construction backend for EarthLord",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Territory boundaries and building lists compress well
app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(tracking_router)
app.include_router(territories_router)
app.include_router(templates_router)
app.include_router(buildings_router)
app.include_router(inventory_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "earthlord-api"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.exception_handler(EarthLordError)
async def domain_error_handler(request: Request, exc: EarthLordError):
    """Map domain errors to their HTTP status.

    Client-correctable errors (4xx) log at info; storage failures at error.
    """
    if exc.status_code >= 500:
        logger.error(
            "Domain error on %s %s: %s\n%s",
            request.method,
            request.url,
            exc.detail,
            traceback.format_exc(),
        )
    else:
        logger.info(
            "Rejected %s %s: %s %s", request.method, request.url, exc.error_type, exc.detail
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(GeometryError)
async def geometry_error_handler(request: Request, exc: GeometryError):
    """Handle invalid or degenerate boundaries.

    Returns 422 Unprocessable Entity.
    """
    logger.info("Geometry error on %s %s: %s", request.method, request.url, exc)
    content = {"detail": str(exc), "error_type": type(exc).__name__}
    if isinstance(exc, InsufficientPoints):
        content["required"] = exc.required
    return JSONResponse(status_code=422, content=content)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Handle database integrity errors (unique constraint, foreign key violations).

    Returns 409 Conflict for constraint violations.
    """
    logger.warning(
        "Database integrity error on %s %s: %s", request.method, request.url, exc.orig
    )
    error_msg = str(exc.orig) if exc.orig else str(exc)

    if "foreign key" in error_msg.lower():
        detail = "Referenced resource does not exist"
    elif "unique" in error_msg.lower() or "duplicate" in error_msg.lower():
        detail = "Resource already exists"
    elif "check" in error_msg.lower():
        detail = "Resource balance would go negative"
    else:
        detail = "Database constraint violation"

    return JSONResponse(
        status_code=409,
        content={"detail": detail, "error_type": "IntegrityError"},
    )


@app.exception_handler(OperationalError)
async def operational_error_handler(request: Request, exc: OperationalError):
    """Handle database operational errors (connection issues, timeouts).

    Surfaced as an opaque PersistenceError with 503 Service Unavailable.
    """
    logger.error(
        "Database operational error on %s %s: %s\n%s",
        request.method,
        request.url,
        exc,
        traceback.format_exc(),
    )
    error = PersistenceError("Database temporarily unavailable")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(DataError)
async def data_error_handler(request: Request, exc: DataError):
    """Handle database data errors (invalid data types, out of range values).

    Returns 400 Bad Request for invalid data.
    """
    logger.warning("Database data error on %s %s: %s", request.method, request.url, exc.orig)
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid data format for database field",
            "error_type": "DataError",
        },
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors that occur in business logic.

    FastAPI handles request validation itself; this catches errors raised
    while building response models or inside services.
    """
    logger.warning("Validation error on %s %s: %s", request.method, request.url, exc)
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Data validation failed",
            "errors": exc.errors(include_url=False, include_context=False),
            "error_type": "ValidationError",
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled errors and return a JSON 500 so CORS headers still apply."""
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method,
        request.url,
        exc,
        traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_type": type(exc).__name__,
        },
    )
