"""FastAPI application definition."""

from __future__ import annotations

from typing import Annotated, Any

import asyncpg
import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from darkhorse import __version__
from darkhorse.adapters.db.app_db import AppDatabase
from darkhorse.core.exceptions import DarkhorseError

from .deps import get_app_db, lifespan, settings
from .responses import error_body
from .routes import api_router

logger = structlog.get_logger()

app = FastAPI(
    title="darkhorse-auth",
    description="Dark Horse 3PL authentication, invitations and store management",
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,  # Prevent 307 redirects that lose auth headers
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Token-Expires-Soon"],
)


@app.exception_handler(DarkhorseError)
async def darkhorse_error_handler(request: Request, exc: DarkhorseError) -> JSONResponse:
    """Render domain errors with their own status code."""
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            path=request.url.path,
            error=exc.message,
            details=exc.details,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.message, exc.details or None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as 400 with field errors."""
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_body(request, "Validation failed", {"errors": details}),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (unknown routes, bad methods) in the same envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render anything unexpected as 500. Tracebacks stay out of production bodies."""
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return JSONResponse(
        status_code=500,
        content=error_body(
            request,
            "Internal server error",
            exc=None if settings.is_production else exc,
        ),
    )


# Include API routes
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check(
    app_db: Annotated[AppDatabase, Depends(get_app_db)],
) -> JSONResponse:
    """Health check endpoint."""
    content: dict[str, Any] = {"status": "healthy", "database": "connected"}
    try:
        ok = await app_db.ping()
    except (asyncpg.PostgresError, OSError, RuntimeError) as e:
        logger.warning("health_check_database_failed", error=str(e))
        ok = False

    if not ok:
        content = {"status": "unhealthy", "database": "disconnected"}
        return JSONResponse(status_code=503, content=content)
    return JSONResponse(status_code=200, content=content)
