"""
FastAPI application for the movie review service.

Public browsing of movies and reviews, authenticated review writes,
and admin catalog management. Schema setup and maintenance are handled
via the CLI.
"""

import os
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.exceptions import (
    domain_error_handler,
    generic_exception_handler,
    http_exception_handler,
    request_validation_handler,
)
from api.logging_config import (
    logger,
    generate_request_id,
    level_for_status,
    set_request_id,
)
from api.routers import admin, auth, movies, reviews
from api.schemas.common import ErrorResponse
from movie_reviews import __version__
from movie_reviews.errors import MovieReviewsError

app = FastAPI(
    title="Movie Reviews API",
    description="REST API for movies, reviews and rating summaries",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# Register exception handlers
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(MovieReviewsError, domain_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Origins come from ALLOWED_ORIGINS (comma separated), "*" when unset
allowed_origins = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials="*" not in allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Log all HTTP requests with timing and response status."""
    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    set_request_id(request_id)

    # Skip logging for health checks and docs
    skip_paths = {"/health", "/", "/api/docs", "/api/redoc", "/api/openapi.json"}
    if request.url.path in skip_paths:
        return await call_next(request)

    start_time = time.time()
    client_ip = request.client.host if request.client else "unknown"

    logger.info(
        f"Request started: {request.method} {request.url.path} "
        f"from {client_ip}"
    )

    try:
        response = await call_next(request)
    except Exception as e:
        duration_ms = (time.time() - start_time) * 1000
        logger.error(
            f"Request failed: {request.method} {request.url.path} "
            f"duration={duration_ms:.2f}ms error={str(e)}"
        )
        raise

    duration_ms = (time.time() - start_time) * 1000
    logger.log(
        level_for_status(response.status_code),
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration_ms:.2f}ms",
    )

    # Add request ID to response headers for debugging
    response.headers["X-Request-ID"] = request_id
    return response


# Every router documents the shared error shape
error_responses = {code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 500)}

app.include_router(auth.router, prefix="/api/v1", tags=["Auth"], responses=error_responses)
app.include_router(movies.router, prefix="/api/v1", tags=["Movies"], responses=error_responses)
app.include_router(reviews.router, prefix="/api/v1", tags=["Reviews"], responses=error_responses)
app.include_router(admin.router, prefix="/api/v1", tags=["Admin"], responses=error_responses)


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint points at the docs."""
    return {
        "message": "Movie Reviews API",
        "docs": "/api/docs",
        "redoc": "/api/redoc",
    }


@app.get("/health", include_in_schema=False)
async def health():
    """Simple health check endpoint."""
    return {"status": "ok"}
