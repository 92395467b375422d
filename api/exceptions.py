"""
Custom exceptions and error handlers for the API.

Every failure is returned as {"error": <kind>, "message": <text>} with an
optional "details" object. Domain errors raised by the aggregator and
stores are mapped to status codes here.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.logging_config import logger
from movie_reviews.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    MovieReviewsError,
    NotFoundError,
    StoreError,
    ValidationError,
)

DOMAIN_STATUS_CODES = {
    ValidationError: 400,
    AuthenticationError: 401,
    AuthorizationError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    StoreError: 500,
}

HTTP_ERROR_KINDS = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


def _debug_enabled(request: Request) -> bool:
    """Whether internal error text may be shown to clients."""
    from api.dependencies import get_config

    provider = request.app.dependency_overrides.get(get_config, get_config)
    try:
        return getattr(provider(), "api_debug", False) is True
    except ValueError:
        return False


def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content = {
        "error": error,
        "message": message,
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Give routing errors (unknown path, wrong method) the structured shape."""
    error = HTTP_ERROR_KINDS.get(exc.status_code, "http_error")
    return _error_response(exc.status_code, error, str(exc.detail))


async def domain_error_handler(request: Request, exc: MovieReviewsError) -> JSONResponse:
    """Map domain errors to status codes."""
    status_code = 500
    for error_type, code in DOMAIN_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break

    if isinstance(exc, StoreError):
        logger.error(f"Store failure on {request.method} {request.url.path}: {exc.__cause__ or exc}")
        details = {"cause": str(exc.__cause__)} if exc.__cause__ and _debug_enabled(request) else None
        return _error_response(status_code, exc.kind, exc.message, details)

    return _error_response(status_code, exc.kind, exc.message, exc.details)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as 400."""
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _error_response(400, "validation_error", "Invalid request", {"errors": errors})


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
    details = {"exception": repr(exc)} if _debug_enabled(request) else None
    return _error_response(500, "internal_error", "An unexpected error occurred", details)
