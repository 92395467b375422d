"""
Domain errors for the review service.

Each error carries a stable ``kind`` that the HTTP layer maps to a
status code, plus a human-readable message.
"""

from typing import Any, Dict, Optional


class MovieReviewsError(Exception):
    """Base class for all domain errors."""

    kind = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(MovieReviewsError):
    """Malformed or out-of-range input. No state was changed."""

    kind = "validation_error"


class NotFoundError(MovieReviewsError):
    """Referenced movie, review or user does not exist."""

    kind = "not_found"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} with ID {identifier} not found",
            details={"resource": resource, "id": identifier},
        )


class AuthenticationError(MovieReviewsError):
    """Missing, invalid or expired credentials."""

    kind = "unauthorized"


class AuthorizationError(MovieReviewsError):
    """Requester is not allowed to touch the resource."""

    kind = "forbidden"


class ConflictError(MovieReviewsError):
    """Unique (user_id, movie_id) constraint rejected a review insert."""

    kind = "conflict"


class StoreError(MovieReviewsError):
    """Underlying data-store failure."""

    kind = "store_error"

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)
