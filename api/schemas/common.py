"""
Common schemas shared across API endpoints.
"""

from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class MovieSort(str, Enum):
    """Movie sort options."""

    latest = "latest"
    oldest = "oldest"
    rating = "rating"
    views = "views"


class PaginationMeta(BaseModel):
    """Pagination metadata."""

    page: int = Field(..., ge=1, description="Current page number")
    per_page: int = Field(..., ge=1, description="Items per page")
    total_items: int = Field(..., ge=0, description="Total items across all pages")
    total_pages: int = Field(..., ge=0, description="Total number of pages")
    has_next: bool = Field(..., description="Whether there is a next page")
    has_prev: bool = Field(..., description="Whether there is a previous page")


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response."""

    data: List[T]
    pagination: PaginationMeta


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class SuccessResponse(BaseModel):
    """Standard success response."""

    success: bool = True
    message: str


class RecommendationCounts(BaseModel):
    """Number of reviews recommending a movie up and down."""

    up: int = 0
    down: int = 0


class MovieStats(BaseModel):
    """Rating summary derived from a movie's reviews."""

    average_rating: float = Field(..., description="Mean rating rounded to one decimal")
    recommendation_counts: RecommendationCounts
    review_count: int = 0
