"""
Review-related Pydantic schemas.

Ratings and recommendations are range-checked by the rating aggregator,
so these schemas only describe shape. Ratings are left untyped so that
JSON booleans reach that check instead of being coerced to numbers.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from api.schemas.common import MovieStats


class ReviewSubmit(BaseModel):
    """Request to create or replace the caller's review of a movie."""

    movie_id: int = Field(..., description="Movie ID to review")
    rating: Any = Field(..., description="Rating value (0-5)")
    comment: Optional[str] = Field(None, max_length=5000, description="Optional review text")
    recommendation: Optional[str] = Field(None, description="'up', 'down' or 'none'")


class ReviewUpdate(BaseModel):
    """Partial update of a review. Omitted fields are unchanged."""

    rating: Any = Field(None, description="Rating value (0-5)")
    comment: Optional[str] = Field(None, max_length=5000, description="Empty string clears the comment")
    recommendation: Optional[str] = Field(None, description="'up', 'down' or 'none'")


class ReactionRequest(BaseModel):
    """Request to change only the recommendation on the caller's review."""

    movie_id: int = Field(..., description="Movie ID")
    recommendation: Optional[str] = Field(None, description="'up', 'down' or 'none'")


class ReviewResponse(BaseModel):
    """A review."""

    id: int
    user_id: int
    movie_id: int
    rating: float
    comment: Optional[str] = None
    recommendation: str = "none"
    username: Optional[str] = None
    movie_title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReviewWriteResponse(BaseModel):
    """Response after a review is submitted or updated."""

    message: str
    review: ReviewResponse
    movie_stats: MovieStats
    created: bool = False


class ReviewDeleteResponse(BaseModel):
    """Response after a review is deleted."""

    message: str = "Review deleted successfully"
    movie_id: int
    movie_stats: MovieStats


class UserReaction(BaseModel):
    """The caller's recommendation for one movie."""

    movie_id: int
    recommendation: str
