"""
Movie-related Pydantic schemas.

Admin create/update bodies reject the summary fields; those are only
written by the rating aggregator.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from api.schemas.common import RecommendationCounts


class MovieCreate(BaseModel):
    """Request to add a movie to the catalog."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    poster: str = ""
    backdrop: str = ""
    year: Optional[int] = Field(None, ge=1870, le=2100)
    runtime: Optional[str] = Field(None, description="Display runtime, e.g. '142 min'")
    director: Optional[str] = None
    cast: List[str] = Field(default_factory=list)
    genres: List[str] = Field(default_factory=list)
    trending: bool = False
    release_date: Optional[date] = None


class MovieUpdate(BaseModel):
    """Partial update of a movie's catalog fields."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    poster: Optional[str] = None
    backdrop: Optional[str] = None
    year: Optional[int] = Field(None, ge=1870, le=2100)
    runtime: Optional[str] = None
    director: Optional[str] = None
    cast: Optional[List[str]] = None
    genres: Optional[List[str]] = None
    trending: Optional[bool] = None
    release_date: Optional[date] = None


class MovieResponse(BaseModel):
    """Movie with its rating summary."""

    id: int
    title: str
    description: str
    poster: str = ""
    backdrop: str = ""
    year: Optional[int] = None
    runtime: Optional[str] = None
    director: Optional[str] = None
    cast: List[str] = Field(default_factory=list)
    genres: List[str] = Field(default_factory=list)
    trending: bool = False
    views: int = 0
    release_date: Optional[date] = None
    average_rating: float = 0.0
    recommendation_counts: RecommendationCounts = Field(default_factory=RecommendationCounts)
    review_ids: List[int] = Field(default_factory=list)


class Genre(BaseModel):
    """Genre with number of movies."""

    name: str
    movie_count: int = Field(..., ge=0)


class GenreListResponse(BaseModel):
    """List of genres."""

    data: List[Genre]
