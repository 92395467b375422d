"""Pydantic schemas for API request and response validation."""

from api.schemas.common import (
    ErrorResponse,
    MovieSort,
    MovieStats,
    PaginatedResponse,
    PaginationMeta,
    RecommendationCounts,
    SuccessResponse,
)
from api.schemas.movie import (
    Genre,
    GenreListResponse,
    MovieCreate,
    MovieResponse,
    MovieUpdate,
)
from api.schemas.review import (
    ReactionRequest,
    ReviewDeleteResponse,
    ReviewResponse,
    ReviewSubmit,
    ReviewUpdate,
    ReviewWriteResponse,
    UserReaction,
)
from api.schemas.user import (
    AdminCheckResponse,
    DashboardResponse,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    StatsResponse,
    TokenResponse,
    UserListResponse,
    UserPublic,
)

__all__ = [
    # Common
    "ErrorResponse",
    "MovieSort",
    "MovieStats",
    "PaginatedResponse",
    "PaginationMeta",
    "RecommendationCounts",
    "SuccessResponse",
    # Movie
    "Genre",
    "GenreListResponse",
    "MovieCreate",
    "MovieResponse",
    "MovieUpdate",
    # Review
    "ReactionRequest",
    "ReviewDeleteResponse",
    "ReviewResponse",
    "ReviewSubmit",
    "ReviewUpdate",
    "ReviewWriteResponse",
    "UserReaction",
    # User
    "AdminCheckResponse",
    "DashboardResponse",
    "LoginRequest",
    "ProfileUpdate",
    "RegisterRequest",
    "StatsResponse",
    "TokenResponse",
    "UserListResponse",
    "UserPublic",
]
