"""
User and authentication Pydantic schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from api.schemas.review import ReviewResponse

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


class RegisterRequest(BaseModel):
    """Request to create an account."""

    username: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    """Email and password login."""

    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    """Editable profile fields."""

    username: str = Field(..., min_length=3, max_length=100)


class UserPublic(BaseModel):
    """Profile fields safe to return to clients."""

    id: int
    username: str
    email: str
    is_admin: bool = False
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    """Bearer token plus the profile it belongs to."""

    token: str
    token_type: str = "bearer"
    user: UserPublic


class AdminCheckResponse(BaseModel):
    """Whether the caller is an administrator."""

    is_admin: bool


class UserListResponse(BaseModel):
    """All users, newest first."""

    success: bool = True
    users: List[UserPublic]


class StatsResponse(BaseModel):
    """Catalog totals."""

    user_count: int
    movie_count: int
    review_count: int


class DashboardResponse(BaseModel):
    """Totals plus the most recent users and reviews."""

    total_users: int
    total_movies: int
    total_reviews: int
    recent_users: List[UserPublic]
    recent_reviews: List[ReviewResponse]
