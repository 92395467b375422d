"""
Admin endpoints.

Everything except login requires an administrator's bearer token.
"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_aggregator, get_config, get_db, require_admin
from api.schemas.common import SuccessResponse
from api.schemas.user import (
    DashboardResponse,
    LoginRequest,
    StatsResponse,
    TokenResponse,
    UserListResponse,
    UserPublic,
)
from movie_reviews.aggregator import RatingAggregator
from movie_reviews.config import Config
from movie_reviews.database import DatabaseManager
from movie_reviews.errors import AuthenticationError, NotFoundError, ValidationError
from movie_reviews.models import UserData
from movie_reviews.security import create_access_token, verify_password

router = APIRouter()
logger = logging.getLogger("api.admin")

RECENT_LIMIT = 5


@router.post("/admin/login", response_model=TokenResponse)
def admin_login(
    request: LoginRequest,
    db: DatabaseManager = Depends(get_db),
    config: Config = Depends(get_config),
):
    """Login restricted to administrator accounts."""
    user = db.users.find_by_email(request.email.strip().lower())
    if user is None or not user.is_admin or not verify_password(request.password, user.password_hash):
        logger.warning("Admin login failed: invalid credentials")
        raise AuthenticationError("Invalid admin credentials")

    logger.info(f"Admin logged in: id={user.id}")
    return TokenResponse(
        token=create_access_token(user, config),
        user=UserPublic(**user.to_public_dict()),
    )


@router.get("/admin/users", response_model=UserListResponse)
def list_users(
    admin: UserData = Depends(require_admin),
    db: DatabaseManager = Depends(get_db),
):
    """All users, newest first."""
    return UserListResponse(users=[u.to_public_dict() for u in db.users.list_all()])


@router.delete("/admin/users/{user_id}", response_model=SuccessResponse)
def delete_user(
    user_id: int,
    admin: UserData = Depends(require_admin),
    db: DatabaseManager = Depends(get_db),
    aggregator: RatingAggregator = Depends(get_aggregator),
):
    """
    Delete a user and their reviews.

    Summaries of every movie the user reviewed are recomputed.
    """
    if user_id == admin.id:
        raise ValidationError("Administrators cannot delete their own account")
    if db.users.find_by_id(user_id) is None:
        raise NotFoundError("User", user_id)

    movie_ids = aggregator.remove_user_reviews(user_id)
    db.users.delete(user_id)
    logger.info(f"User deleted: id={user_id} movies_recomputed={len(movie_ids)} by admin_id={admin.id}")
    return SuccessResponse(message="User deleted successfully")


@router.get("/admin/stats", response_model=StatsResponse)
def get_stats(
    admin: UserData = Depends(require_admin),
    db: DatabaseManager = Depends(get_db),
):
    """Catalog totals."""
    return StatsResponse(
        user_count=db.users.count(),
        movie_count=db.movies.count(),
        review_count=db.reviews.count(),
    )


@router.get("/admin/dashboard", response_model=DashboardResponse)
def get_dashboard(
    admin: UserData = Depends(require_admin),
    db: DatabaseManager = Depends(get_db),
):
    """Totals plus the most recent users and reviews."""
    return DashboardResponse(
        total_users=db.users.count(),
        total_movies=db.movies.count(),
        total_reviews=db.reviews.count(),
        recent_users=[u.to_public_dict() for u in db.users.recent(RECENT_LIMIT)],
        recent_reviews=[r.to_dict() for r in db.reviews.recent(RECENT_LIMIT)],
    )
