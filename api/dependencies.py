"""
Dependency injection for the API.

Provides dependencies for configuration, database access, the rating
aggregator and the authenticated user.
"""

from functools import lru_cache
from typing import Dict, List, Optional, TypeVar

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from movie_reviews.aggregator import RatingAggregator
from movie_reviews.config import Config
from movie_reviews.database import DatabaseManager
from movie_reviews.errors import AuthenticationError, AuthorizationError
from movie_reviews.models import UserData
from movie_reviews.security import decode_access_token

T = TypeVar("T")

bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache()
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.from_env()


@lru_cache()
def get_db() -> DatabaseManager:
    """Get cached DatabaseManager instance."""
    config = get_config()
    return DatabaseManager(config)


def get_aggregator(
    db: DatabaseManager = Depends(get_db),
    config: Config = Depends(get_config),
) -> RatingAggregator:
    """Rating aggregator bound to the current stores."""
    return RatingAggregator(db.reviews, db.movies, config.summary_max_retries)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: DatabaseManager = Depends(get_db),
    config: Config = Depends(get_config),
) -> UserData:
    """
    Resolve the bearer token to a user.

    Raises:
        AuthenticationError: If the token is missing, invalid, expired, or
            its user no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Please login to access this resource")

    claims = decode_access_token(credentials.credentials, config)
    user = db.users.find_by_id(int(claims["sub"]))
    if user is None:
        raise AuthenticationError("User not found")
    return user


def require_admin(user: UserData = Depends(get_current_user)) -> UserData:
    """Allow only administrators through."""
    if not user.is_admin:
        raise AuthorizationError("Access denied. Admin only")
    return user


def paginate(
    items: List[T],
    total: int,
    page: int,
    per_page: int,
) -> Dict:
    """
    Create a paginated response structure.

    Args:
        items: List of items for current page
        total: Total number of items across all pages
        page: Current page number
        per_page: Items per page

    Returns:
        Dictionary with data and pagination metadata
    """
    total_pages = (total + per_page - 1) // per_page if per_page > 0 else 0
    return {
        "data": items,
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total_items": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
