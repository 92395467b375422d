"""
Data models for the review service.

Provides dataclasses for type-safe data handling between the stores,
the rating aggregator and the API layer.
"""

import json
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from .errors import ValidationError

MIN_RATING = 0
MAX_RATING = 5


class Recommendation(str, Enum):
    """Tri-state recommendation signal, distinct from the numeric rating."""

    up = "up"
    down = "down"
    none = "none"

    @classmethod
    def parse(cls, value: Any) -> "Recommendation":
        """Normalize request/database values; empty and null mean none."""
        if isinstance(value, cls):
            return value
        if value is None or value == "":
            return cls.none
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(
                "Recommendation must be 'up', 'down' or 'none'",
                details={"recommendation": value},
            )

    def to_db(self) -> Optional[str]:
        """Stored as NULL when there is no recommendation."""
        return None if self is Recommendation.none else self.value


def validate_rating(value: Any) -> float:
    """
    Check that a rating is a number in [0, 5].

    Numeric strings are accepted since form posts deliver them that way.

    Raises:
        ValidationError: If the value is missing, non-numeric or out of range.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("Rating must be between 0 and 5", details={"rating": value})
    try:
        rating = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Rating must be between 0 and 5", details={"rating": value})
    if math.isnan(rating) or rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationError("Rating must be between 0 and 5", details={"rating": value})
    return rating


def normalize_comment(value: Optional[str]) -> Optional[str]:
    """Strip comments and store empty ones as no comment."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _load_json_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    try:
        loaded = json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return []
    return loaded if isinstance(loaded, list) else []


@dataclass(frozen=True)
class ReviewInput:
    """Validated body of a review submission."""

    rating: float
    comment: Optional[str] = None
    recommendation: Recommendation = Recommendation.none

    @classmethod
    def build(
        cls,
        rating: Any,
        comment: Optional[str] = None,
        recommendation: Any = None,
    ) -> "ReviewInput":
        return cls(
            rating=validate_rating(rating),
            comment=normalize_comment(comment),
            recommendation=Recommendation.parse(recommendation),
        )


@dataclass(frozen=True)
class ReviewPatch:
    """
    Validated partial update of a review.

    A field left as None is not changed. An empty comment clears the
    stored comment.
    """

    rating: Optional[float] = None
    comment: Optional[str] = None
    recommendation: Optional[Recommendation] = None

    @classmethod
    def build(
        cls,
        rating: Any = None,
        comment: Optional[str] = None,
        recommendation: Any = None,
    ) -> "ReviewPatch":
        return cls(
            rating=validate_rating(rating) if rating is not None else None,
            comment=comment.strip() if comment is not None else None,
            recommendation=Recommendation.parse(recommendation) if recommendation is not None else None,
        )

    def to_fields(self) -> dict:
        """Column values for the review store update."""
        fields = {}
        if self.rating is not None:
            fields["rating"] = self.rating
        if self.comment is not None:
            fields["comment"] = self.comment or None
        if self.recommendation is not None:
            fields["recommendation"] = self.recommendation.to_db()
        return fields

    def is_empty(self) -> bool:
        return not self.to_fields()


@dataclass
class ReviewData:
    """A user's review of one movie."""

    id: int
    user_id: int
    movie_id: int
    rating: float
    comment: Optional[str] = None
    recommendation: Recommendation = Recommendation.none
    username: Optional[str] = None
    movie_title: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "movie_id": self.movie_id,
            "rating": self.rating,
            "comment": self.comment,
            "recommendation": self.recommendation.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if self.username is not None:
            data["username"] = self.username
        if self.movie_title is not None:
            data["movie_title"] = self.movie_title
        return data

    @classmethod
    def from_row(cls, row: Any) -> "ReviewData":
        """Create ReviewData from a database row mapping."""
        data = dict(row)
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            movie_id=data["movie_id"],
            rating=float(data["rating"]),
            comment=data.get("comment"),
            recommendation=Recommendation.parse(data.get("recommendation")),
            username=data.get("username"),
            movie_title=data.get("movie_title"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass(frozen=True)
class RatingSummary:
    """Movie-level fields derived from the full set of its reviews."""

    average_rating: float = 0.0
    recommendation_up: int = 0
    recommendation_down: int = 0
    review_count: int = 0

    @property
    def recommendation_counts(self) -> dict:
        return {"up": self.recommendation_up, "down": self.recommendation_down}

    def to_dict(self) -> dict:
        return {
            "average_rating": self.average_rating,
            "recommendation_counts": self.recommendation_counts,
            "review_count": self.review_count,
        }


@dataclass
class MovieData:
    """Movie catalog record plus its aggregator-owned summary."""

    id: int
    title: str
    description: str
    poster: str = ""
    backdrop: str = ""
    year: Optional[int] = None
    runtime: Optional[str] = None
    director: Optional[str] = None
    cast: List[str] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    trending: bool = False
    views: int = 0
    release_date: Optional[date] = None

    # Derived, written only by the rating aggregator
    average_rating: float = 0.0
    recommendation_up: int = 0
    recommendation_down: int = 0
    review_ids: List[int] = field(default_factory=list)
    summary_version: int = 0

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def summary(self) -> RatingSummary:
        return RatingSummary(
            average_rating=self.average_rating,
            recommendation_up=self.recommendation_up,
            recommendation_down=self.recommendation_down,
            review_count=len(self.review_ids),
        )

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "poster": self.poster,
            "backdrop": self.backdrop,
            "year": self.year,
            "runtime": self.runtime,
            "director": self.director,
            "cast": self.cast,
            "genres": self.genres,
            "trending": self.trending,
            "views": self.views,
            "release_date": self.release_date.isoformat() if self.release_date else None,
            "average_rating": self.average_rating,
            "recommendation_counts": {
                "up": self.recommendation_up,
                "down": self.recommendation_down,
            },
            "review_ids": self.review_ids,
        }

    @classmethod
    def from_row(cls, row: Any) -> "MovieData":
        """Create MovieData from a database row mapping."""
        data = dict(row)
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description") or "",
            poster=data.get("poster") or "",
            backdrop=data.get("backdrop") or "",
            year=data.get("year"),
            runtime=data.get("runtime"),
            director=data.get("director"),
            cast=_load_json_list(data.get("cast_members")),
            genres=_load_json_list(data.get("genres")),
            trending=bool(data.get("trending")),
            views=data.get("views") or 0,
            release_date=data.get("release_date"),
            average_rating=float(data.get("average_rating") or 0),
            recommendation_up=data.get("recommendation_up") or 0,
            recommendation_down=data.get("recommendation_down") or 0,
            review_ids=_load_json_list(data.get("review_ids")),
            summary_version=data.get("summary_version") or 0,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass
class UserData:
    """Registered user account."""

    id: int
    username: str
    email: str
    password_hash: str = ""
    is_admin: bool = False
    created_at: Optional[datetime] = None

    def to_public_dict(self) -> dict:
        """Profile fields safe to return to clients."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "is_admin": self.is_admin,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_row(cls, row: Any) -> "UserData":
        data = dict(row)
        return cls(
            id=data["id"],
            username=data["username"],
            email=data["email"],
            password_hash=data.get("password_hash") or "",
            is_admin=bool(data.get("is_admin")),
            created_at=data.get("created_at"),
        )
