"""
SQL-backed stores for users, movies and reviews.

Each store wraps a SQLAlchemy engine and translates driver errors into
domain errors: a unique-key violation on a review insert becomes a
ConflictError, anything else a StoreError.
"""

import json
import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import ConflictError, StoreError
from .models import MovieData, RatingSummary, ReviewData, ReviewInput, UserData

logger = logging.getLogger("movie_reviews.stores")


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as an opaque StoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Error {action}: {e}")
        raise StoreError() from e


class UserStore:
    """User accounts."""

    _SELECT = "SELECT id, username, email, password_hash, is_admin, created_at FROM users"

    def __init__(self, engine: Engine):
        self.engine = engine

    def create(self, username: str, email: str, password_hash: str, is_admin: bool = False) -> UserData:
        """
        Insert a user.

        Raises:
            ConflictError: If the email is already registered.
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    text("""
                        INSERT INTO users (username, email, password_hash, is_admin)
                        VALUES (:username, :email, :password_hash, :is_admin)
                    """),
                    {
                        "username": username,
                        "email": email,
                        "password_hash": password_hash,
                        "is_admin": is_admin,
                    }
                )
                user_id = result.lastrowid
        except IntegrityError as e:
            logger.warning(f"Duplicate user email {email}: {e}")
            raise ConflictError("User already exists") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating user {email}: {e}")
            raise StoreError() from e
        return self.find_by_id(user_id)

    def find_by_id(self, user_id: int) -> Optional[UserData]:
        with _store_errors(f"fetching user {user_id}"):
            with self.engine.connect() as conn:
                row = conn.execute(
                    text(f"{self._SELECT} WHERE id = :id"),
                    {"id": user_id}
                ).fetchone()
        return UserData.from_row(row._mapping) if row else None

    def find_by_email(self, email: str) -> Optional[UserData]:
        with _store_errors(f"fetching user {email}"):
            with self.engine.connect() as conn:
                row = conn.execute(
                    text(f"{self._SELECT} WHERE email = :email"),
                    {"email": email}
                ).fetchone()
        return UserData.from_row(row._mapping) if row else None

    def update_profile(self, user_id: int, username: str) -> Optional[UserData]:
        with _store_errors(f"updating user {user_id}"):
            with self.engine.begin() as conn:
                conn.execute(
                    text("UPDATE users SET username = :username WHERE id = :id"),
                    {"username": username, "id": user_id}
                )
        return self.find_by_id(user_id)

    def list_all(self) -> List[UserData]:
        with _store_errors("listing users"):
            with self.engine.connect() as conn:
                rows = conn.execute(text(f"{self._SELECT} ORDER BY created_at DESC")).fetchall()
        return [UserData.from_row(row._mapping) for row in rows]

    def recent(self, limit: int = 5) -> List[UserData]:
        with _store_errors("listing recent users"):
            with self.engine.connect() as conn:
                rows = conn.execute(
                    text(f"{self._SELECT} ORDER BY created_at DESC LIMIT :limit"),
                    {"limit": limit}
                ).fetchall()
        return [UserData.from_row(row._mapping) for row in rows]

    def delete(self, user_id: int) -> bool:
        with _store_errors(f"deleting user {user_id}"):
            with self.engine.begin() as conn:
                result = conn.execute(text("DELETE FROM users WHERE id = :id"), {"id": user_id})
        return result.rowcount > 0

    def count(self) -> int:
        with _store_errors("counting users"):
            with self.engine.connect() as conn:
                return conn.execute(text("SELECT COUNT(*) FROM users")).scalar() or 0


class MovieStore:
    """Movie catalog plus the summary fields owned by the rating aggregator."""

    # Fields admins may set. Summary columns belong to the rating aggregator.
    CATALOG_FIELDS = (
        "title", "description", "poster", "backdrop", "year", "runtime",
        "director", "cast", "genres", "trending", "release_date",
    )
    JSON_FIELDS = {"cast": "cast_members", "genres": "genres"}

    SORT_OPTIONS = {
        "latest": "release_date DESC, id DESC",
        "oldest": "release_date ASC, id ASC",
        "rating": "average_rating DESC, id DESC",
        "views": "views DESC, id DESC",
    }

    _SELECT = """
        SELECT id, title, description, poster, backdrop, year, runtime, director,
               cast_members, genres, trending, views, release_date,
               average_rating, recommendation_up, recommendation_down,
               review_ids, summary_version, created_at, updated_at
        FROM movies
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def _to_columns(self, fields: Dict) -> Dict:
        """Map catalog fields to column values, encoding JSON lists."""
        columns = {}
        for key, value in fields.items():
            if key not in self.CATALOG_FIELDS:
                continue
            if key in self.JSON_FIELDS:
                columns[self.JSON_FIELDS[key]] = json.dumps(value or [])
            else:
                columns[key] = value
        return columns

    def find_by_id(self, movie_id: int) -> Optional[MovieData]:
        with _store_errors(f"fetching movie {movie_id}"):
            with self.engine.connect() as conn:
                row = conn.execute(
                    text(f"{self._SELECT} WHERE id = :id"),
                    {"id": movie_id}
                ).fetchone()
        return MovieData.from_row(row._mapping) if row else None

    def create(self, fields: Dict) -> MovieData:
        columns = self._to_columns(fields)
        columns["review_ids"] = "[]"
        names = ", ".join(columns.keys())
        placeholders = ", ".join(f":{k}" for k in columns.keys())
        with _store_errors(f"creating movie {fields.get('title')}"):
            with self.engine.begin() as conn:
                result = conn.execute(
                    text(f"INSERT INTO movies ({names}) VALUES ({placeholders})"),
                    columns
                )
                movie_id = result.lastrowid
        return self.find_by_id(movie_id)

    def update(self, movie_id: int, fields: Dict) -> Optional[MovieData]:
        """Update catalog fields. Summary fields are ignored."""
        columns = self._to_columns(fields)
        if columns:
            set_clause = ", ".join(f"{k} = :{k}" for k in columns.keys())
            columns["id"] = movie_id
            with _store_errors(f"updating movie {movie_id}"):
                with self.engine.begin() as conn:
                    conn.execute(text(f"UPDATE movies SET {set_clause} WHERE id = :id"), columns)
        return self.find_by_id(movie_id)

    def update_summary(
        self,
        movie_id: int,
        summary: RatingSummary,
        review_ids: Sequence[int],
        expected_version: Optional[int] = None,
    ) -> bool:
        """
        Write the derived summary and review collection in one statement.

        When expected_version is given the write only applies if no other
        writer has bumped summary_version since it was read.

        Returns:
            True if the row was updated.
        """
        query = """
            UPDATE movies
            SET average_rating = :average_rating,
                recommendation_up = :up,
                recommendation_down = :down,
                review_ids = :review_ids,
                summary_version = summary_version + 1
            WHERE id = :id
        """
        params = {
            "average_rating": summary.average_rating,
            "up": summary.recommendation_up,
            "down": summary.recommendation_down,
            "review_ids": json.dumps(list(review_ids)),
            "id": movie_id,
        }
        if expected_version is not None:
            query += " AND summary_version = :expected_version"
            params["expected_version"] = expected_version

        with _store_errors(f"updating summary for movie {movie_id}"):
            with self.engine.begin() as conn:
                result = conn.execute(text(query), params)
        return result.rowcount == 1

    def delete(self, movie_id: int) -> bool:
        with _store_errors(f"deleting movie {movie_id}"):
            with self.engine.begin() as conn:
                result = conn.execute(text("DELETE FROM movies WHERE id = :id"), {"id": movie_id})
        return result.rowcount > 0

    def list_paginated(
        self,
        page: int = 1,
        per_page: int = 10,
        search: Optional[str] = None,
        genre: Optional[str] = None,
        sort: str = "latest",
    ) -> Tuple[List[MovieData], int]:
        """Browse movies with search, genre filter, sorting and pagination."""
        conditions = []
        params = {}

        if search:
            conditions.append("(title LIKE :search OR description LIKE :search)")
            params["search"] = f"%{search}%"
        if genre:
            conditions.append("JSON_CONTAINS(genres, JSON_QUOTE(:genre))")
            params["genre"] = genre

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        order_by = self.SORT_OPTIONS.get(sort, self.SORT_OPTIONS["latest"])

        with _store_errors("listing movies"):
            with self.engine.connect() as conn:
                total = conn.execute(text(f"SELECT COUNT(*) FROM movies {where}"), params).scalar() or 0
                rows = conn.execute(
                    text(f"{self._SELECT} {where} ORDER BY {order_by} LIMIT :limit OFFSET :offset"),
                    {**params, "limit": per_page, "offset": (page - 1) * per_page}
                ).fetchall()

        return [MovieData.from_row(row._mapping) for row in rows], total

    def trending(self, limit: int = 10) -> List[MovieData]:
        with _store_errors("listing trending movies"):
            with self.engine.connect() as conn:
                rows = conn.execute(
                    text(f"{self._SELECT} WHERE trending = TRUE ORDER BY views DESC LIMIT :limit"),
                    {"limit": limit}
                ).fetchall()
        return [MovieData.from_row(row._mapping) for row in rows]

    def genres(self) -> List[dict]:
        """Distinct genres with the number of movies in each."""
        with _store_errors("listing genres"):
            with self.engine.connect() as conn:
                rows = conn.execute(text("SELECT genres FROM movies")).fetchall()

        counts: Dict[str, int] = {}
        for row in rows:
            for name in MovieData.from_row({"id": 0, "title": "", "genres": row[0]}).genres:
                counts[name] = counts.get(name, 0) + 1
        return [{"name": name, "movie_count": count} for name, count in sorted(counts.items())]

    def increment_views(self, movie_id: int) -> None:
        with _store_errors(f"counting view for movie {movie_id}"):
            with self.engine.begin() as conn:
                conn.execute(text("UPDATE movies SET views = views + 1 WHERE id = :id"), {"id": movie_id})

    def all_ids(self) -> List[int]:
        with _store_errors("listing movie ids"):
            with self.engine.connect() as conn:
                return [row[0] for row in conn.execute(text("SELECT id FROM movies ORDER BY id")).fetchall()]

    def titles(self) -> List[str]:
        with _store_errors("listing movie titles"):
            with self.engine.connect() as conn:
                return [row[0] for row in conn.execute(text("SELECT title FROM movies")).fetchall()]

    def count(self) -> int:
        with _store_errors("counting movies"):
            with self.engine.connect() as conn:
                return conn.execute(text("SELECT COUNT(*) FROM movies")).scalar() or 0


class ReviewStore:
    """Reviews, unique per (user_id, movie_id)."""

    _SELECT = """
        SELECT r.id, r.user_id, r.movie_id, r.rating, r.comment, r.recommendation,
               r.created_at, r.updated_at, u.username, m.title AS movie_title
        FROM reviews r
        LEFT JOIN users u ON u.id = r.user_id
        LEFT JOIN movies m ON m.id = r.movie_id
    """

    UPDATABLE_FIELDS = ("rating", "comment", "recommendation")

    def __init__(self, engine: Engine):
        self.engine = engine

    def _fetch_all(self, where: str, params: dict, action: str, limit: Optional[int] = None) -> List[ReviewData]:
        query = f"{self._SELECT} {where} ORDER BY r.created_at DESC, r.id DESC"
        if limit is not None:
            query += " LIMIT :limit"
            params = {**params, "limit": limit}
        with _store_errors(action):
            with self.engine.connect() as conn:
                rows = conn.execute(text(query), params).fetchall()
        return [ReviewData.from_row(row._mapping) for row in rows]

    def find_by_id(self, review_id: int) -> Optional[ReviewData]:
        reviews = self._fetch_all("WHERE r.id = :id", {"id": review_id}, f"fetching review {review_id}")
        return reviews[0] if reviews else None

    def find_one(self, user_id: int, movie_id: int) -> Optional[ReviewData]:
        reviews = self._fetch_all(
            "WHERE r.user_id = :user_id AND r.movie_id = :movie_id",
            {"user_id": user_id, "movie_id": movie_id},
            f"fetching review user={user_id} movie={movie_id}",
        )
        return reviews[0] if reviews else None

    def find_all_by_movie(self, movie_id: int) -> List[ReviewData]:
        return self._fetch_all(
            "WHERE r.movie_id = :movie_id",
            {"movie_id": movie_id},
            f"fetching reviews for movie {movie_id}",
        )

    def find_all_by_user(self, user_id: int) -> List[ReviewData]:
        return self._fetch_all(
            "WHERE r.user_id = :user_id",
            {"user_id": user_id},
            f"fetching reviews for user {user_id}",
        )

    def recent(self, limit: int = 5) -> List[ReviewData]:
        return self._fetch_all("", {}, "fetching recent reviews", limit=limit)

    def create(self, user_id: int, movie_id: int, review: ReviewInput) -> ReviewData:
        """
        Insert a review.

        Raises:
            ConflictError: If the user already has a review for the movie.
        """
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    text("""
                        INSERT INTO reviews (user_id, movie_id, rating, comment, recommendation)
                        VALUES (:user_id, :movie_id, :rating, :comment, :recommendation)
                    """),
                    {
                        "user_id": user_id,
                        "movie_id": movie_id,
                        "rating": review.rating,
                        "comment": review.comment,
                        "recommendation": review.recommendation.to_db(),
                    }
                )
                review_id = result.lastrowid
        except IntegrityError as e:
            logger.warning(f"Duplicate review user={user_id} movie={movie_id}: {e}")
            raise ConflictError("Review already exists for this user and movie") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating review user={user_id} movie={movie_id}: {e}")
            raise StoreError() from e
        return self.find_by_id(review_id)

    def update(self, review_id: int, fields: Dict) -> Optional[ReviewData]:
        """Apply column changes and return the updated review."""
        columns = {k: v for k, v in fields.items() if k in self.UPDATABLE_FIELDS}
        if columns:
            set_clause = ", ".join(f"{k} = :{k}" for k in columns.keys())
            columns["id"] = review_id
            with _store_errors(f"updating review {review_id}"):
                with self.engine.begin() as conn:
                    conn.execute(text(f"UPDATE reviews SET {set_clause} WHERE id = :id"), columns)
        return self.find_by_id(review_id)

    def delete(self, review_id: int) -> bool:
        with _store_errors(f"deleting review {review_id}"):
            with self.engine.begin() as conn:
                result = conn.execute(text("DELETE FROM reviews WHERE id = :id"), {"id": review_id})
        return result.rowcount > 0

    def delete_all_by_movie(self, movie_id: int) -> int:
        with _store_errors(f"deleting reviews for movie {movie_id}"):
            with self.engine.begin() as conn:
                result = conn.execute(
                    text("DELETE FROM reviews WHERE movie_id = :movie_id"),
                    {"movie_id": movie_id}
                )
        return result.rowcount

    def count(self) -> int:
        with _store_errors("counting reviews"):
            with self.engine.connect() as conn:
                return conn.execute(text("SELECT COUNT(*) FROM reviews")).scalar() or 0
