"""
Shared fixtures for movie review backend tests.

Provides in-memory stores that behave like the SQL stores, a mock
database manager, sample data, and an API client with overridden
dependencies.
"""

import pytest
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from fastapi.testclient import TestClient

from movie_reviews.aggregator import RatingAggregator
from movie_reviews.config import Config
from movie_reviews.errors import ConflictError
from movie_reviews.models import (
    MovieData,
    RatingSummary,
    Recommendation,
    ReviewData,
    ReviewInput,
    UserData,
)
from movie_reviews.security import create_access_token, hash_password

TEST_PASSWORD = "secret123"
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


class _Clock:
    """Strictly increasing timestamps so newest-first ordering is stable."""

    def __init__(self):
        self.ticks = 0

    def now(self) -> datetime:
        self.ticks += 1
        return BASE_TIME + timedelta(seconds=self.ticks)


# =============================================================================
# IN-MEMORY STORES
# =============================================================================

class InMemoryUserStore:
    def __init__(self, clock: _Clock):
        self.clock = clock
        self.users: Dict[int, UserData] = {}
        self.next_id = 1

    def create(self, username: str, email: str, password_hash: str, is_admin: bool = False) -> UserData:
        if any(u.email == email for u in self.users.values()):
            raise ConflictError("User already exists")
        user = UserData(
            id=self.next_id,
            username=username,
            email=email,
            password_hash=password_hash,
            is_admin=is_admin,
            created_at=self.clock.now(),
        )
        self.users[user.id] = user
        self.next_id += 1
        return replace(user)

    def find_by_id(self, user_id: int) -> Optional[UserData]:
        user = self.users.get(user_id)
        return replace(user) if user else None

    def find_by_email(self, email: str) -> Optional[UserData]:
        for user in self.users.values():
            if user.email == email:
                return replace(user)
        return None

    def update_profile(self, user_id: int, username: str) -> Optional[UserData]:
        if user_id in self.users:
            self.users[user_id].username = username
        return self.find_by_id(user_id)

    def list_all(self) -> List[UserData]:
        return sorted(self.users.values(), key=lambda u: (u.created_at, u.id), reverse=True)

    def recent(self, limit: int = 5) -> List[UserData]:
        return self.list_all()[:limit]

    def delete(self, user_id: int) -> bool:
        return self.users.pop(user_id, None) is not None

    def count(self) -> int:
        return len(self.users)


class InMemoryMovieStore:
    """
    Movie store with the same conditional summary write as the SQL store.

    Set ``summary_conflicts`` to make that many summary writes lose to a
    simulated concurrent writer. Set ``summary_error`` to make summary
    writes fail.
    """

    SORT_KEYS = {
        "latest": (lambda m: (m.release_date or date.min, m.id), True),
        "oldest": (lambda m: (m.release_date or date.min, m.id), False),
        "rating": (lambda m: (m.average_rating, m.id), True),
        "views": (lambda m: (m.views, m.id), True),
    }

    def __init__(self):
        self.movies: Dict[int, MovieData] = {}
        self.next_id = 1
        self.summary_writes = 0
        self.summary_conflicts = 0
        self.summary_error: Optional[Exception] = None

    def add(self, movie: MovieData) -> MovieData:
        self.movies[movie.id] = movie
        self.next_id = max(self.next_id, movie.id + 1)
        return movie

    def find_by_id(self, movie_id: int) -> Optional[MovieData]:
        movie = self.movies.get(movie_id)
        if movie is None:
            return None
        return replace(movie, cast=list(movie.cast), genres=list(movie.genres), review_ids=list(movie.review_ids))

    def create(self, fields: Dict) -> MovieData:
        movie = MovieData(id=self.next_id, title=fields["title"], description=fields["description"])
        for key, value in fields.items():
            if key in ("title", "description"):
                continue
            setattr(movie, key, value)
        self.add(movie)
        return self.find_by_id(movie.id)

    def update(self, movie_id: int, fields: Dict) -> Optional[MovieData]:
        movie = self.movies.get(movie_id)
        if movie is not None:
            for key, value in fields.items():
                if key in ("cast", "genres"):
                    value = value or []
                setattr(movie, key, value)
        return self.find_by_id(movie_id)

    def update_summary(
        self,
        movie_id: int,
        summary: RatingSummary,
        review_ids: Sequence[int],
        expected_version: Optional[int] = None,
    ) -> bool:
        if self.summary_error is not None:
            raise self.summary_error
        movie = self.movies.get(movie_id)
        if movie is None:
            return False
        if self.summary_conflicts > 0:
            self.summary_conflicts -= 1
            movie.summary_version += 1
            return False
        if expected_version is not None and movie.summary_version != expected_version:
            return False

        movie.average_rating = summary.average_rating
        movie.recommendation_up = summary.recommendation_up
        movie.recommendation_down = summary.recommendation_down
        movie.review_ids = list(review_ids)
        movie.summary_version += 1
        self.summary_writes += 1
        return True

    def delete(self, movie_id: int) -> bool:
        return self.movies.pop(movie_id, None) is not None

    def list_paginated(
        self,
        page: int = 1,
        per_page: int = 10,
        search: Optional[str] = None,
        genre: Optional[str] = None,
        sort: str = "latest",
    ) -> Tuple[List[MovieData], int]:
        movies = list(self.movies.values())
        if search:
            needle = search.lower()
            movies = [m for m in movies if needle in m.title.lower() or needle in m.description.lower()]
        if genre:
            movies = [m for m in movies if genre in m.genres]
        key, reverse = self.SORT_KEYS.get(sort, self.SORT_KEYS["latest"])
        movies.sort(key=key, reverse=reverse)
        start = (page - 1) * per_page
        return [self.find_by_id(m.id) for m in movies[start:start + per_page]], len(movies)

    def trending(self, limit: int = 10) -> List[MovieData]:
        movies = sorted((m for m in self.movies.values() if m.trending), key=lambda m: m.views, reverse=True)
        return [self.find_by_id(m.id) for m in movies[:limit]]

    def genres(self) -> List[dict]:
        counts: Dict[str, int] = {}
        for movie in self.movies.values():
            for name in movie.genres:
                counts[name] = counts.get(name, 0) + 1
        return [{"name": name, "movie_count": count} for name, count in sorted(counts.items())]

    def increment_views(self, movie_id: int) -> None:
        if movie_id in self.movies:
            self.movies[movie_id].views += 1

    def all_ids(self) -> List[int]:
        return sorted(self.movies.keys())

    def titles(self) -> List[str]:
        return [m.title for m in self.movies.values()]

    def count(self) -> int:
        return len(self.movies)


class InMemoryReviewStore:
    """Review store enforcing one review per (user_id, movie_id)."""

    def __init__(self, clock: _Clock, users: InMemoryUserStore, movies: InMemoryMovieStore):
        self.clock = clock
        self.users = users
        self.movies = movies
        self.reviews: Dict[int, ReviewData] = {}
        self.next_id = 1

    def _joined(self, review: ReviewData) -> ReviewData:
        user = self.users.users.get(review.user_id)
        movie = self.movies.movies.get(review.movie_id)
        return replace(
            review,
            username=user.username if user else None,
            movie_title=movie.title if movie else None,
        )

    def _newest_first(self, reviews) -> List[ReviewData]:
        ordered = sorted(reviews, key=lambda r: (r.created_at, r.id), reverse=True)
        return [self._joined(r) for r in ordered]

    def find_by_id(self, review_id: int) -> Optional[ReviewData]:
        review = self.reviews.get(review_id)
        return self._joined(review) if review else None

    def find_one(self, user_id: int, movie_id: int) -> Optional[ReviewData]:
        for review in self.reviews.values():
            if review.user_id == user_id and review.movie_id == movie_id:
                return self._joined(review)
        return None

    def find_all_by_movie(self, movie_id: int) -> List[ReviewData]:
        return self._newest_first(r for r in self.reviews.values() if r.movie_id == movie_id)

    def find_all_by_user(self, user_id: int) -> List[ReviewData]:
        return self._newest_first(r for r in self.reviews.values() if r.user_id == user_id)

    def recent(self, limit: int = 5) -> List[ReviewData]:
        return self._newest_first(self.reviews.values())[:limit]

    def create(self, user_id: int, movie_id: int, review: ReviewInput) -> ReviewData:
        if any(r.user_id == user_id and r.movie_id == movie_id for r in self.reviews.values()):
            raise ConflictError("Review already exists for this user and movie")
        now = self.clock.now()
        stored = ReviewData(
            id=self.next_id,
            user_id=user_id,
            movie_id=movie_id,
            rating=review.rating,
            comment=review.comment,
            recommendation=review.recommendation,
            created_at=now,
            updated_at=now,
        )
        self.reviews[stored.id] = stored
        self.next_id += 1
        return self._joined(stored)

    def update(self, review_id: int, fields: Dict) -> Optional[ReviewData]:
        review = self.reviews.get(review_id)
        if review is None:
            return None
        for key, value in fields.items():
            if key == "recommendation":
                value = Recommendation.parse(value)
            setattr(review, key, value)
        review.updated_at = self.clock.now()
        return self._joined(review)

    def delete(self, review_id: int) -> bool:
        return self.reviews.pop(review_id, None) is not None

    def delete_all_by_movie(self, movie_id: int) -> int:
        ids = [r.id for r in self.reviews.values() if r.movie_id == movie_id]
        for review_id in ids:
            del self.reviews[review_id]
        return len(ids)

    def count(self) -> int:
        return len(self.reviews)


# =============================================================================
# MOCK DATABASE
# =============================================================================

class MockDatabaseManager:
    """In-memory stand-in for DatabaseManager."""

    def __init__(self):
        self.clock = _Clock()
        self.users = InMemoryUserStore(self.clock)
        self.movies = InMemoryMovieStore()
        self.reviews = InMemoryReviewStore(self.clock, self.users, self.movies)
        self.tables_created = False

    def check_and_create_tables(self) -> dict:
        created = [] if self.tables_created else ["users", "movies", "reviews"]
        self.tables_created = True
        return {
            "existing": ["users", "movies", "reviews"] if not created else [],
            "created": created,
            "all_present": True,
        }

    def get_missing_tables(self) -> List[str]:
        return [] if self.tables_created else ["users", "movies", "reviews"]

    def get_status(self) -> dict:
        missing = self.get_missing_tables()
        return {
            "user_count": self.users.count(),
            "movie_count": self.movies.count(),
            "review_count": self.reviews.count(),
            "missing_tables": missing,
            "all_tables_exist": not missing,
        }


# =============================================================================
# SAMPLE DATA
# =============================================================================

def create_sample_movie(
    movie_id: int,
    title: str,
    release_date: Optional[date] = None,
    genres: Optional[List[str]] = None,
    trending: bool = False,
    views: int = 0,
) -> MovieData:
    """Create a sample MovieData for testing."""
    release_date = release_date or date(2023, 1, 15)
    return MovieData(
        id=movie_id,
        title=title,
        description=f"This is the description for {title}.",
        poster=f"/poster_{movie_id}.jpg",
        backdrop=f"/backdrop_{movie_id}.jpg",
        year=release_date.year,
        runtime="120 min",
        director=f"Director {movie_id}",
        cast=[f"Actor {movie_id}"],
        genres=genres or ["Action", "Drama"],
        trending=trending,
        views=views,
        release_date=release_date,
    )


SAMPLE_MOVIES = [
    create_sample_movie(1, "Fight Club", date(1999, 10, 15), ["Drama", "Thriller"], views=40),
    create_sample_movie(2, "Inception", date(2010, 7, 16), ["Action", "Sci-Fi", "Thriller"], trending=True, views=90),
    create_sample_movie(3, "The Dark Knight", date(2008, 7, 18), ["Action", "Crime", "Drama"], trending=True, views=120),
    create_sample_movie(4, "Pulp Fiction", date(1994, 10, 14), ["Crime", "Thriller"], views=70),
    create_sample_movie(5, "Interstellar", date(2014, 11, 7), ["Adventure", "Drama", "Sci-Fi"], views=85),
]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def test_config():
    """Configuration that needs no environment."""
    return Config(
        db_user="test",
        db_name="movie_reviews_test",
        jwt_secret_key="test-secret-key",
        jwt_algorithm="HS256",
        jwt_expire_minutes=60,
        summary_max_retries=3,
    )


@pytest.fixture
def mock_db():
    """Provide a fresh mock database for each test."""
    return MockDatabaseManager()


@pytest.fixture
def mock_db_with_data(mock_db):
    """Mock database pre-populated with sample movies."""
    mock_db.tables_created = True
    for movie in SAMPLE_MOVIES:
        mock_db.movies.add(replace(movie, cast=list(movie.cast), genres=list(movie.genres)))
    return mock_db


@pytest.fixture
def aggregator(mock_db_with_data):
    return RatingAggregator(mock_db_with_data.reviews, mock_db_with_data.movies, max_summary_retries=3)


@pytest.fixture(scope="session")
def test_password():
    return TEST_PASSWORD


@pytest.fixture(scope="session")
def password_hash():
    """Hashing is slow; share one hash across the session."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def users(mock_db_with_data, password_hash):
    """Two regular users and an administrator."""
    store = mock_db_with_data.users
    return {
        "alice": store.create("alice", "alice@example.com", password_hash),
        "bob": store.create("bob", "bob@example.com", password_hash),
        "admin": store.create("admin", "admin@example.com", password_hash, is_admin=True),
    }


@pytest.fixture
def auth_headers(users, test_config):
    """Bearer headers keyed by user name."""
    return {
        name: {"Authorization": f"Bearer {create_access_token(user, test_config)}"}
        for name, user in users.items()
    }


@pytest.fixture
def api_client(mock_db_with_data, test_config):
    """Provide FastAPI test client with mocked dependencies."""
    from api.main import app
    from api import dependencies

    # Clear any cached config/db from previous runs
    dependencies.get_config.cache_clear()
    dependencies.get_db.cache_clear()

    app.dependency_overrides[dependencies.get_db] = lambda: mock_db_with_data
    app.dependency_overrides[dependencies.get_config] = lambda: test_config

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client

    app.dependency_overrides.clear()
