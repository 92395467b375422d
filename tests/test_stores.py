"""
SQL store tests.

These stores issue raw SQL, so we mock the database engine and check the
statements and error translation.
"""

import json

import pytest
from unittest.mock import MagicMock
from sqlalchemy.exc import IntegrityError, OperationalError

from movie_reviews.errors import ConflictError, StoreError
from movie_reviews.models import RatingSummary, Recommendation, ReviewInput
from movie_reviews.stores import MovieStore, ReviewStore, UserStore


@pytest.fixture
def mock_engine():
    """Create a mock SQLAlchemy engine with connection context."""
    mock_conn = MagicMock()
    mock_result = MagicMock()
    mock_conn.execute.return_value = mock_result
    mock_conn.__enter__ = MagicMock(return_value=mock_conn)
    mock_conn.__exit__ = MagicMock(return_value=False)

    mock_engine = MagicMock()
    mock_engine.connect.return_value = mock_conn
    mock_engine.begin.return_value = mock_conn

    return mock_engine, mock_conn, mock_result


def _sql(call):
    return str(call.args[0])


def _review_row(**overrides):
    row = {
        "id": 7,
        "user_id": 1,
        "movie_id": 2,
        "rating": 4.5,
        "comment": "Good",
        "recommendation": "up",
        "created_at": None,
        "updated_at": None,
        "username": "alice",
        "movie_title": "Inception",
    }
    row.update(overrides)
    mapped = MagicMock()
    mapped._mapping = row
    return mapped


class TestMovieStoreSummary:
    """Conditional summary write."""

    def test_writes_summary_with_version_check(self, mock_engine):
        engine, conn, result = mock_engine
        result.rowcount = 1
        store = MovieStore(engine)

        written = store.update_summary(
            2,
            RatingSummary(average_rating=4.0, recommendation_up=1, recommendation_down=1, review_count=2),
            [3, 5],
            expected_version=4,
        )

        assert written is True
        sql = _sql(conn.execute.call_args)
        params = conn.execute.call_args.args[1]
        assert "summary_version = summary_version + 1" in sql
        assert "AND summary_version = :expected_version" in sql
        assert params["expected_version"] == 4
        assert params["average_rating"] == 4.0
        assert params["up"] == 1
        assert params["down"] == 1
        assert json.loads(params["review_ids"]) == [3, 5]

    def test_lost_race_returns_false(self, mock_engine):
        engine, conn, result = mock_engine
        result.rowcount = 0

        assert MovieStore(engine).update_summary(2, RatingSummary(), [], expected_version=4) is False

    def test_unconditional_write(self, mock_engine):
        engine, conn, result = mock_engine
        result.rowcount = 1

        MovieStore(engine).update_summary(2, RatingSummary(), [])

        assert "expected_version" not in _sql(conn.execute.call_args)

    def test_driver_error_becomes_store_error(self, mock_engine):
        engine, conn, result = mock_engine
        conn.execute.side_effect = OperationalError("UPDATE movies", {}, Exception("gone away"))

        with pytest.raises(StoreError) as exc_info:
            MovieStore(engine).update_summary(2, RatingSummary(), [])

        assert exc_info.value.message == "Database operation failed"
        assert isinstance(exc_info.value.__cause__, OperationalError)


class TestMovieStoreCatalog:
    """Catalog writes ignore summary columns."""

    def test_update_ignores_summary_fields(self, mock_engine):
        engine, conn, result = mock_engine
        result.fetchone.return_value = None
        store = MovieStore(engine)

        store.update(2, {"title": "New", "average_rating": 5, "review_ids": [1]})

        update_call = conn.execute.call_args_list[0]
        sql = _sql(update_call)
        assert "title = :title" in sql
        assert "average_rating" not in sql
        assert "review_ids" not in sql

    def test_cast_and_genres_stored_as_json(self, mock_engine):
        engine, conn, result = mock_engine
        result.fetchone.return_value = None
        store = MovieStore(engine)

        store.update(2, {"cast": ["A", "B"], "genres": ["Drama"]})

        params = conn.execute.call_args_list[0].args[1]
        assert json.loads(params["cast_members"]) == ["A", "B"]
        assert json.loads(params["genres"]) == ["Drama"]

    def test_unknown_sort_falls_back_to_latest(self, mock_engine):
        engine, conn, result = mock_engine
        result.scalar.return_value = 0
        result.fetchall.return_value = []

        movies, total = MovieStore(engine).list_paginated(sort="bogus")

        assert movies == []
        assert total == 0
        assert "ORDER BY release_date DESC" in _sql(conn.execute.call_args_list[1])


class TestReviewStore:
    """Review inserts and lookups."""

    def test_duplicate_insert_is_conflict(self, mock_engine):
        engine, conn, result = mock_engine
        conn.execute.side_effect = IntegrityError("INSERT INTO reviews", {}, Exception("Duplicate entry"))

        with pytest.raises(ConflictError):
            ReviewStore(engine).create(1, 2, ReviewInput.build(4))

    def test_other_insert_failure_is_store_error(self, mock_engine):
        engine, conn, result = mock_engine
        conn.execute.side_effect = OperationalError("INSERT INTO reviews", {}, Exception("timeout"))

        with pytest.raises(StoreError):
            ReviewStore(engine).create(1, 2, ReviewInput.build(4))

    def test_none_recommendation_stored_as_null(self, mock_engine):
        engine, conn, result = mock_engine
        result.lastrowid = 7
        result.fetchall.return_value = [_review_row()]

        ReviewStore(engine).create(1, 2, ReviewInput.build(4, recommendation="none"))

        params = conn.execute.call_args_list[0].args[1]
        assert params["recommendation"] is None

    def test_find_one_maps_row(self, mock_engine):
        engine, conn, result = mock_engine
        result.fetchall.return_value = [_review_row(recommendation=None)]

        review = ReviewStore(engine).find_one(1, 2)

        assert review.id == 7
        assert review.rating == 4.5
        assert review.recommendation is Recommendation.none
        assert review.username == "alice"

    def test_update_only_known_columns(self, mock_engine):
        engine, conn, result = mock_engine
        result.fetchall.return_value = [_review_row()]

        ReviewStore(engine).update(7, {"rating": 2.0, "user_id": 99})

        sql = _sql(conn.execute.call_args_list[0])
        assert "rating = :rating" in sql
        assert "user_id" not in sql.split("WHERE")[0]


class TestUserStore:
    """User inserts."""

    def test_duplicate_email_is_conflict(self, mock_engine):
        engine, conn, result = mock_engine
        conn.execute.side_effect = IntegrityError("INSERT INTO users", {}, Exception("Duplicate entry"))

        with pytest.raises(ConflictError, match="User already exists"):
            UserStore(engine).create("alice", "alice@example.com", "hash")
