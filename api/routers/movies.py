"""
Movie endpoints.

Browsing is public. Catalog changes are admin-only; a movie's rating
summary is never writable here.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_aggregator, get_db, paginate, require_admin
from api.schemas.common import MovieSort, PaginatedResponse, SuccessResponse
from api.schemas.movie import GenreListResponse, MovieCreate, MovieResponse, MovieUpdate
from movie_reviews.aggregator import RatingAggregator
from movie_reviews.database import DatabaseManager
from movie_reviews.errors import NotFoundError, ValidationError
from movie_reviews.models import UserData

router = APIRouter()
logger = logging.getLogger("api.movies")

# Columns that must keep a value; the rest can be cleared with null
REQUIRED_FIELDS = ("title", "description", "poster", "backdrop", "trending")


@router.get("/movies", response_model=PaginatedResponse[MovieResponse])
def list_movies(
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(10, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, max_length=200, description="Search title and description"),
    genre: Optional[str] = Query(None, description="Filter by genre"),
    sort: MovieSort = Query(MovieSort.latest, description="Sort order"),
    db: DatabaseManager = Depends(get_db),
):
    """
    Browse movies with search, genre filter, sorting, and pagination.
    """
    movies, total = db.movies.list_paginated(
        page=page,
        per_page=per_page,
        search=search,
        genre=genre,
        sort=sort.value,
    )
    return paginate([m.to_dict() for m in movies], total, page, per_page)


@router.get("/movies/trending")
def trending_movies(
    limit: int = Query(10, ge=1, le=50, description="Max movies"),
    db: DatabaseManager = Depends(get_db),
):
    """Movies flagged as trending, most viewed first."""
    return {"data": [m.to_dict() for m in db.movies.trending(limit)]}


@router.get("/movies/genres", response_model=GenreListResponse)
def list_genres(db: DatabaseManager = Depends(get_db)):
    """All genres with the number of movies in each."""
    return {"data": db.movies.genres()}


@router.get("/movies/{movie_id}", response_model=MovieResponse)
def get_movie(
    movie_id: int,
    db: DatabaseManager = Depends(get_db),
):
    """
    Get a movie with its rating summary. Counts as a view.
    """
    movie = db.movies.find_by_id(movie_id)
    if movie is None:
        raise NotFoundError("Movie", movie_id)
    db.movies.increment_views(movie_id)
    movie.views += 1
    return movie.to_dict()


@router.post("/movies", response_model=MovieResponse, status_code=status.HTTP_201_CREATED)
def create_movie(
    request: MovieCreate,
    admin: UserData = Depends(require_admin),
    db: DatabaseManager = Depends(get_db),
):
    """Add a movie to the catalog. Its summary starts empty."""
    movie = db.movies.create(request.model_dump())
    logger.info(f"Movie created: id={movie.id} title='{movie.title}' by admin_id={admin.id}")
    return movie.to_dict()


@router.put("/movies/{movie_id}", response_model=MovieResponse)
def update_movie(
    movie_id: int,
    request: MovieUpdate,
    admin: UserData = Depends(require_admin),
    db: DatabaseManager = Depends(get_db),
):
    """Update catalog fields of a movie. Optional fields set to null are cleared."""
    fields = request.model_dump(exclude_unset=True)
    cleared = [name for name in REQUIRED_FIELDS if name in fields and fields[name] is None]
    if cleared:
        raise ValidationError("Required movie fields cannot be cleared", details={"fields": cleared})

    if db.movies.find_by_id(movie_id) is None:
        raise NotFoundError("Movie", movie_id)

    movie = db.movies.update(movie_id, fields)
    logger.info(f"Movie updated: id={movie_id} by admin_id={admin.id}")
    return movie.to_dict()


@router.delete("/movies/{movie_id}", response_model=SuccessResponse)
def delete_movie(
    movie_id: int,
    admin: UserData = Depends(require_admin),
    aggregator: RatingAggregator = Depends(get_aggregator),
):
    """Delete a movie and all of its reviews."""
    removed = aggregator.remove_movie(movie_id)
    logger.info(f"Movie deleted: id={movie_id} reviews_removed={removed} by admin_id={admin.id}")
    return SuccessResponse(message="Movie deleted successfully")
