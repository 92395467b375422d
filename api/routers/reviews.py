"""
Review endpoints.

Every write goes through the rating aggregator so the movie's summary
is recomputed in the same request.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import get_aggregator, get_current_user, get_db
from api.schemas.review import (
    ReactionRequest,
    ReviewDeleteResponse,
    ReviewResponse,
    ReviewSubmit,
    ReviewUpdate,
    ReviewWriteResponse,
    UserReaction,
)
from movie_reviews.aggregator import RatingAggregator
from movie_reviews.database import DatabaseManager
from movie_reviews.errors import NotFoundError
from movie_reviews.models import Recommendation, UserData

router = APIRouter()
logger = logging.getLogger("api.reviews")


@router.post("/reviews", response_model=ReviewWriteResponse)
def submit_review(
    request: ReviewSubmit,
    user: UserData = Depends(get_current_user),
    aggregator: RatingAggregator = Depends(get_aggregator),
):
    """
    Create the caller's review of a movie, or overwrite the existing one.

    A user has at most one review per movie; submitting again replaces
    rating, comment and recommendation.
    """
    result = aggregator.submit_review(
        user.id,
        request.movie_id,
        request.rating,
        comment=request.comment,
        recommendation=request.recommendation,
    )
    message = "Review added successfully" if result.created else "Review updated successfully"
    return ReviewWriteResponse(message=message, **result.to_dict())


@router.put("/reviews/{review_id}", response_model=ReviewWriteResponse)
def update_review(
    review_id: int,
    request: ReviewUpdate,
    user: UserData = Depends(get_current_user),
    aggregator: RatingAggregator = Depends(get_aggregator),
):
    """Change fields of the caller's own review. Omitted fields are kept."""
    result = aggregator.update_review(
        review_id,
        user.id,
        rating=request.rating,
        comment=request.comment,
        recommendation=request.recommendation,
    )
    return ReviewWriteResponse(message="Review updated successfully", **result.to_dict())


@router.delete("/reviews/{review_id}", response_model=ReviewDeleteResponse)
def delete_review(
    review_id: int,
    user: UserData = Depends(get_current_user),
    aggregator: RatingAggregator = Depends(get_aggregator),
):
    """Delete the caller's own review."""
    result = aggregator.delete_review(review_id, user.id)
    return ReviewDeleteResponse(movie_id=result.review.movie_id, movie_stats=result.summary.to_dict())


@router.get("/reviews/movie/{movie_id}", response_model=List[ReviewResponse])
def get_movie_reviews(
    movie_id: int,
    db: DatabaseManager = Depends(get_db),
):
    """Reviews of a movie, newest first."""
    if db.movies.find_by_id(movie_id) is None:
        raise NotFoundError("Movie", movie_id)
    return [ReviewResponse(**r.to_dict()) for r in db.reviews.find_all_by_movie(movie_id)]


@router.get("/reviews/user", response_model=List[ReviewResponse])
def get_user_reviews(
    user: UserData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """The caller's reviews, newest first."""
    return [ReviewResponse(**r.to_dict()) for r in db.reviews.find_all_by_user(user.id)]


@router.get("/reviews/user/movie/{movie_id}", response_model=ReviewResponse)
def get_user_movie_review(
    movie_id: int,
    user: UserData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """The caller's review of one movie."""
    review = db.reviews.find_one(user.id, movie_id)
    if review is None:
        raise NotFoundError("Review", f"user={user.id} movie={movie_id}")
    return ReviewResponse(**review.to_dict())


@router.get("/reviews/user-reactions", response_model=List[UserReaction])
def get_user_reactions(
    user: UserData = Depends(get_current_user),
    db: DatabaseManager = Depends(get_db),
):
    """Movies the caller has recommended up or down."""
    return [
        UserReaction(movie_id=r.movie_id, recommendation=r.recommendation.value)
        for r in db.reviews.find_all_by_user(user.id)
        if r.recommendation is not Recommendation.none
    ]


@router.post("/reviews/reaction", response_model=ReviewWriteResponse)
def set_reaction(
    request: ReactionRequest,
    user: UserData = Depends(get_current_user),
    aggregator: RatingAggregator = Depends(get_aggregator),
):
    """Change only the recommendation on the caller's review of a movie."""
    result = aggregator.set_recommendation(user.id, request.movie_id, request.recommendation)
    logger.info(f"Reaction set: user_id={user.id} movie_id={request.movie_id}")
    return ReviewWriteResponse(message="Reaction updated successfully", **result.to_dict())
