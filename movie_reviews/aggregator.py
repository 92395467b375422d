"""
Rating aggregator.

Keeps each movie's derived summary (average rating, recommendation
counts, review collection) consistent with its reviews. The summary is
always recomputed from the full review set after a write; it is never
patched incrementally.

Concurrency model:
- No lock is held across store round trips.
- The summary write is conditional on the movie's summary_version. If
  another writer got there first, the recomputation is re-run a bounded
  number of times. Past that the last computed summary is returned and
  the next write to the movie brings it up to date.
- A failure after the review write leaves the review persisted and the
  summary stale until the next recomputation.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Optional

from .errors import AuthorizationError, ConflictError, NotFoundError, StoreError
from .models import (
    MovieData,
    RatingSummary,
    Recommendation,
    ReviewData,
    ReviewInput,
    ReviewPatch,
)

logger = logging.getLogger("movie_reviews.aggregator")


def compute_summary(reviews: Iterable[ReviewData]) -> RatingSummary:
    """
    Derive a movie summary from its complete set of reviews.

    The average is rounded half-up to one decimal; an empty set
    averages 0. Reviews recommending neither way are counted in the
    average only.
    """
    reviews = list(reviews)
    if not reviews:
        return RatingSummary()

    total = sum(Decimal(str(r.rating)) for r in reviews)
    average = (total / len(reviews)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)

    return RatingSummary(
        average_rating=float(average),
        recommendation_up=sum(1 for r in reviews if r.recommendation is Recommendation.up),
        recommendation_down=sum(1 for r in reviews if r.recommendation is Recommendation.down),
        review_count=len(reviews),
    )


@dataclass
class ReviewResult:
    """Outcome of a review write: the review and the movie's new summary."""

    review: ReviewData
    summary: RatingSummary
    created: bool = False

    def to_dict(self) -> dict:
        return {
            "review": self.review.to_dict(),
            "movie_stats": self.summary.to_dict(),
            "created": self.created,
        }


class RatingAggregator:
    """
    Owns the write path for reviews and the movie summaries derived from them.

    Args:
        reviews: Review store
        movies: Movie store
        max_summary_retries: Attempts at the conditional summary write
    """

    def __init__(self, reviews, movies, max_summary_retries: int = 3):
        self.reviews = reviews
        self.movies = movies
        self.max_summary_retries = max(1, max_summary_retries)

    # ============ REVIEW OPERATIONS ============

    def submit_review(
        self,
        user_id: int,
        movie_id: int,
        rating: Any,
        comment: Optional[str] = None,
        recommendation: Any = None,
    ) -> ReviewResult:
        """
        Create the user's review of a movie, or overwrite the existing one.

        Raises:
            ValidationError: If the rating or recommendation is invalid.
            NotFoundError: If the movie does not exist.
            StoreError: If the database fails.
        """
        review_input = ReviewInput.build(rating, comment, recommendation)
        self._require_movie(movie_id)

        created = False
        existing = self.reviews.find_one(user_id, movie_id)
        if existing:
            review = self._overwrite(existing.id, review_input)
        else:
            try:
                review = self.reviews.create(user_id, movie_id, review_input)
                created = True
            except ConflictError:
                # Another request from the same user created it first
                logger.warning(
                    f"Review create conflict user_id={user_id} movie_id={movie_id}, "
                    f"applying as update"
                )
                existing = self.reviews.find_one(user_id, movie_id)
                if existing is None:
                    raise StoreError("Review could not be saved")
                review = self._overwrite(existing.id, review_input)

        summary = self.recompute(movie_id)
        logger.info(
            f"Review {'created' if created else 'updated'}: id={review.id} "
            f"user_id={user_id} movie_id={movie_id} rating={review.rating}"
        )
        return ReviewResult(review=review, summary=summary, created=created)

    def update_review(
        self,
        review_id: int,
        requester_id: int,
        rating: Any = None,
        comment: Optional[str] = None,
        recommendation: Any = None,
    ) -> ReviewResult:
        """
        Apply the provided field changes to a review owned by the requester.

        Raises:
            NotFoundError: If the review does not exist.
            AuthorizationError: If the requester does not own the review.
            ValidationError: If a provided field is invalid.
        """
        review = self._require_owned_review(review_id, requester_id, "update")
        patch = ReviewPatch.build(rating, comment, recommendation)

        if not patch.is_empty():
            review = self.reviews.update(review_id, patch.to_fields())
            if review is None:
                raise NotFoundError("Review", review_id)

        summary = self.recompute(review.movie_id)
        logger.info(f"Review updated: id={review_id} user_id={requester_id}")
        return ReviewResult(review=review, summary=summary)

    def delete_review(self, review_id: int, requester_id: int) -> ReviewResult:
        """
        Delete a review owned by the requester and recompute its movie.

        Returns the deleted review with the movie's new summary.

        Raises:
            NotFoundError: If the review does not exist.
            AuthorizationError: If the requester does not own the review.
        """
        review = self._require_owned_review(review_id, requester_id, "delete")

        if not self.reviews.delete(review_id):
            raise NotFoundError("Review", review_id)

        summary = self.recompute(review.movie_id)
        logger.info(f"Review deleted: id={review_id} user_id={requester_id} movie_id={review.movie_id}")
        return ReviewResult(review=review, summary=summary)

    def set_recommendation(self, user_id: int, movie_id: int, recommendation: Any) -> ReviewResult:
        """
        Change only the recommendation on the user's review of a movie.

        Raises:
            ValidationError: If the recommendation is invalid.
            NotFoundError: If the movie or the user's review does not exist.
        """
        value = Recommendation.parse(recommendation)
        self._require_movie(movie_id)

        existing = self.reviews.find_one(user_id, movie_id)
        if existing is None:
            raise NotFoundError("Review", f"user={user_id} movie={movie_id}")

        review = self.reviews.update(existing.id, {"recommendation": value.to_db()})
        if review is None:
            raise NotFoundError("Review", existing.id)

        summary = self.recompute(movie_id)
        logger.info(f"Reaction updated: user_id={user_id} movie_id={movie_id} recommendation={value.value}")
        return ReviewResult(review=review, summary=summary)

    # ============ BULK OPERATIONS ============

    def remove_user_reviews(self, user_id: int) -> List[int]:
        """
        Delete every review written by a user and recompute the affected movies.

        Returns:
            IDs of the movies whose summaries were recomputed.
        """
        movie_ids = []
        for review in self.reviews.find_all_by_user(user_id):
            self.reviews.delete(review.id)
            if review.movie_id not in movie_ids:
                movie_ids.append(review.movie_id)

        for movie_id in movie_ids:
            try:
                self.recompute(movie_id)
            except NotFoundError:
                logger.warning(f"Movie {movie_id} vanished while removing reviews of user {user_id}")

        logger.info(f"Removed reviews of user {user_id} across {len(movie_ids)} movies")
        return movie_ids

    def remove_movie(self, movie_id: int) -> int:
        """
        Delete a movie together with its reviews.

        Returns:
            Number of reviews deleted.
        """
        self._require_movie(movie_id)
        deleted = self.reviews.delete_all_by_movie(movie_id)
        if not self.movies.delete(movie_id):
            raise NotFoundError("Movie", movie_id)
        logger.info(f"Movie deleted: id={movie_id} reviews_removed={deleted}")
        return deleted

    # ============ RECOMPUTATION ============

    def recompute(self, movie_id: int) -> RatingSummary:
        """
        Recompute a movie's summary from all of its reviews and store it.

        Raises:
            NotFoundError: If the movie does not exist.
            StoreError: If the database fails.
        """
        summary = RatingSummary()
        for attempt in range(1, self.max_summary_retries + 1):
            movie = self._require_movie(movie_id)
            reviews = self.reviews.find_all_by_movie(movie_id)
            summary = compute_summary(reviews)
            review_ids = sorted(r.id for r in reviews)

            if self.movies.update_summary(
                movie_id,
                summary,
                review_ids,
                expected_version=movie.summary_version,
            ):
                return summary

            logger.info(
                f"Summary of movie {movie_id} changed concurrently, "
                f"recomputing (attempt {attempt}/{self.max_summary_retries})"
            )

        logger.warning(
            f"Gave up writing summary for movie {movie_id} after "
            f"{self.max_summary_retries} attempts; next write will refresh it"
        )
        return summary

    # ============ HELPERS ============

    def _require_movie(self, movie_id: int) -> MovieData:
        movie = self.movies.find_by_id(movie_id)
        if movie is None:
            raise NotFoundError("Movie", movie_id)
        return movie

    def _require_owned_review(self, review_id: int, requester_id: int, action: str) -> ReviewData:
        review = self.reviews.find_by_id(review_id)
        if review is None:
            raise NotFoundError("Review", review_id)
        if review.user_id != requester_id:
            logger.warning(f"User {requester_id} tried to {action} review {review_id} of user {review.user_id}")
            raise AuthorizationError(f"Not authorized to {action} this review")
        return review

    def _overwrite(self, review_id: int, review_input: ReviewInput) -> ReviewData:
        review = self.reviews.update(
            review_id,
            {
                "rating": review_input.rating,
                "comment": review_input.comment,
                "recommendation": review_input.recommendation.to_db(),
            },
        )
        if review is None:
            raise NotFoundError("Review", review_id)
        return review
