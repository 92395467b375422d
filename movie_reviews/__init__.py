"""
Movie Reviews - catalog, reviews and rating aggregation.

This package provides:
- Configuration loading from the environment
- SQL-backed stores for users, movies and reviews
- The rating aggregator that keeps movie summaries consistent with reviews
- Password hashing and bearer tokens
- A CLI for setup, status, recalculation, admin creation and seeding
"""

from .config import Config
from .models import (
    MovieData,
    RatingSummary,
    Recommendation,
    ReviewData,
    ReviewInput,
    ReviewPatch,
    UserData,
)
from .aggregator import RatingAggregator, ReviewResult, compute_summary
from .database import DatabaseManager

__version__ = "1.0.0"
__all__ = [
    "Config",
    "MovieData",
    "RatingSummary",
    "Recommendation",
    "ReviewData",
    "ReviewInput",
    "ReviewPatch",
    "UserData",
    "RatingAggregator",
    "ReviewResult",
    "compute_summary",
    "DatabaseManager",
]
