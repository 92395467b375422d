"""
Catalog seeding from JSON files.

Movies whose title closely matches one already in the catalog are
skipped, so re-running a seed file does not create near-duplicates.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from thefuzz import fuzz

from .errors import ValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "description")


def find_similar_title(title: str, titles: Sequence[str], threshold: float = 0.9) -> Optional[str]:
    """
    Find the closest existing title at or above a similarity threshold.

    Args:
        title: Title to look up
        titles: Existing catalog titles
        threshold: Minimum similarity ratio (0-1) for a match

    Returns:
        The best matching title, or None
    """
    best_match = None
    best_score = 0.0

    for existing in titles:
        score = fuzz.ratio(title.lower(), existing.lower()) / 100
        if score > best_score:
            best_score = score
            best_match = existing

    if best_match is not None and best_score >= threshold:
        return best_match
    return None


def load_movies_file(path: Path) -> List[dict]:
    """
    Read a JSON list of movie objects.

    Raises:
        ValidationError: If the file is not a list of objects with a title and description.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValidationError(f"{path} must contain a JSON list of movies")

    for i, movie in enumerate(data):
        if not isinstance(movie, dict):
            raise ValidationError(f"Entry {i} in {path} is not an object")
        missing = [f for f in REQUIRED_FIELDS if not movie.get(f)]
        if missing:
            raise ValidationError(f"Entry {i} in {path} is missing {', '.join(missing)}")
    return data


def seed_movies(movie_store, movies: List[dict], threshold: float = 0.9) -> dict:
    """
    Insert movies that are not already in the catalog.

    Summary fields in the input (e.g. a precomputed rating) are ignored;
    a new movie starts with no reviews.

    Returns:
        {"inserted": List[str], "skipped": List[dict]}
    """
    titles = movie_store.titles()
    result = {"inserted": [], "skipped": []}

    for movie in movies:
        match = find_similar_title(movie["title"], titles, threshold)
        if match:
            logger.info(f"Skipping '{movie['title']}': matches existing '{match}'")
            result["skipped"].append({"title": movie["title"], "matches": match})
            continue

        created = movie_store.create(movie)
        titles.append(created.title)
        result["inserted"].append(created.title)
        logger.info(f"Seeded movie: {created.title} (id={created.id})")

    return result
