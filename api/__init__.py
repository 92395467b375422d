"""
Movie Reviews REST API.

This module provides a FastAPI-based REST API for browsing movies,
writing reviews and managing the catalog.
"""

from api.main import app

__all__ = ["app"]
