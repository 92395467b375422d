"""
Logging configuration for the API.

Provides centralized logging setup with request tracking. Every record
carries the id of the request that produced it, including records from
the aggregator and stores.
"""

import logging
import os
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Optional

# Context variable for request ID tracking across async calls
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Loggers whose records should be written alongside the API's own
DOMAIN_LOGGERS = ("movie_reviews.aggregator", "movie_reviews.stores")


class RequestIdFilter(logging.Filter):
    """Add request_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


def setup_api_logger(
    name: str = "api",
    log_dir: Optional[Path] = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Set up the API logger with file and console handlers.

    The same handlers are attached to the domain loggers so a request's
    review writes and summary recomputations land in the API log.

    Args:
        name: Logger name
        log_dir: Directory for log files (defaults to $PROJECT_DIR/logs)
        level: Logging level

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if log_dir is None:
        log_dir = Path(os.getenv("PROJECT_DIR", Path.cwd())) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / f"{name}_{datetime.now().strftime('%Y%m%d')}.log"
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    file_handler.addFilter(RequestIdFilter())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(RequestIdFilter())

    for target in (logger, *(logging.getLogger(n) for n in DOMAIN_LOGGERS)):
        target.setLevel(level)
        target.addHandler(file_handler)
        target.addHandler(console_handler)
        target.propagate = False

    return logger


def level_for_status(status_code: int) -> int:
    """Log level for a completed request with this status."""
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def generate_request_id() -> str:
    """Generate a short unique request ID."""
    return uuid.uuid4().hex[:8]


def set_request_id(request_id: str) -> None:
    """Set the request ID in context."""
    request_id_var.set(request_id)


# Initialize the main API logger
logger = setup_api_logger()
