"""
Database manager for the review service.

Handles:
- Connection management with SQLAlchemy
- Table setup and status checks
- Access to the user, movie and review stores
"""

from typing import List

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from .config import Config
from .stores import MovieStore, ReviewStore, UserStore
from .utils import setup_logger


class DatabaseManager:
    """
    Owns the SQLAlchemy engine and the stores built on it.

    Responsibilities:
    - Connection management with SQLAlchemy
    - Creating the users, movies and reviews tables
    - Exposing the stores used by the aggregator and API
    """

    # Creation order matters: reviews references users and movies
    TABLES = ["users", "movies", "reviews"]

    def __init__(self, config: Config, engine: Engine = None):
        self.config = config
        self.engine = engine or self._create_engine()
        self.logger = setup_logger("database", config.log_dir)
        self.users = UserStore(self.engine)
        self.movies = MovieStore(self.engine)
        self.reviews = ReviewStore(self.engine)

    def _create_engine(self) -> Engine:
        """Create SQLAlchemy engine with connection pooling."""
        return create_engine(
            self.config.get_db_url(),
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    def _execute(self, query: str, params: dict = None) -> list:
        """Execute a query and return results."""
        with self.engine.connect() as conn:
            result = conn.execute(text(query), params or {})
            conn.commit()
            return result.fetchall() if result.returns_rows else []

    # ============ SETUP OPERATIONS ============

    def table_exists(self, table_name: str) -> bool:
        """Check if a specific table exists."""
        result = self._execute(
            """SELECT COUNT(*) FROM information_schema.tables
               WHERE table_schema = :db AND table_name = :table""",
            {"db": self.config.db_name, "table": table_name}
        )
        return result[0][0] > 0

    def get_missing_tables(self) -> List[str]:
        """Get required tables that don't exist."""
        return [t for t in self.TABLES if not self.table_exists(t)]

    def check_and_create_tables(self) -> dict:
        """
        Check which tables exist and create any that are missing.

        Returns:
            {
                "existing": List[str],
                "created": List[str],
                "all_present": bool
            }
        """
        result = {"existing": [], "created": [], "all_present": False}

        for table in self.TABLES:
            if self.table_exists(table):
                result["existing"].append(table)
            elif self._create_table(table):
                result["created"].append(table)

        result["all_present"] = len(result["existing"]) + len(result["created"]) == len(self.TABLES)
        return result

    def _create_table(self, table: str) -> bool:
        """Create a specific table with its indexes."""
        sql_templates = {
            "users": """
                CREATE TABLE IF NOT EXISTS users (
                    id INT AUTO_INCREMENT PRIMARY KEY,
                    username VARCHAR(100) NOT NULL,
                    email VARCHAR(255) NOT NULL,
                    password_hash VARCHAR(255) NOT NULL,
                    is_admin BOOLEAN NOT NULL DEFAULT FALSE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
                    UNIQUE KEY uq_users_email (email)
                ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci
            """,
            "movies": """
                CREATE TABLE IF NOT EXISTS movies (
                    id INT AUTO_INCREMENT PRIMARY KEY,
                    title VARCHAR(255) NOT NULL,
                    description TEXT NOT NULL,
                    poster VARCHAR(500) NOT NULL DEFAULT '',
                    backdrop VARCHAR(500) NOT NULL DEFAULT '',
                    year INT,
                    runtime VARCHAR(50),
                    director VARCHAR(255),
                    cast_members JSON,
                    genres JSON,
                    trending BOOLEAN NOT NULL DEFAULT FALSE,
                    views INT NOT NULL DEFAULT 0,
                    release_date DATE,
                    average_rating FLOAT NOT NULL DEFAULT 0,
                    recommendation_up INT NOT NULL DEFAULT 0,
                    recommendation_down INT NOT NULL DEFAULT 0,
                    review_ids JSON,
                    summary_version INT NOT NULL DEFAULT 0,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
                    INDEX idx_movies_title (title),
                    INDEX idx_movies_release_date (release_date)
                ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci
            """,
            "reviews": """
                CREATE TABLE IF NOT EXISTS reviews (
                    id INT AUTO_INCREMENT PRIMARY KEY,
                    user_id INT NOT NULL,
                    movie_id INT NOT NULL,
                    rating FLOAT NOT NULL,
                    comment TEXT,
                    recommendation VARCHAR(10),
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
                    UNIQUE KEY uq_reviews_user_movie (user_id, movie_id),
                    INDEX idx_reviews_movie_rating (movie_id, rating),
                    INDEX idx_reviews_movie_created (movie_id, created_at),
                    CONSTRAINT fk_reviews_user FOREIGN KEY (user_id) REFERENCES users (id) ON DELETE CASCADE,
                    CONSTRAINT fk_reviews_movie FOREIGN KEY (movie_id) REFERENCES movies (id) ON DELETE CASCADE
                ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci
            """,
        }

        try:
            self._execute(sql_templates[table])
            self.logger.info(f"Created table: {table}")
            return True
        except Exception as e:
            self.logger.error(f"Error creating table {table}: {e}")
            return False

    def get_status(self) -> dict:
        """Get current database status."""
        missing = self.get_missing_tables()

        status = {
            "user_count": 0,
            "movie_count": 0,
            "review_count": 0,
            "missing_tables": missing,
            "all_tables_exist": len(missing) == 0,
        }

        if "users" not in missing:
            status["user_count"] = self.users.count()
        if "movies" not in missing:
            status["movie_count"] = self.movies.count()
        if "reviews" not in missing:
            status["review_count"] = self.reviews.count()

        return status
