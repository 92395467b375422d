"""
Configuration management for the review service.

Loads configuration from environment variables and provides
a centralized Config dataclass for all settings.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass
class Config:
    """Centralized configuration from environment variables."""

    # Database
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = ""
    db_password: str = ""
    db_name: str = ""

    # Paths
    project_dir: Path = field(default_factory=Path.cwd)
    log_dir: Path = field(default_factory=lambda: Path.cwd() / "logs")

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False

    # JWT settings
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60

    # Rating aggregation
    summary_max_retries: int = 3

    @classmethod
    def from_env(cls, env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from environment variables.

        Args:
            env_path: Optional path to .env file. If not provided,
                     looks for .env in the project root, then current directory.

        Returns:
            Config instance with loaded values.

        Raises:
            ValueError: If required environment variables are missing.
        """
        # Load .env file
        if env_path:
            load_dotenv(env_path)
        else:
            root_env = Path(__file__).parent.parent / ".env"
            if root_env.exists():
                load_dotenv(root_env)
            else:
                load_dotenv()  # Fall back to current directory

        # Database config
        db_host = os.getenv("SQL_HOST", "localhost")
        db_port = int(os.getenv("SQL_PORT", "3306"))
        db_user = os.getenv("SQL_USER", "")
        db_password = os.getenv("SQL_PASS", "")
        db_name = os.getenv("SQL_DB", "")

        if not db_user or not db_name:
            raise ValueError("SQL_USER and SQL_DB environment variables are required")

        # JWT settings
        jwt_secret_key = os.getenv("JWT_SECRET_KEY", "")
        if not jwt_secret_key:
            raise ValueError("JWT_SECRET_KEY environment variable is required")
        jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        jwt_expire_minutes = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))

        project_dir = Path(os.getenv("PROJECT_DIR", Path.cwd()))

        # API settings
        api_host = os.getenv("API_HOST", "0.0.0.0")
        api_port = int(os.getenv("API_PORT", "8000"))
        api_debug = os.getenv("API_DEBUG", "false").lower() == "true"

        summary_max_retries = int(os.getenv("SUMMARY_MAX_RETRIES", "3"))

        return cls(
            db_host=db_host,
            db_port=db_port,
            db_user=db_user,
            db_password=db_password,
            db_name=db_name,
            project_dir=project_dir,
            log_dir=project_dir / "logs",
            api_host=api_host,
            api_port=api_port,
            api_debug=api_debug,
            jwt_secret_key=jwt_secret_key,
            jwt_algorithm=jwt_algorithm,
            jwt_expire_minutes=jwt_expire_minutes,
            summary_max_retries=summary_max_retries,
        )

    def get_db_url(self) -> str:
        """Get SQLAlchemy database URL."""
        return (
            f"mysql+pymysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )
