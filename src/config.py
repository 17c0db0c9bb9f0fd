from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    DB_BACKEND: str = "sqlite"
    SQLITE_PATH: str = "./data/schools.db"
    CORS_ORIGINS: str = ""  # Comma-separated origins, empty = same-origin only
    LOG_LEVEL: str = "INFO"

    # Batch rating refresh
    RATING_STALENESS_DAYS: int = 30
    RATING_REFRESH_CONCURRENCY: int = 8
    RATING_REFRESH_INTERVAL_HOURS: int = 24

    # Listing pages
    TOP_SCHOOLS_LIMIT: int = 10

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
