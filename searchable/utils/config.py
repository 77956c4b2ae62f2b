"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import List, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Database (DATABASE_URL -> POSTGRES_URL -> SQLite fallback)
    DATABASE_URL: Optional[str] = None
    POSTGRES_URL: Optional[str] = None
    SQLITE_PATH: str = "searchable_dev.db"
    SQL_DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # Recency weighting (exp decay, half-life in days)
    RECENCY_HALF_LIFE_DAYS: float = 15.0
    RECENCY_WINDOW_DAYS: int = 30

    # Position score reaches 0 at avg position 1 + POSITION_DECAY_RANGE
    POSITION_DECAY_RANGE: int = 10

    # Query parameter names kept during URL normalization (all others dropped)
    URL_KEEP_QUERY_PARAMS: List[str] = []

    # Trends
    TRENDS_SMOOTHING_DAYS: int = 7

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
