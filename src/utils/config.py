"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Ahrefs API v3 (required for live analysis)
    AHREFS_API_TOKEN: Optional[str] = None
    AHREFS_BASE_URL: str = "https://api.ahrefs.com/v3"

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Competitor discovery
    DEFAULT_COUNTRY: str = "us"
    GAP_DISCOVERY_LIMIT: int = 10

    # Profile aggregation
    GAP_FETCH_LIMIT: int = 5000
    GAP_FETCH_TIMEOUT: float = 60.0
    GAP_MAX_CONCURRENCY: int = 10

    # Scoring
    GAP_MIN_COMPETITORS: int = 2
    GAP_RELEVANCE_NORMALIZER: float = 100.0
    STARVATION_MODERATE_THRESHOLD: int = 20
    STARVATION_SEVERE_THRESHOLD: int = 50

    # Timeouts
    API_TIMEOUT: int = 60

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
