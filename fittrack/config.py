"""
Application configuration.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from the environment (and an optional .env file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "FitTrack API"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Fitness goal tracking: goals, progress entries and derived current values"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = ""

    # Database
    DATABASE_URL: str = ""

    # Security
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    # Sentry
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    # Goal consistency maintenance
    CONSISTENCY_MAX_ATTEMPTS: int = 3
    CONSISTENCY_INITIAL_DELAY: float = 0.05
    CONSISTENCY_MAX_DELAY: float = 1.0

    # Progress feed
    RECENT_PROGRESS_DEFAULT_LIMIT: int = 10


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
