"""
TrustScore Configuration Module
===============================

Centralized configuration management using Pydantic Settings.

Loads configuration from:
    1. Environment variables (prefixed with TRUSTSCORE_)
    2. .env file (if present)
    3. Default values

Usage:
    from trustscore.config import settings

    print(settings.database_url)
    print(settings.score_max_attempts)

The scoring rules themselves (penalties, windows, thresholds) are not
configurable; they live with the rule catalog.

Author: TrustScore Team
Version: 1.0.0
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


STORE_BACKENDS = ("sql", "memory")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Naming convention: TRUSTSCORE_UPPER_SNAKE_CASE in env,
    lower_snake_case in code.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRUSTSCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(default="trustscore", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=True, description="Render logs as JSON")

    # =========================================================================
    # Storage
    # =========================================================================

    store_backend: str = Field(
        default="sql",
        description="Store implementation: 'sql' or 'memory'"
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./trustscore.db",
        description="SQLAlchemy async database URL"
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements to the log"
    )

    # =========================================================================
    # Scoring Engine
    # =========================================================================

    score_max_attempts: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Compare-and-set attempts before giving up on a score update"
    )

    @field_validator("store_backend")
    @classmethod
    def validate_store_backend(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in STORE_BACKENDS:
            raise ValueError(
                f"store_backend must be one of {', '.join(STORE_BACKENDS)}"
            )
        return normalized

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return normalized


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are loaded only once.

    Returns:
        Settings instance
    """
    return Settings()


# Convenience alias
settings = get_settings()
