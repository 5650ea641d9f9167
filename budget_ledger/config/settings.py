"""
Configuration Management for Budget Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here so that the storage location,
pool sizing and display defaults are validated once at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """SQLite ledger store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    path: str = Field(
        default="data/ledger.db",
        description="Path to the SQLite database file"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="How long a connection waits on a locked database"
    )
    pool_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum number of pooled connections"
    )
    acquire_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How long a request waits for a free pooled connection"
    )
    connect_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made when opening a new connection"
    )

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Reject an empty path; ':memory:' is rejected because pooled connections would not share it."""
        v = v.strip()
        if not v:
            raise ValueError("Database path cannot be empty")
        if v == ":memory:":
            raise ValueError("In-memory databases cannot be shared by a connection pool")
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG level regardless of log_level"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    # Ledger defaults
    extra_income_concept: str = Field(
        default="Extra income",
        min_length=1,
        description="Concept used for extra income entries recorded without one"
    )
    safety_history_default_limit: int = Field(
        default=50,
        ge=1,
        description="Entries returned by the safety history when no limit is given"
    )
    safety_history_max_limit: int = Field(
        default=500,
        ge=1,
        description="Upper bound for the safety history limit"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an extra
    "<name>_error" entry describing each failure. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.database
        results["database"] = True
    except Exception as e:
        results["database"] = False
        results["database_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
