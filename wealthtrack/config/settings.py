"""
Configuration Management for WealthTrack

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which knobs the ledger engine exposes and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from uuid import UUID

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Well-known id of the seeded "Balance correction" system category
DEFAULT_BALANCE_CORRECTION_CATEGORY_ID = UUID("5b0a3d0e-9a43-4c1e-8f63-1f5c2d7e9b10")


class StorageSettings(BaseSettings):
    """Entity store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WEALTHTRACK_STORAGE_",
        extra="ignore"
    )

    backend: str = Field(
        default="memory",
        pattern="^(memory|sqlite)$",
        description="Which entity store to use"
    )
    sqlite_path: str = Field(
        default="wealthtrack.db",
        description="Path to the SQLite database file"
    )
    connect_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times to try opening the database"
    )

    @field_validator('sqlite_path')
    @classmethod
    def validate_sqlite_path(cls, v: str) -> str:
        """Warn if the parent directory doesn't exist (it may be mounted later)."""
        parent = Path(v).parent
        if v != ":memory:" and not parent.exists():
            import warnings
            warnings.warn(
                f"Directory for SQLite database not found: {parent}. "
                "Make sure it exists before running the application."
            )
        return v


class LedgerSettings(BaseSettings):
    """Balance and goal engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WEALTHTRACK_LEDGER_",
        extra="ignore"
    )

    balance_correction_category_id: UUID = Field(
        default=DEFAULT_BALANCE_CORRECTION_CATEGORY_ID,
        description="Id of the system category used for balance corrections"
    )
    balance_correction_description: str = Field(
        default="Balance correction",
        max_length=200,
        description="Description given to synthetic correction transactions"
    )

    # Caller-side retry of whole mutations on concurrent modification
    conflict_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a mutation is attempted on conflict"
    )
    conflict_retry_max_wait_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=30.0,
        description="Upper bound of the exponential wait between attempts"
    )


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG regardless of log_level"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for local structured logs"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False gives console output)"
    )


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
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the failing sections.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "ledger", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
