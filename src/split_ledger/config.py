"""Configuration management for split-ledger."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .models import RoundingStrategy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SPLIT_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Split defaults
    default_precision: int = Field(default=2, ge=0, le=6)
    default_rounding_strategy: RoundingStrategy = "distribute"

    # Display only, amounts are never converted
    currency_code: str = "INR"

    # Cache settings
    group_cache_ttl_seconds: float = 600.0
    expense_cache_ttl_seconds: float = 300.0
    settlement_cache_ttl_seconds: float = 300.0
    cache_max_size: int = Field(default=100, gt=0)

    # Database path
    database_path: Path = Path.home() / ".split_ledger" / "split_ledger.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your SPLIT_LEDGER_* environment "
            f"variables and .env file.\n"
            f"Error: {e}"
        ) from e
