"""Configuration management for Household Ledger."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LEDGER_",
        case_sensitive=False,
        extra="ignore",
    )

    # Identity (stands in for the identity provider)
    user_id: str = "me"
    user_email: str | None = None

    # Household used when a command doesn't name one
    default_household_id: str | None = None

    # Presentation
    recent_limit: int = 5
    log_level: str = "INFO"

    # Database path
    database_path: Path = Path.home() / ".household_ledger" / "ledger.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings(**overrides) -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings(**overrides)
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your LEDGER_* environment "
            f"variables or .env file.\n"
            f"Error: {e}"
        ) from e
