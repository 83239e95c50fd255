"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Planner"
    debug: bool = False

    # Server
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database
    database_url: str = "sqlite:///./planner.db"

    # Recurrence expansion
    max_occurrences: int = 500  # Per parent, per listing request
    occurrence_cache_size: int = 1024

    # Reminders
    reminder_interval_minutes: int = 1
    default_reminder_minutes: int = 15

    # Invitations
    invitation_interval_minutes: int = 1


settings = Settings()
