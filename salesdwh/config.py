"""
Sales DWH Configuration
=======================
Environment-aware settings using pydantic-settings.
Loads from environment variables or .env files.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment: 'dev' routes all tables to dev schema, 'prod' uses defined schemas
    environment: str = "dev"

    # Supabase
    supabase_url: str = ""
    supabase_service_key: str = ""

    # Pipeline settings
    batch_size: int = 1000

    # Persist the model even when invariant checks fail
    load_on_dq_failure: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
