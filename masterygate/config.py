"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from masterygate.engines.policy import ScoringPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./masterygate.db"

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR

    # API Settings
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Mastery Gate"
    version: str = "1.0.0"

    # Content (JSON files; built-in defaults when unset)
    catalog_path: Optional[str] = None
    requirements_path: Optional[str] = None

    # Thresholds, weights and windows
    policy: ScoringPolicy = Field(default_factory=ScoringPolicy)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
