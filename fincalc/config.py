"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings


def get_env_file() -> str:
    """Determine which env file to use based on environment."""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ".env.production"
    return ".env.development"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Financial Calculator"
    debug: bool = False
    log_level: str = "INFO"
    app_env: str = "development"

    # Calculator sessions
    default_payments_per_year: int = Field(1, ge=1)
    max_sessions: int = Field(1000, ge=1)

    class Config:
        env_file = get_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
