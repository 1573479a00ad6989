"""FastAPI application settings."""

from pathlib import Path
from pydantic_settings import BaseSettings
from functools import lru_cache
import os

from config import config


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("DMS_CORS_ORIGINS", "")
    if cors_env:
        return [origin.strip() for origin in cors_env.split(",")]
    # Default development origins
    return ["http://localhost:3000", "http://localhost:5173"]


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # App info
    app_name: str = "Sanctum DMS API"
    version: str = "1.0.0"
    api_version: str = "v1"
    debug: bool = os.getenv("DMS_DEBUG", "false").lower() == "true"

    # Database
    database_path: Path = config.db_path

    # CORS - configurable via environment variable
    cors_origins: list[str] = _parse_cors_origins()

    class Config:
        env_prefix = "DMS_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
