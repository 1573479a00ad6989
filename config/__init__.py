"""Configuration module for the dealer management store."""

from .settings import config, DatabaseConfig, AppConfig, Config, PROJECT_ROOT
from .logging_config import setup_logging, get_logger

__all__ = [
    # Settings
    "config",
    "DatabaseConfig",
    "AppConfig",
    "Config",
    "PROJECT_ROOT",
    # Logging
    "setup_logging",
    "get_logger",
]
