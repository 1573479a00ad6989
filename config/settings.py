"""Application settings and configuration."""

from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DatabaseConfig:
    """Database configuration settings."""

    path: Path = field(
        default_factory=lambda: Path(
            os.getenv("DMS_DB_PATH", str(PROJECT_ROOT / "db" / "dms.db"))
        )
    )
    test_path: Path = field(
        default_factory=lambda: Path(
            os.getenv("DMS_TEST_DB_PATH", str(PROJECT_ROOT / "db" / "test_dms.db"))
        )
    )
    backup_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("DMS_BACKUP_DIR", str(PROJECT_ROOT / "db" / "backups"))
        )
    )
    timeout: float = field(
        default_factory=lambda: float(os.getenv("DMS_DB_TIMEOUT_SECONDS", "30"))
    )
    journal_mode: str = "WAL"
    synchronous: str = "NORMAL"
    cache_size: int = 10000

    def active_path(self, testing: bool) -> Path:
        """Database file used for the current environment."""
        return self.test_path if testing else self.path


@dataclass
class AppConfig:
    """Application configuration settings."""

    name: str = field(default_factory=lambda: os.getenv("APP_NAME", "Sanctum DMS"))
    version: str = field(default_factory=lambda: os.getenv("APP_VERSION", "1.0.0"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[Path] = field(
        default_factory=lambda: Path(os.environ["DMS_LOG_FILE"]) if os.getenv("DMS_LOG_FILE") else None
    )
    testing: bool = field(default_factory=lambda: _env_flag("DMS_TESTING"))


@dataclass
class Config:
    """Main configuration container."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    app: AppConfig = field(default_factory=AppConfig)

    @property
    def db_path(self) -> Path:
        """Database path honouring test mode."""
        return self.database.active_path(self.app.testing)

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.database.backup_dir.mkdir(parents=True, exist_ok=True)


# Global config instance
config = Config()
