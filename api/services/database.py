"""Database service for FastAPI: one connection and one schema engine per app."""

from pathlib import Path
from typing import Optional

from fastapi import Request

from config.logging_config import get_logger
from src.database import DatabaseConnection, MigrationEngine, MigrationReport

logger = get_logger("api.database")


class DatabaseService:
    """Owns the app's store handle and runs the startup migration.

    Args:
        db_path: Path to database file.
    """

    def __init__(self, db_path: Path):
        # Shared by async endpoints and threadpool workers
        self.db = DatabaseConnection(db_path, check_same_thread=False)
        self.engine = MigrationEngine(self.db)

    def startup(self) -> MigrationReport:
        """Open the store and bring its schema up to date.

        Raises:
            SchemaInitializationError: The app must not start.
        """
        self.db.connect()
        return self.engine.ensure_schema_current()

    def close(self) -> None:
        """Close the database connection."""
        self.db.close()


def get_db_service(request: Request) -> DatabaseService:
    """FastAPI dependency returning the app's database service."""
    service: Optional[DatabaseService] = getattr(request.app.state, "db_service", None)
    if service is None:
        raise RuntimeError("Database service not initialized; app lifespan has not run")
    return service
