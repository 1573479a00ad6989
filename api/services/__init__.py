"""API services."""

from .database import DatabaseService, get_db_service

__all__ = ["DatabaseService", "get_db_service"]
