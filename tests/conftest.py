"""Pytest configuration and fixtures for the dealer management store tests."""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.database import DatabaseConnection, get_memory_connection  # noqa: E402


@pytest.fixture
def memory_db():
    """Create in-memory SQLite store for testing."""
    db = get_memory_connection()
    yield db
    db.close()


@pytest.fixture
def db_path(tmp_path):
    """Path to a not-yet-created database file."""
    return tmp_path / "db" / "dms.db"


@pytest.fixture
def file_db(db_path):
    """File-backed store."""
    db = DatabaseConnection(db_path)
    db.connect()
    yield db
    db.close()


@pytest.fixture
def legacy_registry():
    """The 1.0.0 schema: vehicles had no condition column yet."""
    from helpers import make_registry

    return make_registry("1.0.0", drop_columns={"vehicles": ["condition"]})
