"""Pytest fixtures for API tests."""

import logging

import pytest
from fastapi.testclient import TestClient

from api.config import get_settings
from api.main import app
from config.logging_config import ROOT_LOGGER_NAME


@pytest.fixture
def api_db_path(db_path, monkeypatch):
    """Point the app at a throwaway store."""
    monkeypatch.setenv("DMS_DATABASE_PATH", str(db_path))
    get_settings.cache_clear()
    yield db_path
    get_settings.cache_clear()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def client(api_db_path):
    """Create a TestClient for the FastAPI application."""
    with TestClient(app) as c:
        yield c
