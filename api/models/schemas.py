"""Pydantic schemas for API responses."""

from pydantic import BaseModel, Field
from typing import Optional


class SchemaStatus(BaseModel):
    """Schema version information."""
    current_version: str
    target_version: str
    up_to_date: bool
    migrated_at_startup: bool = Field(False, description="Whether this process ran a migration")
    last_migration: Optional[str] = Field(None, description="Summary of the startup run")


class TableCounts(BaseModel):
    """Row counts per declared table plus the store's size."""
    tables: dict[str, int]
    file_size_bytes: int
    file_size: str


class HealthStatus(BaseModel):
    """Health check response."""
    status: str
    database: str
    schema_version: Optional[str] = None
    error: Optional[str] = None
