"""API response models."""

from .schemas import SchemaStatus, TableCounts, HealthStatus

__all__ = ["SchemaStatus", "TableCounts", "HealthStatus"]
