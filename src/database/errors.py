"""Exception hierarchy for the schema engine.

Two families live here. Programmer errors (``SchemaDefinitionError``,
``UnknownTableError``) mean the compiled-in registry is wrong or was asked
for something it never declared; nothing catches them. Startup errors
(``SchemaInitializationError`` and subclasses) are what the hosting process
sees when the store cannot be brought into conformance and must abort.
"""

from typing import List, Optional, Sequence


class SchemaError(Exception):
    """Base class for schema engine errors."""
    pass


class SchemaDefinitionError(SchemaError):
    """The canonical schema registry is internally inconsistent."""
    pass


class UnknownTableError(SchemaError, LookupError):
    """A table was requested that the registry does not declare."""

    def __init__(self, table_name: str):
        super().__init__(f"Table '{table_name}' is not declared in the schema registry")
        self.table_name = table_name


class UnsupportedColumnChange(SchemaError):
    """A declared column cannot be added to an existing table."""

    def __init__(self, table_name: str, column_name: str, reason: str):
        super().__init__(
            f"Cannot add column {table_name}.{column_name} to an existing table: {reason}"
        )
        self.table_name = table_name
        self.column_name = column_name
        self.reason = reason


class SchemaInitializationError(SchemaError):
    """Fatal startup error: the store is not safe to serve requests."""

    def __init__(
        self,
        message: str,
        from_version: Optional[str] = None,
        to_version: Optional[str] = None,
    ):
        super().__init__(message)
        self.from_version = from_version
        self.to_version = to_version


class MigrationError(SchemaInitializationError):
    """DDL application failed and the migration transaction was rolled back.

    Typically a configuration problem (permissions, disk full, a column the
    store refuses to add). The underlying store error is chained as
    ``__cause__`` and its text kept in ``store_error``.
    """

    def __init__(
        self,
        message: str,
        from_version: Optional[str] = None,
        to_version: Optional[str] = None,
        store_error: Optional[str] = None,
    ):
        super().__init__(message, from_version, to_version)
        self.store_error = store_error


class IntegrityError(SchemaInitializationError):
    """Post-migration validation failed.

    ``missing_tables`` reports a structural problem, ``violations`` a data
    problem (rows breaking foreign-key constraints).
    """

    def __init__(
        self,
        message: str,
        missing_tables: Sequence[str] = (),
        violations: Sequence = (),
        from_version: Optional[str] = None,
        to_version: Optional[str] = None,
    ):
        super().__init__(message, from_version, to_version)
        self.missing_tables: List[str] = list(missing_tables)
        self.violations = list(violations)

    @property
    def is_structural(self) -> bool:
        return bool(self.missing_tables)
