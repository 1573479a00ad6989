"""Database module: SQLite store and its self-healing schema engine."""

from .connection import (
    DatabaseConnection,
    get_connection,
    get_memory_connection,
)
from .errors import (
    SchemaError,
    SchemaDefinitionError,
    UnknownTableError,
    UnsupportedColumnChange,
    SchemaInitializationError,
    MigrationError,
    IntegrityError,
)
from .schema import (
    SCHEMA_VERSION,
    INITIAL_VERSION,
    SCHEMA_REGISTRY,
    SCHEMA_DEFINITIONS,
    ColumnSpec,
    IndexSpec,
    ForeignKeySpec,
    TableDefinition,
    SchemaRegistry,
    get_table_definition,
    get_all_table_names,
)
from .schema_inspector import SchemaInspector, get_inspector
from .integrity import IntegrityValidator, ForeignKeyViolation, ValidationResult
from .migrations import (
    MigrationEngine,
    MigrationReport,
    MigrationState,
    ensure_schema_current,
    get_schema_version,
)
from .maintenance import (
    MaintenanceResult,
    format_bytes,
    get_database_size,
    get_row_counts,
    create_backup,
    list_backups,
    restore_backup,
)

__all__ = [
    # Connection
    "DatabaseConnection",
    "get_connection",
    "get_memory_connection",
    # Errors
    "SchemaError",
    "SchemaDefinitionError",
    "UnknownTableError",
    "UnsupportedColumnChange",
    "SchemaInitializationError",
    "MigrationError",
    "IntegrityError",
    # Schema
    "SCHEMA_VERSION",
    "INITIAL_VERSION",
    "SCHEMA_REGISTRY",
    "SCHEMA_DEFINITIONS",
    "ColumnSpec",
    "IndexSpec",
    "ForeignKeySpec",
    "TableDefinition",
    "SchemaRegistry",
    "get_table_definition",
    "get_all_table_names",
    # Introspection and validation
    "SchemaInspector",
    "get_inspector",
    "IntegrityValidator",
    "ForeignKeyViolation",
    "ValidationResult",
    # Migrations
    "MigrationEngine",
    "MigrationReport",
    "MigrationState",
    "ensure_schema_current",
    "get_schema_version",
    # Maintenance
    "MaintenanceResult",
    "format_bytes",
    "get_database_size",
    "get_row_counts",
    "create_backup",
    "list_backups",
    "restore_backup",
]
