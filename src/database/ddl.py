"""SQLite DDL rendering for declared schema objects.

All dialect-specific string building for tables, columns and indexes lives
in this module. Identifiers are always double-quoted; values never reach
DDL text because DDL is rendered only from the compiled-in registry.
"""

import hashlib
from typing import List

from config.logging_config import get_logger

from .errors import UnsupportedColumnChange
from .schema import ColumnSpec, ForeignKeySpec, IndexSpec, TableDefinition

logger = get_logger("ddl")

# Defaults SQLite evaluates per row; ALTER TABLE ADD COLUMN rejects them
NON_CONSTANT_DEFAULTS = {"CURRENT_TIME", "CURRENT_DATE", "CURRENT_TIMESTAMP"}


def quote_identifier(name: str) -> str:
    """Quote a table, column or index name for SQLite."""
    return '"' + name.replace('"', '""') + '"'


def _column_list(columns) -> str:
    return ", ".join(quote_identifier(column) for column in columns)


def is_constant_default(default: str) -> bool:
    """
    Check whether a DEFAULT expression is a constant SQLite can apply to
    existing rows when a column is added.
    """
    expression = default.strip()
    return expression.upper() not in NON_CONSTANT_DEFAULTS and not expression.startswith("(")


def render_column(column: ColumnSpec) -> str:
    """
    Render a column definition as used inside CREATE TABLE.

    Args:
        column: Declared column.

    Returns:
        Column definition text, e.g. ``"status" VARCHAR(20) DEFAULT 'active'``.
    """
    parts = [quote_identifier(column.name), column.type]
    if column.primary_key:
        parts.append("PRIMARY KEY")
        if column.autoincrement:
            parts.append("AUTOINCREMENT")
    if column.unique:
        parts.append("UNIQUE")
    if column.not_null:
        parts.append("NOT NULL")
    if column.default is not None:
        parts.append(f"DEFAULT {column.default}")
    if column.generated is not None:
        storage = "STORED" if column.stored else "VIRTUAL"
        parts.append(f"GENERATED ALWAYS AS ({column.generated}) {storage}")
    return " ".join(parts)


def render_foreign_key(fk: ForeignKeySpec) -> str:
    clause = (
        f"FOREIGN KEY ({_column_list(fk.columns)}) "
        f"REFERENCES {quote_identifier(fk.ref_table)} ({_column_list(fk.ref_columns)})"
    )
    if fk.on_delete:
        clause += f" ON DELETE {fk.on_delete}"
    return clause


def render_create_table(definition: TableDefinition, if_not_exists: bool = False) -> str:
    """
    Render CREATE TABLE with every declared column and foreign key.

    Foreign keys can only be declared here: SQLite has no way to add them
    to a table that already exists.
    """
    body: List[str] = [render_column(column) for column in definition.columns]
    body.extend(render_foreign_key(fk) for fk in definition.foreign_keys)
    guard = "IF NOT EXISTS " if if_not_exists else ""
    return f"CREATE TABLE {guard}{quote_identifier(definition.name)} ({', '.join(body)})"


def render_add_column(table_name: str, column: ColumnSpec) -> str:
    """
    Render ALTER TABLE ... ADD COLUMN for a column missing from a live table.

    SQLite only allows a subset of column definitions here, so the declared
    column is narrowed where that keeps its meaning and refused where it
    would not:

    - PRIMARY KEY and UNIQUE columns cannot be added.
    - NOT NULL needs a constant, non-NULL default.
    - STORED generated columns are added as VIRTUAL.
    - Per-row defaults (CURRENT_TIMESTAMP, parenthesised expressions) are
      left off; existing rows get NULL.

    Raises:
        UnsupportedColumnChange: The column cannot be added to an existing table.
    """
    if column.primary_key:
        raise UnsupportedColumnChange(table_name, column.name, "PRIMARY KEY columns cannot be added")
    if column.unique:
        raise UnsupportedColumnChange(table_name, column.name, "UNIQUE columns cannot be added")

    default = column.default
    if default is not None and not is_constant_default(default):
        if column.not_null:
            raise UnsupportedColumnChange(
                table_name, column.name, f"NOT NULL with non-constant default {default}"
            )
        logger.warning(
            f"Column {table_name}.{column.name}: default {default} cannot be applied "
            f"to existing rows, adding without a default"
        )
        default = None

    if column.not_null and default is None and column.generated is None:
        raise UnsupportedColumnChange(table_name, column.name, "NOT NULL without a default")

    if column.generated is not None and column.stored:
        logger.warning(
            f"Column {table_name}.{column.name}: STORED generated column added as VIRTUAL"
        )

    narrowed = ColumnSpec(
        name=column.name,
        type=column.type,
        not_null=column.not_null,
        default=default,
        generated=column.generated,
        stored=False,
    )
    return f"ALTER TABLE {quote_identifier(table_name)} ADD COLUMN {render_column(narrowed)}"


def render_index(table_name: str, index: IndexSpec) -> str:
    """Render an idempotent CREATE INDEX statement."""
    unique = "UNIQUE " if index.unique else ""
    return (
        f"CREATE {unique}INDEX IF NOT EXISTS {quote_identifier(index.name)} "
        f"ON {quote_identifier(table_name)} ({_column_list(index.columns)})"
    )


def render_table_indexes(definition: TableDefinition) -> List[str]:
    return [render_index(definition.name, index) for index in definition.indexes]


def definition_checksum(definition: TableDefinition) -> str:
    """SHA-256 over the rendered definition, recorded with each migration."""
    statements = [render_create_table(definition)] + render_table_indexes(definition)
    return hashlib.sha256(";\n".join(statements).encode("utf-8")).hexdigest()
