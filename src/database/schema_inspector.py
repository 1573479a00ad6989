"""Runtime schema introspection for the dealer management store.

Answers what structure the live SQLite file actually has. Every answer is
read from the system catalog at call time; nothing is cached, so the
inspector can be used inside an open migration transaction and sees that
transaction's own changes.
"""

from typing import Any, Dict, List, Optional, Set
from dataclasses import dataclass, field

from config.logging_config import get_logger

from .connection import DatabaseConnection
from .ddl import quote_identifier

logger = get_logger("schema_inspector")

# pragma_table_xinfo "hidden" values
HIDDEN_GENERATED_VIRTUAL = 2
HIDDEN_GENERATED_STORED = 3


@dataclass
class ColumnInfo:
    """Information about a live database column."""
    name: str
    data_type: str
    nullable: bool = True
    default_value: Optional[str] = None
    is_primary_key: bool = False
    generated: bool = False


@dataclass
class TableSchema:
    """Schema information for a live database table."""
    name: str
    columns: Dict[str, ColumnInfo] = field(default_factory=dict)
    row_count: int = 0

    def has_column(self, column: str) -> bool:
        """Check if column exists in table."""
        return column.lower() in {c.lower() for c in self.columns}

    def get_column_names(self) -> List[str]:
        """Get list of column names."""
        return list(self.columns.keys())


class SchemaInspector:
    """
    Read-only view of the live store's structure.

    Args:
        db: Connection facade to inspect through.
    """

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def table_exists(self, table: str) -> bool:
        """Check the system catalog for a table."""
        row = self.db.query_one(
            "SELECT 1 AS present FROM sqlite_master WHERE type = 'table' AND name = ?",
            [table],
        )
        return row is not None

    def columns_of(self, table: str) -> Set[str]:
        """
        Column names currently present in a table.

        Generated columns are included. A table that does not exist has no
        columns; that is an answer, not an error.
        """
        if not self.table_exists(table):
            return set()
        rows = self.db.query_all("SELECT name FROM pragma_table_xinfo(?)", [table])
        return {row["name"] for row in rows}

    def get_tables(self) -> List[str]:
        """
        Get list of all user tables in the database.

        Returns:
            Sorted table names, SQLite internal tables excluded.
        """
        rows = self.db.query_all(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row["name"] for row in rows]

    def get_indexes(self, table: Optional[str] = None) -> List[str]:
        """
        Get names of explicitly created indexes.

        Args:
            table: Restrict to one table (None = all tables)
        """
        query = (
            "SELECT name FROM sqlite_master "
            "WHERE type = 'index' AND name NOT LIKE 'sqlite_autoindex_%'"
        )
        params: List[Any] = []
        if table is not None:
            query += " AND tbl_name = ?"
            params.append(table)
        rows = self.db.query_all(query + " ORDER BY name", params)
        return [row["name"] for row in rows]

    def index_exists(self, index: str) -> bool:
        row = self.db.query_one(
            "SELECT 1 AS present FROM sqlite_master WHERE type = 'index' AND name = ?",
            [index],
        )
        return row is not None

    def foreign_keys_of(self, table: str) -> List[Dict[str, Any]]:
        """
        Foreign keys declared on a live table.

        Returns:
            Rows of ``pragma_foreign_key_list``: id, seq, table, from, to,
            on_update, on_delete, match.
        """
        return self.db.query_all("SELECT * FROM pragma_foreign_key_list(?)", [table])

    def get_table_schema(self, table: str) -> Optional[TableSchema]:
        """
        Get schema information for a table.

        Args:
            table: Table name

        Returns:
            TableSchema object or None if table doesn't exist
        """
        if not self.table_exists(table):
            return None

        rows = self.db.query_all(
            'SELECT name, type, "notnull", dflt_value, pk, hidden FROM pragma_table_xinfo(?)',
            [table],
        )
        columns = {}
        for row in rows:
            columns[row["name"]] = ColumnInfo(
                name=row["name"],
                data_type=row["type"],
                nullable=not row["notnull"],
                default_value=row["dflt_value"],
                is_primary_key=bool(row["pk"]),
                generated=row["hidden"] in (HIDDEN_GENERATED_VIRTUAL, HIDDEN_GENERATED_STORED),
            )

        row_count = self.db.query_scalar(f"SELECT COUNT(*) FROM {quote_identifier(table)}") or 0

        logger.debug(f"Discovered schema for {table}: {len(columns)} columns, {row_count} rows")
        return TableSchema(name=table, columns=columns, row_count=row_count)


# Convenience function for quick schema checks
def get_inspector(db: DatabaseConnection) -> SchemaInspector:
    """
    Get a SchemaInspector instance.

    Args:
        db: Database connection

    Returns:
        SchemaInspector instance
    """
    return SchemaInspector(db)
