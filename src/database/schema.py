"""Canonical schema definitions for the dealer management store.

Every table the application relies on is declared here as data: typed
column specifications, index specifications and foreign-key clauses. The
migration engine renders these through ``src.database.ddl`` and never
hand-writes table DDL anywhere else.

Tables are declared in creation order. A table that references another
must come after it; the registry checks this when it is built, the engine
relies on it and does not reorder.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import SchemaDefinitionError, UnknownTableError

# Schema version for migrations
SCHEMA_VERSION = "1.1.0"  # Added vehicles.condition

# Version recorded when the store has never been migrated
INITIAL_VERSION = "0.0.0"

VERSION_TABLE = "schema_version"
MIGRATIONS_TABLE = "db_migrations"


# =============================================================================
# SCHEMA TYPES
# =============================================================================

@dataclass(frozen=True)
class ColumnSpec:
    """
    One declared column.

    ``default`` and ``generated`` are SQL expressions, so string literals
    carry their own quotes (``"'active'"``).
    """
    name: str
    type: str
    primary_key: bool = False
    autoincrement: bool = False
    not_null: bool = False
    unique: bool = False
    default: Optional[str] = None
    generated: Optional[str] = None
    stored: bool = True

    @property
    def is_generated(self) -> bool:
        return self.generated is not None


@dataclass(frozen=True)
class IndexSpec:
    """A declared index over one or more columns."""
    name: str
    columns: Tuple[str, ...]
    unique: bool = False


@dataclass(frozen=True)
class ForeignKeySpec:
    """A foreign-key clause, only ever applied when its table is created."""
    columns: Tuple[str, ...]
    ref_table: str
    ref_columns: Tuple[str, ...] = ("id",)
    on_delete: Optional[str] = None


@dataclass(frozen=True)
class TableDefinition:
    """Declared structure of a single table."""
    name: str
    columns: Tuple[ColumnSpec, ...]
    indexes: Tuple[IndexSpec, ...] = field(default_factory=tuple)
    foreign_keys: Tuple[ForeignKeySpec, ...] = field(default_factory=tuple)
    description: str = ""

    def column_names(self) -> List[str]:
        """Column names in declared order."""
        return [column.name for column in self.columns]

    def get_column(self, name: str) -> Optional[ColumnSpec]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def references(self) -> List[str]:
        """Tables this table points at through foreign keys."""
        return [fk.ref_table for fk in self.foreign_keys]


# =============================================================================
# REGISTRY
# =============================================================================

class SchemaRegistry:
    """
    Closed, ordered lookup over the canonical table definitions.

    Args:
        definitions: Table definitions in creation order.
        version: Target schema version these definitions describe.
        version_table: Name of the version-tracking table (must be declared).
        migrations_table: Name of the migration-record table, if declared.
    """

    def __init__(
        self,
        definitions: Iterable[TableDefinition],
        version: str = SCHEMA_VERSION,
        version_table: str = VERSION_TABLE,
        migrations_table: Optional[str] = MIGRATIONS_TABLE,
    ):
        self.version = version
        self.version_table = version_table
        self._tables: Dict[str, TableDefinition] = {}
        index_names: Dict[str, str] = {}

        for definition in definitions:
            self._check_definition(definition, index_names)
            self._tables[definition.name] = definition

        if version_table not in self._tables:
            raise SchemaDefinitionError(
                f"Version table '{version_table}' is not declared in the registry"
            )
        self.migrations_table = migrations_table if migrations_table in self._tables else None

    def _check_definition(self, definition: TableDefinition, index_names: Dict[str, str]) -> None:
        name = definition.name
        if name in self._tables:
            raise SchemaDefinitionError(f"Table '{name}' is declared twice")
        if not definition.columns:
            raise SchemaDefinitionError(f"Table '{name}' declares no columns")

        columns = definition.column_names()
        if len(set(columns)) != len(columns):
            raise SchemaDefinitionError(f"Table '{name}' declares a column twice")

        for index in definition.indexes:
            if index.name in index_names:
                raise SchemaDefinitionError(
                    f"Index '{index.name}' declared on both '{index_names[index.name]}' and '{name}'"
                )
            index_names[index.name] = name
            for column in index.columns:
                if column not in columns:
                    raise SchemaDefinitionError(
                        f"Index '{index.name}' names unknown column {name}.{column}"
                    )

        for fk in definition.foreign_keys:
            for column in fk.columns:
                if column not in columns:
                    raise SchemaDefinitionError(
                        f"Foreign key on '{name}' names unknown column '{column}'"
                    )
            if fk.ref_table == name:
                parent_columns = columns
            elif fk.ref_table in self._tables:
                parent_columns = self._tables[fk.ref_table].column_names()
            else:
                # Referenced tables have to be creatable first
                raise SchemaDefinitionError(
                    f"Table '{name}' references '{fk.ref_table}' which is not declared before it"
                )
            for column in fk.ref_columns:
                if column not in parent_columns:
                    raise SchemaDefinitionError(
                        f"Foreign key on '{name}' references unknown column {fk.ref_table}.{column}"
                    )

    def get_definition(self, table_name: str) -> TableDefinition:
        """
        Get the definition of a declared table.

        Raises:
            UnknownTableError: The table is not declared. This is a
                programming mistake, not a runtime condition.
        """
        try:
            return self._tables[table_name]
        except KeyError:
            raise UnknownTableError(table_name) from None

    def find_definition(self, table_name: str) -> Optional[TableDefinition]:
        """Definition of ``table_name`` or None."""
        return self._tables.get(table_name)

    def all_table_names(self) -> Tuple[str, ...]:
        """All declared table names in creation order."""
        return tuple(self._tables)

    def definitions(self) -> Iterator[TableDefinition]:
        return iter(self._tables.values())

    def __contains__(self, table_name: object) -> bool:
        return table_name in self._tables

    def __len__(self) -> int:
        return len(self._tables)

    def __repr__(self) -> str:
        return f"SchemaRegistry(version={self.version!r}, tables={list(self._tables)!r})"


# =============================================================================
# CANONICAL DEFINITIONS
# =============================================================================

_ID = ColumnSpec("id", "INTEGER", primary_key=True, autoincrement=True)
_CREATED_AT = ColumnSpec("created_at", "DATETIME", default="CURRENT_TIMESTAMP")
_UPDATED_AT = ColumnSpec("updated_at", "DATETIME", default="CURRENT_TIMESTAMP")

SCHEMA_VERSION_TABLE = TableDefinition(
    name=VERSION_TABLE,
    description="Schema version history",
    columns=(
        _ID,
        ColumnSpec("version", "VARCHAR(20)", not_null=True),
        ColumnSpec("applied_at", "DATETIME", default="CURRENT_TIMESTAMP"),
        ColumnSpec("description", "TEXT"),
    ),
    indexes=(
        IndexSpec("idx_schema_version", ("version",), unique=True),
    ),
)

USERS_TABLE = TableDefinition(
    name="users",
    description="API users and their credentials",
    columns=(
        _ID,
        ColumnSpec("username", "VARCHAR(50)", unique=True, not_null=True),
        ColumnSpec("email", "VARCHAR(100)", unique=True, not_null=True),
        ColumnSpec("password_hash", "VARCHAR(255)", not_null=True),
        ColumnSpec("role", "VARCHAR(20)", default="'user'"),
        ColumnSpec("api_key", "VARCHAR(64)", unique=True),
        ColumnSpec("status", "VARCHAR(20)", default="'active'"),
        ColumnSpec("last_login", "DATETIME"),
        _CREATED_AT,
        _UPDATED_AT,
    ),
    indexes=(
        IndexSpec("idx_users_email", ("email",)),
        IndexSpec("idx_users_api_key", ("api_key",)),
        IndexSpec("idx_users_role", ("role",)),
    ),
)

DEALERS_TABLE = TableDefinition(
    name="dealers",
    description="Licensed dealers",
    columns=(
        _ID,
        ColumnSpec("name", "VARCHAR(200)", not_null=True),
        ColumnSpec("code", "VARCHAR(50)", unique=True, not_null=True),
        ColumnSpec("address", "TEXT"),
        ColumnSpec("phone", "VARCHAR(20)"),
        ColumnSpec("email", "VARCHAR(100)"),
        ColumnSpec("contact_person", "VARCHAR(100)"),
        ColumnSpec("status", "VARCHAR(20)", default="'active'"),
        ColumnSpec("license_number", "VARCHAR(50)"),
        ColumnSpec("max_sales_per_year", "INTEGER", default="4"),
        _CREATED_AT,
        _UPDATED_AT,
    ),
    indexes=(
        IndexSpec("idx_dealers_code", ("code",), unique=True),
        IndexSpec("idx_dealers_status", ("status",)),
        IndexSpec("idx_dealers_email", ("email",)),
    ),
)

VEHICLES_TABLE = TableDefinition(
    name="vehicles",
    description="Dealer vehicle inventory",
    columns=(
        _ID,
        ColumnSpec("dealer_id", "INTEGER", not_null=True),
        ColumnSpec("vin", "VARCHAR(17)", unique=True, not_null=True),
        ColumnSpec("make", "VARCHAR(50)", not_null=True),
        ColumnSpec("model", "VARCHAR(50)", not_null=True),
        ColumnSpec("year", "INTEGER", not_null=True),
        ColumnSpec("color", "VARCHAR(50)"),
        ColumnSpec("price", "DECIMAL(10,2)"),
        ColumnSpec("cost", "DECIMAL(10,2)"),
        ColumnSpec("status", "VARCHAR(20)", default="'available'"),
        ColumnSpec("mileage", "INTEGER"),
        ColumnSpec("condition", "VARCHAR(20)", default="'good'"),
        ColumnSpec("notes", "TEXT"),
        ColumnSpec("date_added", "DATETIME", default="CURRENT_TIMESTAMP"),
        ColumnSpec(
            "margin", "DECIMAL(10,2)",
            generated="price - COALESCE(cost, 0)",
        ),
        ColumnSpec(
            "profit_class", "VARCHAR(20)",
            generated=(
                "CASE WHEN (price - COALESCE(cost, 0)) > 5000 THEN 'high' "
                "WHEN (price - COALESCE(cost, 0)) > 2000 THEN 'medium' "
                "ELSE 'low' END"
            ),
        ),
        _CREATED_AT,
        _UPDATED_AT,
    ),
    indexes=(
        IndexSpec("idx_vehicles_vin", ("vin",), unique=True),
        IndexSpec("idx_vehicles_dealer_id", ("dealer_id",)),
        IndexSpec("idx_vehicles_status", ("status",)),
        IndexSpec("idx_vehicles_make_model", ("make", "model")),
        IndexSpec("idx_vehicles_profit_class", ("profit_class",)),
    ),
    foreign_keys=(
        ForeignKeySpec(("dealer_id",), "dealers", on_delete="CASCADE"),
    ),
)

CUSTOMERS_TABLE = TableDefinition(
    name="customers",
    description="Vehicle buyers",
    columns=(
        _ID,
        ColumnSpec("first_name", "VARCHAR(100)", not_null=True),
        ColumnSpec("last_name", "VARCHAR(100)", not_null=True),
        ColumnSpec("email", "VARCHAR(100)"),
        ColumnSpec("phone", "VARCHAR(20)"),
        ColumnSpec("address", "TEXT"),
        ColumnSpec("city", "VARCHAR(100)"),
        ColumnSpec("state", "VARCHAR(50)"),
        ColumnSpec("zip_code", "VARCHAR(20)"),
        _CREATED_AT,
        _UPDATED_AT,
    ),
    indexes=(
        IndexSpec("idx_customers_email", ("email",)),
        IndexSpec("idx_customers_phone", ("phone",)),
        IndexSpec("idx_customers_name", ("last_name", "first_name")),
    ),
)

SALES_TABLE = TableDefinition(
    name="sales",
    description="Completed vehicle sales",
    columns=(
        _ID,
        ColumnSpec("dealer_id", "INTEGER", not_null=True),
        ColumnSpec("vehicle_id", "INTEGER", not_null=True),
        ColumnSpec("customer_id", "INTEGER"),
        ColumnSpec("sale_price", "DECIMAL(10,2)", not_null=True),
        ColumnSpec("sale_date", "DATE", not_null=True),
        ColumnSpec("salesperson", "VARCHAR(100)"),
        ColumnSpec("commission", "DECIMAL(10,2)"),
        ColumnSpec("commission_rate", "DECIMAL(5,2)"),
        ColumnSpec("status", "VARCHAR(20)", default="'completed'"),
        ColumnSpec("payment_method", "VARCHAR(50)"),
        ColumnSpec("notes", "TEXT"),
        _CREATED_AT,
        _UPDATED_AT,
    ),
    indexes=(
        IndexSpec("idx_sales_dealer_id", ("dealer_id",)),
        IndexSpec("idx_sales_vehicle_id", ("vehicle_id",)),
        IndexSpec("idx_sales_customer_id", ("customer_id",)),
        IndexSpec("idx_sales_date", ("sale_date",)),
        IndexSpec("idx_sales_status", ("status",)),
    ),
    foreign_keys=(
        ForeignKeySpec(("dealer_id",), "dealers", on_delete="CASCADE"),
        ForeignKeySpec(("vehicle_id",), "vehicles", on_delete="CASCADE"),
        ForeignKeySpec(("customer_id",), "customers", on_delete="SET NULL"),
    ),
)

DB_MIGRATIONS_TABLE = TableDefinition(
    name=MIGRATIONS_TABLE,
    description="Audit trail of applied structural changes",
    columns=(
        _ID,
        ColumnSpec("migration_name", "VARCHAR(100)", not_null=True),
        ColumnSpec("applied_at", "DATETIME", default="CURRENT_TIMESTAMP"),
        ColumnSpec("description", "TEXT"),
        ColumnSpec("checksum", "VARCHAR(64)"),
    ),
    indexes=(
        IndexSpec("idx_migrations_name", ("migration_name",), unique=True),
    ),
)

SCHEMA_DEFINITIONS: Tuple[TableDefinition, ...] = (
    SCHEMA_VERSION_TABLE,
    USERS_TABLE,
    DEALERS_TABLE,
    VEHICLES_TABLE,
    CUSTOMERS_TABLE,
    SALES_TABLE,
    DB_MIGRATIONS_TABLE,
)

SCHEMA_REGISTRY = SchemaRegistry(SCHEMA_DEFINITIONS, version=SCHEMA_VERSION)


def get_table_definition(table_name: str) -> TableDefinition:
    """Definition of a table in the canonical registry."""
    return SCHEMA_REGISTRY.get_definition(table_name)


def get_all_table_names() -> Tuple[str, ...]:
    """All canonical table names in creation order."""
    return SCHEMA_REGISTRY.all_table_names()
