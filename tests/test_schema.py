"""Tests for the canonical schema registry."""

import pytest

from src.database import (
    SCHEMA_REGISTRY,
    SCHEMA_VERSION,
    ColumnSpec,
    ForeignKeySpec,
    IndexSpec,
    SchemaDefinitionError,
    SchemaRegistry,
    TableDefinition,
    UnknownTableError,
    get_all_table_names,
    get_table_definition,
)
from src.database.schema import SCHEMA_VERSION_TABLE, VERSION_TABLE

ID = ColumnSpec("id", "INTEGER", primary_key=True, autoincrement=True)


def table(name, *columns, indexes=(), foreign_keys=()):
    return TableDefinition(name=name, columns=(ID,) + columns, indexes=indexes, foreign_keys=foreign_keys)


class TestCanonicalRegistry:
    """Tests for the compiled-in definitions."""

    def test_version(self):
        """The registry targets the current schema version."""
        assert SCHEMA_VERSION == "1.1.0"
        assert SCHEMA_REGISTRY.version == SCHEMA_VERSION

    def test_creation_order(self):
        """Referenced tables come before the tables that reference them."""
        assert get_all_table_names() == (
            "schema_version", "users", "dealers", "vehicles", "customers", "sales", "db_migrations",
        )

    def test_references_are_declared_earlier(self):
        """Every foreign key points backwards in creation order."""
        names = list(SCHEMA_REGISTRY.all_table_names())
        for definition in SCHEMA_REGISTRY.definitions():
            for ref in definition.references():
                assert names.index(ref) < names.index(definition.name)

    def test_vehicles_condition_column(self):
        """vehicles.condition defaults to 'good'."""
        column = get_table_definition("vehicles").get_column("condition")
        assert column is not None
        assert column.default == "'good'"

    def test_vehicles_generated_columns(self):
        """margin and profit_class are derived from price and cost."""
        vehicles = get_table_definition("vehicles")
        assert vehicles.get_column("margin").is_generated
        assert vehicles.get_column("profit_class").is_generated
        assert not vehicles.get_column("price").is_generated

    def test_sales_foreign_keys(self):
        """sales references dealers, vehicles and customers."""
        assert get_table_definition("sales").references() == ["dealers", "vehicles", "customers"]

    def test_migrations_table_detected(self):
        """The migration-record table is declared."""
        assert SCHEMA_REGISTRY.migrations_table == "db_migrations"

    def test_membership(self):
        """Registry supports len and in."""
        assert "dealers" in SCHEMA_REGISTRY
        assert "invoices" not in SCHEMA_REGISTRY
        assert len(SCHEMA_REGISTRY) == 7


class TestLookup:
    """Tests for table lookup."""

    def test_unknown_table_raises(self):
        """Asking for an undeclared table is a programming error."""
        with pytest.raises(UnknownTableError) as exc_info:
            get_table_definition("invoices")

        assert exc_info.value.table_name == "invoices"
        assert isinstance(exc_info.value, LookupError)

    def test_find_definition_returns_none(self):
        """find_definition is the non-raising lookup."""
        assert SCHEMA_REGISTRY.find_definition("invoices") is None
        assert SCHEMA_REGISTRY.find_definition("dealers").name == "dealers"

    def test_column_names_in_declared_order(self):
        """Column order follows the declaration."""
        names = get_table_definition("dealers").column_names()
        assert names[:3] == ["id", "name", "code"]
        assert names.index("license_number") < names.index("max_sales_per_year")


class TestRegistryValidation:
    """Tests for definition checks done when a registry is built."""

    def test_minimal_registry(self):
        """A registry with only the version table is valid."""
        registry = SchemaRegistry([SCHEMA_VERSION_TABLE], version="0.1.0")
        assert registry.all_table_names() == (VERSION_TABLE,)
        assert registry.migrations_table is None

    def test_missing_version_table(self):
        """The version table has to be declared."""
        with pytest.raises(SchemaDefinitionError, match="Version table"):
            SchemaRegistry([table("things", ColumnSpec("name", "TEXT"))])

    def test_duplicate_table(self):
        """Each table is declared once."""
        things = table("things", ColumnSpec("name", "TEXT"))
        with pytest.raises(SchemaDefinitionError, match="declared twice"):
            SchemaRegistry([SCHEMA_VERSION_TABLE, things, things])

    def test_duplicate_column(self):
        """Each column is declared once per table."""
        things = table("things", ColumnSpec("name", "TEXT"), ColumnSpec("name", "TEXT"))
        with pytest.raises(SchemaDefinitionError, match="column twice"):
            SchemaRegistry([SCHEMA_VERSION_TABLE, things])

    def test_table_without_columns(self):
        """Empty tables are rejected."""
        with pytest.raises(SchemaDefinitionError, match="no columns"):
            SchemaRegistry([SCHEMA_VERSION_TABLE, TableDefinition(name="empty", columns=())])

    def test_index_on_unknown_column(self):
        """Indexes can only cover declared columns."""
        things = table(
            "things", ColumnSpec("name", "TEXT"),
            indexes=(IndexSpec("idx_things_size", ("size",)),),
        )
        with pytest.raises(SchemaDefinitionError, match="unknown column"):
            SchemaRegistry([SCHEMA_VERSION_TABLE, things])

    def test_duplicate_index_name(self):
        """Index names are global in SQLite."""
        a = table("a", ColumnSpec("name", "TEXT"), indexes=(IndexSpec("idx_name", ("name",)),))
        b = table("b", ColumnSpec("name", "TEXT"), indexes=(IndexSpec("idx_name", ("name",)),))
        with pytest.raises(SchemaDefinitionError, match="idx_name"):
            SchemaRegistry([SCHEMA_VERSION_TABLE, a, b])

    def test_forward_reference_rejected(self):
        """A table cannot reference one declared after it."""
        child = table(
            "child", ColumnSpec("parent_id", "INTEGER"),
            foreign_keys=(ForeignKeySpec(("parent_id",), "parent"),),
        )
        parent = table("parent", ColumnSpec("name", "TEXT"))
        with pytest.raises(SchemaDefinitionError, match="not declared before"):
            SchemaRegistry([SCHEMA_VERSION_TABLE, child, parent])

    def test_self_reference_allowed(self):
        """A table may reference itself."""
        node = table(
            "node", ColumnSpec("parent_id", "INTEGER"),
            foreign_keys=(ForeignKeySpec(("parent_id",), "node"),),
        )
        registry = SchemaRegistry([SCHEMA_VERSION_TABLE, node])
        assert "node" in registry

    def test_foreign_key_on_unknown_column(self):
        """Foreign-key columns must be declared on the child."""
        parent = table("parent", ColumnSpec("name", "TEXT"))
        child = table(
            "child", ColumnSpec("name", "TEXT"),
            foreign_keys=(ForeignKeySpec(("parent_id",), "parent"),),
        )
        with pytest.raises(SchemaDefinitionError, match="unknown column 'parent_id'"):
            SchemaRegistry([SCHEMA_VERSION_TABLE, parent, child])

    def test_foreign_key_to_unknown_parent_column(self):
        """Referenced columns must exist on the parent."""
        parent = table("parent", ColumnSpec("name", "TEXT"))
        child = table(
            "child", ColumnSpec("parent_code", "TEXT"),
            foreign_keys=(ForeignKeySpec(("parent_code",), "parent", ref_columns=("code",)),),
        )
        with pytest.raises(SchemaDefinitionError, match="parent.code"):
            SchemaRegistry([SCHEMA_VERSION_TABLE, parent, child])
