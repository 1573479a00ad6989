"""Tests for SQLite DDL rendering."""

import logging

import pytest

from src.database import ColumnSpec, IndexSpec, UnsupportedColumnChange, get_table_definition
from src.database.ddl import (
    definition_checksum,
    is_constant_default,
    quote_identifier,
    render_add_column,
    render_column,
    render_create_table,
    render_index,
)


class TestQuoting:
    """Tests for identifier quoting."""

    def test_plain_name(self):
        assert quote_identifier("dealers") == '"dealers"'

    def test_embedded_quote_doubled(self):
        assert quote_identifier('odd"name') == '"odd""name"'


class TestRenderColumn:
    """Tests for column definitions inside CREATE TABLE."""

    def test_primary_key(self):
        column = ColumnSpec("id", "INTEGER", primary_key=True, autoincrement=True)
        assert render_column(column) == '"id" INTEGER PRIMARY KEY AUTOINCREMENT'

    def test_constraints_and_default(self):
        column = ColumnSpec("code", "VARCHAR(50)", unique=True, not_null=True)
        assert render_column(column) == '"code" VARCHAR(50) UNIQUE NOT NULL'

        status = ColumnSpec("status", "VARCHAR(20)", default="'active'")
        assert render_column(status) == "\"status\" VARCHAR(20) DEFAULT 'active'"

    def test_generated_stored(self):
        column = ColumnSpec("total", "INTEGER", generated="a + b")
        assert render_column(column) == '"total" INTEGER GENERATED ALWAYS AS (a + b) STORED'


class TestRenderCreateTable:
    """Tests for CREATE TABLE statements."""

    def test_foreign_keys_inline(self):
        """Foreign keys are part of the CREATE TABLE statement."""
        sql = render_create_table(get_table_definition("vehicles"))

        assert sql.startswith('CREATE TABLE "vehicles" (')
        assert 'FOREIGN KEY ("dealer_id") REFERENCES "dealers" ("id") ON DELETE CASCADE' in sql

    def test_if_not_exists(self):
        sql = render_create_table(get_table_definition("schema_version"), if_not_exists=True)
        assert sql.startswith('CREATE TABLE IF NOT EXISTS "schema_version"')

    def test_creates_in_sqlite(self, memory_db):
        """Every canonical table renders to DDL SQLite accepts."""
        from src.database import SCHEMA_REGISTRY

        for definition in SCHEMA_REGISTRY.definitions():
            memory_db.execute(render_create_table(definition))
            for index in definition.indexes:
                memory_db.execute(render_index(definition.name, index))

        count = memory_db.query_scalar(
            "SELECT COUNT(*) FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
        )
        assert count == len(SCHEMA_REGISTRY)


class TestRenderAddColumn:
    """Tests for ALTER TABLE ADD COLUMN narrowing."""

    def test_constant_default_kept(self):
        column = get_table_definition("vehicles").get_column("condition")
        assert render_add_column("vehicles", column) == (
            "ALTER TABLE \"vehicles\" ADD COLUMN \"condition\" VARCHAR(20) DEFAULT 'good'"
        )

    def test_not_null_with_constant_default(self):
        column = ColumnSpec("priority", "INTEGER", not_null=True, default="0")
        assert render_add_column("t", column) == (
            'ALTER TABLE "t" ADD COLUMN "priority" INTEGER NOT NULL DEFAULT 0'
        )

    def test_per_row_default_dropped(self, caplog):
        """CURRENT_TIMESTAMP cannot be applied to existing rows."""
        column = ColumnSpec("date_added", "DATETIME", default="CURRENT_TIMESTAMP")

        with caplog.at_level(logging.WARNING, logger="dms.ddl"):
            sql = render_add_column("vehicles", column)

        assert sql == 'ALTER TABLE "vehicles" ADD COLUMN "date_added" DATETIME'
        assert "CURRENT_TIMESTAMP" in caplog.text

    def test_stored_generated_becomes_virtual(self):
        column = get_table_definition("vehicles").get_column("margin")
        sql = render_add_column("vehicles", column)
        assert sql.endswith("VIRTUAL")
        assert "STORED" not in sql

    @pytest.mark.parametrize("column", [
        ColumnSpec("id", "INTEGER", primary_key=True),
        ColumnSpec("token", "TEXT", unique=True),
        ColumnSpec("owner", "TEXT", not_null=True),
        ColumnSpec("seen_at", "DATETIME", not_null=True, default="CURRENT_TIMESTAMP"),
    ])
    def test_unsupported_columns(self, column):
        """Columns SQLite cannot add to a live table are refused up front."""
        with pytest.raises(UnsupportedColumnChange) as exc_info:
            render_add_column("t", column)
        assert exc_info.value.column_name == column.name


class TestIndexesAndChecksums:
    """Tests for index statements and definition checksums."""

    def test_unique_index(self):
        sql = render_index("dealers", IndexSpec("idx_dealers_code", ("code",), unique=True))
        assert sql == 'CREATE UNIQUE INDEX IF NOT EXISTS "idx_dealers_code" ON "dealers" ("code")'

    def test_composite_index(self):
        sql = render_index("vehicles", IndexSpec("idx_vehicles_make_model", ("make", "model")))
        assert sql.endswith('ON "vehicles" ("make", "model")')

    def test_constant_default_detection(self):
        assert is_constant_default("'good'")
        assert is_constant_default("4")
        assert not is_constant_default("current_timestamp")
        assert not is_constant_default("(random())")

    def test_checksum_stable_and_distinct(self):
        dealers = get_table_definition("dealers")
        assert definition_checksum(dealers) == definition_checksum(dealers)
        assert definition_checksum(dealers) != definition_checksum(get_table_definition("sales"))
        assert len(definition_checksum(dealers)) == 64
