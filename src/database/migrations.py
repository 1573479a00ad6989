"""Idempotent, self-healing schema migration engine.

Brings a live SQLite store into conformance with the canonical registry in
``src.database.schema``. The engine runs once per process, before anything
serves requests:

1. Ensure the version-tracking table exists (outside any transaction).
2. Read the current version; an empty history means ``0.0.0``.
3. If it equals the target version, skip straight to validation.
4. Otherwise, in a single transaction: create missing tables (with their
   foreign keys), add missing columns, ensure every index, record the
   changes and the new version, commit. Any failure rolls everything back.
5. Validate: every declared table exists and no row breaks a foreign key.

Changes are additive only. Columns present in the store but not in the
registry are left alone, existing columns are never altered, and foreign
keys on an existing table are never touched.

The version check is trusted: a store whose version row already matches
the target is not diffed. Manual edits to the version row therefore hide
structural drift until the next version bump.
"""

import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from config.logging_config import get_logger

from .connection import DatabaseConnection
from .ddl import (
    definition_checksum,
    quote_identifier,
    render_add_column,
    render_create_table,
    render_index,
)
from .errors import (
    IntegrityError,
    MigrationError,
    SchemaInitializationError,
)
from .integrity import IntegrityValidator
from .schema import INITIAL_VERSION, SCHEMA_REGISTRY, SchemaRegistry
from .schema_inspector import SchemaInspector

logger = get_logger("migrations")


class MigrationState(Enum):
    """Lifecycle of the engine within one process."""
    UNINITIALIZED = "uninitialized"
    ENSURING_VERSION_TABLE = "ensuring_version_table"
    READING_VERSION = "reading_version"
    COMPARING = "comparing"
    MIGRATING = "migrating"
    VALIDATING = "validating"
    READY = "ready"
    FAILED = "failed"


class ChangeKind(str, Enum):
    CREATE_TABLE = "create_table"
    ADD_COLUMN = "add_column"
    CREATE_INDEX = "create_index"


@dataclass(frozen=True)
class PlannedChange:
    """One DDL statement the engine would run."""
    kind: ChangeKind
    table: str
    statement: str
    target: Optional[str] = None  # column or index name

    @property
    def migration_name(self) -> str:
        if self.kind is ChangeKind.ADD_COLUMN:
            return f"{self.kind.value}:{self.table}.{self.target}"
        return f"{self.kind.value}:{self.table}"


@dataclass
class StepResult:
    """Outcome of one engine step; failures carry the error, never raise it."""
    ok: bool
    error: Optional[SchemaInitializationError] = None

    @classmethod
    def success(cls) -> "StepResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: SchemaInitializationError) -> "StepResult":
        return cls(ok=False, error=error)


@dataclass
class MigrationReport:
    """What a call to ``ensure_schema_current`` found and did."""
    target_version: str
    from_version: Optional[str] = None
    migrated: bool = False
    tables_created: List[str] = field(default_factory=list)
    columns_added: List[str] = field(default_factory=list)
    indexes_ensured: int = 0
    statements_executed: int = 0

    def summary(self) -> str:
        if not self.migrated:
            return f"schema at {self.from_version}, no migration needed"
        return (
            f"migrated {self.from_version} -> {self.target_version}: "
            f"{len(self.tables_created)} table(s) created, "
            f"{len(self.columns_added)} column(s) added, "
            f"{self.indexes_ensured} index(es) ensured"
        )


class MigrationEngine:
    """
    Runs the startup migration against one store.

    The engine is the single-initialization gate: once it reaches READY,
    further calls return immediately; once FAILED, further calls re-raise
    the original error. There is no retry.

    Args:
        db: Connection facade owned by the composition root.
        registry: Canonical schema to conform to.
        after_statement: Called with each DDL statement right after it runs
            inside the migration transaction. An exception raised here
            aborts and rolls back the migration.
    """

    def __init__(
        self,
        db: DatabaseConnection,
        registry: SchemaRegistry = SCHEMA_REGISTRY,
        after_statement: Optional[Callable[[str], None]] = None,
    ):
        self.db = db
        self.registry = registry
        self.after_statement = after_statement
        self.inspector = SchemaInspector(db)
        self.validator = IntegrityValidator(db, registry, self.inspector)
        self.state = MigrationState.UNINITIALIZED
        self.last_report: Optional[MigrationReport] = None
        self._failure: Optional[SchemaInitializationError] = None

    @property
    def target_version(self) -> str:
        return self.registry.version

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def ensure_schema_current(self) -> MigrationReport:
        """
        Bring the store up to the target version and validate it.

        Returns:
            Report of the run (the first run's report on later calls).

        Raises:
            MigrationError: DDL failed; the store is unchanged.
            IntegrityError: The store is structurally incomplete or holds
                rows that violate foreign keys.
        """
        if self.state is MigrationState.READY:
            return self.last_report
        if self.state is MigrationState.FAILED:
            raise self._failure

        report = MigrationReport(target_version=self.target_version)
        self.last_report = report

        result = self._run(report)
        if not result.ok:
            self.state = MigrationState.FAILED
            self._failure = result.error
            logger.error(f"Schema initialization failed: {result.error}")
            raise result.error

        self.state = MigrationState.READY
        logger.info(f"Schema ready: {report.summary()}")
        return report

    def current_version(self) -> str:
        """
        Most recently applied schema version, without migrating anything.

        Returns ``0.0.0`` when nothing has been recorded yet, including when
        the version table does not exist.
        """
        if not self.inspector.table_exists(self.registry.version_table):
            return INITIAL_VERSION
        return self._query_current_version()

    def is_current(self) -> bool:
        return self.current_version() == self.target_version

    def plan(self) -> List[PlannedChange]:
        """
        Compute the DDL a migration would run against the store as it is now.

        Raises:
            UnsupportedColumnChange: A missing column cannot be added.
        """
        changes: List[PlannedChange] = []
        version_table = self.registry.version_table

        for definition in self.registry.definitions():
            if definition.name == version_table:
                continue

            if not self.inspector.table_exists(definition.name):
                changes.append(PlannedChange(
                    ChangeKind.CREATE_TABLE,
                    definition.name,
                    render_create_table(definition),
                ))
                continue

            observed = {name.lower() for name in self.inspector.columns_of(definition.name)}
            for column in definition.columns:
                if column.name.lower() not in observed:
                    changes.append(PlannedChange(
                        ChangeKind.ADD_COLUMN,
                        definition.name,
                        render_add_column(definition.name, column),
                        target=column.name,
                    ))

        for definition in self.registry.definitions():
            if definition.name == version_table:
                continue
            for index in definition.indexes:
                changes.append(PlannedChange(
                    ChangeKind.CREATE_INDEX,
                    definition.name,
                    render_index(definition.name, index),
                    target=index.name,
                ))

        return changes

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _run(self, report: MigrationReport) -> StepResult:
        self.state = MigrationState.ENSURING_VERSION_TABLE
        result = self._ensure_version_table(report)
        if not result.ok:
            return result

        self.state = MigrationState.READING_VERSION
        try:
            report.from_version = self._query_current_version()
        except sqlite3.Error as e:
            return StepResult.failure(self._migration_error("Could not read schema version", e, report))

        self.state = MigrationState.COMPARING
        if report.from_version != self.target_version:
            logger.info(f"Schema migration needed: {report.from_version} -> {self.target_version}")
            self.state = MigrationState.MIGRATING
            result = self._migrate(report)
            if not result.ok:
                return result
        else:
            logger.info(f"Schema is current (v{report.from_version})")

        self.state = MigrationState.VALIDATING
        return self._validate(report)

    def _ensure_version_table(self, report: MigrationReport) -> StepResult:
        definition = self.registry.get_definition(self.registry.version_table)
        try:
            if not self.inspector.table_exists(definition.name):
                self.db.execute(render_create_table(definition, if_not_exists=True))
                report.statements_executed += 1
                logger.info(f"Created version table: {definition.name}")
            for index in definition.indexes:
                if not self.inspector.index_exists(index.name):
                    self.db.execute(render_index(definition.name, index))
                    report.statements_executed += 1
        except sqlite3.Error as e:
            return StepResult.failure(self._migration_error("Could not create version table", e, report))
        return StepResult.success()

    def _query_current_version(self) -> str:
        row = self.db.query_one(
            f"SELECT version FROM {quote_identifier(self.registry.version_table)} "
            "ORDER BY applied_at DESC, id DESC LIMIT 1"
        )
        return row["version"] if row else INITIAL_VERSION

    def _migrate(self, report: MigrationReport) -> StepResult:
        from_version, to_version = report.from_version, self.target_version
        logger.info(f"Starting schema migration from {from_version} to {to_version}")

        try:
            self.db.begin_transaction()
            changes = self.plan()
            for change in changes:
                self._apply(change, report)
            self._record_migrations(changes, from_version)
            self._record_version(f"Migration from {from_version} to {to_version}")
            self.db.commit()
        except Exception as e:
            try:
                self.db.rollback()
            except sqlite3.Error as rollback_error:
                logger.error(f"Rollback after failed migration also failed: {rollback_error}")
            # Counters describe work that was rolled back
            report.tables_created.clear()
            report.columns_added.clear()
            report.indexes_ensured = 0
            return StepResult.failure(self._migration_error("Schema migration failed", e, report))

        report.migrated = True
        logger.info(
            f"Schema migration completed successfully: "
            f"{len(report.tables_created)} tables created, "
            f"{len(report.columns_added)} columns added, "
            f"{report.indexes_ensured} indexes ensured"
        )
        return StepResult.success()

    def _apply(self, change: PlannedChange, report: MigrationReport) -> None:
        self.db.execute(change.statement)
        report.statements_executed += 1

        if change.kind is ChangeKind.CREATE_TABLE:
            report.tables_created.append(change.table)
            logger.info(f"Created table: {change.table}")
        elif change.kind is ChangeKind.ADD_COLUMN:
            report.columns_added.append(f"{change.table}.{change.target}")
            logger.info(f"Added column {change.target} to table {change.table}")
        else:
            report.indexes_ensured += 1
            logger.debug(f"Ensured index {change.target} on {change.table}")

        if self.after_statement is not None:
            self.after_statement(change.statement)

    def _record_migrations(self, changes: List[PlannedChange], from_version: str) -> None:
        table = self.registry.migrations_table
        if table is None:
            return

        rows = []
        for change in changes:
            if change.kind is ChangeKind.CREATE_INDEX:
                continue
            definition = self.registry.get_definition(change.table)
            rows.append((
                f"{self.target_version}:{change.migration_name}",
                f"{change.statement} (from {from_version})",
                definition_checksum(definition),
            ))
        self.db.executemany(
            f"INSERT OR IGNORE INTO {quote_identifier(table)} (migration_name, description, checksum) "
            "VALUES (?, ?, ?)",
            rows,
        )

    def _record_version(self, description: str) -> None:
        self.db.execute(
            f"INSERT OR REPLACE INTO {quote_identifier(self.registry.version_table)} (version, description) "
            "VALUES (?, ?)",
            [self.target_version, description],
        )

    def _validate(self, report: MigrationReport) -> StepResult:
        try:
            result = self.validator.validate()
        except sqlite3.Error as e:
            error = IntegrityError(
                f"Schema validation could not run ({report.from_version} -> {self.target_version}): {e}",
                from_version=report.from_version,
                to_version=self.target_version,
            )
            error.__cause__ = e
            return StepResult.failure(error)

        if result.ok:
            return StepResult.success()
        return StepResult.failure(IntegrityError(
            f"Schema validation failed: {result.summary()}",
            missing_tables=result.missing_tables,
            violations=result.violations,
            from_version=report.from_version,
            to_version=self.target_version,
        ))

    def _migration_error(self, message: str, cause: Exception, report: MigrationReport) -> MigrationError:
        error = MigrationError(
            f"{message} ({report.from_version or '?'} -> {self.target_version}): {cause}",
            from_version=report.from_version,
            to_version=self.target_version,
            store_error=str(cause),
        )
        error.__cause__ = cause
        return error


def ensure_schema_current(
    db: DatabaseConnection,
    registry: SchemaRegistry = SCHEMA_REGISTRY,
) -> MigrationReport:
    """
    One-shot startup helper: migrate and validate ``db``.

    Raises:
        SchemaInitializationError: The store cannot be used; abort startup.
    """
    return MigrationEngine(db, registry).ensure_schema_current()


def get_schema_version(db: DatabaseConnection, registry: SchemaRegistry = SCHEMA_REGISTRY) -> str:
    """Current schema version of ``db`` without migrating."""
    return MigrationEngine(db, registry).current_version()
