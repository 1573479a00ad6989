"""Post-migration integrity checks.

The last gate before a store is declared usable: every declared table has
to exist and every row has to satisfy its foreign keys.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config.logging_config import get_logger

from .connection import DatabaseConnection
from .schema import SCHEMA_REGISTRY, SchemaRegistry
from .schema_inspector import SchemaInspector

logger = get_logger("integrity")


@dataclass(frozen=True)
class ForeignKeyViolation:
    """One row whose foreign key points at a missing parent row."""
    table: str
    rowid: Optional[int]
    columns: Tuple[str, ...]
    referenced_table: str

    def __str__(self) -> str:
        return (
            f"{self.table} rowid={self.rowid} ({', '.join(self.columns)}) "
            f"-> missing row in {self.referenced_table}"
        )


@dataclass
class ValidationResult:
    """Outcome of a full integrity validation."""
    missing_tables: List[str] = field(default_factory=list)
    violations: List[ForeignKeyViolation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing_tables and not self.violations

    def summary(self) -> str:
        if self.ok:
            return "all declared tables present, no foreign-key violations"
        parts = []
        if self.missing_tables:
            parts.append(f"missing tables: {', '.join(self.missing_tables)}")
        if self.violations:
            shown = "; ".join(str(v) for v in self.violations[:10])
            more = f" (+{len(self.violations) - 10} more)" if len(self.violations) > 10 else ""
            parts.append(f"{len(self.violations)} foreign-key violation(s): {shown}{more}")
        return ", ".join(parts)


class IntegrityValidator:
    """
    Checks a live store against the registry.

    Args:
        db: Connection facade.
        registry: Registry whose tables must exist.
        inspector: Inspector to reuse (built from ``db`` if omitted).
    """

    def __init__(
        self,
        db: DatabaseConnection,
        registry: SchemaRegistry = SCHEMA_REGISTRY,
        inspector: Optional[SchemaInspector] = None,
    ):
        self.db = db
        self.registry = registry
        self.inspector = inspector or SchemaInspector(db)

    def all_declared_tables_exist(self) -> Tuple[bool, List[str]]:
        """
        Confirm every registry table exists.

        Returns:
            (all present, names of missing tables in registry order)
        """
        missing = [
            name for name in self.registry.all_table_names()
            if not self.inspector.table_exists(name)
        ]
        return not missing, missing

    def foreign_keys_consistent(self) -> Tuple[bool, List[ForeignKeyViolation]]:
        """
        Run SQLite's foreign-key check over the whole store.

        Returns:
            (no violations, one record per violating row)
        """
        rows = self.db.execute("PRAGMA foreign_key_check").fetchall()

        fk_columns: Dict[str, Dict[int, Tuple[str, ...]]] = {}
        violations = []
        for table, rowid, parent, fk_id in (tuple(row) for row in rows):
            if table not in fk_columns:
                fk_columns[table] = self._foreign_key_columns(table)
            violations.append(ForeignKeyViolation(
                table=table,
                rowid=rowid,
                columns=fk_columns[table].get(fk_id, ()),
                referenced_table=parent,
            ))

        return not violations, violations

    def _foreign_key_columns(self, table: str) -> Dict[int, Tuple[str, ...]]:
        grouped: Dict[int, List[str]] = {}
        for fk in sorted(self.inspector.foreign_keys_of(table), key=lambda r: (r["id"], r["seq"])):
            grouped.setdefault(fk["id"], []).append(fk["from"])
        return {fk_id: tuple(columns) for fk_id, columns in grouped.items()}

    def validate(self) -> ValidationResult:
        """Run both checks."""
        _, missing = self.all_declared_tables_exist()
        _, violations = self.foreign_keys_consistent()
        result = ValidationResult(missing_tables=missing, violations=violations)

        if result.ok:
            logger.info("Schema validation completed successfully")
        else:
            logger.error(f"Schema validation failed: {result.summary()}")
        return result
