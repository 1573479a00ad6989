"""Shared helpers for schema engine tests."""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from src.database import DatabaseConnection, SCHEMA_DEFINITIONS, SchemaRegistry
from src.database.schema import VERSION_TABLE

DDL_PREFIXES = ("CREATE", "ALTER", "DROP")

DEALER_ROW = ("Northside Motors", "NSM001", "555-0100")
VEHICLE_ROWS = [
    ("1HGCM82633A004352", "Honda", "Accord", 2021, 24000.00, 19000.00),
    ("2FTRX18W1XCA12345", "Ford", "F-150", 2019, 31000.00, 30000.00),
]


def make_registry(
    version: str,
    drop_columns: Optional[Dict[str, Iterable[str]]] = None,
    tables: Optional[Iterable[str]] = None,
) -> SchemaRegistry:
    """
    Build a variant of the canonical registry, e.g. an older release.

    Args:
        version: Version the variant claims to describe.
        drop_columns: Columns to leave out per table (indexes over them go too).
        tables: Only keep these tables (the version table is always kept).
    """
    drop_columns = drop_columns or {}
    keep = set(tables) if tables is not None else None

    definitions = []
    for definition in SCHEMA_DEFINITIONS:
        if keep is not None and definition.name not in keep and definition.name != VERSION_TABLE:
            continue
        removed = set(drop_columns.get(definition.name, ()))
        if removed:
            definition = replace(
                definition,
                columns=tuple(c for c in definition.columns if c.name not in removed),
                indexes=tuple(i for i in definition.indexes if not removed & set(i.columns)),
            )
        definitions.append(definition)

    return SchemaRegistry(definitions, version=version)


class DDLCounter:
    """Records DDL statements SQLite executes on a connection."""

    def __init__(self, db: DatabaseConnection):
        self.statements: List[str] = []
        db.connection.set_trace_callback(self._trace)

    def _trace(self, statement: str) -> None:
        if statement.lstrip().upper().startswith(DDL_PREFIXES):
            self.statements.append(statement)

    @property
    def count(self) -> int:
        return len(self.statements)


def schema_snapshot(db: DatabaseConnection) -> List[tuple]:
    """Every schema object's type, name and SQL, for before/after comparisons."""
    rows = db.query_all("SELECT type, name, sql FROM sqlite_master ORDER BY type, name")
    return [(row["type"], row["name"], row["sql"]) for row in rows]


def seed_dealer_and_vehicles(db: DatabaseConnection) -> int:
    """Insert one dealer and its vehicles, returning the dealer id."""
    db.execute("INSERT INTO dealers (name, code, phone) VALUES (?, ?, ?)", list(DEALER_ROW))
    dealer_id = db.last_insert_id()
    db.executemany(
        "INSERT INTO vehicles (dealer_id, vin, make, model, year, price, cost) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        [(dealer_id, *vehicle) for vehicle in VEHICLE_ROWS],
    )
    return dealer_id


def insert_orphan_vehicle(db: DatabaseConnection, dealer_id: int = 42) -> int:
    """Insert a vehicle whose dealer does not exist, bypassing enforcement."""
    db.execute("PRAGMA foreign_keys = OFF")
    db.execute(
        "INSERT INTO vehicles (dealer_id, vin, make, model, year) VALUES (?, ?, ?, ?, ?)",
        [dealer_id, "ORPHAN00000000001", "Ford", "Focus", 2018],
    )
    vehicle_id = db.last_insert_id()
    db.execute("PRAGMA foreign_keys = ON")
    return vehicle_id
