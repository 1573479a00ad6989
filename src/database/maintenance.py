"""Operational statistics and backup utilities for the dealer management store."""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from config import config
from config.logging_config import get_logger

from .connection import DatabaseConnection
from .ddl import quote_identifier
from .schema import SCHEMA_REGISTRY, SchemaRegistry

logger = get_logger("maintenance")

BACKUP_PREFIX = "dms_backup_"
FILE_SIZE_KEY = "file_size"


@dataclass
class MaintenanceResult:
    """Result of a maintenance operation."""

    operation: str
    success: bool
    duration_seconds: float = 0.0
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


def format_bytes(size: float, precision: int = 2) -> str:
    """Format a byte count for humans, e.g. ``"1.5 KB"``."""
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while size > 1024 and i < len(units) - 1:
        size /= 1024
        i += 1
    return f"{round(size, precision)} {units[i]}"


def get_database_size(db: DatabaseConnection) -> int:
    """On-disk size in bytes, WAL file included; 0 for in-memory stores."""
    if db.is_memory:
        return 0
    total = 0
    for suffix in ("", "-wal"):
        path = Path(f"{db.db_path}{suffix}")
        if path.exists():
            total += path.stat().st_size
    return total


def get_row_counts(db: DatabaseConnection, registry: SchemaRegistry = SCHEMA_REGISTRY) -> Dict[str, int]:
    """
    Get row counts for every declared table, plus the store's size.

    Expects a migrated store: a declared table that is missing raises.

    Args:
        db: Database connection.
        registry: Registry naming the tables to count.

    Returns:
        Mapping of table name to row count, with the on-disk size in
        bytes under ``"file_size"``.
    """
    counts: Dict[str, int] = {}
    for table in registry.all_table_names():
        counts[table] = db.query_scalar(f"SELECT COUNT(*) FROM {quote_identifier(table)}") or 0
    counts[FILE_SIZE_KEY] = get_database_size(db)
    return counts


def _copy_database(source: Path, destination: Path) -> None:
    """Copy a SQLite file through the backup API so WAL contents are included."""
    src = sqlite3.connect(str(source))
    dst = sqlite3.connect(str(destination))
    try:
        src.backup(dst)
    finally:
        dst.close()
        src.close()


def create_backup(
    db_path: Optional[Path] = None,
    backup_dir: Optional[Path] = None,
) -> MaintenanceResult:
    """
    Create a timestamped backup of the database.

    Args:
        db_path: Path to database file.
        backup_dir: Directory for backups (default: configured backup dir).

    Returns:
        MaintenanceResult with backup path.
    """
    db_path = Path(db_path or config.db_path)
    backup_dir = Path(backup_dir or config.database.backup_dir)
    start_time = datetime.now()

    try:
        if not db_path.exists():
            raise FileNotFoundError(f"Database not found: {db_path}")
        backup_dir.mkdir(parents=True, exist_ok=True)

        timestamp = start_time.strftime("%Y-%m-%d_%H-%M-%S")
        backup_path = backup_dir / f"{BACKUP_PREFIX}{timestamp}.db"
        _copy_database(db_path, backup_path)

        duration = (datetime.now() - start_time).total_seconds()
        backup_size = backup_path.stat().st_size

        logger.info(f"Backup created: {backup_path} ({format_bytes(backup_size)})")

        return MaintenanceResult(
            operation="backup",
            success=True,
            duration_seconds=duration,
            details={
                "backup_path": str(backup_path),
                "backup_size_bytes": backup_size,
            }
        )

    except (OSError, sqlite3.Error) as e:
        logger.error(f"Backup failed: {e}")
        return MaintenanceResult(
            operation="backup",
            success=False,
            duration_seconds=(datetime.now() - start_time).total_seconds(),
            error=str(e),
        )


def list_backups(backup_dir: Optional[Path] = None) -> List[Dict[str, Any]]:
    """
    List available database backups, newest first.

    Args:
        backup_dir: Directory containing backups.

    Returns:
        List of backup information dictionaries.
    """
    backup_dir = Path(backup_dir or config.database.backup_dir)

    if not backup_dir.exists():
        return []

    backups = []
    for backup_file in sorted(backup_dir.glob(f"{BACKUP_PREFIX}*.db"), reverse=True):
        stat = backup_file.stat()
        backups.append({
            "filename": backup_file.name,
            "path": str(backup_file),
            "size_bytes": stat.st_size,
            "created": datetime.fromtimestamp(stat.st_mtime),
        })

    return backups


def restore_backup(
    backup_path: Path,
    db_path: Optional[Path] = None,
) -> MaintenanceResult:
    """
    Restore database from a backup.

    The current database is first copied aside as ``pre_restore_<ts>.db``
    next to it. The restored store is not validated here; callers run the
    migration engine against it afterwards.

    Args:
        backup_path: Path to backup file.
        db_path: Destination database path.

    Returns:
        MaintenanceResult with operation details.
    """
    backup_path = Path(backup_path)
    db_path = Path(db_path or config.db_path)
    start_time = datetime.now()

    try:
        if not backup_path.exists():
            raise FileNotFoundError(f"Backup file not found: {backup_path}")

        details: Dict[str, Any] = {
            "restored_from": str(backup_path),
            "restored_to": str(db_path),
        }

        if db_path.exists():
            timestamp = start_time.strftime("%Y-%m-%d_%H-%M-%S")
            safety_backup = db_path.parent / f"pre_restore_{timestamp}.db"
            _copy_database(db_path, safety_backup)
            details["safety_backup"] = str(safety_backup)
            logger.info(f"Current database backed up to: {safety_backup}")

        db_path.parent.mkdir(parents=True, exist_ok=True)
        _copy_database(backup_path, db_path)
        logger.info(f"Database restored from: {backup_path}")

        return MaintenanceResult(
            operation="restore",
            success=True,
            duration_seconds=(datetime.now() - start_time).total_seconds(),
            details=details,
        )

    except (OSError, sqlite3.Error) as e:
        logger.error(f"Restore failed: {e}")
        return MaintenanceResult(
            operation="restore",
            success=False,
            duration_seconds=(datetime.now() - start_time).total_seconds(),
            error=str(e),
        )
