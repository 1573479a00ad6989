#!/usr/bin/env python
"""
Database management CLI for the dealer management store.

init, upgrade and restore run the schema engine before touching the store,
so it is migrated and validated first. status only reads the version.

Usage:
    python scripts/manage_db.py [--db PATH] <command> [options]

Commands:
    init                Create or migrate the database and show table counts
    upgrade             Show current vs target version, migrate, validate
    upgrade --dry-run   Show the DDL an upgrade would run, change nothing
    status              Show current and target schema version only
    backup              Create a timestamped backup
    list-backups        List available backups
    restore FILE        Restore from a backup, then migrate and validate it
"""

import argparse
import json
import sqlite3
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import config
from config.logging_config import setup_logging, get_logger
from src.database import (
    DatabaseConnection,
    INITIAL_VERSION,
    MigrationEngine,
    SCHEMA_VERSION,
    SchemaError,
    create_backup,
    format_bytes,
    get_row_counts,
    list_backups,
    restore_backup,
)
from src.database.maintenance import FILE_SIZE_KEY

logger = get_logger("cli")


def print_statistics(db: DatabaseConnection) -> None:
    """Print per-table row counts and the store's size."""
    stats = get_row_counts(db)
    print("\nDatabase Statistics:")
    for table, count in stats.items():
        if table != FILE_SIZE_KEY:
            print(f"  {table}: {count} records")
    print(f"  Database size: {format_bytes(stats[FILE_SIZE_KEY])}")


def cmd_init(db_path: Path) -> int:
    print("Initializing database...")
    with DatabaseConnection(db_path) as db:
        report = MigrationEngine(db).ensure_schema_current()
        print(f"✓ Database initialized successfully ({report.summary()})")
        print_statistics(db)
    return 0


def cmd_upgrade(db_path: Path, dry_run: bool = False) -> int:
    print("Checking database schema...")
    with DatabaseConnection(db_path) as db:
        engine = MigrationEngine(db)
        current = engine.current_version()
        print(f"Current schema version: {current}")
        print(f"Target schema version: {engine.target_version}")

        if dry_run:
            if current == engine.target_version:
                print("✓ Database is already up to date")
                return 0
            changes = engine.plan()
            print(f"Would execute {len(changes)} statement(s):")
            for change in changes:
                print(f"  {change.statement}")
            return 0

        report = engine.ensure_schema_current()
        if report.migrated:
            print(f"✓ Schema migration completed: {report.summary()}")
        else:
            print("✓ Database is already up to date")
        print("✓ Schema integrity validated")
        print_statistics(db)
    return 0


def cmd_status(db_path: Path, as_json: bool = False) -> int:
    status = {
        "database": str(db_path),
        "current_version": INITIAL_VERSION,
        "target_version": SCHEMA_VERSION,
    }
    # Opening a missing path would create the store
    if Path(db_path).exists():
        with DatabaseConnection(db_path) as db:
            engine = MigrationEngine(db)
            status["current_version"] = engine.current_version()
            status["target_version"] = engine.target_version
    status["up_to_date"] = status["current_version"] == status["target_version"]

    if as_json:
        print(json.dumps(status, indent=2))
    else:
        print(f"Database: {status['database']}")
        print(f"Current schema version: {status['current_version']}")
        print(f"Target schema version: {status['target_version']}")
        print("✓ Up to date" if status["up_to_date"] else "Upgrade required")
    return 0


def cmd_backup(db_path: Path, backup_dir: Optional[Path]) -> int:
    print("Creating database backup...")
    result = create_backup(db_path, backup_dir)
    if not result.success:
        print(f"✗ Backup failed: {result.error}")
        return 1
    print(f"✓ Database backed up to: {result.details['backup_path']}")
    return 0


def cmd_list_backups(backup_dir: Optional[Path]) -> int:
    backups = list_backups(backup_dir)
    if not backups:
        print("No backups found")
        return 0
    for backup in backups:
        print(f"  {backup['filename']}  {format_bytes(backup['size_bytes'])}  {backup['created']:%Y-%m-%d %H:%M:%S}")
    return 0


def cmd_restore(db_path: Path, backup_file: Path) -> int:
    print("Restoring database from backup...")
    result = restore_backup(backup_file, db_path)
    if not result.success:
        print(f"✗ Restore failed: {result.error}")
        return 1
    if "safety_backup" in result.details:
        print(f"✓ Current database backed up to: {result.details['safety_backup']}")
    print(f"✓ Database restored from: {backup_file}")

    with DatabaseConnection(db_path) as db:
        MigrationEngine(db).ensure_schema_current()
    print("✓ Database validation completed")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Dealer management store: schema and backup tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path to SQLite database file (default: from configuration)",
    )
    parser.add_argument(
        "--log-level",
        default=config.app.log_level,
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("init", help="Initialize database")

    upgrade = subparsers.add_parser("upgrade", help="Upgrade database schema")
    upgrade.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes",
    )

    status = subparsers.add_parser("status", help="Show schema version")
    status.add_argument("--json", action="store_true", help="Output as JSON")

    backup = subparsers.add_parser("backup", help="Create database backup")
    backup.add_argument("--backup-dir", type=Path, default=None, help="Backup directory")

    listing = subparsers.add_parser("list-backups", help="List database backups")
    listing.add_argument("--backup-dir", type=Path, default=None, help="Backup directory")

    restore = subparsers.add_parser("restore", help="Restore database from backup")
    restore.add_argument("backup_file", type=Path, help="Backup file to restore")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, log_file=config.app.log_file)
    db_path = args.db or config.db_path
    command = args.command or "upgrade"

    try:
        if command == "init":
            return cmd_init(db_path)
        if command == "upgrade":
            return cmd_upgrade(db_path, dry_run=getattr(args, "dry_run", False))
        if command == "status":
            return cmd_status(db_path, as_json=args.json)
        if command == "backup":
            return cmd_backup(db_path, args.backup_dir)
        if command == "list-backups":
            return cmd_list_backups(args.backup_dir)
        if command == "restore":
            return cmd_restore(db_path, args.backup_file)
    except (SchemaError, sqlite3.Error) as e:
        logger.error(f"{command} failed: {e}")
        print(f"✗ {command.capitalize()} failed: {e}")
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
