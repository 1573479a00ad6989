"""SQLite connection management for the dealer management store."""

import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union
from contextlib import contextmanager

from config import config
from config.logging_config import get_logger

logger = get_logger("database")

MEMORY_PATH = ":memory:"

Params = Optional[Union[Sequence[Any], Dict[str, Any]]]


class DatabaseConnection:
    """
    Thin facade over one SQLite connection.

    The connection runs in autocommit mode, so every transaction boundary is
    explicit: ``begin_transaction`` / ``commit`` / ``rollback``. Nothing is
    rolled back automatically; a caller that begins a transaction owns its
    cleanup. Values are always bound as parameters.
    """

    def __init__(
        self,
        db_path: Optional[Union[Path, str]] = None,
        timeout: Optional[float] = None,
        check_same_thread: bool = True,
    ):
        """
        Initialize database connection manager.

        Args:
            db_path: Path to database file, or ":memory:". Defaults to config setting.
            timeout: Seconds to wait on a locked database.
            check_same_thread: Refuse use from threads other than the creator.
        """
        if db_path is None:
            db_path = config.db_path
        self.db_path: Union[Path, str] = db_path if db_path == MEMORY_PATH else Path(db_path)
        self.timeout = timeout if timeout is not None else config.database.timeout
        self.check_same_thread = check_same_thread
        self._connection: Optional[sqlite3.Connection] = None

    @property
    def is_memory(self) -> bool:
        return self.db_path == MEMORY_PATH

    def connect(self) -> sqlite3.Connection:
        """
        Establish connection to the database.

        Returns:
            sqlite3 connection object.
        """
        if self._connection is not None:
            return self._connection

        if not self.is_memory:
            # Ensure parent directory exists
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = sqlite3.connect(
            str(self.db_path),
            timeout=self.timeout,
            isolation_level=None,
            check_same_thread=self.check_same_thread,
        )
        self._connection.row_factory = sqlite3.Row

        self._configure_connection()

        logger.info(f"Connected to database: {self.db_path}")
        return self._connection

    def _configure_connection(self) -> None:
        """Configure connection pragmas."""
        if self._connection is None:
            return

        self._connection.execute("PRAGMA foreign_keys = ON")

        if not self.is_memory:
            self._connection.execute(f"PRAGMA journal_mode = {config.database.journal_mode}")
            self._connection.execute(f"PRAGMA synchronous = {config.database.synchronous}")
        self._connection.execute(f"PRAGMA cache_size = {int(config.database.cache_size)}")
        self._connection.execute("PRAGMA temp_store = MEMORY")

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info("Database connection closed")

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the current connection, establishing if needed."""
        if self._connection is None:
            return self.connect()
        return self._connection

    @property
    def in_transaction(self) -> bool:
        return self._connection is not None and self._connection.in_transaction

    def execute(self, query: str, parameters: Params = None) -> sqlite3.Cursor:
        """
        Execute a SQL statement.

        Args:
            query: SQL statement.
            parameters: Optional bound parameters.

        Returns:
            Cursor over the result.
        """
        try:
            return self.connection.execute(query, parameters or ())
        except sqlite3.Error as e:
            logger.error(f"SQL execution failed: {query} - {e}")
            raise

    def executemany(self, query: str, parameters: Sequence[Sequence[Any]]) -> sqlite3.Cursor:
        """
        Execute a SQL statement with multiple parameter sets.

        Args:
            query: SQL statement.
            parameters: List of parameter tuples.
        """
        try:
            return self.connection.executemany(query, parameters)
        except sqlite3.Error as e:
            logger.error(f"SQL execution failed: {query} - {e}")
            raise

    def query_one(self, query: str, parameters: Params = None) -> Optional[Dict[str, Any]]:
        """Execute a query and return the first row as a dict, or None."""
        row = self.execute(query, parameters).fetchone()
        return dict(row) if row is not None else None

    def query_all(self, query: str, parameters: Params = None) -> List[Dict[str, Any]]:
        """Execute a query and return every row as a dict."""
        return [dict(row) for row in self.execute(query, parameters).fetchall()]

    def query_scalar(self, query: str, parameters: Params = None) -> Any:
        """Execute a query and return the first column of the first row."""
        row = self.execute(query, parameters).fetchone()
        return row[0] if row is not None else None

    def begin_transaction(self) -> None:
        """Open a write transaction, taking the database write lock immediately."""
        self.execute("BEGIN IMMEDIATE")

    def commit(self) -> None:
        self.execute("COMMIT")

    def rollback(self) -> None:
        """Roll back the open transaction, if SQLite has not already done so."""
        if self.in_transaction:
            self.execute("ROLLBACK")

    def last_insert_id(self) -> int:
        return self.query_scalar("SELECT last_insert_rowid()")

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False


@contextmanager
def get_connection(db_path: Optional[Union[Path, str]] = None):
    """
    Context manager for database connections.

    Args:
        db_path: Path to database file.

    Yields:
        Connected DatabaseConnection.

    Example:
        with get_connection() as db:
            rows = db.query_all("SELECT * FROM dealers WHERE status = ?", ["active"])
    """
    db = DatabaseConnection(db_path)
    try:
        db.connect()
        yield db
    finally:
        db.close()


def get_memory_connection() -> DatabaseConnection:
    """
    Get an in-memory database connection for testing.

    Returns:
        Connected in-memory DatabaseConnection.
    """
    db = DatabaseConnection(MEMORY_PATH)
    db.connect()
    return db
