"""
SQLite Connection Management Component

This module provides a class for managing the SQLite connection used by the
SQLite metastore, including transaction scoping.
"""

import contextlib
import logging
import os
import sqlite3
import threading
from typing import Any, Iterator, Optional, Sequence

logger = logging.getLogger(__name__)


class SQLiteConnection:
    """
    Manages a single SQLite connection shared by the metastore.

    The connection runs in autocommit mode; ``transaction`` opens an explicit
    transaction and joins an already open one, so nested scopes commit once.
    """

    def __init__(
        self,
        db_path: str,
        connection_timeout: float = 30.0
    ):
        """
        Initialize the SQLite connection manager.

        Args:
            db_path: Path to the SQLite database file, or ``:memory:``
            connection_timeout: Seconds to wait for a database lock
        """
        self.db_path = db_path
        self.connection_timeout = connection_timeout
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None

    def _ensure_connection(self) -> None:
        """
        Ensure the database connection exists.

        Creates a new connection if one doesn't exist yet.
        """
        if self._conn is not None:
            return

        # Ensure directory exists for file-based databases
        if self.db_path != ":memory:" and os.path.dirname(self.db_path):
            os.makedirs(os.path.dirname(self.db_path), exist_ok=True)

        self._conn = sqlite3.connect(
            self.db_path,
            timeout=self.connection_timeout,
            isolation_level=None,  # autocommit mode
            check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")

        logger.debug(f"Created SQLite connection to {self.db_path}")

    def get_connection(self) -> sqlite3.Connection:
        """
        Get the SQLite connection.

        Returns:
            sqlite3.Connection: The shared connection

        Raises:
            ValueError: If no connection could be created
        """
        with self._lock:
            self._ensure_connection()
            if self._conn is None:
                raise ValueError("Failed to create SQLite connection")
            return self._conn

    def execute(self, sql: str, parameters: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Execute one statement on the shared connection."""
        with self._lock:
            return self.get_connection().execute(sql, parameters)

    def fetch_all(self, sql: str, parameters: Sequence[Any] = ()) -> list:
        with self._lock:
            return self.get_connection().execute(sql, parameters).fetchall()

    def fetch_one(self, sql: str, parameters: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self.get_connection().execute(sql, parameters).fetchone()

    @contextlib.contextmanager
    def transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Run the enclosed statements in one transaction.

        Args:
            immediate: Take the database write lock when the transaction starts
        """
        with self._lock:
            conn = self.get_connection()
            if conn.in_transaction:
                yield conn
                return

            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def close(self) -> None:
        """Close the SQLite connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug(f"Closed SQLite connection to {self.db_path}")
