"""
SQLite Schema Management Component

This module provides a class for managing the SQLite database schema of the
metastore: one table per entity level, with foreign keys that refuse to delete
a namespace or element type which still has children.
"""

import logging

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class SQLiteSchema:
    """
    Manages the SQLite database schema for metastore storage.

    This class is responsible for creating and maintaining the database
    schema, including tables, indices, and constraints.
    """

    def __init__(self, connection_manager):
        """
        Initialize the schema manager.

        Args:
            connection_manager: SQLiteConnection instance to manage database connections
        """
        self.connection_manager = connection_manager

    def initialize_schema(self) -> None:
        """
        Initialize the database schema with necessary tables and indices.

        Creates the following tables if they don't exist:
        - namespaces: Namespace names
        - element_types: Element types per namespace
        - elements: Elements per element type, content stored as JSON
        """
        current_version = self.get_version()
        if current_version >= SCHEMA_VERSION:
            logger.debug(f"SQLite schema already at version {current_version}")
            return

        with self.connection_manager.transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS namespaces (
                    name TEXT PRIMARY KEY,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS element_types (
                    namespace TEXT NOT NULL,
                    id TEXT NOT NULL,
                    name TEXT,
                    description TEXT,
                    PRIMARY KEY (namespace, id),
                    FOREIGN KEY (namespace) REFERENCES namespaces(name) ON DELETE RESTRICT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS elements (
                    namespace TEXT NOT NULL,
                    element_type_id TEXT NOT NULL,
                    id TEXT NOT NULL,
                    name TEXT,
                    owner_name TEXT,
                    owner_type TEXT,
                    content TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    last_modified TIMESTAMP,
                    PRIMARY KEY (namespace, element_type_id, id),
                    FOREIGN KEY (namespace, element_type_id)
                        REFERENCES element_types(namespace, id) ON DELETE RESTRICT
                )
            """)

            self._create_indices(conn)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

        logger.info(f"Upgraded SQLite schema from version {current_version} to {SCHEMA_VERSION}")

    def _create_indices(self, conn) -> None:
        """
        Create indices for name lookups.
        """
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_element_types_name ON element_types(namespace, name)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_elements_name ON elements(namespace, element_type_id, name)"
        )

    def get_version(self) -> int:
        row = self.connection_manager.fetch_one("PRAGMA user_version")
        return int(row[0]) if row else 0
