"""
SQLite Metastore Core

This module provides the SQLiteMetaStore class, which plugs the SQLite
connection, schema and CRUD components into BaseMetaStore.
"""

import contextlib
import logging
from typing import Any, Dict, Iterator, List, Optional

from metastore.backends.base import BaseMetaStore
from metastore.backends.sqlite.components.connection import SQLiteConnection
from metastore.backends.sqlite.components.crud import SQLiteCRUD
from metastore.backends.sqlite.components.schema import SQLiteSchema
from metastore.exceptions import StoreUnavailableError
from metastore.models import Element, ElementType

logger = logging.getLogger(__name__)


class SQLiteMetaStore(BaseMetaStore):
    """
    SQLite implementation of the metastore interface.

    Configuration keys:
        database_path: Path of the database file (``:memory:`` by default);
            also accepted as ``connection.database_path``
        timeout_seconds: Seconds to wait for a database lock; also accepted as
            ``connection.timeout_seconds``

    Locked reads run inside ``BEGIN IMMEDIATE`` so other connections cannot
    write to the database while the read is in progress.
    """

    default_name = "sqlite"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the SQLite metastore and create its schema.

        Args:
            config: Optional configuration parameters

        Raises:
            StoreUnavailableError: If the database cannot be opened or initialized
        """
        super().__init__(config)

        connection_config = self.config.get("connection", {})
        self.db_path = self.config.get(
            "database_path", connection_config.get("database_path", ":memory:")
        )
        timeout = self.config.get(
            "timeout_seconds", connection_config.get("timeout_seconds", 30.0)
        )

        self.connection = SQLiteConnection(self.db_path, connection_timeout=float(timeout))
        self.schema = SQLiteSchema(self.connection)
        self.crud = SQLiteCRUD(self.connection)

        try:
            self.schema.initialize_schema()
        except Exception as e:
            logger.exception(f"Failed to initialize SQLite metastore at {self.db_path}")
            raise StoreUnavailableError(
                backend_type=self.__class__.__name__,
                operation="initialize",
                message=f"Failed to initialize SQLite metastore: {str(e)}"
            ) from e
        logger.info(f"Initialized SQLite metastore '{self.name}' at {self.db_path}")

    @contextlib.contextmanager
    def modification_lock(self) -> Iterator[None]:
        """Hold the writer lock and the database write lock for the duration of a read."""
        with self._lock:
            with self.connection.transaction(immediate=True):
                yield

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[None]:
        with self.connection.transaction():
            yield

    def close(self) -> None:
        """Close the underlying connection."""
        self.connection.close()
        logger.info(f"SQLite metastore '{self.name}' closed")

    def __enter__(self) -> "SQLiteMetaStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Implementation of required abstract methods from BaseMetaStore
    def _namespace_exists(self, namespace: str) -> bool:
        return self.crud.namespace_exists(namespace)

    def _list_namespaces(self) -> List[str]:
        return self.crud.list_namespaces()

    def _insert_namespace(self, namespace: str) -> None:
        self.crud.insert_namespace(namespace)

    def _remove_namespace(self, namespace: str) -> None:
        self.crud.delete_namespace(namespace)

    def _list_element_type_ids(self, namespace: str) -> List[str]:
        return self.crud.list_element_type_ids(namespace)

    def _read_element_type(self, namespace: str, element_type_id: str) -> Optional[ElementType]:
        return self.crud.retrieve_element_type(namespace, element_type_id)

    def _write_element_type(self, namespace: str, element_type: ElementType, is_new: bool) -> None:
        self.crud.store_element_type(namespace, element_type, is_new)

    def _remove_element_type(self, namespace: str, element_type_id: str) -> None:
        self.crud.delete_element_type(namespace, element_type_id)

    def _list_element_ids(self, namespace: str, element_type_id: str) -> List[str]:
        return self.crud.list_element_ids(namespace, element_type_id)

    def _read_element(self, namespace: str, element_type_id: str, element_id: str) -> Optional[Element]:
        return self.crud.retrieve_element(namespace, element_type_id, element_id)

    def _write_element(self, namespace: str, element_type_id: str, element: Element, is_new: bool) -> None:
        self.crud.store_element(namespace, element_type_id, element, is_new)

    def _remove_element(self, namespace: str, element_type_id: str, element_id: str) -> None:
        self.crud.delete_element(namespace, element_type_id, element_id)
