"""Components of the SQLite metastore backend."""

from metastore.backends.sqlite.components.connection import SQLiteConnection
from metastore.backends.sqlite.components.crud import SQLiteCRUD
from metastore.backends.sqlite.components.schema import SQLiteSchema

__all__ = ["SQLiteConnection", "SQLiteCRUD", "SQLiteSchema"]
