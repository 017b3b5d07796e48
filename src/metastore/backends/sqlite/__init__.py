"""SQLite metastore backend."""

from metastore.backends.sqlite.core import SQLiteMetaStore

__all__ = ["SQLiteMetaStore"]
