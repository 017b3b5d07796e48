"""Metastore backends: in-memory, SQLite, delegating, and the factory that builds them."""

from metastore.backends.base import BaseMetaStore
from metastore.backends.delegating import DelegatingMetaStore
from metastore.backends.factory import BackendType, StorageBackendFactory
from metastore.backends.in_memory import InMemoryMetaStore
from metastore.backends.sqlite import SQLiteMetaStore

__all__ = [
    "BaseMetaStore",
    "BackendType",
    "DelegatingMetaStore",
    "InMemoryMetaStore",
    "SQLiteMetaStore",
    "StorageBackendFactory",
]
