"""In-memory metastore backend."""

from metastore.backends.in_memory.core import InMemoryMetaStore

__all__ = ["InMemoryMetaStore"]
