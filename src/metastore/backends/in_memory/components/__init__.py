"""Components of the in-memory metastore backend."""

from metastore.backends.in_memory.components.storage import InMemoryStorage

__all__ = ["InMemoryStorage"]
