"""Factory for building metastore backends by type."""

from metastore.backends.factory.backend_type import BackendType
from metastore.backends.factory.storage_factory import StorageBackendFactory

__all__ = ["BackendType", "StorageBackendFactory"]
