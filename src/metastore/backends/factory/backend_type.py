"""
Backend Type Enumeration

This module defines the enumeration of metastore backend types the factory
can build.
"""

from enum import Enum


class BackendType(str, Enum):
    """Supported metastore backend types."""

    MEMORY = "memory"  # In-memory storage (non-persistent)
    SQLITE = "sqlite"  # SQLite database storage
