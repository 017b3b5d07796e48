"""Shared implementation of the metastore contract for all backends."""

from metastore.backends.base.core import BaseMetaStore

__all__ = ["BaseMetaStore"]
