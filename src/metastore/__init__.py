"""
Metastore

A persistence-agnostic metadata store: namespaces hold element types, element
types hold elements, and elements are trees of typed attributes. Backends
implement one store contract; the persist package maps plain Python objects to
and from attribute trees.
"""

__version__ = "0.1.0"

from metastore.backends import (
    BackendType,
    BaseMetaStore,
    DelegatingMetaStore,
    InMemoryMetaStore,
    SQLiteMetaStore,
    StorageBackendFactory,
)
from metastore.exceptions import ErrorKind, MetaStoreError
from metastore.interfaces import MetaStoreInterface
from metastore.models import (
    Attribute,
    Element,
    ElementOwner,
    ElementOwnerType,
    ElementType,
    Namespace,
)
from metastore.persist import (
    MetaStoreFactory,
    ObjectMapper,
    attribute,
    element_type,
    map_from_tree,
    map_to_tree,
    mapped,
)

__all__ = [
    "Attribute",
    "BackendType",
    "BaseMetaStore",
    "DelegatingMetaStore",
    "Element",
    "ElementOwner",
    "ElementOwnerType",
    "ElementType",
    "ErrorKind",
    "InMemoryMetaStore",
    "MetaStoreError",
    "MetaStoreFactory",
    "MetaStoreInterface",
    "Namespace",
    "ObjectMapper",
    "SQLiteMetaStore",
    "StorageBackendFactory",
    "attribute",
    "element_type",
    "map_from_tree",
    "map_to_tree",
    "mapped",
]
