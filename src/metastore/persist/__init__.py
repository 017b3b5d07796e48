"""Mapping of plain Python objects to metastore attribute trees and elements."""

from metastore.persist.converters import ConverterRegistry, default_registry
from metastore.persist.factory import MetaStoreFactory
from metastore.persist.mapper import LoadResult, ObjectMapper, map_from_tree, map_to_tree
from metastore.persist.markers import (
    FieldDescriptor,
    FieldKind,
    KeyedConvention,
    attribute,
    element_type,
    get_descriptors,
    is_mapped,
    mapped,
)

__all__ = [
    "ConverterRegistry",
    "FieldDescriptor",
    "FieldKind",
    "KeyedConvention",
    "LoadResult",
    "MetaStoreFactory",
    "ObjectMapper",
    "attribute",
    "default_registry",
    "element_type",
    "get_descriptors",
    "is_mapped",
    "map_from_tree",
    "map_to_tree",
    "mapped",
]
