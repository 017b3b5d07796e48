"""Interfaces and optional capabilities that metastore backends implement."""

from metastore.interfaces.capabilities import (
    SupportsLocking,
    SupportsTolerantListing,
    get_element_by_name,
    get_element_type_by_name,
    get_elements,
    read_lock,
)
from metastore.interfaces.metastore import MetaStoreInterface

__all__ = [
    "MetaStoreInterface",
    "SupportsLocking",
    "SupportsTolerantListing",
    "get_element_by_name",
    "get_element_type_by_name",
    "get_elements",
    "read_lock",
]
