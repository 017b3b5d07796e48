"""Data models of the metastore: attribute trees, elements, element types, owners."""

from metastore.models.attribute import Attribute, is_primitive
from metastore.models.element import Element
from metastore.models.element_type import ElementType
from metastore.models.namespace import Namespace, is_valid_namespace_name
from metastore.models.owner import ElementOwner, ElementOwnerType

__all__ = [
    "Attribute",
    "Element",
    "ElementOwner",
    "ElementOwnerType",
    "ElementType",
    "Namespace",
    "is_primitive",
    "is_valid_namespace_name",
]
