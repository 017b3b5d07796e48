"""
Element Type Model

An element type groups elements inside a namespace. It is schema-free: just an
identifier, a display name and a description.
"""

from typing import List, Optional, Sequence

from pydantic import BaseModel, PrivateAttr


class ElementType(BaseModel):
    """
    A named category of elements within one namespace.

    Backends attach a snapshot of the element ids they saw when returning a
    type; ``has_elements`` answers from that snapshot and is advisory only.
    """

    namespace: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    metastore_name: Optional[str] = None

    _element_ids: List[str] = PrivateAttr(default_factory=list)

    def has_elements(self) -> bool:
        """Return True when the backend reported elements for this type."""
        return bool(self._element_ids)

    def attach_element_ids(self, element_ids: Sequence[str]) -> "ElementType":
        """Record the element ids a backend saw for this type and return ``self``."""
        self._element_ids = list(element_ids)
        return self

    def __eq__(self, other: object) -> bool:
        # the element id snapshot is not part of a type's identity
        if not isinstance(other, ElementType):
            return NotImplemented
        return self.model_dump() == other.model_dump()

    __hash__ = None  # type: ignore[assignment]
