"""
Attribute Tree Model

This module defines the generic, backend-independent value representation of
the metastore. An attribute is an ``(id, value)`` pair with an ordered list of
child attributes, which makes it a recursive tree. Children keep insertion
order and may repeat the same id to represent a collection; lookups by id
always return the first match.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterator, List, Optional

from pydantic import BaseModel, Field, field_validator

PRIMITIVE_TYPES = (str, bool, int, float, Decimal, datetime, date)


def is_primitive(value: Any) -> bool:
    """Return True when ``value`` may be stored directly as an attribute value."""
    return value is None or isinstance(value, PRIMITIVE_TYPES)


class Attribute(BaseModel):
    """
    A node of the attribute tree.

    The value is a primitive (string, number, boolean, date) or ``None``;
    structure lives in ``children``.
    """

    id: Optional[str] = None
    value: Any = None
    children: List["Attribute"] = Field(default_factory=list)

    @field_validator("value")
    def validate_value(cls, v):
        """Reject values that are not primitives."""
        if not is_primitive(v):
            raise ValueError(
                f"Attribute values must be primitives, got {type(v).__name__}"
            )
        return v

    def add_child(self, attribute: "Attribute") -> "Attribute":
        """Append ``attribute`` to the children and return it."""
        self.children.append(attribute)
        return attribute

    def get_child(self, attribute_id: str) -> Optional["Attribute"]:
        """Return the first child with ``attribute_id``, or None."""
        for child in self.children:
            if child.id == attribute_id:
                return child
        return None

    def get_children(self, attribute_id: Optional[str] = None) -> List["Attribute"]:
        """Return every child with ``attribute_id`` (all children when omitted), in order."""
        if attribute_id is None:
            return list(self.children)
        return [child for child in self.children if child.id == attribute_id]

    def delete_child(self, attribute_id: str) -> bool:
        """Remove the first child with ``attribute_id``; return whether one was removed."""
        for index, child in enumerate(self.children):
            if child.id == attribute_id:
                del self.children[index]
                return True
        return False

    def delete_children(self, attribute_id: str) -> int:
        """Remove every child with ``attribute_id`` and return how many were removed."""
        before = len(self.children)
        self.children = [child for child in self.children if child.id != attribute_id]
        return before - len(self.children)

    def clear_children(self) -> None:
        self.children.clear()

    def child_ids(self) -> List[str]:
        """Return the distinct child ids in first-seen order."""
        seen: List[str] = []
        for child in self.children:
            if child.id not in seen:
                seen.append(child.id)
        return seen

    def walk(self) -> Iterator["Attribute"]:
        """Yield this attribute and all of its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def is_empty(self) -> bool:
        """True when the attribute carries neither a value nor children."""
        return self.value is None and not self.children
