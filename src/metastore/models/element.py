"""
Element Model

An element is a persisted record of an element type. It is the root of an
attribute tree: its own ``value`` plus its ordered children form the content
that backends store.
"""

from typing import Optional

from metastore.models.attribute import Attribute
from metastore.models.owner import ElementOwner


class Element(Attribute):
    """A metastore element: an identified, optionally named and owned attribute tree."""

    name: Optional[str] = None
    owner: Optional[ElementOwner] = None

    def has_owner(self) -> bool:
        """Return True when an owner is attached."""
        return self.owner is not None
