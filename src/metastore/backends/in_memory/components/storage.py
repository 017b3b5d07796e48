"""
In-Memory Storage Component

This module provides the core storage functionality for the in-memory backend:
the nested, insertion-ordered dictionaries that hold namespaces, element types
and elements, and the copy discipline that keeps callers from sharing state
with the store.
"""

from typing import Dict, List, Optional

from metastore.models import Element, ElementType


class _TypeEntry:
    """An element type together with its elements, keyed by element id."""

    __slots__ = ("element_type", "elements")

    def __init__(self, element_type: ElementType):
        self.element_type = element_type
        self.elements: Dict[str, Element] = {}


class InMemoryStorage:
    """
    Core storage functionality for the in-memory backend.

    Every value handed in or out is a deep copy, so mutating a returned model
    has no effect on stored state until it is written back.
    """

    def __init__(self):
        """Initialize the storage component."""
        self._data: Dict[str, Dict[str, _TypeEntry]] = {}

    #-----------------------------------------------------------------------
    # Namespaces
    #-----------------------------------------------------------------------

    def namespaces(self) -> List[str]:
        return list(self._data)

    def has_namespace(self, namespace: str) -> bool:
        return namespace in self._data

    def add_namespace(self, namespace: str) -> None:
        self._data.setdefault(namespace, {})

    def remove_namespace(self, namespace: str) -> bool:
        """
        Remove a namespace (no dependency checks).

        Returns:
            bool: True if the namespace was removed, False if it didn't exist
        """
        return self._data.pop(namespace, None) is not None

    #-----------------------------------------------------------------------
    # Element types
    #-----------------------------------------------------------------------

    def element_type_ids(self, namespace: str) -> List[str]:
        return list(self._data.get(namespace, {}))

    def get_element_type(self, namespace: str, element_type_id: str) -> Optional[ElementType]:
        """
        Get an element type by id.

        Returns:
            A copy of the element type if found, None otherwise
        """
        entry = self._entry(namespace, element_type_id)
        if entry is None:
            return None
        return entry.element_type.model_copy(deep=True)

    def set_element_type(self, namespace: str, element_type: ElementType) -> None:
        """Insert or replace an element type, keeping its elements on replace."""
        types = self._data.setdefault(namespace, {})
        stored = element_type.model_copy(deep=True)
        stored.attach_element_ids([])
        entry = types.get(element_type.id)
        if entry is None:
            types[element_type.id] = _TypeEntry(stored)
        else:
            entry.element_type = stored

    def remove_element_type(self, namespace: str, element_type_id: str) -> bool:
        types = self._data.get(namespace, {})
        return types.pop(element_type_id, None) is not None

    #-----------------------------------------------------------------------
    # Elements
    #-----------------------------------------------------------------------

    def element_ids(self, namespace: str, element_type_id: str) -> List[str]:
        entry = self._entry(namespace, element_type_id)
        return list(entry.elements) if entry else []

    def get_element(self, namespace: str, element_type_id: str, element_id: str) -> Optional[Element]:
        entry = self._entry(namespace, element_type_id)
        if entry is None or element_id not in entry.elements:
            return None
        return entry.elements[element_id].model_copy(deep=True)

    def set_element(self, namespace: str, element_type_id: str, element: Element) -> None:
        """Store a copy of ``element``; replacing keeps the original listing position."""
        entry = self._entry(namespace, element_type_id)
        if entry is None:
            raise KeyError(f"Unknown element type '{element_type_id}' in namespace '{namespace}'")
        entry.elements[element.id] = element.model_copy(deep=True)

    def remove_element(self, namespace: str, element_type_id: str, element_id: str) -> bool:
        entry = self._entry(namespace, element_type_id)
        if entry is None:
            return False
        return entry.elements.pop(element_id, None) is not None

    #-----------------------------------------------------------------------
    # Utilities
    #-----------------------------------------------------------------------

    def count_elements(self) -> int:
        """Count the elements across all namespaces and types."""
        return sum(
            len(entry.elements)
            for types in self._data.values()
            for entry in types.values()
        )

    def clear_all(self) -> None:
        self._data.clear()

    def snapshot(self) -> Dict[str, Dict[str, _TypeEntry]]:
        """
        Copy the container structure for a later ``restore``.

        Stored models are never mutated in place, so they are shared rather
        than copied.
        """
        copied: Dict[str, Dict[str, _TypeEntry]] = {}
        for namespace, types in self._data.items():
            copied[namespace] = {}
            for element_type_id, entry in types.items():
                entry_copy = _TypeEntry(entry.element_type)
                entry_copy.elements = dict(entry.elements)
                copied[namespace][element_type_id] = entry_copy
        return copied

    def restore(self, snapshot: Dict[str, Dict[str, _TypeEntry]]) -> None:
        self._data = snapshot

    def _entry(self, namespace: str, element_type_id: str) -> Optional[_TypeEntry]:
        return self._data.get(namespace, {}).get(element_type_id)
