"""
In-Memory Metastore Core

This module provides the InMemoryMetaStore class, which plugs the in-memory
storage component into BaseMetaStore. Nothing is persisted beyond the lifetime
of the process; the store is meant for tests, caches and tools that assemble
metadata before writing it elsewhere.
"""

import contextlib
import logging
from typing import Any, Dict, Iterator, List, Optional

from metastore.backends.base import BaseMetaStore
from metastore.backends.in_memory.components.storage import InMemoryStorage
from metastore.models import Element, ElementType

logger = logging.getLogger(__name__)


class InMemoryMetaStore(BaseMetaStore):
    """
    In-memory implementation of the metastore interface.

    Listing order is insertion order for namespaces, element types and elements.
    """

    default_name = "in-memory"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the in-memory metastore.

        Args:
            config: Optional configuration parameters (``name``, ``description``)
        """
        super().__init__(config)
        self.storage = InMemoryStorage()
        logger.info(f"Initialized in-memory metastore '{self.name}'")

    def clear(self) -> None:
        """Drop every namespace, element type and element."""
        with self._lock:
            self.storage.clear_all()

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = self.storage.snapshot()
            try:
                yield
            except BaseException:
                self.storage.restore(snapshot)
                logger.debug(f"Rolled back in-memory metastore '{self.name}'")
                raise

    # Implementation of required abstract methods from BaseMetaStore
    def _namespace_exists(self, namespace: str) -> bool:
        return self.storage.has_namespace(namespace)

    def _list_namespaces(self) -> List[str]:
        return self.storage.namespaces()

    def _insert_namespace(self, namespace: str) -> None:
        self.storage.add_namespace(namespace)

    def _remove_namespace(self, namespace: str) -> None:
        self.storage.remove_namespace(namespace)

    def _list_element_type_ids(self, namespace: str) -> List[str]:
        return self.storage.element_type_ids(namespace)

    def _read_element_type(self, namespace: str, element_type_id: str) -> Optional[ElementType]:
        return self.storage.get_element_type(namespace, element_type_id)

    def _write_element_type(self, namespace: str, element_type: ElementType, is_new: bool) -> None:
        self.storage.set_element_type(namespace, element_type)

    def _remove_element_type(self, namespace: str, element_type_id: str) -> None:
        self.storage.remove_element_type(namespace, element_type_id)

    def _list_element_ids(self, namespace: str, element_type_id: str) -> List[str]:
        return self.storage.element_ids(namespace, element_type_id)

    def _read_element(self, namespace: str, element_type_id: str, element_id: str) -> Optional[Element]:
        return self.storage.get_element(namespace, element_type_id, element_id)

    def _write_element(self, namespace: str, element_type_id: str, element: Element, is_new: bool) -> None:
        self.storage.set_element(namespace, element_type_id, element)

    def _remove_element(self, namespace: str, element_type_id: str, element_id: str) -> None:
        self.storage.remove_element(namespace, element_type_id, element_id)
