"""
Metastore Capabilities

Optional behaviour a metastore may offer on top of ``MetaStoreInterface``:

- ``SupportsLocking``: hold a modification lock for the duration of a read, so
  the store does not apply a concurrent create or delete while the read runs.
- ``SupportsTolerantListing``: list the elements of a type while collecting
  per-element failures instead of aborting.

The free functions in this module accept ``lock=`` and ``errors=`` for any
metastore and degrade to the plain operation when the store does not offer the
capability. A lock request against a store without locking is a no-op.
"""

import contextlib
import logging
from typing import ContextManager, List, Optional, Protocol, runtime_checkable

from metastore.exceptions import ElementLoadError
from metastore.interfaces.metastore import MetaStoreInterface
from metastore.models import Element, ElementType

logger = logging.getLogger(__name__)


@runtime_checkable
class SupportsLocking(Protocol):
    """A metastore that can hold a modification lock during reads."""

    def modification_lock(self) -> ContextManager[None]:
        ...


@runtime_checkable
class SupportsTolerantListing(Protocol):
    """A metastore that can list elements while collecting per-element failures."""

    def get_elements_tolerant(
        self,
        namespace: str,
        element_type: ElementType,
        errors: List[ElementLoadError],
    ) -> List[Element]:
        ...


def read_lock(store: MetaStoreInterface, lock: bool = False) -> ContextManager[None]:
    """
    Return the context manager guarding a read.

    Args:
        store: The metastore to read from
        lock: Whether the caller requested a modification lock

    Returns:
        The store's modification lock when requested and supported, otherwise
        a no-op context
    """
    if lock and isinstance(store, SupportsLocking):
        return store.modification_lock()
    if lock:
        logger.debug(f"{store.__class__.__name__} does not support locking; lock request ignored")
    return contextlib.nullcontext()


def get_element_type_by_name(
    store: MetaStoreInterface,
    namespace: str,
    element_type_name: str,
    lock: bool = False,
) -> Optional[ElementType]:
    """Look up an element type by name, optionally under the store's modification lock."""
    with read_lock(store, lock):
        return store.get_element_type_by_name(namespace, element_type_name)


def get_element_by_name(
    store: MetaStoreInterface,
    namespace: str,
    element_type: ElementType,
    name: str,
    lock: bool = False,
) -> Optional[Element]:
    """Look up an element by name, optionally under the store's modification lock."""
    with read_lock(store, lock):
        return store.get_element_by_name(namespace, element_type, name)


def get_elements(
    store: MetaStoreInterface,
    namespace: str,
    element_type: ElementType,
    lock: bool = False,
    errors: Optional[List[ElementLoadError]] = None,
) -> List[Element]:
    """
    List the elements of a type.

    Args:
        store: The metastore to read from
        namespace: The namespace to reference
        element_type: The type of element to retrieve
        lock: Hold the store's modification lock for the duration of the call
        errors: When given, single-element failures are appended here and the
            listing continues, provided the store supports tolerant listing

    Returns:
        The elements that could be loaded

    Raises:
        StoreUnavailableError: For failures that could not be attributed to a
            single element, or for any failure when the store cannot list
            tolerantly
    """
    with read_lock(store, lock):
        if errors is not None and isinstance(store, SupportsTolerantListing):
            return store.get_elements_tolerant(namespace, element_type, errors)
        return store.get_elements(namespace, element_type)
