"""
Base Metastore Core Module

This module provides the BaseMetaStore class, which implements the full
MetaStoreInterface on top of a small set of protected storage hooks. All the
cross-cutting rules live here so that every backend upholds them the same way:

- existence checks before create, update and delete
- dependency-blocked deletes that report the blocking child ids
- first-match resolution of names
- tolerant bulk listing of elements
- serialization of writers and optional modification locks for reads
- wrapping of unexpected backend failures into StoreUnavailableError

Subclasses implement the hooks for the specific storage technology they support.
"""

from __future__ import annotations

import abc
import contextlib
import logging
import threading
import uuid
from typing import Any, Callable, ContextManager, Dict, Iterator, List, Optional, TypeVar

from metastore.exceptions import (
    DependenciesExistError,
    ElementExistsError,
    ElementLoadError,
    ElementNotFoundError,
    ElementTypeExistsError,
    ElementTypeNotFoundError,
    InvalidNameError,
    MetaStoreError,
    NamespaceExistsError,
    NamespaceNotFoundError,
    StoreUnavailableError,
    format_dependencies,
)
from metastore.interfaces.metastore import MetaStoreInterface
from metastore.models import (
    Attribute,
    Element,
    ElementOwner,
    ElementOwnerType,
    ElementType,
    is_valid_namespace_name,
)
from metastore.security import TwoWayPasswordEncoder, encoder_from_config

logger = logging.getLogger(__name__)


_ResultT = TypeVar("_ResultT")


class BaseMetaStore(MetaStoreInterface, abc.ABC):
    """
    Base class for all metastore backends.

    Besides the MetaStoreInterface operations it offers the locking and
    tolerant-listing capabilities, so lookups accept ``lock=`` and
    ``get_elements`` accepts an ``errors`` collector.
    """

    default_name = "metastore"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the metastore.

        Args:
            config: Backend configuration; ``name``, ``description`` and the
                password encoder keys (``password_key``, ``password_passphrase``)
                are read here, the rest is left to the subclass
        """
        self.config = dict(config or {})
        self._name: str = self.config.get("name") or self.default_name
        self._description: Optional[str] = self.config.get("description")
        self._password_encoder: Optional[TwoWayPasswordEncoder] = encoder_from_config(self.config)
        self._lock = threading.RLock()

    #-----------------------------------------------------------------------
    # Capabilities
    #-----------------------------------------------------------------------

    @contextlib.contextmanager
    def modification_lock(self) -> Iterator[None]:
        """Hold the store's writer lock; no create, update or delete runs meanwhile."""
        with self._lock:
            yield

    def _read_lock(self, lock: bool) -> ContextManager[None]:
        return self.modification_lock() if lock else contextlib.nullcontext()

    def _transaction(self) -> ContextManager[None]:
        """
        Scope in which several storage hooks apply together or not at all.

        Backends that can roll back override this; the default applies each
        hook on its own.
        """
        return contextlib.nullcontext()

    def _execute(self, operation: str, action: Callable[..., _ResultT], *args: Any) -> _ResultT:
        """Run a storage hook, wrapping unexpected failures into StoreUnavailableError."""
        try:
            return action(*args)
        except MetaStoreError:
            raise
        except Exception as e:
            logger.exception(f"{self.__class__.__name__}.{operation} failed")
            raise StoreUnavailableError(
                operation=operation,
                backend_type=self.__class__.__name__,
                message=f"Failed to {operation.replace('_', ' ')}: {str(e)}"
            ) from e

    #-----------------------------------------------------------------------
    # Namespaces
    #-----------------------------------------------------------------------

    def get_namespaces(self) -> List[str]:
        return self._execute("get_namespaces", self._list_namespaces)

    def namespace_exists(self, namespace: str) -> bool:
        return self._execute("namespace_exists", self._namespace_exists, namespace)

    def create_namespace(self, namespace: str) -> None:
        if not is_valid_namespace_name(namespace):
            raise InvalidNameError(namespace, f"Invalid namespace name: {namespace!r}")

        with self._lock:
            if self.namespace_exists(namespace):
                raise NamespaceExistsError(namespace)
            self._execute("create_namespace", self._insert_namespace, namespace)
        logger.info(f"Created namespace '{namespace}' in metastore '{self.name}'")

    def delete_namespace(self, namespace: str) -> None:
        with self._lock:
            if not self.namespace_exists(namespace):
                raise NamespaceNotFoundError(namespace)

            element_type_ids = self.get_element_type_ids(namespace)
            if element_type_ids:
                raise DependenciesExistError(
                    element_type_ids,
                    f"Unable to delete namespace '{namespace}' as it still contains "
                    f"element types {format_dependencies(element_type_ids)}",
                )
            self._execute("delete_namespace", self._remove_namespace, namespace)
        logger.info(f"Deleted namespace '{namespace}' from metastore '{self.name}'")

    #-----------------------------------------------------------------------
    # Element types
    #-----------------------------------------------------------------------

    def get_element_type_ids(self, namespace: str) -> List[str]:
        if not self.namespace_exists(namespace):
            return []
        return self._execute("get_element_type_ids", self._list_element_type_ids, namespace)

    def get_element_types(self, namespace: str) -> List[ElementType]:
        element_types = []
        for element_type_id in self.get_element_type_ids(namespace):
            element_type = self.get_element_type(namespace, element_type_id)
            if element_type is not None:
                element_types.append(element_type)
        return element_types

    def get_element_type(self, namespace: str, element_type_id: str) -> Optional[ElementType]:
        if not self.namespace_exists(namespace):
            return None
        element_type = self._execute(
            "get_element_type", self._read_element_type, namespace, element_type_id
        )
        if element_type is None:
            return None

        element_type.namespace = namespace
        element_type.metastore_name = self.name
        element_ids = self._execute(
            "get_element_ids", self._list_element_ids, namespace, element_type_id
        )
        return element_type.attach_element_ids(element_ids)

    def get_element_type_by_name(
        self,
        namespace: str,
        element_type_name: str,
        *,
        lock: bool = False,
    ) -> Optional[ElementType]:
        """
        Find an element type by its display name.

        Args:
            namespace: The namespace to look in
            element_type_name: The name to look for
            lock: Hold the modification lock for the duration of the call

        Returns:
            The first element type encountered with the name, or None
        """
        with self._read_lock(lock):
            for element_type in self.get_element_types(namespace):
                if element_type.name == element_type_name:
                    return element_type
        return None

    def create_element_type(self, namespace: str, element_type: ElementType) -> None:
        if element_type.id is None:
            element_type.id = element_type.name
        if not element_type.id:
            raise InvalidNameError(element_type.id, "An element type needs an id or a name")

        with self._lock:
            if not self.namespace_exists(namespace):
                raise NamespaceNotFoundError(namespace)
            if self._execute("get_element_type", self._read_element_type, namespace, element_type.id):
                raise ElementTypeExistsError(namespace, element_type.id)

            element_type.namespace = namespace
            element_type.metastore_name = self.name
            self._execute("create_element_type", self._write_element_type, namespace, element_type, True)
        logger.info(f"Created element type '{element_type.id}' in namespace '{namespace}'")

    def update_element_type(self, namespace: str, element_type: ElementType) -> None:
        element_type_id = self._type_id(namespace, element_type)
        with self._lock:
            if not self._element_type_exists(namespace, element_type_id):
                raise ElementTypeNotFoundError(namespace, element_type_id)

            element_type.namespace = namespace
            element_type.metastore_name = self.name
            self._execute("update_element_type", self._write_element_type, namespace, element_type, False)
        logger.debug(f"Updated element type '{element_type_id}' in namespace '{namespace}'")

    def delete_element_type(self, namespace: str, element_type: ElementType) -> None:
        element_type_id = self._type_id(namespace, element_type)
        with self._lock:
            if not self._element_type_exists(namespace, element_type_id):
                raise ElementTypeNotFoundError(namespace, element_type_id)

            element_ids = self._execute(
                "get_element_ids", self._list_element_ids, namespace, element_type_id
            )
            if element_ids:
                raise DependenciesExistError(
                    element_ids,
                    f"Unable to delete element type '{element_type_id}' as it still "
                    f"contains elements {format_dependencies(element_ids)}",
                )
            self._execute("delete_element_type", self._remove_element_type, namespace, element_type_id)
        logger.info(f"Deleted element type '{element_type_id}' from namespace '{namespace}'")

    #-----------------------------------------------------------------------
    # Elements
    #-----------------------------------------------------------------------

    def get_element_ids(self, namespace: str, element_type: ElementType) -> List[str]:
        element_type_id = self._type_id(namespace, element_type)
        if not self._element_type_exists(namespace, element_type_id):
            return []
        return self._execute("get_element_ids", self._list_element_ids, namespace, element_type_id)

    def get_elements(
        self,
        namespace: str,
        element_type: ElementType,
        *,
        lock: bool = False,
        errors: Optional[List[ElementLoadError]] = None,
    ) -> List[Element]:
        """
        Retrieve all the elements belonging to an element type.

        Args:
            namespace: The namespace to reference
            element_type: The type of element to retrieve
            lock: Hold the modification lock for the duration of the call
            errors: When given, an element that fails to load is recorded here
                as an ElementLoadError and the remaining elements still load

        Returns:
            The loaded elements, in the backend's listing order

        Raises:
            StoreUnavailableError: If the listing itself fails, or any element
                fails while no collector was given
        """
        with self._read_lock(lock):
            if errors is not None:
                return self.get_elements_tolerant(namespace, element_type, errors)

            element_type_id = self._type_id(namespace, element_type)
            elements = []
            for element_id in self.get_element_ids(namespace, element_type):
                element = self._execute(
                    "get_element", self._read_element, namespace, element_type_id, element_id
                )
                if element is not None:
                    elements.append(element)
            return elements

    def get_elements_tolerant(
        self,
        namespace: str,
        element_type: ElementType,
        errors: List[ElementLoadError],
    ) -> List[Element]:
        """List elements, collecting single-element failures into ``errors``."""
        element_type_id = self._type_id(namespace, element_type)
        elements = []
        for element_id in self.get_element_ids(namespace, element_type):
            try:
                element = self._read_element(namespace, element_type_id, element_id)
            except Exception as e:
                logger.warning(
                    f"Skipping element '{element_id}' of type '{element_type_id}' "
                    f"in namespace '{namespace}': {e}"
                )
                errors.append(ElementLoadError(element_id, cause=e))
                continue
            if element is not None:
                elements.append(element)
        return elements

    def get_element(self, namespace: str, element_type: ElementType, element_id: str) -> Optional[Element]:
        element_type_id = self._type_id(namespace, element_type)
        if not self.namespace_exists(namespace):
            return None
        return self._execute("get_element", self._read_element, namespace, element_type_id, element_id)

    def get_element_by_name(
        self,
        namespace: str,
        element_type: ElementType,
        name: str,
        *,
        lock: bool = False,
    ) -> Optional[Element]:
        """
        Find an element by name.

        Returns:
            The first element encountered with the given name, or None
        """
        with self._read_lock(lock):
            for element in self.get_elements(namespace, element_type):
                if element.name == name:
                    return element
        return None

    def create_element(self, namespace: str, element_type: ElementType, element: Element) -> None:
        element_type_id = self._type_id(namespace, element_type)
        if element.id is None:
            element.id = element.name or str(uuid.uuid4())

        with self._lock:
            if not self._element_type_exists(namespace, element_type_id):
                raise ElementTypeNotFoundError(namespace, element_type_id)
            if self._element_exists(namespace, element_type_id, element.id):
                raise ElementExistsError(namespace, element_type_id, element.id)
            self._execute("create_element", self._write_element, namespace, element_type_id, element, True)
        logger.debug(f"Created element '{element.id}' of type '{element_type_id}' in namespace '{namespace}'")

    def update_element(
        self,
        namespace: str,
        element_type: ElementType,
        element_id: str,
        element: Element,
    ) -> None:
        element_type_id = self._type_id(namespace, element_type)
        if element.id is None:
            element.id = element_id

        with self._lock:
            if not self._element_exists(namespace, element_type_id, element_id):
                raise ElementNotFoundError(namespace, element_type_id, element_id)

            if element.id != element_id:
                if self._element_exists(namespace, element_type_id, element.id):
                    raise ElementExistsError(namespace, element_type_id, element.id)
                # new record first; the old one only goes once the write succeeded
                with self._transaction():
                    self._execute("update_element", self._write_element, namespace, element_type_id, element, True)
                    self._execute("update_element", self._remove_element, namespace, element_type_id, element_id)
                logger.debug(f"Renamed element '{element_id}' to '{element.id}' in type '{element_type_id}'")
                return

            self._execute("update_element", self._write_element, namespace, element_type_id, element, False)
        logger.debug(f"Updated element '{element_id}' of type '{element_type_id}' in namespace '{namespace}'")

    def delete_element(self, namespace: str, element_type: ElementType, element_id: str) -> None:
        element_type_id = self._type_id(namespace, element_type)
        with self._lock:
            if not self._element_exists(namespace, element_type_id, element_id):
                raise ElementNotFoundError(namespace, element_type_id, element_id)
            self._execute("delete_element", self._remove_element, namespace, element_type_id, element_id)
        logger.debug(f"Deleted element '{element_id}' of type '{element_type_id}' from namespace '{namespace}'")

    def _element_type_exists(self, namespace: str, element_type_id: str) -> bool:
        if not self.namespace_exists(namespace):
            return False
        element_type = self._execute(
            "get_element_type", self._read_element_type, namespace, element_type_id
        )
        return element_type is not None

    def _element_exists(self, namespace: str, element_type_id: str, element_id: str) -> bool:
        if not self._element_type_exists(namespace, element_type_id):
            return False
        element_ids = self._execute("get_element_ids", self._list_element_ids, namespace, element_type_id)
        return element_id in element_ids

    def _type_id(self, namespace: str, element_type: ElementType) -> str:
        if element_type is None or not element_type.id:
            raise ElementTypeNotFoundError(
                namespace, None, f"An element type with an id is required in namespace '{namespace}'"
            )
        return element_type.id

    #-----------------------------------------------------------------------
    # Factories and descriptive properties
    #-----------------------------------------------------------------------

    def new_element_type(self, namespace: str) -> ElementType:
        return ElementType(namespace=namespace, metastore_name=self.name)

    def new_element(
        self,
        element_type: Optional[ElementType] = None,
        id: Optional[str] = None,
        value: Any = None,
    ) -> Element:
        return Element(id=id, value=value)

    def new_attribute(self, id: str, value: Any = None) -> Attribute:
        return Attribute(id=id, value=value)

    def new_element_owner(self, name: str, owner_type: ElementOwnerType) -> ElementOwner:
        return ElementOwner(name=name, owner_type=owner_type)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> Optional[str]:
        return self._description

    @property
    def two_way_password_encoder(self) -> Optional[TwoWayPasswordEncoder]:
        return self._password_encoder

    @two_way_password_encoder.setter
    def two_way_password_encoder(self, encoder: Optional[TwoWayPasswordEncoder]) -> None:
        self._password_encoder = encoder

    #-----------------------------------------------------------------------
    # Protected methods that subclasses must implement
    #-----------------------------------------------------------------------

    def _namespace_exists(self, namespace: str) -> bool:
        return namespace in self._list_namespaces()

    @abc.abstractmethod
    def _list_namespaces(self) -> List[str]:
        """Return every namespace, in storage order."""
        pass

    @abc.abstractmethod
    def _insert_namespace(self, namespace: str) -> None:
        pass

    @abc.abstractmethod
    def _remove_namespace(self, namespace: str) -> None:
        pass

    @abc.abstractmethod
    def _list_element_type_ids(self, namespace: str) -> List[str]:
        pass

    @abc.abstractmethod
    def _read_element_type(self, namespace: str, element_type_id: str) -> Optional[ElementType]:
        """Return a copy of the stored type, or None."""
        pass

    @abc.abstractmethod
    def _write_element_type(self, namespace: str, element_type: ElementType, is_new: bool) -> None:
        pass

    @abc.abstractmethod
    def _remove_element_type(self, namespace: str, element_type_id: str) -> None:
        pass

    @abc.abstractmethod
    def _list_element_ids(self, namespace: str, element_type_id: str) -> List[str]:
        """Return every element id of the type, in storage order."""
        pass

    @abc.abstractmethod
    def _read_element(self, namespace: str, element_type_id: str, element_id: str) -> Optional[Element]:
        """Return a copy of the stored element, or None; raise if the record is unreadable."""
        pass

    @abc.abstractmethod
    def _write_element(self, namespace: str, element_type_id: str, element: Element, is_new: bool) -> None:
        pass

    @abc.abstractmethod
    def _remove_element(self, namespace: str, element_type_id: str, element_id: str) -> None:
        pass
