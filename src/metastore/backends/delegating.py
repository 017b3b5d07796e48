"""
Delegating Metastore

A metastore that fronts several other metastores and sends every operation
to the currently active one. Tools use it to switch between, for example, a
local file-backed store and a shared repository without re-wiring callers.
"""

import logging
from typing import Any, ContextManager, List, Optional

from metastore.exceptions import ElementLoadError, StoreUnavailableError
from metastore.interfaces import capabilities
from metastore.interfaces.metastore import MetaStoreInterface
from metastore.models import (
    Attribute,
    Element,
    ElementOwner,
    ElementOwnerType,
    ElementType,
)
from metastore.security import TwoWayPasswordEncoder

logger = logging.getLogger(__name__)


class DelegatingMetaStore(MetaStoreInterface):
    """
    Route all operations to the active member metastore.

    Lock and tolerant-listing requests are forwarded through the capability
    adapters, so they degrade gracefully when the active store lacks them.
    """

    def __init__(self, *metastores: MetaStoreInterface, name: str = "delegating"):
        self._name = name
        self._metastores: List[MetaStoreInterface] = []
        self._active: Optional[MetaStoreInterface] = None
        for metastore in metastores:
            self.add_metastore(metastore)

    #-----------------------------------------------------------------------
    # Member management
    #-----------------------------------------------------------------------

    @property
    def metastores(self) -> List[MetaStoreInterface]:
        return list(self._metastores)

    def add_metastore(self, metastore: MetaStoreInterface) -> None:
        """Add a member; the first member added becomes active."""
        if self.find_metastore(metastore.name) is not None:
            raise ValueError(f"A metastore named '{metastore.name}' is already registered")
        self._metastores.append(metastore)
        if self._active is None:
            self._active = metastore
        logger.info(f"Added metastore '{metastore.name}' to delegating metastore '{self._name}'")

    def remove_metastore(self, name: str) -> bool:
        """Remove a member by name; removing the active member leaves no active store."""
        metastore = self.find_metastore(name)
        if metastore is None:
            return False
        self._metastores.remove(metastore)
        if self._active is metastore:
            self._active = None
        return True

    def find_metastore(self, name: str) -> Optional[MetaStoreInterface]:
        for metastore in self._metastores:
            if metastore.name == name:
                return metastore
        return None

    def set_active_metastore(self, name: str) -> None:
        """
        Make the member called ``name`` the active metastore.

        Raises:
            StoreUnavailableError: If no member has that name
        """
        metastore = self.find_metastore(name)
        if metastore is None:
            raise StoreUnavailableError(
                f"Unknown metastore '{name}'",
                backend_type=self.__class__.__name__,
                operation="set_active_metastore",
            )
        self._active = metastore
        logger.info(f"Delegating metastore '{self._name}' now uses '{name}'")

    @property
    def active_metastore(self) -> Optional[MetaStoreInterface]:
        return self._active

    def modification_lock(self) -> ContextManager[None]:
        """Forward a lock request to the active metastore; a no-op when it cannot lock."""
        return capabilities.read_lock(self._delegate("modification_lock"), True)

    def _delegate(self, operation: str) -> MetaStoreInterface:
        if self._active is None:
            raise StoreUnavailableError(
                "No active metastore is set",
                backend_type=self.__class__.__name__,
                operation=operation,
            )
        return self._active

    #-----------------------------------------------------------------------
    # MetaStoreInterface
    #-----------------------------------------------------------------------

    def get_namespaces(self) -> List[str]:
        return self._delegate("get_namespaces").get_namespaces()

    def create_namespace(self, namespace: str) -> None:
        self._delegate("create_namespace").create_namespace(namespace)

    def delete_namespace(self, namespace: str) -> None:
        self._delegate("delete_namespace").delete_namespace(namespace)

    def namespace_exists(self, namespace: str) -> bool:
        return self._delegate("namespace_exists").namespace_exists(namespace)

    def get_element_types(self, namespace: str) -> List[ElementType]:
        return self._delegate("get_element_types").get_element_types(namespace)

    def get_element_type_ids(self, namespace: str) -> List[str]:
        return self._delegate("get_element_type_ids").get_element_type_ids(namespace)

    def get_element_type(self, namespace: str, element_type_id: str) -> Optional[ElementType]:
        return self._delegate("get_element_type").get_element_type(namespace, element_type_id)

    def get_element_type_by_name(
        self,
        namespace: str,
        element_type_name: str,
        *,
        lock: bool = False,
    ) -> Optional[ElementType]:
        store = self._delegate("get_element_type_by_name")
        return capabilities.get_element_type_by_name(store, namespace, element_type_name, lock=lock)

    def create_element_type(self, namespace: str, element_type: ElementType) -> None:
        self._delegate("create_element_type").create_element_type(namespace, element_type)

    def update_element_type(self, namespace: str, element_type: ElementType) -> None:
        self._delegate("update_element_type").update_element_type(namespace, element_type)

    def delete_element_type(self, namespace: str, element_type: ElementType) -> None:
        self._delegate("delete_element_type").delete_element_type(namespace, element_type)

    def get_elements(
        self,
        namespace: str,
        element_type: ElementType,
        *,
        lock: bool = False,
        errors: Optional[List[ElementLoadError]] = None,
    ) -> List[Element]:
        store = self._delegate("get_elements")
        return capabilities.get_elements(store, namespace, element_type, lock=lock, errors=errors)

    def get_elements_tolerant(
        self,
        namespace: str,
        element_type: ElementType,
        errors: List[ElementLoadError],
    ) -> List[Element]:
        return self.get_elements(namespace, element_type, errors=errors)

    def get_element_ids(self, namespace: str, element_type: ElementType) -> List[str]:
        return self._delegate("get_element_ids").get_element_ids(namespace, element_type)

    def get_element(self, namespace: str, element_type: ElementType, element_id: str) -> Optional[Element]:
        return self._delegate("get_element").get_element(namespace, element_type, element_id)

    def get_element_by_name(
        self,
        namespace: str,
        element_type: ElementType,
        name: str,
        *,
        lock: bool = False,
    ) -> Optional[Element]:
        store = self._delegate("get_element_by_name")
        return capabilities.get_element_by_name(store, namespace, element_type, name, lock=lock)

    def create_element(self, namespace: str, element_type: ElementType, element: Element) -> None:
        self._delegate("create_element").create_element(namespace, element_type, element)

    def update_element(
        self,
        namespace: str,
        element_type: ElementType,
        element_id: str,
        element: Element,
    ) -> None:
        self._delegate("update_element").update_element(namespace, element_type, element_id, element)

    def delete_element(self, namespace: str, element_type: ElementType, element_id: str) -> None:
        self._delegate("delete_element").delete_element(namespace, element_type, element_id)

    def new_element_type(self, namespace: str) -> ElementType:
        return self._delegate("new_element_type").new_element_type(namespace)

    def new_element(
        self,
        element_type: Optional[ElementType] = None,
        id: Optional[str] = None,
        value: Any = None,
    ) -> Element:
        return self._delegate("new_element").new_element(element_type, id, value)

    def new_attribute(self, id: str, value: Any = None) -> Attribute:
        return self._delegate("new_attribute").new_attribute(id, value)

    def new_element_owner(self, name: str, owner_type: ElementOwnerType) -> ElementOwner:
        return self._delegate("new_element_owner").new_element_owner(name, owner_type)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> Optional[str]:
        if self._active is None:
            return None
        return self._active.description

    @property
    def two_way_password_encoder(self) -> Optional[TwoWayPasswordEncoder]:
        if self._active is None:
            return None
        return self._active.two_way_password_encoder

    @two_way_password_encoder.setter
    def two_way_password_encoder(self, encoder: Optional[TwoWayPasswordEncoder]) -> None:
        for metastore in self._metastores:
            metastore.two_way_password_encoder = encoder
