"""
Metastore Interface

This module defines the abstract interface every metastore backend must
implement. A metastore stores and retrieves metadata in a persistence agnostic
way, through a typed key/value interface organized into namespaces, element
types and elements.

The interface only declares the minimal operation set. Optional behaviour
(modification locks during reads, tolerant bulk listings) is expressed as
separate capabilities in ``metastore.interfaces.capabilities`` so that a
backend is never forced to implement every variant.
"""

import abc
from typing import Any, List, Optional

from metastore.models import (
    Attribute,
    Element,
    ElementOwner,
    ElementOwnerType,
    ElementType,
)
from metastore.security import TwoWayPasswordEncoder


class MetaStoreInterface(abc.ABC):
    """
    Abstract Base Class defining the interface for all metastores.

    Implementations are responsible for:
    1. Persisting namespaces, element types and elements
    2. Enforcing uniqueness and existence rules
    3. Refusing to delete containers that still have children

    They are NOT responsible for:
    1. Converting typed objects to attribute trees
    2. Interpreting attribute values
    """

    #-----------------------------------------------------------------------
    # Namespaces
    #-----------------------------------------------------------------------

    @abc.abstractmethod
    def get_namespaces(self) -> List[str]:
        """
        Returns:
            All namespaces defined in the metastore

        Raises:
            StoreUnavailableError: If there is a problem in the underlying store
        """
        pass

    @abc.abstractmethod
    def create_namespace(self, namespace: str) -> None:
        """
        Create a namespace.

        Args:
            namespace: The namespace to create

        Raises:
            NamespaceExistsError: If the namespace already exists
            InvalidNameError: If the namespace name is malformed
            StoreUnavailableError: If there is a problem in the underlying store
        """
        pass

    @abc.abstractmethod
    def delete_namespace(self, namespace: str) -> None:
        """
        Delete a namespace.

        Args:
            namespace: The namespace to delete

        Raises:
            DependenciesExistError: If the namespace still contains element types;
                the error lists their ids
            NamespaceNotFoundError: If the namespace does not exist
            StoreUnavailableError: If there is a problem in the underlying store
        """
        pass

    @abc.abstractmethod
    def namespace_exists(self, namespace: str) -> bool:
        """
        Args:
            namespace: The namespace to look for

        Returns:
            True if the namespace exists, False otherwise
        """
        pass

    #-----------------------------------------------------------------------
    # Element types
    #-----------------------------------------------------------------------

    @abc.abstractmethod
    def get_element_types(self, namespace: str) -> List[ElementType]:
        """
        Args:
            namespace: The namespace to look in

        Returns:
            All element types defined in the namespace
        """
        pass

    @abc.abstractmethod
    def get_element_type_ids(self, namespace: str) -> List[str]:
        """
        Args:
            namespace: The namespace to look in

        Returns:
            The ids of all element types defined in the namespace
        """
        pass

    @abc.abstractmethod
    def get_element_type(self, namespace: str, element_type_id: str) -> Optional[ElementType]:
        """
        Args:
            namespace: The namespace to look in
            element_type_id: The id of the element type

        Returns:
            The element type, or None if it could not be found
        """
        pass

    @abc.abstractmethod
    def get_element_type_by_name(self, namespace: str, element_type_name: str) -> Optional[ElementType]:
        """
        Args:
            namespace: The namespace to look in
            element_type_name: The display name of the element type

        Returns:
            The first element type encountered with that name, or None
        """
        pass

    @abc.abstractmethod
    def create_element_type(self, namespace: str, element_type: ElementType) -> None:
        """
        Create a new element type.

        Args:
            namespace: The namespace to create the type in
            element_type: The type to create

        Raises:
            ElementTypeExistsError: If a type with the same id exists in the namespace
            NamespaceNotFoundError: If the namespace does not exist
        """
        pass

    @abc.abstractmethod
    def update_element_type(self, namespace: str, element_type: ElementType) -> None:
        """
        Update an element type.

        Raises:
            ElementTypeNotFoundError: If the type does not exist
        """
        pass

    @abc.abstractmethod
    def delete_element_type(self, namespace: str, element_type: ElementType) -> None:
        """
        Delete an element type.

        Raises:
            DependenciesExistError: If the type still contains elements; the error
                lists their ids
            ElementTypeNotFoundError: If the type does not exist
        """
        pass

    #-----------------------------------------------------------------------
    # Elements
    #-----------------------------------------------------------------------

    @abc.abstractmethod
    def get_elements(self, namespace: str, element_type: ElementType) -> List[Element]:
        """
        Retrieve all the elements belonging to an element type.

        Any element that fails to load fails the whole call; see
        ``SupportsTolerantListing`` for the variant that carries on.
        """
        pass

    @abc.abstractmethod
    def get_element_ids(self, namespace: str, element_type: ElementType) -> List[str]:
        """
        Returns:
            The ids of all elements of the element type
        """
        pass

    @abc.abstractmethod
    def get_element(self, namespace: str, element_type: ElementType, element_id: str) -> Optional[Element]:
        """
        Returns:
            The element, or None if it could not be found
        """
        pass

    @abc.abstractmethod
    def get_element_by_name(self, namespace: str, element_type: ElementType, name: str) -> Optional[Element]:
        """
        Returns:
            The first element encountered with the given name, or None
        """
        pass

    @abc.abstractmethod
    def create_element(self, namespace: str, element_type: ElementType, element: Element) -> None:
        """
        Create a new element.

        Raises:
            ElementExistsError: If an element with the same id already exists
            ElementTypeNotFoundError: If the element type does not exist
        """
        pass

    @abc.abstractmethod
    def update_element(
        self,
        namespace: str,
        element_type: ElementType,
        element_id: str,
        element: Element,
    ) -> None:
        """
        Replace the content of an existing element.

        Args:
            namespace: The namespace to reference
            element_type: The element type of the element
            element_id: The id of the stored version of the element
            element: The new content

        Raises:
            ElementNotFoundError: If no element has ``element_id``
        """
        pass

    @abc.abstractmethod
    def delete_element(self, namespace: str, element_type: ElementType, element_id: str) -> None:
        """
        Delete an element.

        Raises:
            ElementNotFoundError: If no element has ``element_id``
        """
        pass

    #-----------------------------------------------------------------------
    # Factories and descriptive properties
    #-----------------------------------------------------------------------

    @abc.abstractmethod
    def new_element_type(self, namespace: str) -> ElementType:
        """Return a new, not yet created, element type bound to ``namespace``."""
        pass

    @abc.abstractmethod
    def new_element(
        self,
        element_type: Optional[ElementType] = None,
        id: Optional[str] = None,
        value: Any = None,
    ) -> Element:
        """Return a new, not yet created, element."""
        pass

    @abc.abstractmethod
    def new_attribute(self, id: str, value: Any = None) -> Attribute:
        """Return a new attribute."""
        pass

    @abc.abstractmethod
    def new_element_owner(self, name: str, owner_type: ElementOwnerType) -> ElementOwner:
        """Return a new element owner."""
        pass

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """The name of the metastore."""
        pass

    @property
    @abc.abstractmethod
    def description(self) -> Optional[str]:
        """The description of the metastore."""
        pass

    @property
    @abc.abstractmethod
    def two_way_password_encoder(self) -> Optional[TwoWayPasswordEncoder]:
        """The password encoder used for fields marked as passwords."""
        pass

    @two_way_password_encoder.setter
    @abc.abstractmethod
    def two_way_password_encoder(self, encoder: Optional[TwoWayPasswordEncoder]) -> None:
        pass
