"""
Typed Object Factory

MetaStoreFactory binds a class decorated with ``@element_type`` to a
metastore namespace. Objects are saved as elements of the class's element
type, with the object's ``name`` field as element id and name, and loaded back
through the object mapper.
"""

import copy
import dataclasses
import logging
from typing import Generic, List, Optional, Type, TypeVar

from metastore.exceptions import (
    ElementLoadError,
    ElementNotFoundError,
    ElementTypeExistsError,
    InvalidNameError,
    MappingDefinitionError,
    MetaStoreError,
    NamespaceExistsError,
)
from metastore.interfaces import capabilities
from metastore.interfaces.metastore import MetaStoreInterface
from metastore.models import Element, ElementType
from metastore.persist.mapper import ObjectMapper
from metastore.persist.markers import get_descriptors, get_element_type_info

logger = logging.getLogger(__name__)

T = TypeVar("T")

NAME_FIELD = "name"


class MetaStoreFactory(Generic[T]):
    """
    Save, load and list objects of one class in a metastore namespace.

    The namespace and the element type are created on the first save. The
    metastore's two-way password encoder is used for password fields unless
    the given mapper already has an encoder.
    """

    def __init__(
        self,
        cls: Type[T],
        metastore: MetaStoreInterface,
        namespace: str,
        mapper: Optional[ObjectMapper] = None,
    ):
        """
        Initialize the factory.

        Args:
            cls: Class decorated with ``@element_type``; it must have a ``name`` field
            metastore: Store the objects are kept in
            namespace: Namespace holding the element type
            mapper: Object mapper to use (a tolerant default mapper when omitted)

        Raises:
            MappingDefinitionError: If the class cannot be mapped or has no ``name`` field
        """
        self.element_type_info = get_element_type_info(cls)
        if NAME_FIELD not in {field.name for field in dataclasses.fields(cls)}:
            raise MappingDefinitionError(f"{cls.__name__} needs a '{NAME_FIELD}' field to be stored as an element")

        self.cls = cls
        self.metastore = metastore
        self.namespace = namespace

        if mapper is None:
            mapper = ObjectMapper(password_encoder=metastore.two_way_password_encoder)
        elif mapper.password_encoder is None:
            mapper = copy.copy(mapper)
            mapper.password_encoder = metastore.two_way_password_encoder
        self.mapper = mapper
        get_descriptors(cls, mapper.converters)

    #-----------------------------------------------------------------------
    # Element type
    #-----------------------------------------------------------------------

    def get_element_type(self) -> Optional[ElementType]:
        """Return the element type of the class, or None when it was never saved."""
        if not self.metastore.namespace_exists(self.namespace):
            return None
        return self.metastore.get_element_type_by_name(self.namespace, self.element_type_info.name)

    def _ensure_element_type(self) -> ElementType:
        if not self.metastore.namespace_exists(self.namespace):
            try:
                self.metastore.create_namespace(self.namespace)
                logger.info(f"Created namespace '{self.namespace}' for {self.cls.__name__}")
            except NamespaceExistsError:
                pass

        element_type = self.get_element_type()
        if element_type is not None:
            return element_type

        element_type = self.metastore.new_element_type(self.namespace)
        element_type.name = self.element_type_info.name
        element_type.description = self.element_type_info.description
        try:
            self.metastore.create_element_type(self.namespace, element_type)
            logger.info(f"Created element type '{element_type.name}' in namespace '{self.namespace}'")
        except ElementTypeExistsError:
            existing = self.get_element_type()
            if existing is None:
                raise
            return existing
        return element_type

    #-----------------------------------------------------------------------
    # Objects
    #-----------------------------------------------------------------------

    def save_element(self, obj: T) -> Element:
        """
        Store ``obj``, replacing the element with the same name if there is one.

        Returns:
            The element that was written

        Raises:
            InvalidNameError: If the object has no name
        """
        name = getattr(obj, NAME_FIELD)
        if not name:
            raise InvalidNameError(name, f"A {self.cls.__name__} needs a name to be saved")

        element_type = self._ensure_element_type()
        tree = self.mapper.to_tree(obj)

        with capabilities.read_lock(self.metastore, True):
            existing = self.metastore.get_element_by_name(self.namespace, element_type, name)
            element = self.metastore.new_element(element_type, existing.id if existing else name)
            element.name = name
            element.children = tree.children
            if existing is None:
                self.metastore.create_element(self.namespace, element_type, element)
            else:
                self.metastore.update_element(self.namespace, element_type, existing.id, element)

        logger.debug(f"Saved {self.cls.__name__} '{name}' in namespace '{self.namespace}'")
        return element

    def load_element(self, name: str) -> Optional[T]:
        """Return the object saved under ``name``, or None."""
        element_type = self.get_element_type()
        if element_type is None:
            return None
        element = self.metastore.get_element_by_name(self.namespace, element_type, name)
        if element is None:
            return None
        return self._to_object(element)

    def get_elements(self, errors: Optional[List[ElementLoadError]] = None) -> List[T]:
        """
        Load every object of the class.

        Args:
            errors: When given, elements the store cannot read and objects the
                mapper cannot build are recorded here and skipped; coercion
                failures of single fields are recorded as well, the object is
                still returned

        Returns:
            The loaded objects in store listing order
        """
        element_type = self.get_element_type()
        if element_type is None:
            return []

        elements = capabilities.get_elements(self.metastore, self.namespace, element_type, errors=errors)
        if errors is None:
            return [self._to_object(element) for element in elements]

        objects = []
        for element in elements:
            coercion_errors = []
            try:
                objects.append(self._to_object(element, coercion_errors))
            except MetaStoreError as e:
                logger.warning(f"Skipping {self.cls.__name__} element '{element.id}': {e}")
                errors.append(ElementLoadError(element.id, cause=e))
                continue
            errors.extend(ElementLoadError(element.id, cause=error) for error in coercion_errors)
        return objects

    def get_element_names(self) -> List[str]:
        """Return the names of the stored objects; unreadable elements are skipped."""
        element_type = self.get_element_type()
        if element_type is None:
            return []
        errors: List[ElementLoadError] = []
        elements = capabilities.get_elements(self.metastore, self.namespace, element_type, errors=errors)
        if errors:
            logger.warning(f"{len(errors)} {self.cls.__name__} element(s) could not be read")
        return [element.name or element.id for element in elements]

    def element_exists(self, name: str) -> bool:
        element_type = self.get_element_type()
        if element_type is None:
            return False
        return self.metastore.get_element_by_name(self.namespace, element_type, name) is not None

    def delete_element(self, name: str) -> None:
        """
        Delete the object saved under ``name``.

        Raises:
            ElementNotFoundError: If no such object is stored
        """
        element_type = self.get_element_type()
        element = None
        if element_type is not None:
            element = self.metastore.get_element_by_name(self.namespace, element_type, name)
        if element is None:
            raise ElementNotFoundError(
                self.namespace,
                element_type.id if element_type else self.element_type_info.name,
                name,
            )
        self.metastore.delete_element(self.namespace, element_type, element.id)
        logger.debug(f"Deleted {self.cls.__name__} '{name}' from namespace '{self.namespace}'")

    def _to_object(self, element: Element, errors: Optional[list] = None) -> T:
        obj = self.mapper.from_tree(element, self.cls, errors=errors)
        if getattr(obj, NAME_FIELD, None) is None:
            obj = dataclasses.replace(obj, **{NAME_FIELD: element.name or element.id})
        return obj
