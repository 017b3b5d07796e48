"""
Metastore Exceptions

This module defines the exception classes raised throughout the metastore.
Every exception carries an ``ErrorKind`` tag together with its payload
(blocking identifiers, field paths, backend context), so callers can branch
either on the exception class or on ``error.kind``.

The exceptions are organized into categories:
- Store Exceptions (backend failures, duplicates, missing entities, dependencies)
- Loading Exceptions (per-element failures collected by tolerant listings)
- Mapping Exceptions (cyclic graphs, coercion failures, bad field definitions)
- Configuration Exceptions
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Semantic category of a metastore failure."""

    STORE_UNAVAILABLE = "store_unavailable"
    NAMESPACE_EXISTS = "namespace_exists"
    ELEMENT_TYPE_EXISTS = "element_type_exists"
    ELEMENT_EXISTS = "element_exists"
    DEPENDENCIES_EXIST = "dependencies_exist"
    NOT_FOUND = "not_found"
    PARTIAL_LOAD_FAILURE = "partial_load_failure"
    CYCLIC_GRAPH = "cyclic_graph"
    COERCION_FAILURE = "coercion_failure"
    MAPPING_DEFINITION = "mapping_definition"
    INVALID_NAME = "invalid_name"
    CONFIGURATION = "configuration"


class MetaStoreError(Exception):
    """Base exception class for all metastore errors."""

    kind: ErrorKind = ErrorKind.STORE_UNAVAILABLE

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a metastore error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional context information for debugging
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.kind.name
        self.context = context or {}

        logger.debug(f"{self.__class__.__name__}: {message}", extra={
            "error_code": self.error_code,
            "context": self.context,
        })


# Store Exceptions

class StoreUnavailableError(MetaStoreError):
    """Raised when the underlying store fails (I/O, connectivity, corruption)."""

    kind = ErrorKind.STORE_UNAVAILABLE

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        backend_type: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        self.backend_type = backend_type
        self.operation = operation
        if message is None:
            context: list[str] = []
            if backend_type:
                context.append(f"backend={backend_type}")
            if operation:
                context.append(f"operation={operation}")
            detail = f" ({', '.join(context)})" if context else ""
            message = f"Metastore operation failed{detail}".strip()
        super().__init__(
            message,
            context={"backend_type": backend_type, "operation": operation},
        )


class EntityExistsError(MetaStoreError):
    """Base class for create operations hitting a duplicate identifier."""


class NamespaceExistsError(EntityExistsError):
    """Raised when creating a namespace that already exists."""

    kind = ErrorKind.NAMESPACE_EXISTS

    def __init__(self, namespace: str, message: Optional[str] = None):
        self.namespace = namespace
        super().__init__(
            message or f"Namespace '{namespace}' already exists",
            context={"namespace": namespace},
        )


class ElementTypeExistsError(EntityExistsError):
    """Raised when creating an element type whose id is already used in the namespace."""

    kind = ErrorKind.ELEMENT_TYPE_EXISTS

    def __init__(self, namespace: str, element_type_id: str, message: Optional[str] = None):
        self.namespace = namespace
        self.element_type_id = element_type_id
        super().__init__(
            message or f"Element type '{element_type_id}' already exists in namespace '{namespace}'",
            context={"namespace": namespace, "element_type_id": element_type_id},
        )


class ElementExistsError(EntityExistsError):
    """Raised when creating an element whose id is already used in the element type."""

    kind = ErrorKind.ELEMENT_EXISTS

    def __init__(
        self,
        namespace: str,
        element_type_id: str,
        element_id: str,
        message: Optional[str] = None,
    ):
        self.namespace = namespace
        self.element_type_id = element_type_id
        self.element_id = element_id
        super().__init__(
            message or (
                f"Element '{element_id}' already exists in element type "
                f"'{element_type_id}' of namespace '{namespace}'"
            ),
            context={
                "namespace": namespace,
                "element_type_id": element_type_id,
                "element_id": element_id,
            },
        )


class DependenciesExistError(MetaStoreError):
    """
    Raised when deleting a namespace or element type that still has children.

    ``dependencies`` lists the identifiers of the blocking children: element
    type ids for a namespace, element ids for an element type.
    """

    kind = ErrorKind.DEPENDENCIES_EXIST

    def __init__(self, dependencies: Iterable[str], message: Optional[str] = None):
        self.dependencies: List[str] = list(dependencies)
        super().__init__(
            message or f"Dependencies exist: {', '.join(self.dependencies)}",
            context={"dependencies": self.dependencies},
        )


class EntityNotFoundError(MetaStoreError):
    """Base class for mutations that reference an entity which does not exist."""

    kind = ErrorKind.NOT_FOUND


class NamespaceNotFoundError(EntityNotFoundError):
    """Raised when an operation requires a namespace that does not exist."""

    def __init__(self, namespace: str, message: Optional[str] = None):
        self.namespace = namespace
        super().__init__(
            message or f"Namespace '{namespace}' does not exist",
            context={"namespace": namespace},
        )


class ElementTypeNotFoundError(EntityNotFoundError):
    """Raised when an operation requires an element type that does not exist."""

    def __init__(self, namespace: str, element_type_id: Optional[str], message: Optional[str] = None):
        self.namespace = namespace
        self.element_type_id = element_type_id
        super().__init__(
            message or f"Element type '{element_type_id}' does not exist in namespace '{namespace}'",
            context={"namespace": namespace, "element_type_id": element_type_id},
        )


class ElementNotFoundError(EntityNotFoundError):
    """Raised when updating or deleting an element that does not exist."""

    def __init__(
        self,
        namespace: str,
        element_type_id: str,
        element_id: str,
        message: Optional[str] = None,
    ):
        self.namespace = namespace
        self.element_type_id = element_type_id
        self.element_id = element_id
        super().__init__(
            message or (
                f"Element '{element_id}' does not exist in element type "
                f"'{element_type_id}' of namespace '{namespace}'"
            ),
            context={
                "namespace": namespace,
                "element_type_id": element_type_id,
                "element_id": element_id,
            },
        )


class InvalidNameError(MetaStoreError):
    """Raised when a namespace, element type or element identifier is malformed."""

    kind = ErrorKind.INVALID_NAME

    def __init__(self, name: Any, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"Invalid name: {name!r}", context={"name": name})


# Loading Exceptions

class ElementLoadError(MetaStoreError):
    """
    A single element failed to load during a tolerant listing.

    Instances are appended to the caller's collector instead of being raised,
    so sibling elements remain accessible.
    """

    kind = ErrorKind.PARTIAL_LOAD_FAILURE

    def __init__(
        self,
        element_id: str,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.element_id = element_id
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            message or f"Unable to load element '{element_id}'{detail}",
            context={"element_id": element_id},
        )


# Mapping Exceptions

class MappingError(MetaStoreError):
    """Base class for failures of the object/attribute-tree mapper."""

    kind = ErrorKind.MAPPING_DEFINITION


class MappingDefinitionError(MappingError):
    """Raised when a class cannot be mapped (unsupported field type, no default constructor)."""


class MissingPasswordEncoderError(MappingDefinitionError):
    """Raised when a password field is mapped without a two-way password encoder."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Field '{path}' is marked as a password but no password encoder is configured",
            context={"path": path},
        )


class CyclicGraphError(MappingError):
    """Raised when saving an object graph that refers back to one of its ancestors."""

    kind = ErrorKind.CYCLIC_GRAPH

    def __init__(self, path: str, type_name: str):
        self.path = path
        self.type_name = type_name
        super().__init__(
            f"Cyclic reference to {type_name} detected at '{path or '<root>'}'",
            context={"path": path, "type": type_name},
        )


class CoercionError(MappingError):
    """Raised (strict mode) or collected (tolerant mode) when a stored value does not fit a field."""

    kind = ErrorKind.COERCION_FAILURE

    def __init__(self, path: str, value: Any, target_type: Any, reason: Optional[str] = None):
        self.path = path
        self.value = value
        self.target_type = target_type
        target_name = getattr(target_type, "__name__", str(target_type))
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Cannot convert {value!r} to {target_name} at '{path}'{detail}",
            context={"path": path, "target_type": target_name},
        )


# Configuration Exceptions

class ConfigurationError(MetaStoreError):
    """Raised when configuration is missing or invalid."""

    kind = ErrorKind.CONFIGURATION


def format_dependencies(dependencies: Sequence[str]) -> str:
    """Render a dependency list for log and error messages."""
    return ", ".join(f"'{dependency}'" for dependency in dependencies)
