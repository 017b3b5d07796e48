"""
Object Mapper

This module converts marked objects to attribute trees and back.

Save direction: every marked field becomes one or more child attributes of the
object's attribute, in declaration order. Scalars are stored through their
converter, nested objects become attributes with children, ordered
collections repeat the field id once per item and dicts follow the field's
keyed convention. None values are omitted unless the field persists
emptiness: then a scalar field writes a bare attribute, and an object, dict or
object-list field writes an attribute holding ``NONE_MARKER`` so it cannot be
mistaken for an object whose fields are all unset. Saving an object that
refers back to one of its ancestors raises ``CyclicGraphError``.

Load direction: the target class is instantiated through its no-argument
constructor with the values found in the tree; missing attributes leave the
field at its default. Coercion failures abort the load in strict mode and are
collected per field otherwise.
"""

import dataclasses
import logging
from typing import Any, Dict, List, Optional, Set, Type, TypeVar

from metastore.exceptions import (
    CoercionError,
    CyclicGraphError,
    MappingDefinitionError,
    MissingPasswordEncoderError,
)
from metastore.models import Attribute, is_primitive
from metastore.persist.converters import ConverterRegistry, default_registry
from metastore.persist.markers import (
    FieldDescriptor,
    FieldKind,
    KeyedConvention,
    get_descriptors,
    is_mapped,
)
from metastore.security import TwoWayPasswordEncoder

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_ATTRIBUTE = "key"
VALUE_ATTRIBUTE = "value"
# Value of the attribute a persist-empty object, dict or object list writes for None
NONE_MARKER = "#none"

_COERCION_FAILURES = (ValueError, TypeError, ArithmeticError)


@dataclasses.dataclass
class LoadResult:
    """Outcome of a tolerant load: the object plus the per-field failures."""

    value: Any
    errors: List[CoercionError] = dataclasses.field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class _LoadContext:
    """Per-call load state: strictness and where failures go."""

    def __init__(self, strict: bool, errors: Optional[List[CoercionError]]):
        self.strict = strict
        self.errors = errors

    def fail(self, error: CoercionError) -> None:
        if self.strict:
            raise error
        if self.errors is not None:
            self.errors.append(error)
        else:
            logger.warning(f"Ignoring unloadable value: {error}")


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def _is_structured(descriptor: FieldDescriptor) -> bool:
    """True when the field is stored as attributes with children and no value of their own."""
    if descriptor.kind in (FieldKind.NESTED, FieldKind.MAPPING):
        return True
    return descriptor.kind is FieldKind.SEQUENCE and is_mapped(descriptor.value_type)


def _is_none_marker(descriptor: FieldDescriptor, node: Attribute) -> bool:
    if node.children:
        return False
    if _is_structured(descriptor):
        return node.value == NONE_MARKER
    return node.value is None


class ObjectMapper:
    """
    Maps marked objects to and from attribute trees.

    The mapper holds configuration only, so one instance may be shared across
    threads.
    """

    def __init__(
        self,
        password_encoder: Optional[TwoWayPasswordEncoder] = None,
        converters: Optional[ConverterRegistry] = None,
        strict: bool = False,
        keyed_convention: KeyedConvention = KeyedConvention.KEY_AS_ID,
    ):
        """
        Initialize the mapper.

        Args:
            password_encoder: Encoder for fields marked as passwords
            converters: Scalar converters (the shared default registry when omitted)
            strict: Abort loads on the first coercion failure
            keyed_convention: Layout for dict fields that do not choose one
        """
        self.password_encoder = password_encoder
        self.converters = converters or default_registry
        self.strict = strict
        self.keyed_convention = KeyedConvention(keyed_convention)

    #-----------------------------------------------------------------------
    # Save
    #-----------------------------------------------------------------------

    def to_tree(self, obj: Any, attribute_id: Optional[str] = None) -> Attribute:
        """
        Convert a marked object to an attribute tree.

        Args:
            obj: Instance of a class marked with ``@mapped`` or ``@element_type``
            attribute_id: Id of the root attribute

        Returns:
            The root attribute; one child (or more, for collections) per field

        Raises:
            CyclicGraphError: If the object graph refers back to an ancestor
            CoercionError: If a field value does not fit its declared type
            MappingDefinitionError: If the class cannot be mapped
        """
        if not is_mapped(type(obj)):
            raise MappingDefinitionError(
                f"{type(obj).__name__} is not marked with @mapped or @element_type"
            )
        return self._dump_object(obj, attribute_id, "", set())

    def _dump_object(self, obj: Any, attribute_id: Optional[str], path: str, visiting: Set[int]) -> Attribute:
        marker = id(obj)
        if marker in visiting:
            raise CyclicGraphError(path, type(obj).__name__)
        visiting.add(marker)
        try:
            node = Attribute(id=attribute_id)
            for descriptor in get_descriptors(type(obj), self.converters):
                field_path = _join(path, descriptor.name)
                value = getattr(obj, descriptor.name)
                for child in self._dump_field(descriptor, value, field_path, visiting):
                    node.add_child(child)
            return node
        finally:
            visiting.discard(marker)

    def _dump_field(
        self,
        descriptor: FieldDescriptor,
        value: Any,
        path: str,
        visiting: Set[int],
    ) -> List[Attribute]:
        attribute_id = descriptor.attribute_id
        if value is None:
            if not descriptor.persist_empty:
                return []
            marker = NONE_MARKER if _is_structured(descriptor) else None
            return [Attribute(id=attribute_id, value=marker)]

        kind = descriptor.kind
        if kind is FieldKind.SEQUENCE:
            if not isinstance(value, (list, tuple, set, frozenset)):
                raise CoercionError(path, value, descriptor.container_type, "expected a collection")
            return [
                self._dump_item(descriptor.value_type, item, attribute_id, f"{path}[{index}]", visiting)
                for index, item in enumerate(value)
                if item is not None
            ]
        if kind is FieldKind.MAPPING:
            if not isinstance(value, dict):
                raise CoercionError(path, value, dict, "expected a dict")
            return self._dump_mapping(descriptor, value, path, visiting)

        attribute = self._dump_item(descriptor.value_type, value, attribute_id, path, visiting)
        if descriptor.password:
            attribute.value = self._encoder(path).encode(attribute.value)
        return [attribute]

    def _dump_mapping(
        self,
        descriptor: FieldDescriptor,
        value: Dict[Any, Any],
        path: str,
        visiting: Set[int],
    ) -> List[Attribute]:
        convention = descriptor.keyed_convention or self.keyed_convention
        if convention is KeyedConvention.KEY_AS_ID:
            container = Attribute(id=descriptor.attribute_id)
            for key, item in value.items():
                if item is None:
                    continue
                entry_path = f"{path}[{key!r}]"
                key_id = str(self._dump_scalar(descriptor.key_type, key, entry_path))
                container.add_child(self._dump_item(descriptor.value_type, item, key_id, entry_path, visiting))
            return [container]

        entries = []
        for key, item in value.items():
            if item is None:
                continue
            entry_path = f"{path}[{key!r}]"
            entry = Attribute(id=descriptor.attribute_id)
            entry.add_child(Attribute(id=KEY_ATTRIBUTE, value=self._dump_scalar(descriptor.key_type, key, entry_path)))
            entry.add_child(self._dump_item(descriptor.value_type, item, VALUE_ATTRIBUTE, entry_path, visiting))
            entries.append(entry)
        return entries

    def _dump_item(
        self,
        item_type: Any,
        value: Any,
        attribute_id: Optional[str],
        path: str,
        visiting: Set[int],
    ) -> Attribute:
        if is_mapped(item_type):
            if not isinstance(value, item_type):
                raise CoercionError(path, value, item_type, f"expected a {item_type.__name__} instance")
            return self._dump_object(value, attribute_id, path, visiting)
        if item_type is Any or item_type is None:
            if is_mapped(type(value)):
                return self._dump_object(value, attribute_id, path, visiting)
            if not is_primitive(value):
                raise CoercionError(path, value, Any, "only primitives and mapped objects can be stored")
            return Attribute(id=attribute_id, value=value)
        return Attribute(id=attribute_id, value=self._dump_scalar(item_type, value, path))

    def _dump_scalar(self, scalar_type: Any, value: Any, path: str) -> Any:
        converter = self.converters.find(scalar_type)
        if converter is None:
            raise MappingDefinitionError(f"No converter registered for {scalar_type!r} at '{path}'")
        try:
            return converter.dump(value)
        except _COERCION_FAILURES as e:
            raise CoercionError(path, value, scalar_type, str(e)) from e

    def _encoder(self, path: str) -> TwoWayPasswordEncoder:
        if self.password_encoder is None:
            raise MissingPasswordEncoderError(path)
        return self.password_encoder

    #-----------------------------------------------------------------------
    # Load
    #-----------------------------------------------------------------------

    def from_tree(
        self,
        tree: Attribute,
        cls: Type[T],
        *,
        strict: Optional[bool] = None,
        errors: Optional[List[CoercionError]] = None,
    ) -> T:
        """
        Build an instance of ``cls`` from an attribute tree.

        Args:
            tree: Attribute whose children hold the fields
            cls: Marked class to instantiate
            strict: Abort on the first coercion failure (the mapper setting when None)
            errors: Collector for coercion failures in tolerant mode; failures
                are logged when no collector is given

        Returns:
            The new instance; fields that could not be loaded keep their defaults

        Raises:
            CoercionError: In strict mode, for the first value that does not
                fit its field; the error carries the field path
            MappingDefinitionError: If the class cannot be mapped
        """
        if not is_mapped(cls):
            raise MappingDefinitionError(f"{getattr(cls, '__name__', cls)!s} is not marked with @mapped or @element_type")
        context = _LoadContext(self.strict if strict is None else strict, errors)
        return self._load_object(tree, cls, "", context)

    def load(self, tree: Attribute, cls: Type[T]) -> LoadResult:
        """Load tolerantly and return the object together with every coercion failure."""
        errors: List[CoercionError] = []
        value = self.from_tree(tree, cls, strict=False, errors=errors)
        return LoadResult(value=value, errors=errors)

    def _load_object(self, node: Attribute, cls: type, path: str, context: _LoadContext) -> Any:
        values: Dict[str, Any] = {}
        for descriptor in get_descriptors(cls, self.converters):
            field_path = _join(path, descriptor.name)
            matches = node.get_children(descriptor.attribute_id)
            if not matches:
                continue
            try:
                values[descriptor.name] = self._load_field(descriptor, matches, field_path, context)
            except CoercionError as e:
                context.fail(e)
        return cls(**values)

    def _load_field(
        self,
        descriptor: FieldDescriptor,
        matches: List[Attribute],
        path: str,
        context: _LoadContext,
    ) -> Any:
        if descriptor.persist_empty and len(matches) == 1 and _is_none_marker(descriptor, matches[0]):
            return None

        kind = descriptor.kind
        if kind is FieldKind.SEQUENCE:
            items = []
            for index, match in enumerate(matches):
                try:
                    items.append(self._load_item(descriptor.value_type, match, f"{path}[{index}]", context))
                except CoercionError as e:
                    context.fail(e)
            return descriptor.container_type(items)
        if kind is FieldKind.MAPPING:
            return self._load_mapping(descriptor, matches, path, context)

        match = matches[0]
        if descriptor.password:
            return self._load_password(descriptor, match, path)
        return self._load_item(descriptor.value_type, match, path, context)

    def _load_password(self, descriptor: FieldDescriptor, match: Attribute, path: str) -> Any:
        encoder = self._encoder(path)
        if match.value is None:
            return None
        try:
            plain = encoder.decode(self._load_scalar(str, match.value, path))
        except _COERCION_FAILURES as e:
            raise CoercionError(path, match.value, descriptor.value_type, f"cannot decode password: {e}") from e
        return self._load_scalar(descriptor.value_type, plain, path) if plain is not None else None

    def _load_mapping(
        self,
        descriptor: FieldDescriptor,
        matches: List[Attribute],
        path: str,
        context: _LoadContext,
    ) -> Dict[Any, Any]:
        convention = descriptor.keyed_convention or self.keyed_convention
        result: Dict[Any, Any] = {}

        if convention is KeyedConvention.KEY_AS_ID:
            entries = [(child.id, child) for child in matches[0].children]
        else:
            entries = []
            for match in matches:
                key_attribute = match.get_child(KEY_ATTRIBUTE)
                value_attribute = match.get_child(VALUE_ATTRIBUTE)
                if key_attribute is None or value_attribute is None:
                    context.fail(CoercionError(path, match.child_ids(), dict, "entry needs 'key' and 'value' children"))
                    continue
                entries.append((key_attribute.value, value_attribute))

        for raw_key, value_attribute in entries:
            entry_path = f"{path}[{raw_key!r}]"
            try:
                key = self._load_scalar(descriptor.key_type, raw_key, entry_path)
                result[key] = self._load_item(descriptor.value_type, value_attribute, entry_path, context)
            except CoercionError as e:
                context.fail(e)
        return result

    def _load_item(self, item_type: Any, node: Attribute, path: str, context: _LoadContext) -> Any:
        if is_mapped(item_type):
            return self._load_object(node, item_type, path, context)
        if item_type is Any or item_type is None:
            return node.value
        if node.value is None:
            return None
        return self._load_scalar(item_type, node.value, path)

    def _load_scalar(self, scalar_type: Any, value: Any, path: str) -> Any:
        converter = self.converters.find(scalar_type)
        if converter is None:
            raise MappingDefinitionError(f"No converter registered for {scalar_type!r} at '{path}'")
        try:
            return converter.load(value, scalar_type)
        except _COERCION_FAILURES as e:
            raise CoercionError(path, value, scalar_type, str(e)) from e


def map_to_tree(
    obj: Any,
    attribute_id: Optional[str] = None,
    password_encoder: Optional[TwoWayPasswordEncoder] = None,
) -> Attribute:
    """Convert a marked object to an attribute tree with a default mapper."""
    return ObjectMapper(password_encoder=password_encoder).to_tree(obj, attribute_id)


def map_from_tree(
    tree: Attribute,
    cls: Type[T],
    password_encoder: Optional[TwoWayPasswordEncoder] = None,
    strict: bool = False,
    errors: Optional[List[CoercionError]] = None,
) -> T:
    """Build an instance of ``cls`` from an attribute tree with a default mapper."""
    return ObjectMapper(password_encoder=password_encoder, strict=strict).from_tree(tree, cls, errors=errors)
