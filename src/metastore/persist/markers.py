"""
Mapping Markers

Classes opt into attribute-tree mapping with ``@mapped`` (nested objects) or
``@element_type`` (objects saved as elements of their own type), and mark the
fields to persist with ``attribute()``:

    @element_type(name="Dimension", description="A cube dimension")
    class Dimension:
        name: Optional[str] = attribute()
        levels: List[Level] = attribute(default_factory=list)
        password: Optional[str] = attribute(password=True)

Both decorators turn the class into a dataclass when it is not one already.
Unmarked fields are ignored by the mapper.

The field descriptor table of a class is built the first time the class is
mapped with a given converter registry and cached on the class per registry,
so mapping itself never inspects type hints. Which field types count as
scalars is decided by that registry: a type registered on a custom
``ConverterRegistry`` is a scalar for mappers using that registry.
"""

import dataclasses
import logging
import types
import weakref
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple, Union, get_args, get_origin, get_type_hints

from metastore.exceptions import MappingDefinitionError
from metastore.persist.converters import ConverterRegistry, default_registry

logger = logging.getLogger(__name__)

_MARKER = "metastore"
_MAPPED_ATTR = "__metastore_mapped__"
_ELEMENT_TYPE_ATTR = "__metastore_element_type__"
_DESCRIPTORS_ATTR = "__metastore_descriptors__"

_UNION_TYPES = tuple(t for t in (Union, getattr(types, "UnionType", None)) if t is not None)
_SEQUENCE_TYPES = (list, tuple, set, frozenset)


class KeyedConvention(str, Enum):
    """How a keyed collection (dict) is laid out in the attribute tree."""

    KEY_AS_ID = "key_as_id"  # one container attribute, one child per entry with the key as id
    FIELD_ID = "field_id"    # one attribute per entry with the field id, children "key" and "value"


class FieldKind(str, Enum):
    SCALAR = "scalar"
    ANY = "any"
    NESTED = "nested"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


@dataclasses.dataclass(frozen=True)
class AttributeOptions:
    """Options given to ``attribute()``."""

    key: Optional[str] = None
    password: bool = False
    persist_empty: bool = False
    keyed_convention: Optional[KeyedConvention] = None


@dataclasses.dataclass(frozen=True)
class ElementTypeInfo:
    name: str
    description: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class FieldDescriptor:
    """
    Everything the mapper needs to save and load one marked field.

    Attributes:
        name: Python attribute name
        attribute_id: Id of the attribute(s) the field is stored under
        kind: Shape of the field
        value_type: Scalar or mapped type of the value (of the items, for collections)
        key_type: Key type of a mapping field
        container_type: Concrete collection type to build on load
        optional: Whether the declared type admits None
        password: Whether the value passes through the two-way password encoder
        persist_empty: Whether None is persisted as an explicit empty attribute
        keyed_convention: Layout of a mapping field; None means the mapper default
    """

    name: str
    attribute_id: str
    kind: FieldKind
    value_type: Any = None
    key_type: Any = None
    container_type: Optional[type] = None
    optional: bool = False
    password: bool = False
    persist_empty: bool = False
    keyed_convention: Optional[KeyedConvention] = None


def attribute(
    key: Optional[str] = None,
    *,
    password: bool = False,
    persist_empty: bool = False,
    keyed_convention: Optional[KeyedConvention] = None,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
) -> Any:
    """
    Mark a dataclass field as persisted.

    Args:
        key: Attribute id to store the field under (the field name by default)
        password: Encode the value with the two-way password encoder on save
            and decode it on load
        persist_empty: Store None as an empty attribute instead of omitting it
        keyed_convention: Layout for a dict field, overriding the mapper default
        default: Field default (None when neither default nor default_factory is given)
        default_factory: Field default factory

    Returns:
        A ``dataclasses.field`` carrying the marker.
    """
    if default is dataclasses.MISSING and default_factory is dataclasses.MISSING:
        default = None
    options = AttributeOptions(
        key=key,
        password=password,
        persist_empty=persist_empty,
        keyed_convention=KeyedConvention(keyed_convention) if keyed_convention is not None else None,
    )
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={_MARKER: options},
    )


def _as_dataclass(cls: type) -> type:
    if "__dataclass_fields__" not in cls.__dict__:
        cls = dataclasses.dataclass(cls)
    return cls


def mapped(cls: type) -> type:
    """Mark ``cls`` as mappable to and from an attribute tree."""
    cls = _as_dataclass(cls)
    setattr(cls, _MAPPED_ATTR, True)
    return cls


def element_type(name: Optional[str] = None, description: Optional[str] = None) -> Callable[[type], type]:
    """
    Mark a class as stored in its own metastore element type.

    Args:
        name: Element type name (the class name by default)
        description: Element type description
    """

    def decorate(cls: type) -> type:
        cls = mapped(cls)
        setattr(cls, _ELEMENT_TYPE_ATTR, ElementTypeInfo(name or cls.__name__, description))
        return cls

    return decorate


def is_mapped(cls: Any) -> bool:
    return isinstance(cls, type) and bool(cls.__dict__.get(_MAPPED_ATTR, False))


def get_element_type_info(cls: type) -> ElementTypeInfo:
    """
    Return the element type declared with ``@element_type``.

    Raises:
        MappingDefinitionError: If the class is not decorated with ``@element_type``
    """
    info = cls.__dict__.get(_ELEMENT_TYPE_ATTR) if isinstance(cls, type) else None
    if info is None:
        raise MappingDefinitionError(
            f"{getattr(cls, '__name__', cls)!s} is not decorated with @element_type"
        )
    return info


def get_descriptors(
    cls: type,
    converters: Optional[ConverterRegistry] = None,
) -> Tuple[FieldDescriptor, ...]:
    """
    Return the field descriptor table of a mapped class, building it on first use.

    Args:
        cls: The mapped class
        converters: Registry deciding which types are scalars (the shared
            default registry when omitted)

    Raises:
        MappingDefinitionError: If the class is not mapped, a marked field has an
            unsupported type, or a field has no default value
    """
    converters = converters or default_registry
    tables = cls.__dict__.get(_DESCRIPTORS_ATTR) if isinstance(cls, type) else None
    if tables is not None and converters in tables:
        return tables[converters]

    if not is_mapped(cls):
        raise MappingDefinitionError(
            f"{getattr(cls, '__name__', cls)!s} is not marked with @mapped or @element_type"
        )

    try:
        hints = get_type_hints(cls)
    except Exception as e:
        raise MappingDefinitionError(f"Cannot resolve type hints of {cls.__name__}: {e}") from e

    descriptors: List[FieldDescriptor] = []
    for field in dataclasses.fields(cls):
        if field.init and field.default is dataclasses.MISSING and field.default_factory is dataclasses.MISSING:
            raise MappingDefinitionError(
                f"{cls.__name__}.{field.name} has no default; mapped classes need a no-argument constructor"
            )
        options = field.metadata.get(_MARKER)
        if options is None:
            continue
        descriptors.append(_describe(cls, field.name, hints.get(field.name, Any), options, converters))

    table = tuple(descriptors)
    if tables is None:
        tables = weakref.WeakKeyDictionary()
        setattr(cls, _DESCRIPTORS_ATTR, tables)
    tables[converters] = table
    logger.debug(f"Built descriptor table for {cls.__name__}: {[d.name for d in table]}")
    return table


def _describe(
    cls: type,
    name: str,
    hint: Any,
    options: AttributeOptions,
    converters: ConverterRegistry,
) -> FieldDescriptor:
    def unsupported(reason: str) -> MappingDefinitionError:
        return MappingDefinitionError(f"{cls.__name__}.{name}: {reason} ({hint!r})")

    def is_item_type(tp: Any) -> bool:
        return tp is Any or converters.supports(tp) or is_mapped(tp)

    optional = False
    field_type = hint
    if get_origin(field_type) in _UNION_TYPES:
        members = [arg for arg in get_args(field_type) if arg is not type(None)]
        if len(members) != 1:
            raise unsupported("only Optional[X] unions are supported")
        field_type = members[0]
        optional = True

    common = dict(
        name=name,
        attribute_id=options.key or name,
        optional=optional,
        password=options.password,
        persist_empty=options.persist_empty,
        keyed_convention=options.keyed_convention,
    )

    origin = get_origin(field_type)
    container = origin if origin is not None else field_type

    if field_type is Any:
        descriptor = FieldDescriptor(kind=FieldKind.ANY, **common)
    elif converters.supports(field_type):
        descriptor = FieldDescriptor(kind=FieldKind.SCALAR, value_type=field_type, **common)
    elif is_mapped(field_type):
        descriptor = FieldDescriptor(kind=FieldKind.NESTED, value_type=field_type, **common)
    elif container in _SEQUENCE_TYPES:
        args = get_args(field_type)
        if container is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
            raise unsupported("only variable-length tuples (Tuple[X, ...]) are supported")
        item_type = args[0] if args else Any
        if not is_item_type(item_type):
            raise unsupported("collection items must be scalars or mapped classes")
        descriptor = FieldDescriptor(
            kind=FieldKind.SEQUENCE, value_type=item_type, container_type=container, **common
        )
    elif container is dict:
        args = get_args(field_type)
        key_type, value_type = args if args else (str, Any)
        if not converters.supports(key_type):
            raise unsupported("dict keys must be scalars")
        if not is_item_type(value_type):
            raise unsupported("dict values must be scalars or mapped classes")
        descriptor = FieldDescriptor(
            kind=FieldKind.MAPPING, value_type=value_type, key_type=key_type, container_type=dict, **common
        )
    else:
        raise unsupported("unsupported field type")

    if descriptor.password and not (descriptor.kind is FieldKind.SCALAR and issubclass(field_type, str)):
        raise unsupported("only str fields can be passwords")
    return descriptor

