"""
Scalar Converters

Each scalar field type has a converter pair: ``dump`` turns a field value into
the primitive stored on an attribute, ``load`` coerces a stored primitive back
to the field type. Dates and datetimes are stored as ISO 8601 strings, Decimals
as strings and enums by member name.

Load functions raise ``ValueError`` or ``TypeError`` when a value cannot be
coerced; the mapper turns those into ``CoercionError`` with the field path.
"""

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, NamedTuple, Optional, Type

logger = logging.getLogger(__name__)

TRUE_STRINGS = frozenset({"y", "yes", "true", "1"})
FALSE_STRINGS = frozenset({"n", "no", "false", "0"})


class Converter(NamedTuple):
    """Dump/load pair for one scalar type. ``load`` receives the value and the target type."""

    dump: Callable[[Any], Any]
    load: Callable[[Any, type], Any]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _dump_str(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _load_str(value: Any, target: type) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (bool, int, float, Decimal)):
        return str(value)
    raise TypeError(f"expected a string, got {type(value).__name__}")


def _dump_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an int, got {type(value).__name__}")
    return value


def _load_int(value: Any, target: type) -> int:
    if isinstance(value, bool):
        raise TypeError("booleans are not integers")
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        if value != int(value):
            raise ValueError("value has a fractional part")
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f"expected an int, got {type(value).__name__}")


def _dump_float(value: Any) -> float:
    if not _is_number(value):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    return float(value)


def _load_float(value: Any, target: type) -> float:
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f"expected a number, got {type(value).__name__}")


def _dump_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected a bool, got {type(value).__name__}")
    return value


def _load_bool(value: Any, target: type) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValueError("not a recognised boolean")


def _dump_decimal(value: Any) -> str:
    if not _is_number(value):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    return str(value)


def _load_decimal(value: Any, target: type) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("booleans are not decimals")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, (float, str)):
        try:
            return Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError("not a decimal number") from e
    raise TypeError(f"expected a decimal, got {type(value).__name__}")


def _dump_date(value: Any) -> str:
    if isinstance(value, datetime) or not isinstance(value, date):
        raise TypeError(f"expected a date, got {type(value).__name__}")
    return value.isoformat()


def _load_date(value: Any, target: type) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip())
    raise TypeError(f"expected a date, got {type(value).__name__}")


def _dump_datetime(value: Any) -> str:
    if not isinstance(value, datetime):
        raise TypeError(f"expected a datetime, got {type(value).__name__}")
    return value.isoformat()


def _load_datetime(value: Any, target: type) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise TypeError(f"expected a datetime, got {type(value).__name__}")


def _dump_enum(value: Any) -> str:
    if not isinstance(value, Enum):
        raise TypeError(f"expected an enum member, got {type(value).__name__}")
    return value.name


def _load_enum(value: Any, target: type) -> Enum:
    if isinstance(value, target):
        return value
    if isinstance(value, str):
        try:
            return target[value.strip()]
        except KeyError as e:
            raise ValueError(f"{target.__name__} has no member named {value!r}") from e
    raise TypeError(f"expected an enum name, got {type(value).__name__}")


ENUM_CONVERTER = Converter(_dump_enum, _load_enum)


class ConverterRegistry:
    """
    Registry of scalar converters keyed by field type.

    Enum subclasses share one converter. Other types are resolved through the
    class hierarchy, so a ``str`` subclass uses the ``str`` converter unless a
    converter is registered for it directly.
    """

    def __init__(self):
        self._converters: Dict[type, Converter] = {
            str: Converter(_dump_str, _load_str),
            int: Converter(_dump_int, _load_int),
            float: Converter(_dump_float, _load_float),
            bool: Converter(_dump_bool, _load_bool),
            Decimal: Converter(_dump_decimal, _load_decimal),
            date: Converter(_dump_date, _load_date),
            datetime: Converter(_dump_datetime, _load_datetime),
        }

    def register(
        self,
        field_type: Type[Any],
        dump: Callable[[Any], Any],
        load: Callable[[Any, type], Any],
    ) -> None:
        """
        Register or replace the converter for ``field_type``.

        Args:
            field_type: The field type the converter handles
            dump: Turns a field value into an attribute primitive
            load: Coerces an attribute primitive to ``field_type``; receives
                the value and the target type
        """
        self._converters[field_type] = Converter(dump, load)
        logger.debug(f"Registered converter for {getattr(field_type, '__name__', field_type)}")

    def find(self, field_type: Any) -> Optional[Converter]:
        """Return the converter for ``field_type``, or None when it is not a scalar type."""
        if not isinstance(field_type, type):
            return None
        converter = self._converters.get(field_type)
        if converter is not None:
            return converter
        if issubclass(field_type, Enum):
            return ENUM_CONVERTER
        for base in field_type.__mro__[1:]:
            if base in self._converters:
                return self._converters[base]
        return None

    def supports(self, field_type: Any) -> bool:
        return self.find(field_type) is not None


default_registry = ConverterRegistry()
