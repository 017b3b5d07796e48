"""Namespace model and name validation."""

import re
from typing import Any

from pydantic import BaseModel, field_validator

_FORBIDDEN_CHARACTERS = re.compile(r"[/\\\x00-\x1f\x7f]")


def is_valid_namespace_name(name: Any) -> bool:
    """
    Check the shape of a namespace name.

    A valid name is a non-empty string without surrounding whitespace, path
    separators or control characters. Uniqueness is checked by the backend.
    """
    if not isinstance(name, str) or not name:
        return False
    if name != name.strip():
        return False
    return _FORBIDDEN_CHARACTERS.search(name) is None


class Namespace(BaseModel):
    """A top-level partition of element types."""

    name: str

    @field_validator("name")
    def validate_name(cls, v):
        """Ensure the namespace name is well formed."""
        if not is_valid_namespace_name(v):
            raise ValueError(f"Invalid namespace name: {v!r}")
        return v

    @staticmethod
    def is_valid_name(name: Any) -> bool:
        return is_valid_namespace_name(name)

    def __str__(self) -> str:
        return self.name
