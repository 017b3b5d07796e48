"""Element ownership models."""

from enum import Enum

from pydantic import BaseModel


class ElementOwnerType(str, Enum):
    """Kind of principal an element is attributed to."""

    USER = "user"
    ROLE = "role"
    SYSTEM_ROLE = "system_role"


class ElementOwner(BaseModel):
    """A ``(name, owner_type)`` pair recording who an element belongs to."""

    name: str
    owner_type: ElementOwnerType = ElementOwnerType.USER
