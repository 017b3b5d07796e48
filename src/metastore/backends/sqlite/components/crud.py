"""
SQLite CRUD Operations Component

This module provides a class for handling CRUD (Create, Read, Update, Delete)
operations on namespaces, element types and elements in the SQLite database.
Element content (value and attribute tree) is stored as a JSON document;
date, datetime and Decimal values are tagged so they come back with their
original type.
"""

import json
import logging
import sqlite3
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from metastore.exceptions import ElementExistsError
from metastore.models import Attribute, Element, ElementOwner, ElementOwnerType, ElementType

logger = logging.getLogger(__name__)

_TYPE_TAG = "$type"


class SQLiteCRUD:
    """
    Handles CRUD operations for metastore entities in SQLite database.

    Rows are listed in insertion order (``rowid``).
    """

    def __init__(self, connection_manager):
        """
        Initialize the CRUD operations handler.

        Args:
            connection_manager: SQLiteConnection instance to manage database connections
        """
        self.connection_manager = connection_manager

    #-----------------------------------------------------------------------
    # Serialisation
    #-----------------------------------------------------------------------

    def _serialise_value(self, value: Any) -> Any:
        """Return a JSON-friendly representation of an attribute value."""

        if isinstance(value, datetime):
            return {_TYPE_TAG: "datetime", "value": value.isoformat()}
        if isinstance(value, date):
            return {_TYPE_TAG: "date", "value": value.isoformat()}
        if isinstance(value, Decimal):
            return {_TYPE_TAG: "decimal", "value": str(value)}
        return value

    def _deserialise_value(self, stored_value: Any) -> Any:
        """Convert a stored JSON value back into the attribute value."""

        if not isinstance(stored_value, dict):
            return stored_value

        tag = stored_value.get(_TYPE_TAG)
        raw = stored_value.get("value")
        if tag == "datetime":
            return datetime.fromisoformat(raw)
        if tag == "date":
            return date.fromisoformat(raw)
        if tag == "decimal":
            return Decimal(raw)
        raise ValueError(f"Unknown stored value tag: {tag!r}")

    def _serialise_attribute(self, attribute: Attribute) -> Dict[str, Any]:
        return {
            "id": attribute.id,
            "value": self._serialise_value(attribute.value),
            "children": [self._serialise_attribute(child) for child in attribute.children],
        }

    def _deserialise_attribute(self, payload: Dict[str, Any]) -> Attribute:
        if not isinstance(payload, dict):
            raise ValueError(f"Malformed attribute payload: {payload!r}")
        return Attribute(
            id=payload.get("id"),
            value=self._deserialise_value(payload.get("value")),
            children=[self._deserialise_attribute(child) for child in payload.get("children", [])],
        )

    def serialise_content(self, element: Element) -> str:
        """Return the JSON document holding an element's value and attribute tree."""

        return json.dumps({
            "value": self._serialise_value(element.value),
            "children": [self._serialise_attribute(child) for child in element.children],
        })

    def _now_iso(self) -> str:
        """Return the current UTC timestamp in ISO 8601 format."""

        return datetime.now(timezone.utc).isoformat()

    #-----------------------------------------------------------------------
    # Namespaces
    #-----------------------------------------------------------------------

    def list_namespaces(self) -> List[str]:
        rows = self.connection_manager.fetch_all("SELECT name FROM namespaces ORDER BY rowid")
        return [row["name"] for row in rows]

    def namespace_exists(self, namespace: str) -> bool:
        row = self.connection_manager.fetch_one(
            "SELECT 1 FROM namespaces WHERE name = ?", (namespace,)
        )
        return row is not None

    def insert_namespace(self, namespace: str) -> None:
        with self.connection_manager.transaction() as conn:
            conn.execute("INSERT INTO namespaces (name) VALUES (?)", (namespace,))

    def delete_namespace(self, namespace: str) -> None:
        with self.connection_manager.transaction() as conn:
            conn.execute("DELETE FROM namespaces WHERE name = ?", (namespace,))

    #-----------------------------------------------------------------------
    # Element types
    #-----------------------------------------------------------------------

    def list_element_type_ids(self, namespace: str) -> List[str]:
        rows = self.connection_manager.fetch_all(
            "SELECT id FROM element_types WHERE namespace = ? ORDER BY rowid", (namespace,)
        )
        return [row["id"] for row in rows]

    def retrieve_element_type(self, namespace: str, element_type_id: str) -> Optional[ElementType]:
        row = self.connection_manager.fetch_one(
            "SELECT id, name, description FROM element_types WHERE namespace = ? AND id = ?",
            (namespace, element_type_id),
        )
        if row is None:
            return None
        return ElementType(
            namespace=namespace,
            id=row["id"],
            name=row["name"],
            description=row["description"],
        )

    def store_element_type(self, namespace: str, element_type: ElementType, is_new: bool) -> None:
        with self.connection_manager.transaction() as conn:
            if is_new:
                conn.execute(
                    """
                    INSERT INTO element_types (namespace, id, name, description)
                    VALUES (?, ?, ?, ?)
                    """,
                    (namespace, element_type.id, element_type.name, element_type.description),
                )
            else:
                conn.execute(
                    """
                    UPDATE element_types SET name = ?, description = ?
                    WHERE namespace = ? AND id = ?
                    """,
                    (element_type.name, element_type.description, namespace, element_type.id),
                )

    def delete_element_type(self, namespace: str, element_type_id: str) -> None:
        with self.connection_manager.transaction() as conn:
            conn.execute(
                "DELETE FROM element_types WHERE namespace = ? AND id = ?",
                (namespace, element_type_id),
            )

    #-----------------------------------------------------------------------
    # Elements
    #-----------------------------------------------------------------------

    def list_element_ids(self, namespace: str, element_type_id: str) -> List[str]:
        rows = self.connection_manager.fetch_all(
            """
            SELECT id FROM elements
            WHERE namespace = ? AND element_type_id = ?
            ORDER BY rowid
            """,
            (namespace, element_type_id),
        )
        return [row["id"] for row in rows]

    def retrieve_element(self, namespace: str, element_type_id: str, element_id: str) -> Optional[Element]:
        """
        Retrieve an element by id.

        Returns:
            Optional[Element]: The element if found, None otherwise

        Raises:
            ValueError: If the stored content cannot be decoded
        """
        row = self.connection_manager.fetch_one(
            """
            SELECT id, name, owner_name, owner_type, content FROM elements
            WHERE namespace = ? AND element_type_id = ? AND id = ?
            """,
            (namespace, element_type_id, element_id),
        )
        if row is None:
            return None

        content = json.loads(row["content"])
        if not isinstance(content, dict):
            raise ValueError(f"Malformed content for element '{element_id}'")

        owner = None
        if row["owner_name"] is not None:
            owner = ElementOwner(
                name=row["owner_name"],
                owner_type=ElementOwnerType(row["owner_type"]),
            )

        return Element(
            id=row["id"],
            name=row["name"],
            owner=owner,
            value=self._deserialise_value(content.get("value")),
            children=[self._deserialise_attribute(child) for child in content.get("children", [])],
        )

    def store_element(self, namespace: str, element_type_id: str, element: Element, is_new: bool) -> None:
        owner_name = element.owner.name if element.owner else None
        owner_type = element.owner.owner_type.value if element.owner else None
        content = self.serialise_content(element)

        with self.connection_manager.transaction() as conn:
            if is_new:
                try:
                    conn.execute(
                        """
                        INSERT INTO elements
                            (namespace, element_type_id, id, name, owner_name, owner_type,
                             content, last_modified)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (namespace, element_type_id, element.id, element.name,
                         owner_name, owner_type, content, self._now_iso()),
                    )
                except sqlite3.IntegrityError as e:
                    if "UNIQUE" not in str(e):
                        raise
                    raise ElementExistsError(namespace, element_type_id, element.id) from e
            else:
                conn.execute(
                    """
                    UPDATE elements
                    SET name = ?, owner_name = ?, owner_type = ?, content = ?, last_modified = ?
                    WHERE namespace = ? AND element_type_id = ? AND id = ?
                    """,
                    (element.name, owner_name, owner_type, content, self._now_iso(),
                     namespace, element_type_id, element.id),
                )

        logger.debug(f"Stored element with ID: {element.id}")

    def delete_element(self, namespace: str, element_type_id: str, element_id: str) -> None:
        with self.connection_manager.transaction() as conn:
            conn.execute(
                "DELETE FROM elements WHERE namespace = ? AND element_type_id = ? AND id = ?",
                (namespace, element_type_id, element_id),
            )
