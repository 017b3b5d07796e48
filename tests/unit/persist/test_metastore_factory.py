"""Unit tests for the typed object factory."""

from typing import List, Optional

import pytest

from metastore.exceptions import (
    CoercionError,
    ElementLoadError,
    ElementNotFoundError,
    InvalidNameError,
    MappingDefinitionError,
)
from metastore.models import Attribute
from metastore.persist import MetaStoreFactory, ObjectMapper, attribute, element_type, mapped


@element_type(name="Database connection", description="Connections to relational databases")
class DatabaseConnection:
    name: Optional[str] = attribute()
    host: Optional[str] = attribute()
    port: Optional[int] = attribute()
    password: Optional[str] = attribute(password=True)
    options: List[str] = attribute(default_factory=list)


@element_type()
class Nameless:
    title: Optional[str] = attribute()


@mapped
class NotAnElementType:
    name: Optional[str] = attribute()


@pytest.fixture
def factory(metastore) -> MetaStoreFactory:
    return MetaStoreFactory(DatabaseConnection, metastore, "connections")


def test_first_save_creates_namespace_and_element_type(factory, metastore) -> None:
    assert factory.get_element_type() is None

    factory.save_element(DatabaseConnection(name="warehouse", host="db1"))

    assert metastore.namespace_exists("connections")
    element_type = factory.get_element_type()
    assert element_type.name == "Database connection"
    assert element_type.description == "Connections to relational databases"


def test_save_then_load(factory) -> None:
    connection = DatabaseConnection(name="warehouse", host="db1", port=5432, options=["ssl", "compress"])

    factory.save_element(connection)

    assert factory.load_element("warehouse") == connection
    assert factory.load_element("missing") is None


def test_saved_element_uses_name_as_id(factory, metastore) -> None:
    element = factory.save_element(DatabaseConnection(name="warehouse", port=1))

    assert element.id == "warehouse"
    assert element.name == "warehouse"
    stored = metastore.get_element("connections", factory.get_element_type(), "warehouse")
    assert stored.get_child("port").value == 1


def test_save_replaces_element_with_same_name(factory) -> None:
    factory.save_element(DatabaseConnection(name="warehouse", host="old"))
    factory.save_element(DatabaseConnection(name="warehouse", host="new"))

    assert factory.get_element_names() == ["warehouse"]
    assert factory.load_element("warehouse").host == "new"


def test_save_requires_name(factory) -> None:
    with pytest.raises(InvalidNameError):
        factory.save_element(DatabaseConnection(host="db1"))


def test_password_is_stored_encoded(factory, metastore) -> None:
    factory.save_element(DatabaseConnection(name="warehouse", password="secret"))

    stored = metastore.get_element("connections", factory.get_element_type(), "warehouse")
    assert stored.get_child("password").value != "secret"
    assert factory.load_element("warehouse").password == "secret"


def test_listing_in_save_order(factory) -> None:
    for name in ("b", "a", "c"):
        factory.save_element(DatabaseConnection(name=name))

    assert factory.get_element_names() == ["b", "a", "c"]
    assert [c.name for c in factory.get_elements()] == ["b", "a", "c"]


def test_listing_before_first_save_is_empty(factory) -> None:
    assert factory.get_elements() == []
    assert factory.get_element_names() == []
    assert factory.element_exists("warehouse") is False


def test_element_exists_and_delete(factory) -> None:
    factory.save_element(DatabaseConnection(name="warehouse"))
    assert factory.element_exists("warehouse") is True

    factory.delete_element("warehouse")

    assert factory.element_exists("warehouse") is False
    with pytest.raises(ElementNotFoundError):
        factory.delete_element("warehouse")


def test_name_is_taken_from_element_when_not_stored(factory, metastore) -> None:
    element_type = factory._ensure_element_type()
    element = metastore.new_element(element_type, "legacy")
    element.name = "legacy"
    element.add_child(Attribute(id="host", value="db9"))
    metastore.create_element("connections", element_type, element)

    loaded = factory.load_element("legacy")

    assert loaded.name == "legacy"
    assert loaded.host == "db9"


def test_tolerant_listing_keeps_objects_with_bad_fields(factory, metastore) -> None:
    factory.save_element(DatabaseConnection(name="good", port=1))
    factory.save_element(DatabaseConnection(name="bad", port=2))
    element_type = factory.get_element_type()
    stored = metastore.get_element("connections", element_type, "bad")
    stored.get_child("port").value = "not a port"
    metastore.update_element("connections", element_type, "bad", stored)
    errors = []

    connections = factory.get_elements(errors=errors)

    assert [(c.name, c.port) for c in connections] == [("good", 1), ("bad", None)]
    assert len(errors) == 1
    assert errors[0].element_id == "bad"
    assert isinstance(errors[0].cause, CoercionError)


def test_tolerant_listing_skips_unreadable_elements(sqlite_store) -> None:
    factory = MetaStoreFactory(DatabaseConnection, sqlite_store, "connections")
    for name in ("first", "broken", "last"):
        factory.save_element(DatabaseConnection(name=name))
    sqlite_store.connection.execute("UPDATE elements SET content = ? WHERE id = ?", ("{not json", "broken"))
    errors = []

    connections = factory.get_elements(errors=errors)

    assert [c.name for c in connections] == ["first", "last"]
    assert [type(e) for e in errors] == [ElementLoadError]
    assert factory.get_element_names() == ["first", "last"]


def test_strict_mapper_is_respected(metastore) -> None:
    factory = MetaStoreFactory(DatabaseConnection, metastore, "connections", mapper=ObjectMapper(strict=True))
    factory.save_element(DatabaseConnection(name="warehouse", port=1))
    element_type = factory.get_element_type()
    stored = metastore.get_element("connections", element_type, "warehouse")
    stored.get_child("port").value = "x"
    metastore.update_element("connections", element_type, "warehouse", stored)

    with pytest.raises(CoercionError):
        factory.load_element("warehouse")


def test_given_mapper_receives_store_encoder(metastore) -> None:
    mapper = ObjectMapper()

    factory = MetaStoreFactory(DatabaseConnection, metastore, "connections", mapper=mapper)

    assert factory.mapper.password_encoder is metastore.two_way_password_encoder
    assert mapper.password_encoder is None


def test_class_requirements(metastore) -> None:
    with pytest.raises(MappingDefinitionError):
        MetaStoreFactory(Nameless, metastore, "ns")
    with pytest.raises(MappingDefinitionError):
        MetaStoreFactory(NotAnElementType, metastore, "ns")
