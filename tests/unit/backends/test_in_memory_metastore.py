"""Unit tests specific to the in-memory metastore."""

from metastore.backends.in_memory import InMemoryMetaStore
from metastore.models import Element, ElementType


def test_default_name_and_description() -> None:
    store = InMemoryMetaStore()

    assert store.name == "in-memory"
    assert store.description is None

    described = InMemoryMetaStore({"name": "cache", "description": "scratch space"})
    assert (described.name, described.description) == ("cache", "scratch space")


def test_returned_elements_are_copies() -> None:
    store = InMemoryMetaStore()
    store.create_namespace("ns")
    element_type = ElementType(name="T")
    store.create_element_type("ns", element_type)
    store.create_element("ns", element_type, Element(id="e1", value="original"))

    fetched = store.get_element("ns", element_type, "e1")
    fetched.value = "changed"

    assert store.get_element("ns", element_type, "e1").value == "original"


def test_clear_drops_everything() -> None:
    store = InMemoryMetaStore()
    store.create_namespace("ns")
    store.create_element_type("ns", ElementType(name="T"))

    store.clear()

    assert store.get_namespaces() == []
    assert store.storage.count_elements() == 0
