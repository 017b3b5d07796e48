"""Contract tests every metastore backend must pass.

The ``metastore`` fixture runs each test against the in-memory and the SQLite
backend.
"""

import threading
from datetime import date, datetime
from decimal import Decimal

import pytest

from metastore.exceptions import (
    DependenciesExistError,
    ElementExistsError,
    ElementNotFoundError,
    ElementTypeExistsError,
    ElementTypeNotFoundError,
    ErrorKind,
    InvalidNameError,
    NamespaceExistsError,
    NamespaceNotFoundError,
    StoreUnavailableError,
)
from metastore.models import Attribute, Element, ElementOwner, ElementOwnerType, ElementType


def _with_type(store, namespace: str = "ns", type_name: str = "Cube") -> ElementType:
    store.create_namespace(namespace)
    element_type = store.new_element_type(namespace)
    element_type.name = type_name
    element_type.description = f"{type_name} definitions"
    store.create_element_type(namespace, element_type)
    return element_type


def _element(element_id: str, name: str = None) -> Element:
    element = Element(id=element_id, name=name or element_id, value="root")
    element.add_child(Attribute(id="size", value=3))
    dimension = element.add_child(Attribute(id="dimension", value="time"))
    dimension.add_child(Attribute(id="level", value="year"))
    dimension.add_child(Attribute(id="level", value="month"))
    return element


def test_duplicate_namespace_create_fails(metastore) -> None:
    metastore.create_namespace("A")

    with pytest.raises(NamespaceExistsError) as excinfo:
        metastore.create_namespace("A")

    assert excinfo.value.kind is ErrorKind.NAMESPACE_EXISTS
    assert metastore.get_namespaces().count("A") == 1
    assert metastore.namespace_exists("A")


def test_invalid_namespace_name_is_rejected(metastore) -> None:
    with pytest.raises(InvalidNameError):
        metastore.create_namespace("a/b")
    assert metastore.get_namespaces() == []


def test_namespaces_list_in_creation_order(metastore) -> None:
    for name in ("b", "a", "c"):
        metastore.create_namespace(name)

    assert metastore.get_namespaces() == ["b", "a", "c"]


def test_delete_namespace_blocked_by_element_types(metastore) -> None:
    _with_type(metastore, "A", "T")

    with pytest.raises(DependenciesExistError) as excinfo:
        metastore.delete_namespace("A")

    assert excinfo.value.dependencies == ["T"]
    assert "A" in metastore.get_namespaces()


def test_delete_missing_namespace_raises_not_found(metastore) -> None:
    with pytest.raises(NamespaceNotFoundError):
        metastore.delete_namespace("missing")


def test_delete_empty_namespace(metastore) -> None:
    metastore.create_namespace("A")
    metastore.delete_namespace("A")

    assert metastore.get_namespaces() == []


def test_element_type_id_defaults_to_name(metastore) -> None:
    element_type = _with_type(metastore)

    assert element_type.id == "Cube"
    stored = metastore.get_element_type("ns", "Cube")
    assert stored.name == "Cube"
    assert stored.description == "Cube definitions"
    assert stored.namespace == "ns"
    assert stored.metastore_name == metastore.name
    assert metastore.get_element_type_ids("ns") == ["Cube"]


def test_duplicate_element_type_fails(metastore) -> None:
    _with_type(metastore)
    duplicate = ElementType(name="Cube")

    with pytest.raises(ElementTypeExistsError):
        metastore.create_element_type("ns", duplicate)


def test_element_type_requires_namespace(metastore) -> None:
    with pytest.raises(NamespaceNotFoundError):
        metastore.create_element_type("missing", ElementType(name="T"))


def test_element_type_lookups_on_missing_namespace(metastore) -> None:
    assert metastore.get_element_type_ids("missing") == []
    assert metastore.get_element_types("missing") == []
    assert metastore.get_element_type("missing", "T") is None
    assert metastore.get_element_type_by_name("missing", "T") is None


def test_update_element_type(metastore) -> None:
    element_type = _with_type(metastore)
    element_type.description = "changed"

    metastore.update_element_type("ns", element_type)

    assert metastore.get_element_type("ns", "Cube").description == "changed"


def test_update_missing_element_type_raises_not_found(metastore) -> None:
    metastore.create_namespace("ns")

    with pytest.raises(ElementTypeNotFoundError):
        metastore.update_element_type("ns", ElementType(id="missing", name="missing"))


def test_element_type_by_name_returns_first_created(metastore) -> None:
    metastore.create_namespace("ns")
    metastore.create_element_type("ns", ElementType(id="first", name="Shared"))
    metastore.create_element_type("ns", ElementType(id="second", name="Shared"))

    assert metastore.get_element_type_by_name("ns", "Shared").id == "first"
    assert metastore.get_element_type_by_name("ns", "Other") is None


def test_delete_element_type_blocked_by_elements(metastore) -> None:
    element_type = _with_type(metastore)
    metastore.create_element("ns", element_type, _element("e1"))

    with pytest.raises(DependenciesExistError) as excinfo:
        metastore.delete_element_type("ns", element_type)

    assert excinfo.value.dependencies == ["e1"]

    metastore.delete_element("ns", element_type, "e1")
    metastore.delete_element_type("ns", element_type)
    assert metastore.get_element_type_ids("ns") == []


def test_create_then_get_returns_equal_element(metastore) -> None:
    element_type = _with_type(metastore)
    element = _element("e1")
    element.owner = ElementOwner(name="analysts", owner_type=ElementOwnerType.ROLE)
    element.add_child(Attribute(id="price", value=Decimal("10.50")))
    element.add_child(Attribute(id="since", value=date(2020, 5, 17)))
    element.add_child(Attribute(id="updated", value=datetime(2021, 1, 2, 3, 4, 5)))
    element.add_child(Attribute(id="ratio", value=0.25))
    element.add_child(Attribute(id="active", value=True))

    metastore.create_element("ns", element_type, element)

    assert metastore.get_element("ns", element_type, "e1") == element


def test_stored_element_is_isolated_from_caller(metastore) -> None:
    element_type = _with_type(metastore)
    element = _element("e1")
    metastore.create_element("ns", element_type, element)

    element.add_child(Attribute(id="late", value="change"))

    assert metastore.get_element("ns", element_type, "e1").get_child("late") is None


def test_element_id_defaults(metastore) -> None:
    element_type = _with_type(metastore)
    named = Element(name="by-name")
    anonymous = Element()

    metastore.create_element("ns", element_type, named)
    metastore.create_element("ns", element_type, anonymous)

    assert named.id == "by-name"
    assert anonymous.id
    assert metastore.get_element_ids("ns", element_type) == ["by-name", anonymous.id]


def test_duplicate_element_fails(metastore) -> None:
    element_type = _with_type(metastore)
    metastore.create_element("ns", element_type, _element("e1"))

    with pytest.raises(ElementExistsError) as excinfo:
        metastore.create_element("ns", element_type, _element("e1"))

    assert excinfo.value.element_id == "e1"
    assert metastore.get_element_ids("ns", element_type) == ["e1"]


def test_create_element_requires_element_type(metastore) -> None:
    metastore.create_namespace("ns")

    with pytest.raises(ElementTypeNotFoundError):
        metastore.create_element("ns", ElementType(id="missing"), _element("e1"))


def test_element_type_reports_elements(metastore) -> None:
    element_type = _with_type(metastore)
    assert metastore.get_element_type("ns", "Cube").has_elements() is False

    metastore.create_element("ns", element_type, _element("e1"))

    assert metastore.get_element_type("ns", "Cube").has_elements() is True


def test_get_elements_in_creation_order(metastore) -> None:
    element_type = _with_type(metastore)
    for element_id in ("c", "a", "b"):
        metastore.create_element("ns", element_type, _element(element_id))

    assert [e.id for e in metastore.get_elements("ns", element_type)] == ["c", "a", "b"]


def test_element_by_name_returns_first_match(metastore) -> None:
    element_type = _with_type(metastore)
    metastore.create_element("ns", element_type, _element("e1", name="shared"))
    metastore.create_element("ns", element_type, _element("e2", name="shared"))

    assert metastore.get_element_by_name("ns", element_type, "shared").id == "e1"
    assert metastore.get_element_by_name("ns", element_type, "shared", lock=True).id == "e1"
    assert metastore.get_element_by_name("ns", element_type, "missing") is None


def test_update_element_replaces_content(metastore) -> None:
    element_type = _with_type(metastore)
    metastore.create_element("ns", element_type, _element("e1"))
    replacement = Element(id="e1", name="renamed display", value="new")
    replacement.add_child(Attribute(id="size", value=4))

    metastore.update_element("ns", element_type, "e1", replacement)

    stored = metastore.get_element("ns", element_type, "e1")
    assert stored.name == "renamed display"
    assert stored.get_child("size").value == 4
    assert stored.get_child("dimension") is None


def test_update_element_can_change_id(metastore) -> None:
    element_type = _with_type(metastore)
    metastore.create_element("ns", element_type, _element("old"))

    metastore.update_element("ns", element_type, "old", _element("new"))

    assert metastore.get_element_ids("ns", element_type) == ["new"]
    assert metastore.get_element("ns", element_type, "old") is None


def test_update_missing_element_raises_not_found(metastore) -> None:
    element_type = _with_type(metastore)

    with pytest.raises(ElementNotFoundError):
        metastore.update_element("ns", element_type, "missing", _element("missing"))


def test_delete_missing_element_raises_not_found(metastore) -> None:
    element_type = _with_type(metastore)

    with pytest.raises(ElementNotFoundError) as excinfo:
        metastore.delete_element("ns", element_type, "missing")

    assert excinfo.value.kind is ErrorKind.NOT_FOUND


def test_lookups_on_missing_element_return_none(metastore) -> None:
    element_type = _with_type(metastore)

    assert metastore.get_element("ns", element_type, "missing") is None
    assert metastore.get_element("other", element_type, "missing") is None


def test_locked_reads_return_same_results(metastore) -> None:
    element_type = _with_type(metastore)
    metastore.create_element("ns", element_type, _element("e1"))

    assert metastore.get_element_type_by_name("ns", "Cube", lock=True).id == "Cube"
    assert [e.id for e in metastore.get_elements("ns", element_type, lock=True)] == ["e1"]


def test_writes_inside_modification_lock(metastore) -> None:
    element_type = _with_type(metastore)

    with metastore.modification_lock():
        metastore.create_element("ns", element_type, _element("e1"))
        assert metastore.get_element_ids("ns", element_type) == ["e1"]

    assert metastore.get_element_ids("ns", element_type) == ["e1"]


def test_factory_helpers(metastore) -> None:
    element_type = metastore.new_element_type("ns")
    element = metastore.new_element(element_type, "id", "value")
    attribute = metastore.new_attribute("child", 1)
    owner = metastore.new_element_owner("joe", ElementOwnerType.USER)

    assert element_type.namespace == "ns"
    assert element_type.metastore_name == metastore.name
    assert (element.id, element.value) == ("id", "value")
    assert (attribute.id, attribute.value) == ("child", 1)
    assert owner.name == "joe"
    assert metastore.two_way_password_encoder is not None


def _fail(*args, **kwargs):
    raise RuntimeError("disk full")


def test_failed_write_during_rename_keeps_original(metastore, monkeypatch) -> None:
    element_type = _with_type(metastore)
    original = _element("old")
    metastore.create_element("ns", element_type, original)
    monkeypatch.setattr(metastore, "_write_element", _fail)

    with pytest.raises(StoreUnavailableError):
        metastore.update_element("ns", element_type, "old", _element("new"))

    assert metastore.get_element_ids("ns", element_type) == ["old"]
    assert metastore.get_element("ns", element_type, "old") == original


def test_failed_removal_during_rename_rolls_back_new_record(metastore, monkeypatch) -> None:
    element_type = _with_type(metastore)
    metastore.create_element("ns", element_type, _element("old"))
    monkeypatch.setattr(metastore, "_remove_element", _fail)

    with pytest.raises(StoreUnavailableError):
        metastore.update_element("ns", element_type, "old", _element("new"))

    assert metastore.get_element_ids("ns", element_type) == ["old"]
    assert metastore.get_element("ns", element_type, "new") is None


def _start_writer(action) -> tuple:
    done = threading.Event()

    def run() -> None:
        action()
        done.set()

    writer = threading.Thread(target=run, daemon=True)
    writer.start()
    return writer, done


def test_modification_lock_blocks_concurrent_create(metastore) -> None:
    element_type = _with_type(metastore)

    with metastore.modification_lock():
        writer, done = _start_writer(
            lambda: metastore.create_element("ns", element_type, _element("e1"))
        )
        assert not done.wait(0.2)
        assert metastore.get_element_ids("ns", element_type) == []

    writer.join(timeout=5)
    assert done.is_set()
    assert metastore.get_element_ids("ns", element_type) == ["e1"]


def test_modification_lock_blocks_concurrent_delete(metastore) -> None:
    element_type = _with_type(metastore)
    metastore.create_element("ns", element_type, _element("e1"))

    with metastore.modification_lock():
        writer, done = _start_writer(lambda: metastore.delete_element("ns", element_type, "e1"))
        assert not done.wait(0.2)
        assert metastore.get_element("ns", element_type, "e1") is not None

    writer.join(timeout=5)
    assert done.is_set()
    assert metastore.get_element_ids("ns", element_type) == []
