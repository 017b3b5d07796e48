"""Unit tests for the metastore exception hierarchy."""

from metastore.exceptions import (
    CoercionError,
    CyclicGraphError,
    DependenciesExistError,
    ElementExistsError,
    ElementLoadError,
    ElementNotFoundError,
    ErrorKind,
    MetaStoreError,
    NamespaceExistsError,
    StoreUnavailableError,
)


def test_every_error_carries_its_kind() -> None:
    assert NamespaceExistsError("ns").kind is ErrorKind.NAMESPACE_EXISTS
    assert ElementExistsError("ns", "t", "e").kind is ErrorKind.ELEMENT_EXISTS
    assert DependenciesExistError(["t1"]).kind is ErrorKind.DEPENDENCIES_EXIST
    assert ElementNotFoundError("ns", "t", "e").kind is ErrorKind.NOT_FOUND
    assert ElementLoadError("e").kind is ErrorKind.PARTIAL_LOAD_FAILURE
    assert CyclicGraphError("child", "Node").kind is ErrorKind.CYCLIC_GRAPH
    assert CoercionError("size", "abc", int).kind is ErrorKind.COERCION_FAILURE


def test_payloads_are_kept() -> None:
    exists = ElementExistsError("ns", "t", "e")
    assert (exists.namespace, exists.element_type_id, exists.element_id) == ("ns", "t", "e")

    dependencies = DependenciesExistError(["t1", "t2"])
    assert dependencies.dependencies == ["t1", "t2"]

    coercion = CoercionError("attributes[1].size", "abc", int, "invalid literal")
    assert coercion.path == "attributes[1].size"
    assert coercion.value == "abc"
    assert coercion.target_type is int
    assert "attributes[1].size" in str(coercion)


def test_store_unavailable_builds_message_from_context() -> None:
    error = StoreUnavailableError(backend_type="SQLiteMetaStore", operation="get_element")

    assert isinstance(error, MetaStoreError)
    assert "backend=SQLiteMetaStore" in str(error)
    assert "operation=get_element" in str(error)
    assert error.error_code == "STORE_UNAVAILABLE"


def test_element_load_error_keeps_cause() -> None:
    cause = ValueError("bad json")
    error = ElementLoadError("e2", cause=cause)

    assert error.element_id == "e2"
    assert error.cause is cause
    assert "bad json" in str(error)
