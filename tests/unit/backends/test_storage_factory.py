"""Unit tests for the storage backend factory."""

import pytest

from metastore.backends import BackendType, InMemoryMetaStore, SQLiteMetaStore, StorageBackendFactory
from metastore.config import ConfigurationLoader
from metastore.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _isolated_factory(monkeypatch):
    """Give each test an empty instance cache and registry copy."""
    monkeypatch.setattr(StorageBackendFactory, "_instances", {})
    monkeypatch.setattr(StorageBackendFactory, "_backend_registry", StorageBackendFactory.get_registry())
    yield
    StorageBackendFactory.shutdown_all()


@pytest.fixture
def yaml_dir(tmp_path, monkeypatch):
    (tmp_path / "base_config.yaml").write_text(
        "default_backend: sqlite\nmetastore:\n  name: configured\n  description: From YAML\n",
        encoding="utf-8",
    )
    (tmp_path / "sqlite_config.yaml").write_text(
        f"sqlite:\n  connection:\n    database_path: {tmp_path / 'factory.db'}\n    timeout_seconds: 2\n",
        encoding="utf-8",
    )
    (tmp_path / "memory_config.yaml").write_text("memory: {}\n", encoding="utf-8")
    monkeypatch.setattr(StorageBackendFactory, "config_loader", ConfigurationLoader(str(tmp_path)))
    return tmp_path


def test_explicit_type_and_config() -> None:
    store = StorageBackendFactory.create_storage(BackendType.MEMORY, {"name": "explicit"})

    assert isinstance(store, InMemoryMetaStore)
    assert store.name == "explicit"


def test_type_given_as_string() -> None:
    store = StorageBackendFactory.create_storage("SQLite", {})

    assert isinstance(store, SQLiteMetaStore)
    assert store.db_path == ":memory:"


def test_instances_are_reused_by_name() -> None:
    first = StorageBackendFactory.create_storage(BackendType.MEMORY, {})
    second = StorageBackendFactory.create_storage(BackendType.MEMORY, {})
    fresh = StorageBackendFactory.create_storage(BackendType.MEMORY, {}, use_existing=False, instance_name="other")

    assert first is second
    assert fresh is not first
    assert set(StorageBackendFactory.get_existing_instances()) == {"memory", "other"}


def test_type_and_config_from_yaml(yaml_dir) -> None:
    store = StorageBackendFactory.create_storage()

    assert isinstance(store, SQLiteMetaStore)
    assert store.name == "configured"
    assert store.description == "From YAML"
    assert store.db_path == str(yaml_dir / "factory.db")
    assert store.connection.connection_timeout == 2.0


def test_unknown_type_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        StorageBackendFactory.create_storage("redis", {})


def test_unregistered_type_is_configuration_error(monkeypatch) -> None:
    registry = StorageBackendFactory.get_registry()
    del registry[BackendType.SQLITE]
    monkeypatch.setattr(StorageBackendFactory, "_backend_registry", registry)

    with pytest.raises(ConfigurationError):
        StorageBackendFactory.create_storage(BackendType.SQLITE, {})


def test_register_backend_replaces_implementation() -> None:
    class NamedInMemoryMetaStore(InMemoryMetaStore):
        default_name = "custom"

    StorageBackendFactory.register_backend(BackendType.MEMORY, NamedInMemoryMetaStore)

    store = StorageBackendFactory.create_storage(BackendType.MEMORY, {})
    assert isinstance(store, NamedInMemoryMetaStore)
    assert store.name == "custom"


def test_shutdown_closes_and_forgets_instances() -> None:
    store = StorageBackendFactory.create_storage(BackendType.SQLITE, {})

    StorageBackendFactory.shutdown_all()

    assert StorageBackendFactory.get_existing_instances() == {}
    assert store.connection._conn is None
