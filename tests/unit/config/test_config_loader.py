"""Unit tests for the YAML configuration loader."""

import textwrap

import pytest

from metastore.config import CONFIG_DIR_ENV_VAR, ConfigurationLoader
from metastore.exceptions import ConfigurationError, ErrorKind


def _write(directory, filename: str, content: str) -> None:
    (directory / filename).write_text(textwrap.dedent(content), encoding="utf-8")


@pytest.fixture
def config_dir(tmp_path):
    _write(tmp_path, "base_config.yaml", """
        default_backend: sqlite
        metastore:
          name: base
          description: Base description
          tags: [a]
    """)
    _write(tmp_path, "sqlite_config.yaml", """
        metastore:
          description: SQLite description
          tags: [b]
        sqlite:
          connection:
            database_path: /tmp/metastore.db
            timeout_seconds: 5
    """)
    _write(tmp_path, "memory_config.yaml", "")
    return tmp_path


def test_shipped_defaults_load() -> None:
    loader = ConfigurationLoader()

    config = loader.load_config("sqlite")

    assert config["default_backend"] == "memory"
    assert config["sqlite"]["connection"]["database_path"] == ":memory:"
    assert loader.load_config("memory")["metastore"]["description"]


def test_backend_file_is_deep_merged_over_base(config_dir) -> None:
    loader = ConfigurationLoader(str(config_dir))

    config = loader.load_config("sqlite")

    assert config["metastore"]["name"] == "base"
    assert config["metastore"]["description"] == "SQLite description"
    assert config["metastore"]["tags"] == ["b"]
    assert config["sqlite"]["connection"]["timeout_seconds"] == 5
    assert len(loader.loaded_files) == 2


def test_empty_backend_file_yields_base(config_dir) -> None:
    loader = ConfigurationLoader(str(config_dir))

    assert loader.load_config("memory")["metastore"]["description"] == "Base description"


def test_get_value_by_dotted_path(config_dir) -> None:
    loader = ConfigurationLoader(str(config_dir))
    assert loader.get_value("sqlite.connection.timeout_seconds", default=1) == 1

    loader.load_config("sqlite")

    assert loader.get_value("sqlite.connection.timeout_seconds") == 5
    assert loader.get_value("sqlite.connection.missing", default="fallback") == "fallback"
    assert loader.get_value("metastore.name.deeper") is None


def test_get_config_uses_default_backend(config_dir) -> None:
    loader = ConfigurationLoader(str(config_dir))

    config = loader.get_config()

    assert config["sqlite"]["connection"]["database_path"] == "/tmp/metastore.db"
    assert loader.get_config() is config


def test_missing_file_raises_configuration_error(config_dir) -> None:
    loader = ConfigurationLoader(str(config_dir))

    with pytest.raises(ConfigurationError) as excinfo:
        loader.load_config("postgres")

    assert excinfo.value.kind is ErrorKind.CONFIGURATION


def test_malformed_yaml_raises_configuration_error(config_dir) -> None:
    _write(config_dir, "broken_config.yaml", "key: [unclosed\n")
    loader = ConfigurationLoader(str(config_dir))

    with pytest.raises(ConfigurationError):
        loader.load_backend_config("broken")


def test_non_mapping_document_is_rejected(config_dir) -> None:
    _write(config_dir, "list_config.yaml", "- a\n- b\n")
    loader = ConfigurationLoader(str(config_dir))

    with pytest.raises(ConfigurationError):
        loader.load_backend_config("list")


def test_environment_variable_overrides_directory(config_dir, monkeypatch) -> None:
    monkeypatch.setenv(CONFIG_DIR_ENV_VAR, str(config_dir))

    loader = ConfigurationLoader()

    assert loader.config_dir == str(config_dir)
    assert loader.load_base_config()["default_backend"] == "sqlite"
