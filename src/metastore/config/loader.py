"""
Metastore Configuration Loader

Backend settings live in YAML files: ``base_config.yaml`` holds what every
backend shares and ``<backend>_config.yaml`` holds the settings of one backend.
Loading a backend reads both and lays the backend file over the base file;
nested mappings merge key by key while any other value, lists included, is
replaced.

Defaults ship inside the package. Point ``METASTORE_CONFIG_DIR`` at another
directory to use different files.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from metastore.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV_VAR = "METASTORE_CONFIG_DIR"
DEFAULT_BACKEND = "memory"

BASE_CONFIG_FILE = "base_config.yaml"
SHIPPED_CONFIG_DIR = Path(__file__).resolve().parent / "backends"


class ConfigurationLoader:
    """
    Reads and merges the YAML configuration of metastore backends.

    The last merged configuration stays on ``config``; ``get_value`` answers
    dotted lookups from it.
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Directory holding the YAML files. Falls back to
                ``METASTORE_CONFIG_DIR``, then to the shipped defaults.
        """
        self.config_dir = config_dir or os.environ.get(CONFIG_DIR_ENV_VAR) or str(SHIPPED_CONFIG_DIR)
        self.config: Dict[str, Any] = {}
        self.loaded_files: List[str] = []

        logger.debug(f"Configuration directory for metastore backends: {self.config_dir}")

    def load_base_config(self) -> Dict[str, Any]:
        return self.load_config_file(BASE_CONFIG_FILE)

    def load_backend_config(self, backend_type: str) -> Dict[str, Any]:
        return self.load_config_file(f"{backend_type}_config.yaml")

    def load_config_file(self, filename: str) -> Dict[str, Any]:
        """
        Parse one YAML file of the configuration directory.

        Args:
            filename: File name relative to ``config_dir``

        Returns:
            The parsed mapping; an empty document gives an empty dict

        Raises:
            ConfigurationError: If the file is missing, unreadable, not valid
                YAML or not a mapping
        """
        path = Path(self.config_dir) / filename

        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            logger.error(f"Missing configuration file {path}")
            raise ConfigurationError(f"Configuration file not found: {path}") from e
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in {path}: {e}")
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            logger.error(f"Cannot read {path}: {e}")
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

        if document is None:
            document = {}
        elif not isinstance(document, dict):
            raise ConfigurationError(
                f"{path} must contain a mapping, found {type(document).__name__}"
            )

        self.loaded_files.append(str(path))
        logger.debug(f"Read configuration file {path}")
        return document

    def load_config(self, backend_type: str) -> Dict[str, Any]:
        """
        Merge the base file with the file of ``backend_type`` and keep the result.

        Raises:
            ConfigurationError: If either file cannot be loaded
        """
        merged = merge_dicts(self.load_base_config(), self.load_backend_config(backend_type))
        self.config = merged
        logger.info(f"Configuration loaded for metastore backend '{backend_type}'")
        return merged

    def get_config(self, backend_type: Optional[str] = None) -> Dict[str, Any]:
        """
        Return the configuration of ``backend_type``.

        Without a backend type the last merged configuration is returned; when
        nothing was loaded yet, the base file's ``default_backend`` is loaded.
        """
        if backend_type:
            return self.load_config(backend_type)
        if self.config:
            return self.config

        default_backend = self.load_base_config().get("default_backend") or DEFAULT_BACKEND
        logger.debug(f"Loading configuration of default backend '{default_backend}'")
        return self.load_config(default_backend)

    def get_value(self, key_path: str, default: Any = None) -> Any:
        """
        Look up a value by dotted path, e.g. ``sqlite.connection.timeout_seconds``.

        Returns ``default`` when a segment is missing or nothing is loaded yet.
        """
        if not self.config:
            logger.warning(f"Lookup of '{key_path}' before any configuration was loaded")
            return default

        node: Any = self.config
        for segment in key_path.split("."):
            if not isinstance(node, dict) or segment not in node:
                return default
            node = node[segment]
        return node


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a new dict with ``override`` merged over ``base``; inputs are left untouched."""
    merged: Dict[str, Any] = {}
    for key, value in base.items():
        merged[key] = merge_dicts(value, {}) if isinstance(value, dict) else _copy_value(value)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_dicts(current, value)
        else:
            merged[key] = merge_dicts(value, {}) if isinstance(value, dict) else _copy_value(value)
    return merged


def _copy_value(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


config_loader = ConfigurationLoader()


def get_backend_config(backend_type: str) -> Dict[str, Any]:
    """Merged configuration of ``backend_type``, read with the shared loader."""
    return config_loader.load_config(backend_type)


def get_config_value(key_path: str, backend_type: Optional[str] = None, default: Any = None) -> Any:
    """
    Dotted lookup on the shared loader.

    Args:
        key_path: Dot-separated path, e.g. ``metastore.description``
        backend_type: Backend to load first; the current (or default)
            configuration is used when omitted
        default: Returned when the path is not present
    """
    config_loader.get_config(backend_type)
    return config_loader.get_value(key_path, default)
