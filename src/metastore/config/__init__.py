"""YAML configuration for metastore backends."""

from metastore.config.loader import (
    CONFIG_DIR_ENV_VAR,
    ConfigurationLoader,
    config_loader,
    get_backend_config,
    get_config_value,
)

__all__ = [
    "CONFIG_DIR_ENV_VAR",
    "ConfigurationLoader",
    "config_loader",
    "get_backend_config",
    "get_config_value",
]
