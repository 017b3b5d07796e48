"""
Storage Backend Factory

This module provides the StorageBackendFactory class for creating metastore
backends. The backend type and its settings come from the caller or, when
omitted, from the YAML configuration. Named instances are kept so repeated
requests for the same backend share one store.
"""

import logging
from typing import Any, Dict, Optional, Type, Union

from metastore.backends.base import BaseMetaStore
from metastore.backends.factory.backend_type import BackendType
from metastore.backends.in_memory import InMemoryMetaStore
from metastore.backends.sqlite import SQLiteMetaStore
from metastore.config.loader import DEFAULT_BACKEND, ConfigurationLoader, config_loader
from metastore.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


_MASKED_CONFIG_KEYS = frozenset({"password", "password_key", "password_passphrase", "secret", "token", "api_key"})


def _masked(config: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a backend config that is safe to log."""
    return {
        key: _masked(value) if isinstance(value, dict)
        else ("***" if str(key).lower() in _MASKED_CONFIG_KEYS else value)
        for key, value in config.items()
    }


class StorageBackendFactory:
    """
    Factory for creating metastore backend instances.

    The registry maps each BackendType to the class implementing it;
    ``register_backend`` adds or replaces entries.
    """

    _backend_registry: Dict[BackendType, Type[BaseMetaStore]] = {
        BackendType.MEMORY: InMemoryMetaStore,
        BackendType.SQLITE: SQLiteMetaStore,
    }

    # Created stores by instance name
    _instances: Dict[str, BaseMetaStore] = {}

    # Loader consulted when the caller gives no type or no config
    config_loader: ConfigurationLoader = config_loader

    @classmethod
    def create_storage(
        cls,
        backend_type: Optional[Union[BackendType, str]] = None,
        config: Optional[Dict[str, Any]] = None,
        use_existing: bool = True,
        instance_name: Optional[str] = None,
    ) -> BaseMetaStore:
        """
        Create a metastore backend.

        Args:
            backend_type: Backend to create; defaults to ``default_backend``
                from the base configuration
            config: Backend configuration (``name``, ``description`` and the
                backend's own keys); loaded from YAML when omitted
            use_existing: Return the store already created under the same
                instance name, if any
            instance_name: Key under which the store is kept; derived from the
                backend type and database path when omitted

        Returns:
            The metastore backend

        Raises:
            ConfigurationError: If the backend type is not supported or its
                configuration cannot be loaded
        """
        backend_type = cls._resolve_backend_type(backend_type)

        if backend_type not in cls._backend_registry:
            raise ConfigurationError(
                f"Unsupported backend type: {backend_type.value}. "
                f"Supported types: {[t.value for t in cls._backend_registry]}"
            )
        backend_class = cls._backend_registry[backend_type]

        if config is None:
            config = cls._config_from_files(backend_type)

        if instance_name is None:
            instance_name = backend_type.value
            database_path = config.get("database_path") or config.get("connection", {}).get("database_path")
            if database_path and database_path != ":memory:":
                instance_name += f"_{database_path}"

        if use_existing and instance_name in cls._instances:
            logger.debug(f"Reusing existing metastore instance: {instance_name}")
            return cls._instances[instance_name]

        logger.info(f"Creating new {backend_type.value} metastore '{instance_name}'")
        try:
            backend = backend_class(config)
        except TypeError as error:
            logger.error(
                "Failed to initialize backend %s with config %s: %s",
                backend_class.__name__,
                _masked(config),
                error,
            )
            raise

        cls._instances[instance_name] = backend
        return backend

    @classmethod
    def _resolve_backend_type(cls, backend_type: Optional[Union[BackendType, str]]) -> BackendType:
        if backend_type is None:
            base_config = cls.config_loader.load_base_config()
            backend_type = base_config.get("default_backend") or DEFAULT_BACKEND
        if isinstance(backend_type, BackendType):
            return backend_type
        try:
            return BackendType(str(backend_type).lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unsupported backend type: {backend_type}. "
                f"Supported types: {[t.value for t in BackendType]}"
            ) from e

    @classmethod
    def _config_from_files(cls, backend_type: BackendType) -> Dict[str, Any]:
        """Flatten the YAML ``metastore`` section and the backend's own section."""
        loaded = cls.config_loader.load_config(backend_type.value)
        config: Dict[str, Any] = {}
        config.update(loaded.get("metastore") or {})
        config.update(loaded.get(backend_type.value) or {})
        return config

    @classmethod
    def register_backend(cls, backend_type: BackendType, backend_class: Type[BaseMetaStore]) -> None:
        """
        Register a new backend implementation.

        Args:
            backend_type: The backend type to register
            backend_class: The class implementing it
        """
        cls._backend_registry[backend_type] = backend_class
        logger.info(f"Registered {backend_class.__name__} implementation for {backend_type.value} backend")

    @classmethod
    def get_registry(cls) -> Dict[BackendType, Type[BaseMetaStore]]:
        return cls._backend_registry.copy()

    @classmethod
    def get_existing_instances(cls) -> Dict[str, BaseMetaStore]:
        return cls._instances.copy()

    @classmethod
    def shutdown_all(cls) -> None:
        """
        Close every created instance that holds resources and forget them all.
        """
        for instance_name, backend in list(cls._instances.items()):
            close = getattr(backend, "close", None)
            if callable(close):
                try:
                    close()
                except Exception as e:
                    logger.exception(f"Error shutting down metastore instance {instance_name}: {str(e)}")
            del cls._instances[instance_name]
            logger.info(f"Shutdown metastore instance: {instance_name}")
