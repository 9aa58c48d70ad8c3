from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from config_vault.exceptions import ConfigArgumentError, UnsupportedFormatError
from config_vault.store.adaptors import PathLike
from config_vault.store.manager import ConfigStore

logger = logging.getLogger("config_vault.registry")
logger.addHandler(logging.NullHandler())

StoreBuilder = Callable[[str], ConfigStore]

ENVIRONMENT_PRESETS: Mapping[str, Mapping[str, Any]] = {
    "development": {
        "db_host": "localhost",
        "db_port": 5432,
        "api_endpoint": "https://dev.api.example.com",
        "log_level": "debug",
        "feature_x_enabled": True,
    },
    "production": {
        "db_host": "prod.db.server",
        "db_port": 5432,
        "api_endpoint": "https://api.example.com",
        "log_level": "error",
        "feature_x_enabled": False,
    },
    "testing": {
        "db_host": "test.db.server",
        "db_port": 5432,
        "api_endpoint": "https://test.api.example.com",
        "log_level": "info",
        "feature_x_enabled": True,
    },
}


class InstanceRegistry:
    """
    Named ConfigStore instances, created on first request.

    Meant to be owned by the application's composition root and passed to
    whoever needs a store. The registry lock is separate from each store's
    own lock; lookup and insertion happen in one critical section so only
    one store is ever published per name.
    """

    def __init__(self, builder: Optional[StoreBuilder] = None) -> None:
        self._lock = threading.Lock()
        self._stores: Dict[str, ConfigStore] = {}
        self._builder: StoreBuilder = builder or ConfigStore
        logger.debug("InstanceRegistry initialized id=%s", hex(id(self)))

    def get_or_create(self, name: str = "default") -> ConfigStore:
        with self._lock:
            store = self._stores.get(name)
            if store is None:
                store = self._builder(name)
                self._stores[name] = store
                logger.info("Created config store %r", name)
            return store

    def get(self, name: str) -> Optional[ConfigStore]:
        with self._lock:
            return self._stores.get(name)

    def names(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._stores))

    def drop(self, name: str) -> Optional[ConfigStore]:
        """Forget `name` and return its store. Never called by the registry itself."""
        with self._lock:
            store = self._stores.pop(name, None)
        if store is not None:
            logger.info("Dropped config store %r", name)
        return store

    def clear(self) -> None:
        with self._lock:
            logger.debug("Clearing registry: stores=%d", len(self._stores))
            self._stores.clear()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._stores

    def __len__(self) -> int:
        with self._lock:
            return len(self._stores)


class ConfigFactory:
    """Convenience constructors on top of an InstanceRegistry."""

    def __init__(self, registry: InstanceRegistry) -> None:
        self._registry = registry
        self._pool_lock = threading.Lock()
        self._pool: Dict[str, ConfigStore] = {}

    @property
    def registry(self) -> InstanceRegistry:
        return self._registry

    def create_config(self, name: str = "default") -> ConfigStore:
        return self._registry.get_or_create(name)

    def create_new_config_from_existing(self, name: str, file_path: PathLike) -> Optional[ConfigStore]:
        """
        Return the named store after loading `file_path` into it, or None if the
        file's extension is not supported. An unreadable file is only logged.
        """
        config = self.create_config(name)
        try:
            config.load_from_file(file_path)
        except UnsupportedFormatError as exc:
            logger.error("Failed to load configuration from file: %s. Error: %s", file_path, exc)
            return None
        return config

    def create_config_with_defaults(self, name: str, defaults: Mapping[str, Any]) -> ConfigStore:
        config = self.create_config(name)
        for key, value in defaults.items():
            config.set(key, value)
        return config

    def create_env_config(self, name: str, environment: str) -> ConfigStore:
        try:
            preset = ENVIRONMENT_PRESETS[environment]
        except KeyError:
            raise ConfigArgumentError(f"Unsupported environment: {environment}") from None
        return self.create_config_with_defaults(name, preset)

    def create_env_loaded_config(self, name: str) -> ConfigStore:
        config = self.create_config(name)
        config.load_from_env()
        logger.info("Configuration loaded from environment variables for: %s", name)
        return config

    def create_thread_safe_config(self, name: str = "default") -> ConfigStore:
        # get_or_create is already atomic per registry
        config = self.create_config(name)
        logger.debug("Thread-safe configuration created or retrieved for: %s", name)
        return config

    def get_pooled_config(self, name: str = "default") -> ConfigStore:
        with self._pool_lock:
            config = self._pool.get(name)
            if config is None:
                config = self._pool[name] = self.create_config(name)
                logger.debug("New configuration created and added to pool for: %s", name)
            else:
                logger.debug("Configuration retrieved from pool for: %s", name)
            return config
