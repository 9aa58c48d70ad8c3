from __future__ import annotations

from config_vault.store.adaptors import (
    FileAdapterProtocol,
    JsonFileAdapter,
    YamlFileAdapter,
    adapter_for_path,
)
from config_vault.store.manager import DEFAULT_VERSION, ConfigStore

__all__ = [
    "ConfigStore",
    "DEFAULT_VERSION",
    "FileAdapterProtocol",
    "JsonFileAdapter",
    "YamlFileAdapter",
    "adapter_for_path",
]
