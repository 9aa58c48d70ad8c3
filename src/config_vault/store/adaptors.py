from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Protocol, Tuple, Union

import yaml
from typing_extensions import runtime_checkable

from config_vault.exceptions import ConfigArgumentError, ConfigIOError, UnsupportedFormatError
from config_vault.formats.codecs import pretty_json
from config_vault.formats.yaml_bridge import dump_yaml, load_yaml
from config_vault.values import ValueTree, to_value_tree

logger = logging.getLogger("config_vault.store")
logger.addHandler(logging.NullHandler())

PathLike = Union[str, "os.PathLike[str]"]

VERSION_KEY = "version"


@runtime_checkable
class FileAdapterProtocol(Protocol):
    extensions: Tuple[str, ...]

    def load(self, path: PathLike) -> Dict[str, ValueTree]: ...

    def save(self, path: PathLike, config: Mapping[str, ValueTree]) -> None: ...

    def versioned(self, config: Mapping[str, ValueTree], version: str) -> Dict[str, ValueTree]: ...


def _read_text(path: PathLike) -> str:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()
    except OSError as exc:
        raise ConfigIOError(f"Failed to open config file for reading: {path}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigArgumentError(f"Config file {path} is not valid UTF-8: {exc}") from exc


def _write_text(path: PathLike, text: str) -> None:
    try:
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(text)
    except OSError as exc:
        raise ConfigIOError(f"Failed to open config file for writing: {path}") from exc


def _as_document(tree: ValueTree, path: PathLike) -> Dict[str, ValueTree]:
    if tree is None:
        return {}
    if not isinstance(tree, dict):
        raise ConfigArgumentError(
            f"Config file {path} must hold a mapping at the top level, got {type(tree).__name__}"
        )
    return tree


class JsonFileAdapter:
    extensions: Tuple[str, ...] = ("json",)

    def load(self, path: PathLike) -> Dict[str, ValueTree]:
        text = _read_text(path)
        try:
            tree = to_value_tree(json.loads(text))
        except json.JSONDecodeError as exc:
            raise ConfigArgumentError(f"Invalid JSON in {path}: {exc}") from exc
        return _as_document(tree, path)

    def save(self, path: PathLike, config: Mapping[str, ValueTree]) -> None:
        _write_text(path, pretty_json(dict(config)))

    def versioned(self, config: Mapping[str, ValueTree], version: str) -> Dict[str, ValueTree]:
        # version goes last and wins over a stored key of the same name
        return {**config, VERSION_KEY: version}


class YamlFileAdapter:
    extensions: Tuple[str, ...] = ("yaml", "yml")

    def load(self, path: PathLike) -> Dict[str, ValueTree]:
        text = _read_text(path)
        try:
            tree = load_yaml(text)
        except yaml.YAMLError as exc:
            raise ConfigArgumentError(f"Invalid YAML in {path}: {exc}") from exc
        return _as_document(tree, path)

    def save(self, path: PathLike, config: Mapping[str, ValueTree]) -> None:
        _write_text(path, dump_yaml(dict(config)))

    def versioned(self, config: Mapping[str, ValueTree], version: str) -> Dict[str, ValueTree]:
        document: Dict[str, ValueTree] = {VERSION_KEY: version}
        document.update((k, v) for k, v in config.items() if k != VERSION_KEY)
        return document


_ADAPTERS: Tuple[FileAdapterProtocol, ...] = (JsonFileAdapter(), YamlFileAdapter())


def extension_of(path: PathLike) -> str:
    return Path(path).suffix[1:].lower()


def adapter_for_path(path: PathLike) -> FileAdapterProtocol:
    ext = extension_of(path)
    for adapter in _ADAPTERS:
        if ext in adapter.extensions:
            return adapter
    logger.error("Unsupported config file format: %r (%s)", ext, path)
    raise UnsupportedFormatError(f"Unsupported config file format: {ext or str(path)}")


def backup_adapter() -> FileAdapterProtocol:
    return _ADAPTERS[0]
