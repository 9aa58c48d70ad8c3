"""
config_vault: a thread-safe key/value configuration store with pluggable output formats.

- Values are generic trees (null, bool, int, float, str, list, dict).
- Stores persist to JSON or YAML, overlay environment variables and notify change listeners.
- Output can be rendered as plain text, JSON, XML, YAML, HTML or CSV.
- Named stores are handed out by an explicit InstanceRegistry.
"""

from __future__ import annotations

from config_vault.exceptions import (
    ConfigArgumentError,
    ConfigConsumedError,
    ConfigError,
    ConfigIOError,
    ConfigNotFoundError,
    ConfigReentrancyError,
    ConfigValidationError,
    UnsupportedFormatError,
)
from config_vault.formats import (
    FormatDispatcher,
    OutputFormat,
    apply_output_format,
    format_to_string,
    get_output_format,
    list_output_formats,
    reset_output_format,
    serialize,
    set_format_and_output,
    set_output_format,
    string_to_format,
)
from config_vault.registry import ConfigFactory, InstanceRegistry
from config_vault.store import DEFAULT_VERSION, ConfigStore
from config_vault.values import ValueTree, is_value_tree, to_value_tree

__all__ = [
    "ConfigStore",
    "InstanceRegistry",
    "ConfigFactory",
    "DEFAULT_VERSION",
    "ValueTree",
    "is_value_tree",
    "to_value_tree",
    "OutputFormat",
    "FormatDispatcher",
    "format_to_string",
    "string_to_format",
    "set_output_format",
    "get_output_format",
    "list_output_formats",
    "reset_output_format",
    "serialize",
    "apply_output_format",
    "set_format_and_output",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigArgumentError",
    "ConfigValidationError",
    "UnsupportedFormatError",
    "ConfigIOError",
    "ConfigReentrancyError",
    "ConfigConsumedError",
]
