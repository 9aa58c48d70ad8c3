from __future__ import annotations

import logging
from typing import Any, Optional, TextIO, Tuple, TypeVar

from .codecs import (
    Codec,
    CsvCodec,
    HtmlCodec,
    JsonCodec,
    PlainTextCodec,
    XmlCodec,
    YamlCodec,
    compact_json,
    pretty_json,
)
from .dispatcher import FormatDispatcher, FormatLike, SerializerFactory, coerce_format
from .types import OutputFormat, format_to_string, string_to_format
from .yaml_bridge import dump_yaml, load_yaml, probe_scalar, tree_to_yaml_node, yaml_node_to_tree

logger = logging.getLogger("config_vault.formats")
logger.addHandler(logging.NullHandler())

__all__ = [
    "DISPATCHER",
    "OutputFormat",
    "FormatDispatcher",
    "SerializerFactory",
    "Codec",
    "PlainTextCodec",
    "JsonCodec",
    "XmlCodec",
    "YamlCodec",
    "HtmlCodec",
    "CsvCodec",
    "compact_json",
    "pretty_json",
    "coerce_format",
    "format_to_string",
    "string_to_format",
    "set_output_format",
    "get_output_format",
    "list_output_formats",
    "reset_output_format",
    "serialize",
    "apply_output_format",
    "set_format_and_output",
    "tree_to_yaml_node",
    "yaml_node_to_tree",
    "probe_scalar",
    "dump_yaml",
    "load_yaml",
]

# Process-wide dispatcher used whenever a caller does not pass its own
DISPATCHER = FormatDispatcher()

S = TypeVar("S", bound=TextIO)


def set_output_format(fmt: FormatLike) -> None:
    DISPATCHER.set_format(fmt)


def get_output_format() -> OutputFormat:
    return DISPATCHER.get_format()


def list_output_formats() -> Tuple[OutputFormat, ...]:
    return DISPATCHER.list_formats()


def reset_output_format() -> None:
    DISPATCHER.reset()


def serialize(data: Any, fmt: Optional[FormatLike] = None) -> str:
    return DISPATCHER.serialize(data, fmt)


def apply_output_format(stream: S, data: Any, fmt: Optional[FormatLike] = None) -> S:
    return DISPATCHER.apply(stream, data, fmt)


def set_format_and_output(fmt: FormatLike, config: Any, stream: S) -> S:
    """Make `fmt` the current format, then render `config` (anything with ``output_config``) in it."""
    resolved = coerce_format(fmt)
    set_output_format(resolved)
    logger.debug("Rendering %r as %s", config, format_to_string(resolved))
    return config.output_config(stream, resolved)
