from __future__ import annotations

from enum import Enum
from typing import Tuple

from config_vault.exceptions import UnsupportedFormatError


class OutputFormat(Enum):
    PLAIN_TEXT = "Plain Text"
    JSON = "JSON"
    XML = "XML"
    YAML = "YAML"
    HTML = "HTML"
    CSV = "CSV"


def all_formats() -> Tuple[OutputFormat, ...]:
    return tuple(OutputFormat)


def format_to_string(fmt: OutputFormat) -> str:
    if not isinstance(fmt, OutputFormat):
        return "Unknown"
    return fmt.value


def string_to_format(name: str) -> OutputFormat:
    try:
        return OutputFormat(name)
    except ValueError:
        raise UnsupportedFormatError(f"Unknown format: {name}") from None
