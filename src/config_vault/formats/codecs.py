from __future__ import annotations

import csv
import io
import json
from typing import Any, Dict, Iterable, Mapping, Protocol, Sequence

from typing_extensions import runtime_checkable

from config_vault.formats.types import OutputFormat
from config_vault.formats.yaml_bridge import dump_yaml
from config_vault.values import ValueTree

__all__ = [
    "Codec",
    "PlainTextCodec",
    "JsonCodec",
    "XmlCodec",
    "YamlCodec",
    "HtmlCodec",
    "CsvCodec",
    "compact_json",
    "pretty_json",
    "default_codecs",
]


def compact_json(value: ValueTree) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def pretty_json(value: ValueTree) -> str:
    return json.dumps(value, indent=4, ensure_ascii=False)


def _element_text(value: ValueTree) -> str:
    # strings go out raw, everything else as compact JSON
    if isinstance(value, str):
        return value
    return compact_json(value)


@runtime_checkable
class Codec(Protocol):
    """One output encoding. `entries` is a flat key -> tree mapping such as a store snapshot."""

    def encode_text(self, text: str) -> str: ...

    def encode_tree(self, tree: ValueTree) -> str: ...

    def encode_entries(self, entries: Mapping[str, ValueTree]) -> str: ...

    def unsupported(self) -> str: ...


class PlainTextCodec:
    def encode_text(self, text: str) -> str:
        return text + "\n"

    def encode_tree(self, tree: ValueTree) -> str:
        return compact_json(tree) + "\n"

    def encode_entries(self, entries: Mapping[str, ValueTree]) -> str:
        return "".join(f"{key}: {compact_json(value)}\n" for key, value in entries.items())

    def unsupported(self) -> str:
        return "No custom plain text format available."


class JsonCodec:
    def encode_text(self, text: str) -> str:
        return pretty_json({"output": text}) + "\n"

    def encode_tree(self, tree: ValueTree) -> str:
        return pretty_json(tree) + "\n"

    def encode_entries(self, entries: Mapping[str, ValueTree]) -> str:
        return pretty_json(dict(entries)) + "\n"

    def unsupported(self) -> str:
        return '{"unsupported_type": "No custom JSON format available."}'


class XmlCodec:
    """
    Element-per-key XML. Neither keys nor values are escaped, so arbitrary
    content can produce a document that is not well-formed.
    """

    def encode_text(self, text: str) -> str:
        return f"<output>{text}</output>\n"

    def encode_tree(self, tree: ValueTree) -> str:
        if isinstance(tree, dict):
            return self.encode_entries(tree)
        if isinstance(tree, list):
            return self._wrap(f"  <item>{_element_text(item)}</item>\n" for item in tree)
        return f"<output>{_element_text(tree)}</output>\n"

    def encode_entries(self, entries: Mapping[str, ValueTree]) -> str:
        return self._wrap(
            f"  <{key}>{_element_text(value)}</{key}>\n" for key, value in entries.items()
        )

    def unsupported(self) -> str:
        return "<unsupported_type>No custom XML format available.</unsupported_type>"

    @staticmethod
    def _wrap(children: Iterable[str]) -> str:
        return "<output>\n" + "".join(children) + "</output>\n"


class YamlCodec:
    def encode_text(self, text: str) -> str:
        return dump_yaml({"output": text})

    def encode_tree(self, tree: ValueTree) -> str:
        return dump_yaml(tree)

    def encode_entries(self, entries: Mapping[str, ValueTree]) -> str:
        return dump_yaml(dict(entries))

    def unsupported(self) -> str:
        return "unsupported_type: No custom YAML format available.\n"


class HtmlCodec:
    def encode_text(self, text: str) -> str:
        return f"<html><body><p>{text}</p></body></html>\n"

    def encode_tree(self, tree: ValueTree) -> str:
        return f"<html><body><pre>{pretty_json(tree)}</pre></body></html>\n"

    def encode_entries(self, entries: Mapping[str, ValueTree]) -> str:
        return self.encode_tree(dict(entries))

    def unsupported(self) -> str:
        return "<html><body><p>No custom HTML format available.</p></body></html>"


class CsvCodec:
    """Every field quoted; one row per mapping entry or sequence item."""

    def encode_text(self, text: str) -> str:
        return self._rows([["output", text]])

    def encode_tree(self, tree: ValueTree) -> str:
        if isinstance(tree, dict):
            return self.encode_entries(tree)
        if isinstance(tree, list):
            return self._rows([_element_text(item)] for item in tree)
        return self._rows([["output", _element_text(tree)]])

    def encode_entries(self, entries: Mapping[str, ValueTree]) -> str:
        return self._rows([key, _element_text(value)] for key, value in entries.items())

    def unsupported(self) -> str:
        return "key,value\nNo custom CSV format available,"

    @staticmethod
    def _rows(rows: Iterable[Sequence[Any]]) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerows(rows)
        return buf.getvalue()


def default_codecs() -> Dict[OutputFormat, Codec]:
    return {
        OutputFormat.PLAIN_TEXT: PlainTextCodec(),
        OutputFormat.JSON: JsonCodec(),
        OutputFormat.XML: XmlCodec(),
        OutputFormat.YAML: YamlCodec(),
        OutputFormat.HTML: HtmlCodec(),
        OutputFormat.CSV: CsvCodec(),
    }
