"""
Bridge between ValueTree and PyYAML node graphs.

Reading goes through `yaml.compose` so scalar typing is decided here rather
than by PyYAML's resolver: a plain scalar is probed Bool -> Int -> Float ->
String and the first successful parse wins. Quoted scalars are always
strings. Writing builds nodes directly and quotes any string whose plain
form would be probed as something else, so emitted documents read back to
the same tree.
"""

from __future__ import annotations

import math
import re
from typing import Any, Dict, List, Optional, Set

import yaml
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from config_vault.exceptions import ConfigArgumentError
from config_vault.values import INT64_MAX, INT64_MIN, ValueKind, ValueTree, kind_of

__all__ = [
    "tree_to_yaml_node",
    "yaml_node_to_tree",
    "probe_scalar",
    "dump_yaml",
    "load_yaml",
]

NULL_TAG = "tag:yaml.org,2002:null"
BOOL_TAG = "tag:yaml.org,2002:bool"
INT_TAG = "tag:yaml.org,2002:int"
FLOAT_TAG = "tag:yaml.org,2002:float"
STR_TAG = "tag:yaml.org,2002:str"
SEQ_TAG = "tag:yaml.org,2002:seq"
MAP_TAG = "tag:yaml.org,2002:map"

_NULL_WORDS = frozenset({"", "~", "null", "Null", "NULL"})


def _case_variants(*words: str) -> frozenset:
    out = set()
    for w in words:
        out.update((w, w.upper(), w.capitalize()))
    return frozenset(out)


_TRUE_WORDS = _case_variants("y", "yes", "true", "on")
_FALSE_WORDS = _case_variants("n", "no", "false", "off")

_INT_RE = re.compile(r"[-+]?(?:0x[0-9a-fA-F]+|0o[0-7]+|[0-9]+)")
_FLOAT_RE = re.compile(r"[-+]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][-+]?[0-9]+)?")
_SPECIAL_FLOATS = {
    **{w: math.inf for w in (".inf", ".Inf", ".INF", "+.inf", "+.Inf", "+.INF")},
    **{w: -math.inf for w in ("-.inf", "-.Inf", "-.INF")},
    **{w: math.nan for w in (".nan", ".NaN", ".NAN")},
}


def _parse_bool(text: str) -> Optional[bool]:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    return None


def _parse_int(text: str) -> Optional[int]:
    if not _INT_RE.fullmatch(text):
        return None
    sign = -1 if text.startswith("-") else 1
    body = text.lstrip("+-")
    if body.startswith("0x"):
        value = int(body[2:], 16)
    elif body.startswith("0o"):
        value = int(body[2:], 8)
    else:
        value = int(body, 10)
    value *= sign
    if not (INT64_MIN <= value <= INT64_MAX):
        return None
    return value


def _parse_float(text: str) -> Optional[float]:
    if text in _SPECIAL_FLOATS:
        return _SPECIAL_FLOATS[text]
    if not _FLOAT_RE.fullmatch(text):
        return None
    return float(text)


def probe_scalar(text: str) -> ValueTree:
    """Type a plain scalar: Bool, then Int, then Float, falling back to the text itself."""
    as_bool = _parse_bool(text)
    if as_bool is not None:
        return as_bool
    as_int = _parse_int(text)
    if as_int is not None:
        return as_int
    as_float = _parse_float(text)
    if as_float is not None:
        return as_float
    return text


def _float_text(value: float) -> str:
    if math.isnan(value):
        return ".nan"
    if math.isinf(value):
        return ".inf" if value > 0 else "-.inf"
    text = repr(value).lower()
    if "." not in text and "e" in text:
        text = text.replace("e", ".0e", 1)
    return text


def _reads_back_as_string(text: str) -> bool:
    if text in _NULL_WORDS:
        return False
    return isinstance(probe_scalar(text), str)


def _string_node(text: str) -> ScalarNode:
    style = None if _reads_back_as_string(text) else '"'
    return ScalarNode(STR_TAG, text, style=style)


def tree_to_yaml_node(tree: ValueTree) -> Node:
    kind = kind_of(tree)
    if kind is ValueKind.NULL:
        return ScalarNode(NULL_TAG, "null")
    if kind is ValueKind.BOOL:
        return ScalarNode(BOOL_TAG, "true" if tree else "false")
    if kind is ValueKind.INT:
        return ScalarNode(INT_TAG, str(tree))
    if kind is ValueKind.FLOAT:
        return ScalarNode(FLOAT_TAG, _float_text(tree))  # type: ignore[arg-type]
    if kind is ValueKind.STRING:
        return _string_node(tree)  # type: ignore[arg-type]
    if kind is ValueKind.SEQUENCE:
        items = [tree_to_yaml_node(v) for v in tree]  # type: ignore[union-attr]
        return SequenceNode(SEQ_TAG, items, flow_style=False)
    if kind is ValueKind.MAPPING:
        pairs = []
        for k, v in tree.items():  # type: ignore[union-attr]
            if not isinstance(k, str):
                raise ConfigArgumentError(f"Mapping keys must be str, got {type(k).__name__}")
            pairs.append((_string_node(k), tree_to_yaml_node(v)))
        return MappingNode(MAP_TAG, pairs, flow_style=False)
    raise ConfigArgumentError(f"Unsupported value type {type(tree).__name__}")


def yaml_node_to_tree(node: Node) -> ValueTree:
    return _node_to_tree(node, set())


def _node_to_tree(node: Node, ancestors: Set[int]) -> ValueTree:
    if isinstance(node, ScalarNode):
        if node.style is not None:
            return node.value
        if node.value in _NULL_WORDS:
            return None
        return probe_scalar(node.value)

    marker = id(node)
    if marker in ancestors:
        raise ConfigArgumentError("YAML document contains a recursive alias")
    ancestors.add(marker)
    try:
        if isinstance(node, SequenceNode):
            items: List[ValueTree] = [_node_to_tree(n, ancestors) for n in node.value]
            return items
        if isinstance(node, MappingNode):
            out: Dict[str, ValueTree] = {}
            for key_node, value_node in node.value:
                if not isinstance(key_node, ScalarNode):
                    raise ConfigArgumentError("YAML mapping keys must be scalars")
                out[key_node.value] = _node_to_tree(value_node, ancestors)
            return out
    finally:
        ancestors.discard(marker)
    raise ConfigArgumentError(f"Unsupported YAML node type {type(node).__name__}")


def dump_yaml(tree: Any) -> str:
    return yaml.serialize(tree_to_yaml_node(tree), Dumper=yaml.SafeDumper, allow_unicode=True)


def load_yaml(text: str) -> ValueTree:
    node = yaml.compose(text, Loader=yaml.SafeLoader)
    if node is None:
        return None
    return yaml_node_to_tree(node)
