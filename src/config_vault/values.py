from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Set, Union

from config_vault.exceptions import ConfigArgumentError

__all__ = [
    "ValueTree",
    "ValueKind",
    "INT64_MIN",
    "INT64_MAX",
    "kind_of",
    "is_value_tree",
    "to_value_tree",
    "copy_tree",
]

ValueTree = Union[None, bool, int, float, str, List["ValueTree"], Dict[str, "ValueTree"]]

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ValueKind(Enum):
    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def kind_of(value: Any) -> Optional[ValueKind]:
    """
    Return the ValueKind of the top level of `value`, or None if it is not a tree node.

    bool is checked before int since bool subclasses int.
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INT
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    if isinstance(value, (dict, MappingProxyType)):
        return ValueKind.MAPPING
    return None


def is_value_tree(value: Any) -> bool:
    try:
        to_value_tree(value)
    except ConfigArgumentError:
        return False
    return True


def to_value_tree(value: Any) -> ValueTree:
    """
    Return a detached copy of `value` as plain lists, dicts and scalars.

    Tuples become lists and read-only mappings become dicts. Raises
    ConfigArgumentError for unsupported types, non-string mapping keys,
    integers outside the signed 64-bit range, and cycles.
    """
    return _recursive_tree_copy(value, set())


def copy_tree(value: ValueTree) -> ValueTree:
    """Copy a value that is already known to be a tree."""
    if isinstance(value, list):
        return [copy_tree(v) for v in value]
    if isinstance(value, dict):
        return {k: copy_tree(v) for k, v in value.items()}
    return value


def _recursive_tree_copy(value: Any, ancestors: Set[int]) -> ValueTree:
    kind = kind_of(value)
    if kind is None:
        raise ConfigArgumentError(f"Unsupported value type {type(value).__name__}")
    if kind is ValueKind.INT and not (INT64_MIN <= value <= INT64_MAX):
        raise ConfigArgumentError(f"Integer {value} does not fit in 64 bits")
    if kind not in (ValueKind.SEQUENCE, ValueKind.MAPPING):
        return value

    marker = id(value)
    if marker in ancestors:
        raise ConfigArgumentError("Value contains a cycle")
    ancestors.add(marker)
    try:
        if kind is ValueKind.SEQUENCE:
            return [_recursive_tree_copy(v, ancestors) for v in value]
        out: Dict[str, ValueTree] = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise ConfigArgumentError(f"Mapping keys must be str, got {type(k).__name__}")
            out[k] = _recursive_tree_copy(v, ancestors)
        return out
    finally:
        ancestors.discard(marker)
