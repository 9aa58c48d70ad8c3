from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, TextIO, Tuple, TypeVar, Union

from config_vault.exceptions import ConfigArgumentError, UnsupportedFormatError
from config_vault.formats.codecs import Codec, default_codecs
from config_vault.formats.types import OutputFormat, all_formats, string_to_format
from config_vault.locks import ReadWriteLock
from config_vault.values import to_value_tree

logger = logging.getLogger("config_vault.formats")
logger.addHandler(logging.NullHandler())

S = TypeVar("S", bound=TextIO)

FormatLike = Union[OutputFormat, str]


def coerce_format(fmt: FormatLike) -> OutputFormat:
    if isinstance(fmt, OutputFormat):
        return fmt
    if isinstance(fmt, str):
        return string_to_format(fmt)
    raise UnsupportedFormatError(f"Unsupported format: {fmt!r}")


class SerializerFactory:
    """
    Routes a value to the codec registered for a format.

    str is rendered as bare text, a read-only mapping (``MappingProxyType``,
    as handed out by ``ConfigStore.snapshot()``) as key/value entries, any
    other ValueTree as a tree. Anything else gets the codec's placeholder.
    """

    def __init__(self, codecs: Optional[Mapping[OutputFormat, Codec]] = None) -> None:
        self._codecs: Dict[OutputFormat, Codec] = dict(codecs or default_codecs())

    def codec_for(self, fmt: OutputFormat) -> Codec:
        try:
            return self._codecs[fmt]
        except (KeyError, TypeError):
            raise UnsupportedFormatError(f"Unsupported format: {fmt!r}") from None

    def serialize(self, data: Any, fmt: OutputFormat) -> str:
        codec = self.codec_for(fmt)
        if isinstance(data, str):
            return codec.encode_text(data)
        try:
            tree = to_value_tree(data)
        except ConfigArgumentError as exc:
            logger.debug("No %s encoding for %s: %s", fmt.value, type(data).__name__, exc)
            return codec.unsupported()
        if isinstance(data, MappingProxyType):
            return codec.encode_entries(tree)  # type: ignore[arg-type]
        return codec.encode_tree(tree)


class FormatDispatcher:
    """Holds the current output format behind a reader-writer lock; last writer wins."""

    DEFAULT_FORMAT = OutputFormat.PLAIN_TEXT

    def __init__(
        self,
        default: OutputFormat = DEFAULT_FORMAT,
        factory: Optional[SerializerFactory] = None,
    ) -> None:
        self._rw = ReadWriteLock()
        self._current = default
        self._factory = factory or SerializerFactory()

    def set_format(self, fmt: FormatLike) -> None:
        resolved = coerce_format(fmt)
        with self._rw.write_locked():
            self._current = resolved
        logger.debug("Output format set to %s", resolved.value)

    def get_format(self) -> OutputFormat:
        with self._rw.read_locked():
            return self._current

    def list_formats(self) -> Tuple[OutputFormat, ...]:
        return all_formats()

    def reset(self) -> None:
        self.set_format(self.DEFAULT_FORMAT)

    def serialize(self, data: Any, fmt: Optional[FormatLike] = None) -> str:
        """
        Render `data` in `fmt`, or in the current format when `fmt` is None.

        An unknown format raises UnsupportedFormatError. A failure inside a
        codec is logged and yields an empty string instead of raising.
        """
        resolved = self.get_format() if fmt is None else coerce_format(fmt)
        # unknown formats raise here, codec failures below do not
        self._factory.codec_for(resolved)
        try:
            return self._factory.serialize(data, resolved)
        except Exception as exc:
            logger.error("Error applying output format %s: %s", resolved.value, exc)
            return ""

    def apply(self, stream: S, data: Any, fmt: Optional[FormatLike] = None) -> S:
        stream.write(self.serialize(data, fmt))
        return stream
