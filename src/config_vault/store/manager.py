from __future__ import annotations

import logging
import os
import sys
import threading
from contextlib import contextmanager
from functools import wraps
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    TextIO,
    Tuple,
    TypeVar,
    Union,
    cast,
)

from config_vault.exceptions import (
    ConfigArgumentError,
    ConfigConsumedError,
    ConfigIOError,
    ConfigNotFoundError,
    ConfigReentrancyError,
    ConfigValidationError,
)
from config_vault.formats import DISPATCHER, FormatDispatcher, FormatLike, pretty_json
from config_vault.hooks import FailureMode, Listener, ListenerBus
from config_vault.store.adaptors import PathLike, adapter_for_path, backup_adapter
from config_vault.values import ValueTree, copy_tree, to_value_tree

logger = logging.getLogger("config_vault.store")
logger.addHandler(logging.NullHandler())

DEFAULT_VERSION = "1.0.0"

# Legacy rule: this key only ever accepts strings.
STRING_ONLY_KEY = "example"

F = TypeVar("F", bound=Callable[..., Any])
S = TypeVar("S", bound=TextIO)

Predicate = Callable[[ValueTree], bool]
Validators = Union[Mapping[str, Predicate], Iterable[Tuple[str, Predicate]]]


def is_consumed(func: F) -> F:
    """
    Decorator to check if the store's contents were moved away before method execution.
    Raises ConfigConsumedError if so.
    """

    @wraps(func)
    def wrapper(self: "ConfigStore", *args: Any, **kwargs: Any) -> Any:
        if self.consumed:
            logger.error(f"Attempted {func.__name__} on a moved-from store.")
            raise ConfigConsumedError("Store contents were moved to another store")
        return func(self, *args, **kwargs)

    return cast(F, wrapper)


class ConfigStore:
    """
    Thread-safe mapping from string keys to ValueTree values.

    One re-entrant lock guards the mapping, the listener list, the version and
    the environment override log. Listeners run synchronously under that lock,
    in registration order, before set() returns; a listener that calls back
    into the same store gets ConfigReentrancyError.

    File persistence is lenient: an unreadable or unwritable file is logged
    and the call returns without effect. An unsupported extension raises.
    """

    def __init__(
        self,
        name: str = "default",
        *,
        listener_failure_mode: FailureMode = "raise",
        dispatcher: Optional[FormatDispatcher] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._name = name
        self._config: Dict[str, ValueTree] = {}
        self._listeners = ListenerBus(listener_failure_mode)
        self._version = DEFAULT_VERSION
        self._env_overrides: Dict[str, str] = {}
        self._dispatcher = dispatcher
        # thread id currently running listeners, if any
        self._notifying: Optional[int] = None
        self._consumed = False
        logger.debug("ConfigStore init name=%r failure_mode=%s", name, listener_failure_mode)

    @classmethod
    def move_from(cls, other: "ConfigStore", name: Optional[str] = None) -> "ConfigStore":
        """
        Build a store that takes over `other`'s mapping, listeners, version and
        override log. The new store has its own lock; `other` is consumed.
        """
        with other._locked():
            if other._consumed:
                raise ConfigConsumedError("Store contents were moved to another store")
            moved = cls(
                other._name if name is None else name,
                listener_failure_mode=other._listeners.failure_mode,
                dispatcher=other._dispatcher,
            )
            moved._config, other._config = other._config, {}
            moved._listeners.extend(other._listeners.take())
            moved._version = other._version
            moved._env_overrides, other._env_overrides = other._env_overrides, {}
            other._consumed = True
        logger.debug("Store %r moved into a new store %r", other._name, moved._name)
        return moved

    @staticmethod
    def _redact_for_log(name: str, value: Any) -> str:
        """
        Redact likely secrets in logs.
        """
        lowered = name.lower()
        if any(s in lowered for s in ("secret", "password", "token", "key", "passwd", "api_key")):
            return "***"
        try:
            return repr(value)
        except Exception:
            return "<unreprable>"

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if self._notifying == threading.get_ident():
            logger.error("Change listener called back into store %r", self._name)
            raise ConfigReentrancyError(
                f"Change listeners must not call back into store {self._name!r}"
            )
        with self._lock:
            yield

    @property
    def name(self) -> str:
        return self._name

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def version(self) -> str:
        with self._locked():
            return self._version

    @property
    def env_overrides(self) -> Dict[str, str]:
        """Keys overwritten from the environment by the last load_from_env(), with their values."""
        with self._locked():
            return dict(self._env_overrides)

    # core mapping
    @is_consumed
    def get(self, key: str) -> ValueTree:
        with self._locked():
            try:
                return copy_tree(self._config[key])
            except KeyError:
                raise ConfigNotFoundError(key) from None

    @is_consumed
    def set(self, key: str, value: Any) -> None:
        """
        Insert or overwrite `key`, then notify every listener with (key, value).
        """
        tree = self._checked(key, value)
        with self._locked():
            self._set_locked(key, tree)

    def _checked(self, key: str, value: Any) -> ValueTree:
        if not isinstance(key, str):
            raise ConfigArgumentError(f"Key must be a str, got {type(key).__name__}")
        if not key:
            raise ConfigArgumentError("Key cannot be empty")
        tree = to_value_tree(value)
        if key == STRING_ONLY_KEY and not isinstance(tree, str):
            raise ConfigArgumentError(f"Value for '{STRING_ONLY_KEY}' must be a string")
        return tree

    def _set_locked(self, key: str, tree: ValueTree) -> None:
        self._config[key] = tree
        logger.debug("Store.set key=%r value=%s", key, self._redact_for_log(key, tree))
        previous, self._notifying = self._notifying, threading.get_ident()
        try:
            self._listeners.notify(key, copy_tree(tree))
        finally:
            self._notifying = previous

    @is_consumed
    def get_all(self) -> Dict[str, ValueTree]:
        with self._locked():
            return {k: copy_tree(v) for k, v in self._config.items()}

    @is_consumed
    def snapshot(self) -> MappingProxyType:
        """Read-only copy of the mapping; formats render it as key/value entries."""
        return MappingProxyType(self.get_all())

    @is_consumed
    def exists(self, key: str) -> bool:
        with self._locked():
            return key in self._config

    @is_consumed
    def remove(self, key: str, *, strict: bool = False) -> None:
        """
        Delete `key`. An absent key is logged and ignored unless `strict` is set,
        in which case ConfigNotFoundError is raised.
        """
        with self._locked():
            if key in self._config:
                del self._config[key]
                logger.debug("Store.remove key=%r", key)
                return
        if strict:
            raise ConfigNotFoundError(key)
        logger.error("Error in remove: Unknown configuration key: %s", key)

    @is_consumed
    def clear(self) -> None:
        with self._locked():
            self._config.clear()
            logger.debug("Store %r cleared", self._name)

    # bulk operations
    @is_consumed
    def validate(self, validators: Validators) -> None:
        """
        Check each key against its predicate and stop at the first failure.

        `validators` is a mapping or an ordered iterable of (key, predicate)
        pairs; pass pairs when the order of checks matters. A missing key, a
        predicate returning False, and a predicate raising all fail with
        ConfigValidationError.
        """
        pairs = validators.items() if isinstance(validators, Mapping) else validators
        with self._locked():
            for key, predicate in pairs:
                if key not in self._config:
                    logger.error("Validation failed: key not found: %s", key)
                    raise ConfigValidationError({key: "Key not found."}, key)
                value = copy_tree(self._config[key])
                try:
                    valid = predicate(value)
                except Exception as exc:
                    logger.error("Validator for %s raised: %s", key, exc)
                    raise ConfigValidationError(
                        {key: f"Validator raised exception: {exc}"}, key, value
                    ) from exc
                if not valid:
                    logger.error("Validation failed for key: %s", key)
                    raise ConfigValidationError({key: "Validator returned False."}, key, value)

    @is_consumed
    def inspect(self, keys: Iterable[str]) -> List[ValueTree]:
        """
        One value per requested key, in order; a missing key yields {}.

        Each lookup takes the lock on its own, so the result is not an atomic
        snapshot across keys.
        """
        values: List[ValueTree] = []
        for key in keys:
            try:
                values.append(self.get(key))
            except ConfigNotFoundError:
                values.append({})
        return values

    @is_consumed
    def update_multiple(self, new_config: Mapping[str, Any]) -> None:
        """
        set() each pair in order. Best-effort, not atomic: the first rejected
        value or failing listener is logged and stops the update, leaving the
        pairs before it applied.
        """
        with self._locked():
            try:
                for key, value in new_config.items():
                    self._set_locked(key, self._checked(key, value))
            except Exception as exc:
                logger.error("Error in update_multiple: %s", exc)

    # persistence
    @is_consumed
    def load_from_file(self, file_path: PathLike, version: str = DEFAULT_VERSION) -> None:
        """
        Merge every top-level key of a .json/.yaml/.yml file into the store
        and record `version`. Listeners are not notified.
        """
        adapter = adapter_for_path(file_path)
        document = self._load_document(adapter, file_path)
        if document is None:
            return
        with self._locked():
            self._config.update(document)
            self._version = version
        logger.info("Loaded %d keys from %s version=%s", len(document), file_path, version)

    @is_consumed
    def save_to_file(self, file_path: PathLike, version: str = DEFAULT_VERSION) -> None:
        adapter = adapter_for_path(file_path)
        document = adapter.versioned(self.get_all(), version)
        if self._save_document(adapter, file_path, document):
            logger.info("Saved %d keys to %s version=%s", len(document) - 1, file_path, version)

    @is_consumed
    def load_partial_from_file(self, file_path: PathLike, keys: Iterable[str]) -> None:
        adapter = adapter_for_path(file_path)
        document = self._load_document(adapter, file_path)
        if document is None:
            return
        with self._locked():
            loaded = [k for k in keys if k in document]
            for key in loaded:
                self._config[key] = document[key]
        logger.info("Loaded keys %s from %s", loaded, file_path)

    @is_consumed
    def save_partial_to_file(self, file_path: PathLike, keys: Iterable[str]) -> None:
        adapter = adapter_for_path(file_path)
        with self._locked():
            subset = {k: copy_tree(self._config[k]) for k in keys if k in self._config}
        if self._save_document(adapter, file_path, subset):
            logger.info("Saved keys %s to %s", list(subset), file_path)

    @is_consumed
    def backup_to_file(self, backup_file_path: PathLike) -> None:
        """Write the whole mapping as JSON, whatever the file's extension."""
        with self._locked():
            self._save_document(backup_adapter(), backup_file_path, self._config)

    def _load_document(self, adapter: Any, file_path: PathLike) -> Optional[Dict[str, ValueTree]]:
        try:
            return adapter.load(file_path)
        except (ConfigIOError, ConfigArgumentError) as exc:
            logger.error("Error while loading config file %s: %s", file_path, exc)
            return None

    def _save_document(
        self, adapter: Any, file_path: PathLike, document: Mapping[str, ValueTree]
    ) -> bool:
        try:
            adapter.save(file_path, document)
        except (ConfigIOError, ConfigArgumentError) as exc:
            logger.error("Error while saving config file %s: %s", file_path, exc)
            return False
        return True

    @is_consumed
    def load_from_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """
        Overlay the process environment (or `environ`) onto the store.

        First every key already present is overwritten from a variable of the
        same name and recorded in env_overrides; then every variable is stored
        as a string entry under its own name.
        """
        env = os.environ if environ is None else environ
        with self._locked():
            self._env_overrides = {}
            for key in list(self._config):
                if key in env:
                    self._config[key] = env[key]
                    self._env_overrides[key] = env[key]
            for key, value in env.items():
                self._config[key] = value
            logger.info(
                "Loaded %d environment variables into %r (%d overrides)",
                len(env),
                self._name,
                len(self._env_overrides),
            )

    @is_consumed
    def add_change_listener(self, listener: Listener) -> None:
        with self._locked():
            self._listeners.register(listener)

    # output
    def display(self, stream: Optional[TextIO] = None) -> None:
        """Write every key with its pretty-printed value. Never raises."""
        out = sys.stdout if stream is None else stream
        try:
            for key, value in self.get_all().items():
                out.write(f"{key}: {pretty_json(value)}\n")
        except Exception as exc:
            logger.error("Error in display: %s", exc)

    @is_consumed
    def render(self, fmt: Optional[FormatLike] = None) -> str:
        dispatcher = self._dispatcher or DISPATCHER
        return dispatcher.serialize(self.snapshot(), fmt)

    def output_config(self, stream: S, fmt: Optional[FormatLike] = None) -> S:
        stream.write(self.render(fmt))
        return stream

    # python protocol
    def __copy__(self) -> "ConfigStore":
        raise TypeError("ConfigStore cannot be copied; use ConfigStore.move_from()")

    def __deepcopy__(self, memo: Dict[int, Any]) -> "ConfigStore":
        raise TypeError("ConfigStore cannot be copied; use ConfigStore.move_from()")

    def __reduce_ex__(self, protocol: Any) -> Any:
        raise TypeError("ConfigStore cannot be pickled")

    def __repr__(self) -> str:
        with self._lock:
            return f"<ConfigStore name={self._name!r} keys={len(self._config)} version={self._version!r}>"

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.exists(key)

    def __len__(self) -> int:
        return len(self.get_all())

    def __iter__(self) -> Iterator[str]:
        """
        Iterate over a snapshot of the keys.
        """
        return iter(tuple(self.get_all()))

    def __getitem__(self, key: str) -> ValueTree:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        self.remove(key, strict=True)
