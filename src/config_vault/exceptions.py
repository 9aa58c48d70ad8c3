from __future__ import annotations

from typing import Dict


class ConfigError(Exception):
    """Base config exception."""


class ConfigNotFoundError(ConfigError):
    """Raised when a requested configuration key is not present in the store."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Unknown configuration key: {key}")


class ConfigArgumentError(ConfigError, ValueError):
    """Raised for an empty key or a value rejected by a store-level rule."""


class ConfigValidationError(ConfigError):
    """Raised when validation fails for one or more keys."""

    def __init__(
        self, errors: Dict[str, str], key: str | None = None, value: object | None = None
    ) -> None:
        self.errors = errors
        self.key = key
        self.value = value
        msg = f"Validation errors: {errors}"
        if key is not None and value is not None:
            msg += f" (key: {key}, value: {value})"
        super().__init__(msg)


class UnsupportedFormatError(ConfigError):
    """Raised for an unknown output format or an unsupported file extension."""


class ConfigIOError(ConfigError, OSError):
    """Raised when a configuration file cannot be opened."""


class ConfigReentrancyError(ConfigError, RuntimeError):
    """Raised when a change listener calls back into the store that is notifying it."""


class ConfigConsumedError(ConfigError):
    """Raised if operations are attempted on a store whose contents were moved away."""
