from __future__ import annotations

import logging
from typing import Callable, List, Literal

from config_vault.values import ValueTree

logger = logging.getLogger("config_vault.hooks")
logger.addHandler(logging.NullHandler())

Listener = Callable[[str, ValueTree], None]
FailureMode = Literal["ignore", "log", "raise"]


class ListenerBus:
    """Ordered list of change listeners. There is no removal; listeners live as long as the bus."""

    def __init__(self, failure_mode: FailureMode = "raise") -> None:
        self._listeners: List[Listener] = []

        if failure_mode not in ("ignore", "log", "raise"):
            raise ValueError("failure_mode must be one of 'ignore', 'log', 'raise'")
        self._failure_mode = failure_mode

    @property
    def failure_mode(self) -> FailureMode:
        return self._failure_mode

    def register(self, func: Listener) -> None:
        if not callable(func):
            raise TypeError("Listener must be callable")
        self._listeners.append(func)

    def notify(self, key: str, value: ValueTree) -> None:
        for listener in self._listeners:
            try:
                listener(key, value)
            except Exception as exc:
                if self._failure_mode == "raise":
                    raise
                elif self._failure_mode == "log":
                    logger.error("Listener %r failed for key=%r: %s", listener, key, exc)
                else:
                    # If set to ignore we still log at debug level
                    logger.debug("Listener %r failed but ignored: %s", listener, exc)

    def take(self) -> List[Listener]:
        """Hand the registered listeners over and leave this bus empty."""
        listeners, self._listeners = self._listeners, []
        return listeners

    def extend(self, listeners: List[Listener]) -> None:
        for listener in listeners:
            self.register(listener)

    def __len__(self) -> int:
        return len(self._listeners)
