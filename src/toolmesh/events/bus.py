"""Process-wide publish/subscribe bus for router notifications."""

from collections.abc import Callable
from enum import Enum
from typing import Any

from toolmesh.logging import MeshLogger, get_logger
from toolmesh.types import LogLevel

EventCallback = Callable[[Any], None]
Unsubscribe = Callable[[], None]


def _key(event: str | Enum) -> str:
    return event.value if isinstance(event, Enum) else event


class EventBus:
    """Named-event bus with per-listener fault isolation.

    Listeners for one event run synchronously in subscription order; a
    listener that raises is logged and skipped.
    """

    def __init__(self, logger: MeshLogger | None = None):
        # dict used as an insertion-ordered set
        self._listeners: dict[str, dict[EventCallback, None]] = {}
        self._logger = logger

    def on(self, event: str | Enum, callback: EventCallback) -> Unsubscribe:
        """Subscribe to an event.

        Returns:
            Function that removes this subscription
        """
        name = _key(event)
        callbacks = self._listeners.setdefault(name, {})
        callbacks[callback] = None

        def unsubscribe() -> None:
            callbacks.pop(callback, None)
            if not callbacks and self._listeners.get(name) is callbacks:
                del self._listeners[name]

        return unsubscribe

    def once(self, event: str | Enum, callback: EventCallback) -> Unsubscribe:
        """Subscribe to the next emission of an event only."""

        def wrapper(data: Any) -> None:
            unsubscribe()
            callback(data)

        unsubscribe = self.on(event, wrapper)
        return unsubscribe

    def emit(self, event: str | Enum, data: Any = None) -> None:
        """Deliver ``data`` to every listener of ``event``."""
        name = _key(event)
        callbacks = self._listeners.get(name)
        if not callbacks:
            return
        # Snapshot: once() listeners remove themselves mid-iteration
        for callback in list(callbacks):
            try:
                callback(data)
            except Exception as e:
                (self._logger or get_logger())._log(
                    LogLevel.ERROR,
                    "bus",
                    f"Error in listener for '{name}': {e}",
                    {"event": name, "error_type": type(e).__name__},
                )

    def off(self, event: str | Enum) -> None:
        """Remove all listeners for an event."""
        self._listeners.pop(_key(event), None)

    def clear(self) -> None:
        """Remove all listeners."""
        self._listeners.clear()

    def listener_count(self, event: str | Enum) -> int:
        return len(self._listeners.get(_key(event), {}))

    def events(self) -> list[str]:
        """Names of events that currently have listeners."""
        return list(self._listeners.keys())
