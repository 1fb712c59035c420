"""Event listener plumbing.

A minimal synchronous emitter (on/once/remove_listener/emit) that readable
streams build on, plus best-effort listener removal.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

__all__ = [
    "EventEmitter",
    "Listener",
    "try_remove_listener",
]

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class _OnceWrapper:
    """Calls the wrapped listener once, then removes itself."""

    __slots__ = ("emitter", "event", "listener", "fired")

    def __init__(self, emitter: EventEmitter, event: str, listener: Listener) -> None:
        self.emitter = emitter
        self.event = event
        self.listener = listener
        self.fired = False

    def __call__(self, *args: Any) -> Any:
        if self.fired:
            return None
        self.fired = True
        self.emitter._remove(self.event, self)
        return self.listener(*args)


class EventEmitter:
    """Synchronous event emitter.

    Listeners run in registration order inside emit(). An exception raised
    by a listener propagates to the emitting code.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> EventEmitter:
        """Register a listener for every emission of ``event``."""
        self._listeners.setdefault(event, []).append(listener)
        self._on_listener_added(event, listener)
        return self

    add_listener = on

    def once(self, event: str, listener: Listener) -> EventEmitter:
        """Register a listener for the next emission of ``event`` only."""
        return self.on(event, _OnceWrapper(self, event, listener))

    def remove_listener(self, event: str, listener: Listener) -> EventEmitter:
        """Remove a listener (also one registered via once()).

        Removing an unknown listener is a no-op.
        """
        self._remove(event, listener)
        return self

    off = remove_listener

    def _remove(self, event: str, listener: Listener) -> None:
        registered = self._listeners.get(event)
        if not registered:
            return

        for index in range(len(registered) - 1, -1, -1):
            candidate = registered[index]
            if candidate is listener or (
                isinstance(candidate, _OnceWrapper) and candidate.listener is listener
            ):
                del registered[index]
                break

        if not registered:
            del self._listeners[event]

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener of ``event``.

        Returns:
            True if the event had listeners
        """
        registered = self._listeners.get(event)
        if not registered:
            return False

        # Snapshot, listeners may remove themselves while running
        for listener in list(registered):
            listener(*args)
        return True

    def listeners(self, event: str) -> list[Listener]:
        """Registered listeners of ``event`` (once() wrappers unwrapped)."""
        return [
            l.listener if isinstance(l, _OnceWrapper) else l
            for l in self._listeners.get(event, [])
        ]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def _on_listener_added(self, event: str, listener: Listener) -> None:
        """Hook for subclasses."""


def try_remove_listener(obj: Any, event: str, listener: Listener | None) -> bool:
    """Try to remove an event listener, never raising.

    Args:
        obj: The emitter
        event: The event name
        listener: The listener to remove

    Returns:
        True if remove_listener() was called without error
    """
    if obj is None or listener is None:
        return False

    try:
        obj.remove_listener(event, listener)
        return True
    except Exception as e:
        logger.debug(f"Could not remove '{event}' listener: {e}")
        return False
