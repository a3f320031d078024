"""Observer registry for the timer's zero-payload lifecycle signals."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional

from .constants import TIMER_EVENTS

Listener = Callable[[], None]


class TimerEvents:
    """Per-timer subscriber lists; a failing listener never aborts emission."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("focus")
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = {name: [] for name in TIMER_EVENTS}

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""
        with self._lock:
            self._listeners_for(event).append(listener)
        return lambda: self.off(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        with self._lock:
            listeners = self._listeners_for(event)
            if listener in listeners:
                listeners.remove(listener)

    def emit(self, event: str) -> None:
        with self._lock:
            listeners = tuple(self._listeners_for(event))
        for listener in listeners:
            try:
                listener()
            except Exception as error:
                self._logger.error(
                    "Timer listener for %r failed: %s",
                    event,
                    error,
                    exc_info=True,
                )

    def emit_all(self, events: Iterable[str]) -> None:
        for event in events:
            self.emit(event)

    def _listeners_for(self, event: str) -> list[Listener]:
        listeners = self._listeners.get(event)
        if listeners is None:
            raise ValueError(f"Unknown timer event: {event!r}")
        return listeners
