"""Forwards timer lifecycle signals to UI clients as snapshot events."""

from __future__ import annotations

from typing import Callable

from focus import TIMER_EVENTS, FocusTimer
from focus.constants import EVENT_LOG

from .ui import RuntimeUIPublisher


class TimerEventRelay:
    def __init__(self, timer: FocusTimer, ui: RuntimeUIPublisher):
        self._timer = timer
        self._ui = ui
        self._unsubscribers: list[Callable[[], None]] = []

    def attach(self) -> None:
        if self._unsubscribers:
            return
        for event in TIMER_EVENTS:
            self._unsubscribers.append(
                self._timer.events.on(event, self._listener_for(event))
            )

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _listener_for(self, event: str) -> Callable[[], None]:
        if event == EVENT_LOG:
            return self._publish_logged_session
        return lambda: self._ui.publish_timer_update(self._timer.snapshot(), signal=event)

    def _publish_logged_session(self) -> None:
        session = self._timer.last_session
        if session is not None:
            self._ui.publish_session_logged(session)
