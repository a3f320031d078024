from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from contracts.ui_protocol import (
    EVENT_ERROR,
    EVENT_NOTICE,
    EVENT_QUERY_RESULT,
    EVENT_SESSION_LOGGED,
    EVENT_STOP_REASON_REQUEST,
    EVENT_TIMER,
)
from focus import FocusSession, TimerSnapshot


class UIServerLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...

    def clear_sticky(self, event_type: str) -> None:
        ...


def snapshot_payload(snapshot: TimerSnapshot) -> dict[str, Any]:
    return {
        "running": snapshot.running,
        "mode": snapshot.mode,
        "target_id": snapshot.target_id,
        "elapsed_ms": snapshot.elapsed_ms,
        "remaining_ms": snapshot.remaining_ms,
        "duration_ms": snapshot.duration_ms,
        "countdown": snapshot.is_countdown,
        "awaiting_stop_reason": snapshot.awaiting_stop_reason,
        "completed_pomodoros": snapshot.completed_pomodoros,
    }


def session_payload(session: FocusSession) -> dict[str, Any]:
    return {
        "entity_id": session.entity_id,
        "entity_title": session.entity_title,
        "mode": session.mode,
        "start": session.started_at.isoformat(timespec="minutes"),
        "end": session.ended_at.isoformat(timespec="minutes"),
        "duration_ms": session.duration_ms,
        "minutes": session.minutes,
    }


class RuntimeUIPublisher:
    """Publishes timer state to the UI server when one is configured."""

    def __init__(self, ui_server: Optional[UIServerLike]):
        self._ui_server = ui_server

    def publish(self, event_type: str, **payload: Any) -> None:
        if self._ui_server:
            self._ui_server.publish(event_type, **payload)

    def publish_timer_update(
        self,
        snapshot: TimerSnapshot,
        *,
        signal: Optional[str] = None,
        action: Optional[str] = None,
        accepted: Optional[bool] = None,
        reason: str = "",
    ) -> None:
        payload = snapshot_payload(snapshot)
        if signal:
            payload["signal"] = signal
        if action:
            payload["action"] = action
        if accepted is not None:
            payload["accepted"] = accepted
        if reason:
            payload["reason"] = reason
        self.publish(EVENT_TIMER, **payload)

    def publish_notice(self, message: str) -> None:
        self.publish(EVENT_NOTICE, message=message)

    def publish_session_logged(self, session: FocusSession) -> None:
        self.publish(EVENT_SESSION_LOGGED, **session_payload(session))

    def publish_stop_reason_request(
        self,
        reasons: Sequence[str],
        *,
        container_id: Optional[str],
    ) -> None:
        self.publish(
            EVENT_STOP_REASON_REQUEST,
            reasons=list(reasons),
            container_id=container_id,
        )

    def clear_stop_reason_request(self) -> None:
        if self._ui_server:
            self._ui_server.clear_sticky(EVENT_STOP_REASON_REQUEST)

    def publish_query_result(self, query: str, **payload: Any) -> None:
        self.publish(EVENT_QUERY_RESULT, query=query, **payload)

    def publish_error(self, message: str) -> None:
        self.publish(EVENT_ERROR, message=message)
