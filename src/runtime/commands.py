"""Dispatcher that applies validated UI commands to the focus timer."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Callable, Optional

from contracts.ui_protocol import (
    COMMAND_CARDS,
    COMMAND_DAY,
    COMMAND_RESET,
    COMMAND_REPARSE,
    COMMAND_START,
    COMMAND_STOP,
    COMMAND_STOP_REASON,
    COMMAND_TOGGLE,
    COMMAND_TOTALS,
)
from focus import (
    MODE_BREAK,
    MODE_POMODORO,
    MODE_STOPWATCH,
    DocumentStore,
    FocusTimer,
    TimerActionResult,
)
from focus.constants import MINUTE_MS
from focus.documents import iter_entities

from .prompts import ServerStopReasonCollector
from .ui import RuntimeUIPublisher, session_payload

_MODES = frozenset({MODE_STOPWATCH, MODE_POMODORO, MODE_BREAK})


class CommandError(ValueError):
    """Raised when a command carries invalid arguments."""


class RuntimeCommandDispatcher:
    """Routes UI commands to timer operations and publishes their results."""

    def __init__(
        self,
        *,
        timer: FocusTimer,
        ui: RuntimeUIPublisher,
        reason_collector: Optional[ServerStopReasonCollector] = None,
        reload_documents: Optional[Callable[[], None]] = None,
        documents: Optional[DocumentStore] = None,
        today_fn: Callable[[], dt.date] = dt.date.today,
        logger: Optional[logging.Logger] = None,
    ):
        self._timer = timer
        self._ui = ui
        self._reason_collector = reason_collector
        self._reload_documents = reload_documents
        self._documents = documents
        self._today_fn = today_fn
        self._logger = logger or logging.getLogger("runtime")
        self._handlers: dict[str, Callable[[dict[str, Any]], None]] = {
            COMMAND_START: self._handle_start,
            COMMAND_STOP: self._handle_stop,
            COMMAND_TOGGLE: self._handle_toggle,
            COMMAND_RESET: self._handle_reset,
            COMMAND_STOP_REASON: self._handle_stop_reason,
            COMMAND_REPARSE: self._handle_reparse,
            COMMAND_TOTALS: self._handle_totals,
            COMMAND_DAY: self._handle_day,
            COMMAND_CARDS: self._handle_cards,
        }

    def handle_command(self, command: dict[str, Any]) -> None:
        command_type = command.get("type")
        handler = self._handlers.get(command_type) if isinstance(command_type, str) else None
        if handler is None:
            self._logger.warning("Unsupported command: %r", command_type)
            self._ui.publish_error(f"Unsupported command: {command_type}")
            return

        try:
            handler(command)
        except CommandError as error:
            self._logger.warning("Invalid %s command: %s", command_type, error)
            self._ui.publish_error(str(error))

    def _handle_start(self, command: dict[str, Any]) -> None:
        result = self._timer.start(_mode(command), _target_id(command))
        self._publish_result(result)

    def _handle_stop(self, command: dict[str, Any]) -> None:
        ask_reason = command.get("ask_reason", True)
        if not isinstance(ask_reason, bool):
            raise CommandError("'ask_reason' must be a boolean")
        self._publish_result(self._timer.stop(ask_reason=ask_reason))

    def _handle_toggle(self, command: dict[str, Any]) -> None:
        result = self._timer.toggle(_mode(command), _target_id(command))
        self._publish_result(result)

    def _handle_reset(self, command: dict[str, Any]) -> None:
        if self._reason_collector is not None:
            self._reason_collector.discard()
        result = self._timer.reset(_mode(command), _target_id(command))
        self._publish_result(result)

    def _handle_stop_reason(self, command: dict[str, Any]) -> None:
        if command.get("cancelled") is True:
            if self._reason_collector is None or not self._reason_collector.cancel():
                self._publish_result(self._timer.resolve_cancelled())
            return

        reason = command.get("reason")
        if not isinstance(reason, str) or not reason.strip():
            raise CommandError("'reason' must be a non-empty string unless cancelled")
        if self._reason_collector is None or not self._reason_collector.resolve(reason.strip()):
            self._publish_result(self._timer.resolve_with_reason(reason.strip()))

    def _handle_reparse(self, command: dict[str, Any]) -> None:
        del command
        if self._reload_documents is not None:
            self._reload_documents()
        added = self._timer.force_reparse_logs()
        self._ui.publish_query_result(
            COMMAND_REPARSE,
            added=added,
            total_sessions=len(self._timer.sessions),
        )

    def _handle_totals(self, command: dict[str, Any]) -> None:
        entity_id = _target_id(command)
        if entity_id is None:
            raise CommandError("'target_id' is required")
        total_ms = self._timer.total_focused_ms(entity_id)
        self._ui.publish_query_result(
            COMMAND_TOTALS,
            target_id=entity_id,
            total_ms=total_ms,
            total_minutes=total_ms // MINUTE_MS,
        )

    def _handle_day(self, command: dict[str, Any]) -> None:
        raw_date = command.get("date")
        if raw_date is None:
            day = self._today_fn()
        elif isinstance(raw_date, str):
            try:
                day = dt.date.fromisoformat(raw_date.strip())
            except ValueError as error:
                raise CommandError(f"Invalid date: {raw_date!r}") from error
        else:
            raise CommandError("'date' must be an ISO date string")

        sessions = self._timer.sessions_for_date(day)
        self._ui.publish_query_result(
            COMMAND_DAY,
            date=day.isoformat(),
            total_ms=sum(session.duration_ms for session in sessions),
            sessions=[session_payload(session) for session in sessions],
        )

    def _handle_cards(self, command: dict[str, Any]) -> None:
        """Publish every selectable card so the client can pick a timer target."""
        del command
        if self._documents is None:
            raise CommandError("No boards are loaded")
        cards = [
            {
                "container_id": container.id,
                "container_name": container.name,
                "id": entity.id,
                "title": entity.title,
            }
            for container in self._documents.containers()
            for entity in iter_entities(container.children)
        ]
        self._ui.publish_query_result(COMMAND_CARDS, cards=cards)

    def _publish_result(self, result: TimerActionResult) -> None:
        if not result.accepted:
            self._logger.info("Timer %s rejected: %s", result.action, result.reason)
        self._ui.publish_timer_update(
            result.snapshot,
            action=result.action,
            accepted=result.accepted,
            reason=result.reason,
        )


def _mode(command: dict[str, Any]) -> str:
    mode = command.get("mode", MODE_STOPWATCH)
    if not isinstance(mode, str) or mode not in _MODES:
        allowed = ", ".join(sorted(_MODES))
        raise CommandError(f"'mode' must be one of: {allowed}")
    return mode


def _target_id(command: dict[str, Any]) -> Optional[str]:
    target_id = command.get("target_id")
    if target_id is None:
        return None
    if not isinstance(target_id, str):
        raise CommandError("'target_id' must be a string")
    return target_id.strip() or None
