"""Web UI websocket event and command constants."""

from __future__ import annotations

# Websocket event types
EVENT_HELLO = "hello"
EVENT_TIMER = "timer"
EVENT_NOTICE = "notice"
EVENT_STOP_REASON_REQUEST = "stop_reason_request"
EVENT_SESSION_LOGGED = "session_logged"
EVENT_QUERY_RESULT = "query_result"
EVENT_ERROR = "error"

# Inbound client commands
COMMAND_START = "start"
COMMAND_STOP = "stop"
COMMAND_TOGGLE = "toggle"
COMMAND_RESET = "reset"
COMMAND_STOP_REASON = "stop_reason"
COMMAND_REPARSE = "reparse"
COMMAND_TOTALS = "totals"
COMMAND_DAY = "day"
COMMAND_CARDS = "cards"

COMMANDS: frozenset[str] = frozenset(
    {
        COMMAND_START,
        COMMAND_STOP,
        COMMAND_TOGGLE,
        COMMAND_RESET,
        COMMAND_STOP_REASON,
        COMMAND_REPARSE,
        COMMAND_TOTALS,
        COMMAND_DAY,
        COMMAND_CARDS,
    }
)

STICKY_EVENT_TYPES: frozenset[str] = frozenset(
    {
        EVENT_TIMER,
        EVENT_NOTICE,
        EVENT_STOP_REASON_REQUEST,
        EVENT_ERROR,
    }
)

STICKY_EVENT_ORDER: tuple[str, ...] = (
    EVENT_TIMER,
    EVENT_STOP_REASON_REQUEST,
    EVENT_NOTICE,
    EVENT_ERROR,
)
