"""Mode, event, action, and reason constants used by the focus timer."""

from __future__ import annotations

MODE_STOPWATCH = "stopwatch"
MODE_POMODORO = "pomodoro"
MODE_BREAK = "break"

COUNTDOWN_MODES: frozenset[str] = frozenset({MODE_POMODORO, MODE_BREAK})

MINUTE_MS = 60_000

DEFAULT_POMODORO_MINUTES = 25
DEFAULT_SHORT_BREAK_MINUTES = 5
DEFAULT_LONG_BREAK_MINUTES = 15
DEFAULT_LONG_BREAK_INTERVAL = 4
DEFAULT_STOP_REASONS: tuple[str, ...] = ("Finished", "Interrupted", "Break", "Other")

EVENT_START = "start"
EVENT_STOP = "stop"
EVENT_TICK = "tick"
EVENT_LOG = "log"
EVENT_CHANGE = "change"

TIMER_EVENTS: tuple[str, ...] = (
    EVENT_START,
    EVENT_STOP,
    EVENT_TICK,
    EVENT_LOG,
    EVENT_CHANGE,
)

ACTION_START = "start"
ACTION_STOP = "stop"
ACTION_RESET = "reset"
ACTION_RESOLVE = "resolve"

REASON_STARTED = "started"
REASON_STOPPED = "stopped"
REASON_RESET = "reset"
REASON_RESUMED = "resumed"
REASON_NO_TARGET = "no_target"
REASON_ALREADY_RUNNING = "already_running"
REASON_NOT_RUNNING = "not_running"
REASON_AWAITING_STOP_REASON = "awaiting_stop_reason"
REASON_NO_PENDING_STOP = "no_pending_stop"

CUE_SESSION_END = "session_end"
CUE_BREAK_END = "break_end"

NOTICE_NO_TARGET = "No card selected"
NOTICE_POMODORO_COMPLETE = "Pomodoro complete!"
NOTICE_BREAK_FINISHED = "Break finished"
