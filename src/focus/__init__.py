from .constants import (
    MODE_BREAK,
    MODE_POMODORO,
    MODE_STOPWATCH,
    TIMER_EVENTS,
)
from .documents import (
    Container,
    DocumentStore,
    DocumentStoreError,
    Entity,
    InMemoryDocumentStore,
)
from .durations import DurationResolver
from .logbook import FocusSession, LogSynchronizer, format_log_line, parse_log_line
from .service import (
    FocusTimer,
    LoggingNotifier,
    PendingStop,
    TimerActionResult,
    TimerMode,
    TimerSnapshot,
    TimerState,
    TimerTick,
)
from .settings import BoardOverride, FocusSettings

__all__ = [
    "BoardOverride",
    "Container",
    "DocumentStore",
    "DocumentStoreError",
    "DurationResolver",
    "Entity",
    "FocusSession",
    "FocusSettings",
    "FocusTimer",
    "InMemoryDocumentStore",
    "LogSynchronizer",
    "LoggingNotifier",
    "MODE_BREAK",
    "MODE_POMODORO",
    "MODE_STOPWATCH",
    "PendingStop",
    "TIMER_EVENTS",
    "TimerActionResult",
    "TimerMode",
    "TimerSnapshot",
    "TimerState",
    "TimerTick",
    "format_log_line",
    "parse_log_line",
]
