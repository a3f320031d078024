"""Thread-safe focus timer state machine with stopwatch, pomodoro and breaks."""

from __future__ import annotations

import datetime as dt
import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Literal, Optional, Protocol, Sequence

from sound.errors import SoundError

from .breaks import BreakCycle, select_break_ms
from .constants import (
    ACTION_RESET,
    ACTION_RESOLVE,
    ACTION_START,
    ACTION_STOP,
    COUNTDOWN_MODES,
    CUE_BREAK_END,
    CUE_SESSION_END,
    EVENT_CHANGE,
    EVENT_LOG,
    EVENT_START,
    EVENT_STOP,
    EVENT_TICK,
    MODE_BREAK,
    MODE_POMODORO,
    MODE_STOPWATCH,
    NOTICE_BREAK_FINISHED,
    NOTICE_NO_TARGET,
    NOTICE_POMODORO_COMPLETE,
    REASON_ALREADY_RUNNING,
    REASON_AWAITING_STOP_REASON,
    REASON_NO_PENDING_STOP,
    REASON_NO_TARGET,
    REASON_NOT_RUNNING,
    REASON_RESET,
    REASON_RESUMED,
    REASON_STARTED,
    REASON_STOPPED,
)
from .documents import DocumentStore, DocumentStoreError
from .durations import DurationResolver
from .events import TimerEvents
from .logbook import FocusSession, LogSynchronizer
from .settings import FocusSettings

TimerMode = Literal["stopwatch", "pomodoro", "break"]
TimerAction = Literal["start", "stop", "reset", "resolve"]


class StopReasonCollector(Protocol):
    def request_reason(
        self,
        reasons: Sequence[str],
        *,
        container_id: Optional[str],
        on_reason: Callable[[str], None],
        on_cancel: Callable[[], None],
    ) -> None:
        ...


class Notifier(Protocol):
    def notify(self, message: str) -> None:
        ...


class CuePlayer(Protocol):
    def play(self, cue: str) -> None:
        ...


class LoggingNotifier:
    """Notifier that only writes user-facing messages to the log."""
    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("focus")

    def notify(self, message: str) -> None:
        self._logger.info("Notice: %s", message)


@dataclass
class TimerState:
    """Process-wide run state; mutated only by ``FocusTimer``."""
    running: bool = False
    mode: TimerMode = MODE_STOPWATCH
    start_ms: int = 0
    elapsed_ms: int = 0
    target_id: Optional[str] = None


@dataclass(frozen=True)
class PendingStop:
    """Paused session waiting for the user to pick or dismiss a stop reason."""
    session_start_ms: int
    banked_elapsed_ms: int
    mode: TimerMode
    target_id: Optional[str]
    container_id: Optional[str]
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class TimerSnapshot:
    """Immutable timer snapshot exposed to publishers and UI code."""
    running: bool
    mode: TimerMode
    target_id: Optional[str]
    elapsed_ms: int
    remaining_ms: int
    duration_ms: int
    awaiting_stop_reason: bool
    completed_pomodoros: int

    @property
    def is_countdown(self) -> bool:
        return self.mode in COUNTDOWN_MODES


@dataclass(frozen=True)
class TimerActionResult:
    """Result envelope returned after applying a timer action."""
    action: TimerAction
    accepted: bool
    reason: str
    snapshot: TimerSnapshot


@dataclass(frozen=True)
class TimerTick:
    """Tick payload produced once per second while the timer runs."""
    snapshot: TimerSnapshot
    completed: bool = False


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class FocusTimer:
    """Single active focus session with auto-completing pomodoros and breaks.

    Mutating calls return a :class:`TimerActionResult`; listeners registered on
    :attr:`events` receive ``start``/``stop``/``tick``/``log``/``change``
    signals and re-read state through the query methods.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        settings: Optional[FocusSettings] = None,
        reason_collector: Optional[StopReasonCollector] = None,
        notifier: Optional[Notifier] = None,
        cue_player: Optional[CuePlayer] = None,
        clock: Optional[Callable[[], int]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._logger = logger or logging.getLogger("focus")
        self._clock = clock or _epoch_ms
        self._lock = threading.RLock()

        self._resolver = DurationResolver(store, settings)
        self._log = LogSynchronizer(store, logger=self._logger.getChild("log"))
        self._breaks = BreakCycle()
        self._reason_collector = reason_collector
        self._notifier = notifier or LoggingNotifier(self._logger)
        self._cue_player = cue_player
        self.events = TimerEvents(self._logger)

        self._state = TimerState()
        self._session_start_ms = 0
        self._duration_ms = 0
        self._pending: Optional[PendingStop] = None
        self._last_session: Optional[FocusSession] = None

    @property
    def settings(self) -> FocusSettings:
        return self._resolver.settings

    @property
    def state(self) -> TimerState:
        with self._lock:
            return replace(self._state)

    @property
    def pending_stop(self) -> Optional[PendingStop]:
        with self._lock:
            return self._pending

    @property
    def completed_pomodoros(self) -> int:
        return self._breaks.completed

    @property
    def sessions(self) -> tuple[FocusSession, ...]:
        return self._log.sessions

    @property
    def last_session(self) -> Optional[FocusSession]:
        """Most recently finalized session, whether or not it reached a document."""
        with self._lock:
            return self._last_session

    def start(self, mode: TimerMode, target_id: Optional[str] = None) -> TimerActionResult:
        if target_id is None and mode != MODE_BREAK:
            self._notify(NOTICE_NO_TARGET)
            with self._lock:
                return self._result_locked(ACTION_START, False, REASON_NO_TARGET)

        with self._lock:
            if self._pending is not None:
                return self._result_locked(ACTION_START, False, REASON_AWAITING_STOP_REASON)
            if self._state.running:
                return self._result_locked(ACTION_START, False, REASON_ALREADY_RUNNING)

            now = self._clock()
            self._duration_ms = self._resolve_duration_locked(mode, target_id)
            self._state = TimerState(
                running=True,
                mode=mode,
                start_ms=now,
                elapsed_ms=0,
                target_id=target_id,
            )
            self._session_start_ms = now
            self._logger.info(
                "Timer started: mode=%s target=%s duration=%sms",
                mode,
                target_id,
                self._duration_ms,
            )
            result = self._result_locked(ACTION_START, True, REASON_STARTED)

        self.events.emit_all((EVENT_START, EVENT_CHANGE))
        return result

    def stop(self, ask_reason: bool = True) -> TimerActionResult:
        pending: Optional[PendingStop] = None
        with self._lock:
            if not self._state.running:
                return self._result_locked(ACTION_STOP, False, REASON_NOT_RUNNING)

            now = self._clock()
            self._state.elapsed_ms += max(0, now - self._state.start_ms)
            self._state.running = False

            if self._state.mode == MODE_BREAK or self._reason_collector is None:
                ask_reason = False

            if ask_reason:
                container_id = self._resolver.container_id_for(self._state.target_id)
                pending = PendingStop(
                    session_start_ms=self._session_start_ms,
                    banked_elapsed_ms=self._state.elapsed_ms,
                    mode=self._state.mode,
                    target_id=self._state.target_id,
                    container_id=container_id,
                    reasons=self._resolver.stop_reasons(container_id),
                )
                self._pending = pending
                self._logger.info(
                    "Timer paused awaiting stop reason: target=%s elapsed=%sms",
                    pending.target_id,
                    pending.banked_elapsed_ms,
                )
                events: list[str] = [EVENT_CHANGE]
            else:
                events = self._finalize_locked()
            result = self._result_locked(ACTION_STOP, True, REASON_STOPPED)

        self.events.emit_all(events)
        if pending is not None and self._reason_collector is not None:
            self._reason_collector.request_reason(
                pending.reasons,
                container_id=pending.container_id,
                on_reason=lambda reason: self._resolve_with_reason(pending, reason),
                on_cancel=lambda: self._resolve_cancelled(pending),
            )
        return result

    def resolve_with_reason(self, reason: str) -> TimerActionResult:
        return self._resolve_with_reason(self.pending_stop, reason)

    def resolve_cancelled(self) -> TimerActionResult:
        return self._resolve_cancelled(self.pending_stop)

    def toggle(self, mode: TimerMode, target_id: Optional[str] = None) -> TimerActionResult:
        """Stop whatever is running, or start ``mode`` on ``target_id`` when idle."""
        with self._lock:
            running = self._state.running
        if running:
            return self.stop()
        return self.start(mode, target_id)

    def reset(
        self,
        mode: TimerMode = MODE_STOPWATCH,
        target_id: Optional[str] = None,
    ) -> TimerActionResult:
        with self._lock:
            self._pending = None
            self._reset_locked(mode, target_id)
            result = self._result_locked(ACTION_RESET, True, REASON_RESET)
        self.events.emit(EVENT_CHANGE)
        return result

    def tick(self) -> Optional[TimerTick]:
        """Advance the clock; auto-complete pomodoros and breaks that ran out."""
        with self._lock:
            if not self._state.running:
                return None
            mode = self._state.mode
            target_id = self._state.target_id
            completed = (
                mode in COUNTDOWN_MODES
                and self._elapsed_locked(self._clock()) >= self._duration_ms
            )

        self.events.emit(EVENT_TICK)
        if completed and mode == MODE_POMODORO:
            self._complete_pomodoro(target_id)
        elif completed:
            self._complete_break()
        return TimerTick(snapshot=self.snapshot(), completed=completed)

    def apply_settings(
        self,
        settings: FocusSettings,
        container_id: Optional[str] = None,
    ) -> None:
        """Install new settings; re-resolve if they affect the active target."""
        with self._lock:
            self._resolver.update(settings)
            if self._state.mode != MODE_POMODORO:
                return
            target_id = self._state.target_id
            if container_id is not None and container_id != self._resolver.container_id_for(
                target_id
            ):
                return
            self._duration_ms = self._resolver.pomodoro_ms(target_id)
            self._logger.info(
                "Settings v%d applied: pomodoro duration=%sms",
                settings.version,
                self._duration_ms,
            )
        self.events.emit(EVENT_CHANGE)

    def is_running(
        self,
        mode: Optional[TimerMode] = None,
        target_id: Optional[str] = None,
    ) -> bool:
        with self._lock:
            if not self._state.running:
                return False
            if mode is not None and self._state.mode != mode:
                return False
            if target_id is not None and self._state.target_id != target_id:
                return False
            return True

    def elapsed_ms(self) -> int:
        with self._lock:
            return self._elapsed_locked(self._clock())

    def remaining_ms(self) -> int:
        with self._lock:
            return self._remaining_locked(self._clock())

    def total_focused_ms(self, entity_id: str) -> int:
        return self._log.total_focused_ms(entity_id)

    def sessions_for_date(self, day: dt.date) -> list[FocusSession]:
        return self._log.sessions_for_date(day)

    def force_reparse_logs(self) -> int:
        return self._log.force_reparse()

    def snapshot(self) -> TimerSnapshot:
        with self._lock:
            return self._snapshot_locked(self._clock())

    def _resolve_with_reason(
        self,
        pending: Optional[PendingStop],
        reason: str,
    ) -> TimerActionResult:
        with self._lock:
            if pending is None or self._pending is not pending:
                return self._result_locked(ACTION_RESOLVE, False, REASON_NO_PENDING_STOP)
            self._pending = None
            self._logger.info("Stop reason for %s: %s", pending.target_id, reason)
            events = [EVENT_STOP] + self._finalize_locked()
            result = self._result_locked(ACTION_RESOLVE, True, REASON_STOPPED)

        self._notify(reason)
        self.events.emit_all(events)
        return result

    def _resolve_cancelled(self, pending: Optional[PendingStop]) -> TimerActionResult:
        with self._lock:
            if pending is None or self._pending is not pending:
                return self._result_locked(ACTION_RESOLVE, False, REASON_NO_PENDING_STOP)
            self._pending = None
            self._state.running = True
            self._state.start_ms = self._clock()
            self._logger.info(
                "Stop reason dismissed; resuming %s for %s",
                self._state.mode,
                self._state.target_id,
            )
            result = self._result_locked(ACTION_RESOLVE, True, REASON_RESUMED)
        self.events.emit_all((EVENT_START, EVENT_CHANGE))
        return result

    def _complete_pomodoro(self, target_id: Optional[str]) -> None:
        if not self.stop(ask_reason=False).accepted:
            return
        self._play_cue(CUE_SESSION_END)
        self._notify(NOTICE_POMODORO_COMPLETE)
        completed = self._breaks.record_completed_pomodoro()
        self._logger.info("Pomodoro %d completed for %s", completed, target_id)
        self.start(MODE_BREAK, target_id)

    def _complete_break(self) -> None:
        if not self.stop(ask_reason=False).accepted:
            return
        self._play_cue(CUE_BREAK_END)
        self._notify(NOTICE_BREAK_FINISHED)

    def _finalize_locked(self) -> list[str]:
        state = self._state
        if state.mode == MODE_BREAK:
            self._logger.info("Break finished after %sms", state.elapsed_ms)
            self._reset_locked(state.mode, state.target_id)
            return [EVENT_CHANGE]

        session = FocusSession.finalized(
            entity_id=state.target_id,
            entity_title=self._log.title_for(state.target_id),
            mode=state.mode,
            start_ms=self._session_start_ms,
            duration_ms=state.elapsed_ms,
        )
        self._log.record(session)
        self._last_session = session
        try:
            self._log.append(session)
        except DocumentStoreError as error:
            self._logger.error("Failed to persist session for %s: %s", session.entity_id, error)
        self._logger.info(
            "Session finalized: mode=%s target=%s duration=%sms",
            session.mode,
            session.entity_id,
            session.duration_ms,
        )
        self._reset_locked(state.mode, state.target_id)
        return [EVENT_LOG, EVENT_CHANGE]

    def _reset_locked(self, mode: TimerMode, target_id: Optional[str]) -> None:
        self._state = TimerState(
            running=False,
            mode=mode,
            start_ms=0,
            elapsed_ms=0,
            target_id=target_id,
        )
        self._session_start_ms = 0
        self._duration_ms = self._resolve_duration_locked(mode, target_id)

    def _resolve_duration_locked(self, mode: TimerMode, target_id: Optional[str]) -> int:
        if mode == MODE_POMODORO:
            return self._resolver.pomodoro_ms(target_id)
        if mode == MODE_BREAK:
            return select_break_ms(
                self._breaks.completed,
                interval=self._resolver.long_break_interval(),
                short_break_ms=self._resolver.short_break_ms(),
                long_break_ms=self._resolver.long_break_ms(),
            )
        return 0

    def _elapsed_locked(self, now: int) -> int:
        if not self._state.running:
            return self._state.elapsed_ms
        return self._state.elapsed_ms + max(0, now - self._state.start_ms)

    def _remaining_locked(self, now: int) -> int:
        if self._state.mode not in COUNTDOWN_MODES:
            return 0
        return max(0, self._duration_ms - self._elapsed_locked(now))

    def _snapshot_locked(self, now: int) -> TimerSnapshot:
        return TimerSnapshot(
            running=self._state.running,
            mode=self._state.mode,
            target_id=self._state.target_id,
            elapsed_ms=self._elapsed_locked(now),
            remaining_ms=self._remaining_locked(now),
            duration_ms=self._duration_ms,
            awaiting_stop_reason=self._pending is not None,
            completed_pomodoros=self._breaks.completed,
        )

    def _result_locked(
        self,
        action: TimerAction,
        accepted: bool,
        reason: str,
    ) -> TimerActionResult:
        return TimerActionResult(
            action=action,
            accepted=accepted,
            reason=reason,
            snapshot=self._snapshot_locked(self._clock()),
        )

    def _notify(self, message: str) -> None:
        self._notifier.notify(message)

    def _play_cue(self, cue: str) -> None:
        if self._cue_player is None:
            return
        try:
            self._cue_player.play(cue)
        except SoundError as error:
            self._logger.error("Cue playback failed: %s", error)
