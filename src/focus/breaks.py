"""Short/long break selection driven by completed pomodoros."""

from __future__ import annotations


def is_long_break(completed_pomodoros: int, interval: int) -> bool:
    # No pomodoro completed yet: a long break has not been earned.
    if completed_pomodoros <= 0:
        return False
    return completed_pomodoros % interval == 0


def select_break_ms(
    completed_pomodoros: int,
    *,
    interval: int,
    short_break_ms: int,
    long_break_ms: int,
) -> int:
    if is_long_break(completed_pomodoros, interval):
        return long_break_ms
    return short_break_ms


class BreakCycle:
    """Counts auto-completed pomodoros for the lifetime of the process."""

    def __init__(self) -> None:
        self._completed = 0

    @property
    def completed(self) -> int:
        return self._completed

    def record_completed_pomodoro(self) -> int:
        self._completed += 1
        return self._completed
