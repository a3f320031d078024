"""Versioned, immutable focus settings handed to the timer explicitly."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from .constants import (
    DEFAULT_LONG_BREAK_INTERVAL,
    DEFAULT_LONG_BREAK_MINUTES,
    DEFAULT_POMODORO_MINUTES,
    DEFAULT_SHORT_BREAK_MINUTES,
    DEFAULT_STOP_REASONS,
)


@dataclass(frozen=True)
class BoardOverride:
    """Per-container settings layered over the global values."""
    pomodoro_minutes: Any = None
    stop_reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class FocusSettings:
    """Global timer settings plus per-container overrides.

    Values are kept as supplied; resolution code validates them and falls
    back to the next level when a value is missing, non-numeric or not
    positive.
    """
    pomodoro_minutes: Any = DEFAULT_POMODORO_MINUTES
    short_break_minutes: Any = DEFAULT_SHORT_BREAK_MINUTES
    long_break_minutes: Any = DEFAULT_LONG_BREAK_MINUTES
    long_break_interval: Any = DEFAULT_LONG_BREAK_INTERVAL
    sound_enabled: bool = True
    sound_file: str = ""
    stop_reasons: tuple[str, ...] = DEFAULT_STOP_REASONS
    overrides: Mapping[str, BoardOverride] = field(default_factory=dict)
    version: int = 0

    def updated(self, **changes: Any) -> "FocusSettings":
        return replace(self, version=self.version + 1, **changes)

    def with_override(
        self,
        container_id: str,
        override: Optional[BoardOverride],
    ) -> "FocusSettings":
        overrides = dict(self.overrides)
        if override is None:
            overrides.pop(container_id, None)
        else:
            overrides[container_id] = override
        return self.updated(overrides=overrides)

    def override_for(self, container_id: Optional[str]) -> Optional[BoardOverride]:
        if container_id is None:
            return None
        return self.overrides.get(container_id)
