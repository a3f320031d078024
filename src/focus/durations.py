"""Effective duration and stop-reason lookup over layered settings."""

from __future__ import annotations

import math
from typing import Any, Optional

from .constants import (
    DEFAULT_LONG_BREAK_INTERVAL,
    DEFAULT_LONG_BREAK_MINUTES,
    DEFAULT_POMODORO_MINUTES,
    DEFAULT_SHORT_BREAK_MINUTES,
    DEFAULT_STOP_REASONS,
    MINUTE_MS,
)
from .documents import DocumentStore, build_index
from .settings import FocusSettings


class DurationResolver:
    """Resolves container override -> global setting -> built-in default."""

    def __init__(self, store: DocumentStore, settings: Optional[FocusSettings] = None):
        self._store = store
        self._settings = settings or FocusSettings()

    @property
    def settings(self) -> FocusSettings:
        return self._settings

    def update(self, settings: FocusSettings) -> None:
        self._settings = settings

    def container_id_for(self, entity_id: Optional[str]) -> Optional[str]:
        if entity_id is None:
            return None
        container = build_index(self._store.containers()).get(entity_id)
        return container.id if container is not None else None

    def pomodoro_ms(self, entity_id: Optional[str] = None) -> int:
        override = self._settings.override_for(self.container_id_for(entity_id))
        if override is not None:
            local = _positive_number(override.pomodoro_minutes)
            if local is not None:
                return _minutes_to_ms(local)
        return _minutes_to_ms(
            _positive_number(self._settings.pomodoro_minutes) or DEFAULT_POMODORO_MINUTES
        )

    def short_break_ms(self) -> int:
        return _minutes_to_ms(
            _positive_number(self._settings.short_break_minutes)
            or DEFAULT_SHORT_BREAK_MINUTES
        )

    def long_break_ms(self) -> int:
        return _minutes_to_ms(
            _positive_number(self._settings.long_break_minutes)
            or DEFAULT_LONG_BREAK_MINUTES
        )

    def long_break_interval(self) -> int:
        value = _positive_number(self._settings.long_break_interval)
        if value is None or int(value) < 1:
            return DEFAULT_LONG_BREAK_INTERVAL
        return int(value)

    def stop_reasons(self, container_id: Optional[str] = None) -> tuple[str, ...]:
        override = self._settings.override_for(container_id)
        if override is not None:
            local = _clean_reasons(override.stop_reasons)
            if local:
                return local
        return _clean_reasons(self._settings.stop_reasons) or DEFAULT_STOP_REASONS


def _positive_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    number = float(value)
    if math.isnan(number) or math.isinf(number) or number <= 0:
        return None
    return number


def _minutes_to_ms(minutes: float) -> int:
    return int(round(minutes * MINUTE_MS))


def _clean_reasons(reasons: Any) -> tuple[str, ...]:
    if not reasons or isinstance(reasons, str):
        return ()
    return tuple(
        reason.strip()
        for reason in reasons
        if isinstance(reason, str) and reason.strip()
    )
