"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from focus.constants import (
    DEFAULT_LONG_BREAK_INTERVAL,
    DEFAULT_LONG_BREAK_MINUTES,
    DEFAULT_POMODORO_MINUTES,
    DEFAULT_SHORT_BREAK_MINUTES,
    DEFAULT_STOP_REASONS,
)

DEFAULT_CONFIG_FILE = "config.toml"
CONFIG_FILE_ENV = "FOCUS_CONFIG_FILE"


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class TimerSettings:
    """Global pomodoro and break lengths from `[timer]`."""
    pomodoro_minutes: float = DEFAULT_POMODORO_MINUTES
    short_break_minutes: float = DEFAULT_SHORT_BREAK_MINUTES
    long_break_minutes: float = DEFAULT_LONG_BREAK_MINUTES
    long_break_interval: int = DEFAULT_LONG_BREAK_INTERVAL


@dataclass(frozen=True)
class SoundSettings:
    """Session and break cue playback settings from `[sound]`."""
    enabled: bool = True
    file: str = ""
    output_device: Optional[int] = None
    volume: float = 0.4


@dataclass(frozen=True)
class StopReasonSettings:
    """Global stop-reason choices from `[stop_reasons]`."""
    reasons: tuple[str, ...] = DEFAULT_STOP_REASONS


@dataclass(frozen=True)
class BoardOverrideSettings:
    """Per-board values from `[boards.overrides."<board file>"]`."""
    pomodoro_minutes: Optional[float] = None
    stop_reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class BoardsSettings:
    """Board directory and config-level per-board overrides from `[boards]`."""
    directory: str = ""
    overrides: Mapping[str, BoardOverrideSettings] = field(default_factory=dict)


@dataclass(frozen=True)
class UIServerSettings:
    """Built-in UI server settings from `[ui_server]`."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8765
    index_file: str = ""


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    timer: TimerSettings
    sound: SoundSettings
    stop_reasons: StopReasonSettings
    boards: BoardsSettings
    ui_server: UIServerSettings
    source_file: str
