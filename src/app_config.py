from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older runtimes
    import tomli as tomllib  # type: ignore

from app_config_parser import parse_app_config
from app_config_schema import (
    CONFIG_FILE_ENV,
    DEFAULT_CONFIG_FILE,
    AppConfig,
    AppConfigurationError,
    BoardOverrideSettings,
    BoardsSettings,
    SoundSettings,
    StopReasonSettings,
    TimerSettings,
    UIServerSettings,
)
from focus.settings import BoardOverride, FocusSettings


def resolve_config_path(config_path: str | None = None) -> Path:
    raw = config_path or os.getenv(CONFIG_FILE_ENV) or DEFAULT_CONFIG_FILE
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    return path


def load_app_config(config_path: str | None = None) -> AppConfig:
    path = resolve_config_path(config_path)
    if not path.exists():
        raise AppConfigurationError(f"Config file not found: {path}")
    if not path.is_file():
        raise AppConfigurationError(f"Config path is not a file: {path}")

    try:
        with open(path, "rb") as fh:
            raw = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as error:
        raise AppConfigurationError(f"Failed to parse config TOML: {error}") from error

    if not isinstance(raw, Mapping):
        raise AppConfigurationError("Root config TOML object must be a table.")

    return parse_app_config(raw, base_dir=path.parent, source_file=str(path))


def build_focus_settings(
    app_config: AppConfig,
    board_overrides: Optional[Mapping[str, BoardOverride]] = None,
    *,
    version: int = 0,
) -> FocusSettings:
    """Combine config values with overrides read from the boards themselves.

    A board's own settings block wins over `[boards.overrides]` field by field.
    """
    overrides: dict[str, BoardOverride] = {
        board_id: BoardOverride(
            pomodoro_minutes=settings.pomodoro_minutes,
            stop_reasons=settings.stop_reasons,
        )
        for board_id, settings in app_config.boards.overrides.items()
    }
    for board_id, override in (board_overrides or {}).items():
        configured = overrides.get(board_id)
        if configured is None:
            overrides[board_id] = override
            continue
        overrides[board_id] = BoardOverride(
            pomodoro_minutes=(
                override.pomodoro_minutes
                if override.pomodoro_minutes is not None
                else configured.pomodoro_minutes
            ),
            stop_reasons=override.stop_reasons or configured.stop_reasons,
        )

    timer = app_config.timer
    return FocusSettings(
        pomodoro_minutes=timer.pomodoro_minutes,
        short_break_minutes=timer.short_break_minutes,
        long_break_minutes=timer.long_break_minutes,
        long_break_interval=timer.long_break_interval,
        sound_enabled=app_config.sound.enabled,
        sound_file=app_config.sound.file,
        stop_reasons=app_config.stop_reasons.reasons,
        overrides=overrides,
        version=version,
    )


__all__ = [
    "AppConfig",
    "AppConfigurationError",
    "BoardOverrideSettings",
    "BoardsSettings",
    "SoundSettings",
    "StopReasonSettings",
    "TimerSettings",
    "UIServerSettings",
    "build_focus_settings",
    "load_app_config",
    "resolve_config_path",
]
