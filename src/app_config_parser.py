"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional

from app_config_schema import (
    AppConfig,
    AppConfigurationError,
    BoardOverrideSettings,
    BoardsSettings,
    SoundSettings,
    StopReasonSettings,
    TimerSettings,
    UIServerSettings,
)
from focus.constants import (
    DEFAULT_LONG_BREAK_INTERVAL,
    DEFAULT_LONG_BREAK_MINUTES,
    DEFAULT_POMODORO_MINUTES,
    DEFAULT_SHORT_BREAK_MINUTES,
    DEFAULT_STOP_REASONS,
)


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    timer = _parse_timer_settings(_section(raw, "timer"))
    sound = _parse_sound_settings(_section(raw, "sound"), base_dir=base_dir)
    stop_reasons = _parse_stop_reason_settings(_section(raw, "stop_reasons"))
    boards = _parse_boards_settings(_section(raw, "boards"), base_dir=base_dir)
    ui_server = _parse_ui_server_settings(_section(raw, "ui_server"), base_dir=base_dir)

    return AppConfig(
        timer=timer,
        sound=sound,
        stop_reasons=stop_reasons,
        boards=boards,
        ui_server=ui_server,
        source_file=source_file,
    )


def _parse_timer_settings(section: Mapping[str, Any]) -> TimerSettings:
    interval = _as_int(
        section.get("long_break_interval", DEFAULT_LONG_BREAK_INTERVAL),
        "timer.long_break_interval",
    )
    if interval < 1:
        raise AppConfigurationError("timer.long_break_interval must be at least 1.")
    return TimerSettings(
        pomodoro_minutes=_as_positive_float(
            section.get("pomodoro_minutes", DEFAULT_POMODORO_MINUTES),
            "timer.pomodoro_minutes",
        ),
        short_break_minutes=_as_positive_float(
            section.get("short_break_minutes", DEFAULT_SHORT_BREAK_MINUTES),
            "timer.short_break_minutes",
        ),
        long_break_minutes=_as_positive_float(
            section.get("long_break_minutes", DEFAULT_LONG_BREAK_MINUTES),
            "timer.long_break_minutes",
        ),
        long_break_interval=interval,
    )


def _parse_sound_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> SoundSettings:
    volume = _as_float(section.get("volume", 0.4), "sound.volume")
    if not 0.0 <= volume <= 1.0:
        raise AppConfigurationError("sound.volume must be in [0, 1].")
    return SoundSettings(
        enabled=_as_bool(section.get("enabled", True), "sound.enabled"),
        file=_resolve_path(base_dir, _as_str(section.get("file", ""), "sound.file")),
        output_device=(
            _as_int(section.get("output_device"), "sound.output_device")
            if "output_device" in section
            else None
        ),
        volume=volume,
    )


def _parse_stop_reason_settings(section: Mapping[str, Any]) -> StopReasonSettings:
    reasons = _as_str_tuple(section.get("reasons"), "stop_reasons.reasons")
    return StopReasonSettings(reasons=reasons or DEFAULT_STOP_REASONS)


def _parse_boards_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> BoardsSettings:
    directory = _as_str(section.get("directory", ""), "boards.directory")
    overrides_raw = _section(section, "overrides", "boards.overrides")
    overrides = {}
    for board_id, override_raw in overrides_raw.items():
        name = f"boards.overrides.{board_id}"
        if not isinstance(override_raw, Mapping):
            raise AppConfigurationError(f"[{name}] must be a table.")
        overrides[str(board_id)] = BoardOverrideSettings(
            pomodoro_minutes=(
                _as_positive_float(
                    override_raw.get("pomodoro_minutes"),
                    f"{name}.pomodoro_minutes",
                )
                if "pomodoro_minutes" in override_raw
                else None
            ),
            stop_reasons=_as_str_tuple(
                override_raw.get("stop_reasons"),
                f"{name}.stop_reasons",
            ),
        )
    return BoardsSettings(
        directory=_resolve_path(base_dir, directory) if directory else "",
        overrides=overrides,
    )


def _parse_ui_server_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> UIServerSettings:
    index_file = _as_str(section.get("index_file", ""), "ui_server.index_file")
    return UIServerSettings(
        enabled=_as_bool(section.get("enabled", True), "ui_server.enabled"),
        host=_as_str(section.get("host", "127.0.0.1"), "ui_server.host"),
        port=_as_int(section.get("port", 8765), "ui_server.port"),
        index_file=_resolve_path(base_dir, index_file) if index_file else "",
    )


def _section(
    root: Mapping[str, Any],
    name: str,
    label: Optional[str] = None,
) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{label or name}] must be a table.")
    return raw


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_str_tuple(value: Any, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise AppConfigurationError(f"{field} must be a list of strings.")
    items = []
    for item in value:
        if not isinstance(item, str):
            raise AppConfigurationError(f"{field} must be a list of strings.")
        if item.strip():
            items.append(item.strip())
    return tuple(items)


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        base = 16 if text.startswith("0x") else 10
        try:
            return int(text, base)
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    raise AppConfigurationError(f"{field} must be a float.")


def _as_positive_float(value: Any, field: str) -> float:
    number = _as_float(value, field)
    if not number > 0:
        raise AppConfigurationError(f"{field} must be greater than 0.")
    return number


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)
