"""Configuration model for timer cue playback."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class SoundConfig:
    """Resolved cue settings and optional output-device selection."""
    enabled: bool = True
    sound_file: str = ""
    output_device_index: Optional[int] = None
    volume: float = 0.4

    @classmethod
    def from_settings(
        cls,
        settings,
        *,
        output_device_index: Optional[int] = None,
        volume: float = 0.4,
    ) -> "SoundConfig":
        """Build from any object exposing ``sound_enabled`` and ``sound_file``."""
        return cls(
            enabled=bool(settings.sound_enabled),
            sound_file=(settings.sound_file or "").strip(),
            output_device_index=output_device_index,
            volume=min(1.0, max(0.0, float(volume))),
        )

    def with_settings(self, settings) -> "SoundConfig":
        return replace(
            self,
            enabled=bool(settings.sound_enabled),
            sound_file=(settings.sound_file or "").strip(),
        )
