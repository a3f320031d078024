"""Cue player: custom sound file first, generated tone as the fallback."""

from __future__ import annotations

import logging
import threading
from typing import Optional, Protocol

import numpy as np

from .config import SoundConfig
from .errors import SoundError
from .tone import DEFAULT_SAMPLE_RATE_HZ, cue_tone, load_wav


class AudioOutput(Protocol):
    def play(self, wav: np.ndarray, sample_rate_hz: int) -> None:
        ...


class CueSoundPlayer:
    """Plays timer cues without ever raising into the caller."""

    def __init__(
        self,
        config: SoundConfig,
        *,
        output: Optional[AudioOutput] = None,
        background: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._output = output
        self._background = background
        self._logger = logger or logging.getLogger("sound")
        self._lock = threading.Lock()

    @property
    def config(self) -> SoundConfig:
        return self._config

    def apply_settings(self, settings) -> None:
        self._config = self._config.with_settings(settings)

    def play(self, cue: str) -> None:
        if not self._config.enabled:
            return
        if not self._background:
            self._play_cue(cue)
            return
        threading.Thread(
            target=self._play_cue,
            args=(cue,),
            daemon=True,
            name="cue-sound",
        ).start()

    def _play_cue(self, cue: str) -> None:
        config = self._config
        with self._lock:
            if config.sound_file:
                try:
                    wav, sample_rate_hz = load_wav(config.sound_file)
                    self._ensure_output().play(wav * config.volume, sample_rate_hz)
                    return
                except SoundError as error:
                    self._logger.warning(
                        "Custom cue sound failed, falling back to tone: %s",
                        error,
                    )

            try:
                self._ensure_output().play(
                    cue_tone(cue, volume=config.volume),
                    DEFAULT_SAMPLE_RATE_HZ,
                )
            except SoundError as error:
                self._logger.error("Cue tone playback failed: %s", error)

    def _ensure_output(self) -> AudioOutput:
        if self._output is None:
            try:
                from .output import SoundDeviceAudioOutput
            except OSError as error:
                raise SoundError(f"Audio backend unavailable: {error}") from error
            self._output = SoundDeviceAudioOutput(
                output_device_index=self._config.output_device_index,
                logger=self._logger,
            )
        return self._output
