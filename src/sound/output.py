"""Sounddevice-backed playback for cue audio."""

import logging
from typing import Optional

import numpy as np
import sounddevice as sd

from .errors import SoundError


class SoundDeviceAudioOutput:
    """Plays short mono cues on the selected output device, blocking until done."""

    def __init__(
        self,
        output_device_index: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._output_device_index = output_device_index
        self._logger = logger or logging.getLogger("sound")

    def play(self, wav: np.ndarray, sample_rate_hz: int) -> None:
        if wav.ndim != 1:
            raise SoundError("Expected mono PCM array for playback")
        if wav.size == 0:
            raise SoundError("Cannot play empty audio buffer")

        samples = np.clip(np.ascontiguousarray(wav, dtype=np.float32), -1.0, 1.0)
        self._logger.debug(
            "Playing cue: %.2fs on device %s",
            samples.size / sample_rate_hz,
            self._output_device_index,
        )
        try:
            sd.play(
                samples,
                samplerate=sample_rate_hz,
                device=self._output_device_index,
                blocking=True,
            )
        except (sd.PortAudioError, ValueError) as error:
            raise SoundError(f"Audio playback failed: {error}") from error
