"""Generated cue tones and WAV decoding into mono float PCM arrays."""

from __future__ import annotations

import wave
from pathlib import Path

import numpy as np

from .errors import SoundError

DEFAULT_SAMPLE_RATE_HZ = 44_100
_FADE_SECONDS = 0.01

# Each cue is a short sequence of (frequency Hz, seconds) notes.
CUE_NOTES: dict[str, tuple[tuple[float, float], ...]] = {
    "session_end": ((880.0, 0.18), (660.0, 0.18), (880.0, 0.30)),
    "break_end": ((523.25, 0.20), (659.25, 0.20), (783.99, 0.35)),
}
_FALLBACK_NOTES = ((740.0, 0.35),)


def generate_tone(
    frequency_hz: float,
    duration_seconds: float,
    *,
    sample_rate_hz: int = DEFAULT_SAMPLE_RATE_HZ,
    volume: float = 0.4,
) -> np.ndarray:
    """Return a sine tone with short linear fades to avoid clicks."""
    sample_count = max(1, int(sample_rate_hz * duration_seconds))
    t = np.arange(sample_count, dtype=np.float32) / float(sample_rate_hz)
    wav = np.sin(2.0 * np.pi * frequency_hz * t).astype(np.float32) * float(volume)

    fade = min(sample_count // 2, int(sample_rate_hz * _FADE_SECONDS))
    if fade > 0:
        ramp = np.linspace(0.0, 1.0, fade, dtype=np.float32)
        wav[:fade] *= ramp
        wav[-fade:] *= ramp[::-1]
    return wav


def cue_tone(
    cue: str,
    *,
    sample_rate_hz: int = DEFAULT_SAMPLE_RATE_HZ,
    volume: float = 0.4,
) -> np.ndarray:
    notes = CUE_NOTES.get(cue, _FALLBACK_NOTES)
    return np.concatenate(
        [
            generate_tone(
                frequency,
                seconds,
                sample_rate_hz=sample_rate_hz,
                volume=volume,
            )
            for frequency, seconds in notes
        ]
    )


def load_wav(path: str | Path) -> tuple[np.ndarray, int]:
    """Decode a 8/16/32-bit PCM WAV file into a mono float32 array."""
    wav_path = Path(path).expanduser()
    if not wav_path.is_file():
        raise SoundError(f"Sound file not found: {wav_path}")

    try:
        with wave.open(str(wav_path), "rb") as reader:
            channels = reader.getnchannels()
            sample_width = reader.getsampwidth()
            sample_rate_hz = reader.getframerate()
            frames = reader.readframes(reader.getnframes())
    except (wave.Error, EOFError, OSError) as error:
        raise SoundError(f"Failed to read sound file {wav_path}: {error}") from error

    if sample_width == 1:
        pcm = (np.frombuffer(frames, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
    elif sample_width == 2:
        pcm = np.frombuffer(frames, dtype="<i2").astype(np.float32) / 32768.0
    elif sample_width == 4:
        pcm = np.frombuffer(frames, dtype="<i4").astype(np.float32) / 2147483648.0
    else:
        raise SoundError(f"Unsupported sample width {sample_width} in {wav_path}")

    if channels > 1:
        usable = len(pcm) - len(pcm) % channels
        pcm = pcm[:usable].reshape(-1, channels).mean(axis=1)
    if len(pcm) == 0:
        raise SoundError(f"Sound file is empty: {wav_path}")
    return pcm.astype(np.float32), sample_rate_hz
