"""Public exports for timer cue playback."""

from .config import SoundConfig
from .errors import SoundError
from .player import AudioOutput, CueSoundPlayer
from .tone import cue_tone, generate_tone, load_wav

__all__ = [
    "AudioOutput",
    "CueSoundPlayer",
    "SoundConfig",
    "SoundError",
    "cue_tone",
    "generate_tone",
    "load_wav",
]
