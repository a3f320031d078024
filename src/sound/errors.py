"""Exception type shared by cue decoding and playback."""


class SoundError(Exception):
    """Raised when a cue sound cannot be decoded or played."""
