import tempfile
import unittest
import wave
from pathlib import Path

import numpy as np

from focus import FocusSettings
from sound import CueSoundPlayer, SoundConfig, SoundError, cue_tone, generate_tone, load_wav
from sound.tone import CUE_NOTES, DEFAULT_SAMPLE_RATE_HZ


class RecordingOutput:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple[np.ndarray, int]] = []

    def play(self, wav: np.ndarray, sample_rate_hz: int) -> None:
        if self.fail:
            raise SoundError("device busy")
        self.calls.append((wav, sample_rate_hz))


def _write_wav(path: Path, samples: list[int], *, channels: int = 1, rate: int = 8000) -> None:
    with wave.open(str(path), "wb") as writer:
        writer.setnchannels(channels)
        writer.setsampwidth(2)
        writer.setframerate(rate)
        writer.writeframes(np.asarray(samples, dtype="<i2").tobytes())


class ToneTests(unittest.TestCase):
    def test_generate_tone_length_and_volume(self) -> None:
        wav = generate_tone(440.0, 0.5, sample_rate_hz=8000, volume=0.25)

        self.assertEqual(4000, len(wav))
        self.assertEqual(np.float32, wav.dtype)
        self.assertLessEqual(float(np.max(np.abs(wav))), 0.25 + 1e-6)
        self.assertAlmostEqual(0.0, float(wav[0]), places=6)

    def test_cue_tone_concatenates_notes(self) -> None:
        wav = cue_tone("session_end", sample_rate_hz=1000)
        expected = sum(int(1000 * seconds) for _, seconds in CUE_NOTES["session_end"])

        self.assertEqual(expected, len(wav))
        self.assertGreater(len(cue_tone("unknown", sample_rate_hz=1000)), 0)


class LoadWavTests(unittest.TestCase):
    def test_load_wav_scales_and_downmixes(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "cue.wav"
            _write_wav(path, [16384, 0, -16384, -16384], channels=2, rate=22050)

            pcm, rate = load_wav(path)

        self.assertEqual(22050, rate)
        np.testing.assert_allclose(pcm, np.array([0.25, -0.5], dtype=np.float32))

    def test_missing_and_invalid_files_raise(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            garbage = Path(temp_dir) / "garbage.wav"
            garbage.write_bytes(b"not a wav file")

            with self.assertRaises(SoundError):
                load_wav(Path(temp_dir) / "missing.wav")
            with self.assertRaises(SoundError):
                load_wav(garbage)


class CueSoundPlayerTests(unittest.TestCase):
    def test_plays_generated_tone_without_sound_file(self) -> None:
        output = RecordingOutput()
        player = CueSoundPlayer(SoundConfig(volume=0.5), output=output, background=False)

        player.play("break_end")

        self.assertEqual(1, len(output.calls))
        wav, rate = output.calls[0]
        self.assertEqual(DEFAULT_SAMPLE_RATE_HZ, rate)
        self.assertEqual(len(cue_tone("break_end")), len(wav))

    def test_custom_file_is_scaled_by_volume(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "bell.wav"
            _write_wav(path, [16384, 16384])
            output = RecordingOutput()
            player = CueSoundPlayer(
                SoundConfig(sound_file=str(path), volume=0.5),
                output=output,
                background=False,
            )

            player.play("session_end")

        wav, rate = output.calls[0]
        self.assertEqual(8000, rate)
        np.testing.assert_allclose(wav, np.array([0.25, 0.25], dtype=np.float32))

    def test_broken_sound_file_falls_back_to_tone(self) -> None:
        output = RecordingOutput()
        player = CueSoundPlayer(
            SoundConfig(sound_file="/nonexistent/bell.wav"),
            output=output,
            background=False,
        )

        with self.assertLogs("sound", level="WARNING"):
            player.play("session_end")

        self.assertEqual(DEFAULT_SAMPLE_RATE_HZ, output.calls[0][1])

    def test_output_failure_is_logged_not_raised(self) -> None:
        player = CueSoundPlayer(SoundConfig(), output=RecordingOutput(fail=True), background=False)

        with self.assertLogs("sound", level="ERROR"):
            player.play("session_end")

    def test_disabled_player_is_silent(self) -> None:
        output = RecordingOutput()
        player = CueSoundPlayer(SoundConfig(enabled=False), output=output, background=False)

        player.play("session_end")

        self.assertEqual([], output.calls)

    def test_apply_settings_updates_enabled_and_file(self) -> None:
        player = CueSoundPlayer(
            SoundConfig.from_settings(FocusSettings(), output_device_index=3, volume=2.0),
            output=RecordingOutput(),
            background=False,
        )

        player.apply_settings(FocusSettings(sound_enabled=False, sound_file=" bell.wav "))

        self.assertFalse(player.config.enabled)
        self.assertEqual("bell.wav", player.config.sound_file)
        self.assertEqual(3, player.config.output_device_index)
        self.assertEqual(1.0, player.config.volume)


if __name__ == "__main__":
    unittest.main()
