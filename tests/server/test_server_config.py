import tempfile
import unittest
from pathlib import Path

from app_config_schema import UIServerSettings
from server.config import ServerConfigurationError, UIServerConfig


class UIServerConfigTests(unittest.TestCase):
    def test_from_settings_without_index_file(self) -> None:
        config = UIServerConfig.from_settings(UIServerSettings())

        self.assertTrue(config.enabled)
        self.assertEqual("/ws", config.websocket_path)
        self.assertIsNone(config.ui_root)

    def test_explicit_index_file_sets_ui_root(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            custom = Path(temp_dir) / "index.html"
            custom.write_text("<html></html>", encoding="utf-8")

            config = UIServerConfig.from_settings(UIServerSettings(index_file=f" {custom} "))

            self.assertEqual(str(custom), config.index_file)
            self.assertEqual(Path(temp_dir), config.ui_root)

    def test_invalid_values_raise(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            cases = (
                {"host": " "},
                {"port": 0},
                {"port": 70000},
                {"index_file": str(Path(temp_dir) / "missing.html")},
                {"index_file": temp_dir},
            )
            for overrides in cases:
                with self.subTest(overrides=overrides):
                    with self.assertRaises(ServerConfigurationError):
                        UIServerConfig(**overrides)

    def test_disabled_server_skips_index_check(self) -> None:
        config = UIServerConfig(enabled=False, index_file="/nonexistent/index.html")
        self.assertFalse(config.enabled)


if __name__ == "__main__":
    unittest.main()
