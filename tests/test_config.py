import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from thermostat_e2e.config import E2EConfig, load_config
from thermostat_e2e.errors import ConfigError


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.missing = Path(self.tmp.name) / "absent.json"

    def _write(self, data) -> Path:
        path = Path(self.tmp.name) / "e2e_config.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_defaults(self):
        with patch("thermostat_e2e.config.DEFAULT_CONFIG_PATH", self.missing):
            config = load_config(environ={})
        self.assertEqual(config, E2EConfig())
        self.assertEqual(config.app_base_url, "http://localhost:5000")
        self.assertEqual(config.driver_endpoint, "http://127.0.0.1:4723/wd/hub")
        self.assertEqual(config.element_wait_seconds, 15)
        self.assertEqual(config.ui_settle_ms, 600)
        self.assertEqual(config.api_debounce_ms, 1000)

    def test_precedence_file_env_override(self):
        path = self._write({"app_base_url": "http://file:1", "ui_settle_ms": 300,
                            "api_debounce_ms": 200})
        env = {"THERMOSTAT_APP_URL": "http://env:2", "THERMOSTAT_UI_SETTLE_MS": "450"}
        config = load_config(path, overrides={"app_base_url": "http://cli:3", "headless": None},
                             environ=env)
        self.assertEqual(config.app_base_url, "http://cli:3")
        self.assertEqual(config.ui_settle_ms, 450)
        self.assertEqual(config.api_debounce_ms, 200)
        self.assertFalse(config.headless)

    def test_headless_from_env(self):
        config = load_config(self._write({}), environ={"THERMOSTAT_HEADLESS": "true"})
        self.assertTrue(config.headless)

    def test_invalid_values_are_all_reported(self):
        path = self._write({"automation_server_url": "127.0.0.1:4723",
                            "element_wait_seconds": 0, "ui_settle_ms": "fast"})
        with self.assertRaises(ConfigError) as ctx:
            load_config(path, environ={})
        message = str(ctx.exception)
        self.assertIn("automation_server_url", message)
        self.assertIn("element_wait_seconds must be > 0", message)
        self.assertIn("ui_settle_ms must be an integer", message)

    def test_unknown_key_rejected(self):
        with self.assertRaises(ConfigError):
            load_config(self._write({"hub_url": "http://x"}), environ={})

    def test_explicit_missing_file(self):
        with self.assertRaises(ConfigError):
            load_config(self.missing, environ={})

    def test_malformed_json(self):
        path = Path(self.tmp.name) / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(path, environ={})

    def test_unreadable_file(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config(Path(self.tmp.name), environ={})
        self.assertIn("Cannot read config file", str(ctx.exception))

    def test_non_utf8_file(self):
        path = Path(self.tmp.name) / "latin.json"
        path.write_bytes(b'\xff\xfe{"ui_settle_ms": 10}')
        with self.assertRaises(ConfigError) as ctx:
            load_config(path, environ={})
        self.assertIn("Cannot read config file", str(ctx.exception))

    def test_bool_and_fractional_integers_rejected(self):
        path = self._write({"element_wait_seconds": True, "ui_settle_ms": 2.5,
                            "api_debounce_ms": 400.0})
        with self.assertRaises(ConfigError) as ctx:
            load_config(path, environ={})
        message = str(ctx.exception)
        self.assertIn("element_wait_seconds must be an integer, got True", message)
        self.assertIn("ui_settle_ms must be an integer, got 2.5", message)
        self.assertNotIn("api_debounce_ms", message)

    def test_whole_float_accepted(self):
        config = load_config(self._write({"api_debounce_ms": 400.0}), environ={})
        self.assertEqual(config.api_debounce_ms, 400)
        self.assertIsInstance(config.api_debounce_ms, int)

    def test_driver_endpoint_joins_path(self):
        config = E2EConfig(automation_server_url="http://grid:4444/", automation_path="")
        self.assertEqual(config.driver_endpoint, "http://grid:4444")
        config = E2EConfig(automation_server_url="http://grid:4444", automation_path="wd/hub")
        self.assertEqual(config.driver_endpoint, "http://grid:4444/wd/hub")

    def test_millisecond_helpers(self):
        config = E2EConfig(ui_settle_ms=600, api_debounce_ms=1000)
        self.assertAlmostEqual(config.ui_settle_seconds, 0.6)
        self.assertAlmostEqual(config.api_debounce_seconds, 1.0)


if __name__ == "__main__":
    unittest.main()
