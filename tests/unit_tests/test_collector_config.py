import json
import os
import stat
import tempfile
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch

from usage_collector.config import (
    CollectorConfig,
    ConfigManager,
    base_url_from_endpoint,
    default_config_dir,
    endpoint_from_base_url,
)
from usage_collector.exceptions import ConfigError


class TestConfigManager(TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.manager = ConfigManager(Path(self.tmp.name) / "collector")

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_config(self):
        self.assertFalse(self.manager.has_config())
        self.assertIsNone(self.manager.load_config())

    def test_save_and_load(self):
        config = CollectorConfig(
            api_key="secret",
            endpoint="https://dash.example.com/api/usage-sync",
            agent_types=["claude-code", "amp"],
        )
        self.manager.save_config(config)

        mode = stat.S_IMODE(os.stat(self.manager.config_path).st_mode)
        self.assertEqual(mode, 0o600)

        stored = json.loads(self.manager.config_path.read_text())
        self.assertEqual(stored["apiKey"], "secret")
        self.assertEqual(stored["agentTypes"], ["claude-code", "amp"])
        self.assertNotIn("deviceId", stored)

        self.assertEqual(self.manager.load_config(), config)

    def test_legacy_single_agent_type(self):
        self.manager.config_dir.mkdir(parents=True)
        self.manager.config_path.write_text(
            json.dumps({"apiKey": "k", "endpoint": "https://x.io/api/usage-sync", "agentType": "codex"})
        )

        self.assertEqual(self.manager.load_config().agent_types, ["codex"])

    def test_invalid_or_incomplete_config(self):
        self.manager.config_dir.mkdir(parents=True)
        self.manager.config_path.write_text("{not json")
        self.assertIsNone(self.manager.load_config())

        self.manager.config_path.write_text(json.dumps({"endpoint": "https://x.io"}))
        self.assertIsNone(self.manager.load_config())

    def test_update_device_info(self):
        self.manager.save_config(CollectorConfig(api_key="k", endpoint="https://x.io/api/usage-sync"))

        updated = self.manager.update_device_info("abc123", "laptop")

        self.assertEqual(updated.device_id, "abc123")
        self.assertEqual(self.manager.load_config().device_name, "laptop")

    def test_update_device_info_without_config(self):
        with self.assertRaises(ConfigError):
            self.manager.update_device_info("abc123", "laptop")


class TestConfigHelpers(TestCase):
    def test_endpoint_round_trip(self):
        self.assertEqual(
            endpoint_from_base_url("https://dash.example.com/"),
            "https://dash.example.com/api/usage-sync",
        )
        self.assertEqual(
            base_url_from_endpoint("https://dash.example.com/api/usage-sync"),
            "https://dash.example.com",
        )

    def test_config_dir_override(self):
        with patch.dict(os.environ, {"USAGE_COLLECTOR_HOME": "/tmp/collector-home"}):
            self.assertEqual(default_config_dir(), Path("/tmp/collector-home"))
