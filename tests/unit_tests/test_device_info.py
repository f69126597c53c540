from types import SimpleNamespace
from unittest import TestCase
from unittest.mock import patch

import psutil

from usage_collector.config import CollectorConfig
from usage_collector.device_info import (
    generate_device_id,
    get_mac_addresses,
    resolve_device_info,
)


def link(address):
    return SimpleNamespace(family=psutil.AF_LINK, address=address)


class TestDeviceInfo(TestCase):
    def test_device_id_is_stable(self):
        first = generate_device_id("laptop", ["aa:bb:cc:dd:ee:02", "aa:bb:cc:dd:ee:01"])
        second = generate_device_id("laptop", ["aa:bb:cc:dd:ee:01", "aa:bb:cc:dd:ee:02", "aa:bb:cc:dd:ee:01"])

        self.assertEqual(first, second)
        self.assertEqual(len(first), 32)
        self.assertNotEqual(first, generate_device_id("desktop", ["aa:bb:cc:dd:ee:01"]))

    def test_mac_addresses_skip_loopback_and_null(self):
        interfaces = {
            "lo": [link("00:00:00:00:00:00")],
            "eth0": [link("AA-BB-CC-DD-EE-FF"), SimpleNamespace(family=2, address="10.0.0.2")],
            "docker0": [link("00:00:00:00:00:00")],
        }
        with (
            patch("usage_collector.device_info.psutil.net_if_addrs", return_value=interfaces),
            patch("usage_collector.device_info.psutil.net_if_stats", return_value={}),
        ):
            self.assertEqual(get_mac_addresses(), ["aa:bb:cc:dd:ee:ff"])

    def test_persisted_identity_wins(self):
        config = CollectorConfig(
            api_key="k",
            endpoint="https://x.io/api/usage-sync",
            device_id="saved-id",
            device_name="saved-name",
            display_name="Work",
        )

        device, generated = resolve_device_info(config, agent_type="amp")

        self.assertFalse(generated)
        self.assertEqual(device.device_id, "saved-id")
        self.assertEqual(device.display_name, "Work")
        self.assertEqual(device.agent_type, "amp")

    def test_fresh_identity_is_generated(self):
        config = CollectorConfig(api_key="k", endpoint="https://x.io/api/usage-sync")
        with (
            patch("usage_collector.device_info.get_device_name", return_value="laptop"),
            patch("usage_collector.device_info.get_mac_addresses", return_value=["aa:bb:cc:dd:ee:01"]),
        ):
            device, generated = resolve_device_info(config)

        self.assertTrue(generated)
        self.assertEqual(device.device_name, "laptop")
        self.assertEqual(device.device_id, generate_device_id("laptop", ["aa:bb:cc:dd:ee:01"]))
