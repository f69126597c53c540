"""
Device identity.

The id is a stable hash of the hostname and the machine's external MAC
addresses, so reinstalling the collector on the same machine keeps reporting
under the same device.
"""

import hashlib
import socket

import psutil

from usage_collector.config import CollectorConfig
from usage_collector.models import DeviceInfo

DEVICE_ID_LENGTH = 32
NULL_MAC = "00:00:00:00:00:00"


def get_device_name() -> str:
    return socket.gethostname()


def get_mac_addresses() -> list[str]:
    """MAC addresses of non-loopback interfaces, lowercased."""
    macs = []
    stats = psutil.net_if_stats()
    for name, addresses in psutil.net_if_addrs().items():
        if name.startswith("lo") or (name in stats and _is_loopback(stats[name])):
            continue
        for address in addresses:
            if address.family != psutil.AF_LINK or not address.address:
                continue
            mac = address.address.lower().replace("-", ":")
            if mac != NULL_MAC:
                macs.append(mac)
    return macs


def _is_loopback(stats) -> bool:
    flags = getattr(stats, "flags", "") or ""
    return "loopback" in flags.split(",")


def generate_device_id(hostname: str, mac_addresses: list[str]) -> str:
    """sha256("<hostname>:<sorted unique macs>")[:32]"""
    macs = ",".join(sorted(set(mac_addresses)))
    digest = hashlib.sha256(f"{hostname}:{macs}".encode("utf-8")).hexdigest()
    return digest[:DEVICE_ID_LENGTH]


def resolve_device_info(
    config: CollectorConfig, agent_type: str | None = None
) -> tuple[DeviceInfo, bool]:
    """Return the device identity and whether it was freshly derived.

    A persisted id/name in the config always wins; the caller saves a freshly
    derived identity so later runs reuse it.
    """
    generated = False
    device_id = config.device_id
    device_name = config.device_name
    if not device_id or not device_name:
        device_name = device_name or get_device_name()
        device_id = device_id or generate_device_id(get_device_name(), get_mac_addresses())
        generated = True

    device = DeviceInfo(
        device_id=device_id,
        device_name=device_name,
        display_name=config.display_name or None,
        agent_type=agent_type,
    )
    return device, generated
