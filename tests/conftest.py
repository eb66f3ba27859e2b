"""Pytest configuration and fixtures."""

import json
import tempfile
from pathlib import Path

import pytest

from lanscan.models.scan_result import DeviceType, DiscoveredHost


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        "scan": {
            "ping_timeout_ms": 500,
            "ports_to_scan": [22, 80, 443],
            "max_concurrent_scans": 16,
        },
        "targets": [
            {"name": "Home", "range": "192.168.1.0/24"},
            {"name": "Lab", "range": "10.0.0.0/28"},
        ],
        "vendor": {
            "online_lookup": False,
            "timeout_ms": 200,
        },
        "settings": {
            "neighbor_resolver": "none",
            "log_level": "DEBUG",
        },
    }


@pytest.fixture
def sample_config_file(temp_dir, sample_config_data):
    """Create a sample config file for testing."""
    config_path = temp_dir / "lanscan.json"
    with open(config_path, "w") as f:
        json.dump(sample_config_data, f)
    return config_path


@pytest.fixture
def sample_devices():
    """A small set of discovered hosts."""
    return [
        DiscoveredHost(
            ip="192.168.1.1",
            mac="00:11:32:AA:BB:CC",
            hostname="router.lan",
            vendor="Synology",
            device_type=DeviceType.ROUTER,
            is_reachable=True,
            response_time_ms=2,
            open_ports=[53, 80, 443],
            services={80: "nginx", 443: "HTTPS"},
        ),
        DiscoveredHost(
            ip="192.168.1.20",
            netbios_name="DESKTOP-01",
            hostname="DESKTOP-01",
            device_type=DeviceType.COMPUTER,
            is_reachable=True,
            response_time_ms=0,
            open_ports=[135, 139, 445],
            operating_system="Windows",
            notes='says "hi", twice',
        ),
    ]
