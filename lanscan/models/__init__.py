"""Data models for the scanner."""

from .config import Config, ScanOptions, ScanTarget, Settings, VendorLookupConfig
from .scan_result import (
    DeviceStatus,
    DeviceType,
    DiscoveredHost,
    ScanProgress,
    ScanResult,
    ScanState,
)
from .subnet import SubnetDescriptor

__all__ = [
    "Config",
    "DeviceStatus",
    "DeviceType",
    "DiscoveredHost",
    "ScanOptions",
    "ScanProgress",
    "ScanResult",
    "ScanState",
    "ScanTarget",
    "Settings",
    "SubnetDescriptor",
    "VendorLookupConfig",
]
