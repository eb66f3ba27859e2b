"""Services for probing hosts and scanning subnets."""

from .address_range import calculate_address_range, describe_subnet, parse_subnet
from .classifier import classify_device, guess_operating_system
from .export import export_devices, import_json
from .governor import ConcurrencyGovernor
from .host_probe import HostProbe
from .listeners import LoggingScanListener, QueueScanListener, ScanListener
from .network_scanner import NetworkScanner
from .vendor_cache import VendorCache
from .vendor_lookup import MacVendorService
from .wake_on_lan import WakeOnLanSender, build_magic_packet

__all__ = [
    "ConcurrencyGovernor",
    "HostProbe",
    "LoggingScanListener",
    "MacVendorService",
    "NetworkScanner",
    "QueueScanListener",
    "ScanListener",
    "VendorCache",
    "WakeOnLanSender",
    "build_magic_packet",
    "calculate_address_range",
    "classify_device",
    "describe_subnet",
    "export_devices",
    "guess_operating_system",
    "import_json",
    "parse_subnet",
]
