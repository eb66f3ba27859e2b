"""Export discovered devices to CSV, XML or JSON, and import JSON exports.

CSV and XML carry the display field set in a fixed column order. JSON holds
the full device records and is the only format that can be imported back.
"""

import csv
import json
import logging
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from ..exceptions import ExportError
from ..models.scan_result import DiscoveredHost

logger = logging.getLogger(__name__)

EXPORT_FIELDS = [
    "IP Address",
    "MAC Address",
    "Host Name",
    "NetBIOS Name",
    "Vendor",
    "Device Type",
    "Response Time",
    "Status",
    "Open Ports",
    "Services",
    "Operating System",
    "First Seen",
    "Last Seen",
    "Notes",
]

EXPORT_FORMATS = ("csv", "json", "xml")

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def device_export_row(device: DiscoveredHost) -> dict[str, str]:
    """Flatten a device into display strings keyed by ``EXPORT_FIELDS``."""
    return {
        "IP Address": device.ip,
        "MAC Address": device.mac,
        "Host Name": device.hostname,
        "NetBIOS Name": device.netbios_name,
        "Vendor": device.vendor,
        "Device Type": device.device_type.value,
        "Response Time": device.response_time_text,
        "Status": device.status.value.capitalize(),
        "Open Ports": ", ".join(str(port) for port in device.open_ports),
        "Services": "; ".join(f"{port}:{name}" for port, name in sorted(device.services.items())),
        "Operating System": device.operating_system,
        "First Seen": device.first_seen.strftime(DATE_FORMAT),
        "Last Seen": device.last_seen.strftime(DATE_FORMAT),
        "Notes": device.notes,
    }


def _scan_info(devices: list[DiscoveredHost]) -> dict[str, str | int]:
    return {"date": datetime.now().strftime(DATE_FORMAT), "device_count": len(devices)}


def export_csv(devices: list[DiscoveredHost], path: Path | str) -> Path:
    """Write devices as CSV with a header row, every value quoted."""
    path = Path(path)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=EXPORT_FIELDS, quoting=csv.QUOTE_ALL)
        writer.writeheader()
        for device in devices:
            writer.writerow(device_export_row(device))
    return path


def export_xml(devices: list[DiscoveredHost], path: Path | str) -> Path:
    """Write devices as XML; one ``Device`` element per host, fields as attributes."""
    path = Path(path)
    root = ET.Element("NetworkScanResults")
    info = _scan_info(devices)
    ET.SubElement(
        root, "ScanInfo", Date=str(info["date"]), DeviceCount=str(info["device_count"])
    )
    devices_element = ET.SubElement(root, "Devices")
    for device in devices:
        row = device_export_row(device)
        # Attribute names cannot contain spaces
        ET.SubElement(
            devices_element, "Device", {key.replace(" ", ""): value for key, value in row.items()}
        )

    tree = ET.ElementTree(root)
    ET.indent(tree)
    tree.write(path, encoding="utf-8", xml_declaration=True)
    return path


def export_json(devices: list[DiscoveredHost], path: Path | str) -> Path:
    """Write the full device records as JSON."""
    path = Path(path)
    data = {
        "scan_info": _scan_info(devices),
        "devices": [device.model_dump(mode="json") for device in devices],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    return path


_EXPORTERS = {
    "csv": export_csv,
    "json": export_json,
    "xml": export_xml,
}


def export_devices(
    devices: list[DiscoveredHost], fmt: str | None, path: Path | str
) -> Path:
    """Export devices in the given format, or the one implied by the file suffix.

    Raises:
        ExportError: If the format is unsupported or the file cannot be written.
    """
    path = Path(path)
    fmt = (fmt or path.suffix.lstrip(".")).lower()
    exporter = _EXPORTERS.get(fmt)
    if exporter is None:
        raise ExportError(
            f"Unsupported export format '{fmt}'", {"supported": list(EXPORT_FORMATS)}
        )

    try:
        exporter(devices, path)
    except OSError as e:
        raise ExportError(f"Failed to write {path}: {e}", {"path": str(path)}) from e

    logger.info(f"Exported {len(devices)} devices to {path}")
    return path


def import_json(path: Path | str) -> list[DiscoveredHost]:
    """Load devices from a JSON export.

    Raises:
        ExportError: If the file cannot be read or is not a device export.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        devices = [DiscoveredHost.model_validate(item) for item in data["devices"]]
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValidationError) as e:
        raise ExportError(f"Failed to import devices from {path}: {e}", {"path": str(path)}) from e

    logger.info(f"Imported {len(devices)} devices from {path}")
    return devices
