"""Device type classification from probe evidence.

``classify_device`` is a pure decision table. Branch order is the
tie-break policy: the first matching branch wins, so e.g. a host with web
and admin ports is never considered for the printer branches further down.
"""

from collections.abc import Iterable

from ..models.scan_result import DeviceType

WEB_PORTS = {80, 443, 8080}
ADMIN_PORTS = {22, 23}
MANAGEMENT_PORTS = {22, 23, 161}
GATEWAY_PORTS = {53, 67}  # DNS / DHCP
PRINTER_PORTS = {515, 631, 9100}
WINDOWS_SHARING_PORTS = {135, 139, 445}
STREAMING_PORTS = {554, 1935}
TV_PORTS = {8080, 7676}

ROUTER_VENDORS = ("cisco", "netgear", "linksys")
SWITCH_VENDORS = ("cisco", "hp", "dell")
TV_VENDORS = ("samsung", "lg", "sony")
CAMERA_KEYWORDS = ("camera", "surveillance")
NAS_SERVICE_KEYWORDS = ("smb", "nfs")


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    text = text.lower()
    return any(keyword in text for keyword in keywords)


def _vendor_matches(vendor: str, keywords: Iterable[str]) -> bool:
    """Match vendor keywords on word boundaries ("HP" must not match "Shpock")."""
    words = set("".join(c if c.isalnum() else " " for c in vendor.lower()).split())
    return any(keyword in words for keyword in keywords)


def classify_device(
    open_ports: Iterable[int],
    vendor: str = "",
    netbios_name: str = "",
    services: Iterable[str] = (),
) -> DeviceType:
    """Map open ports, vendor, NetBIOS name and service banners to a device type."""
    ports = set(open_ports)
    vendor = vendor or ""
    netbios = (netbios_name or "").lower()
    service_list = [s for s in services if s]

    if ports & WEB_PORTS:
        if ports & ADMIN_PORTS:
            if _vendor_matches(vendor, ROUTER_VENDORS):
                return DeviceType.ROUTER
            return DeviceType.SERVER
        if ports & GATEWAY_PORTS:
            return DeviceType.ROUTER
        if "printer" in netbios or ports & PRINTER_PORTS:
            return DeviceType.PRINTER
        if any(_contains_any(s, CAMERA_KEYWORDS) for s in service_list):
            return DeviceType.CAMERA
        return DeviceType.SERVER

    if ports & MANAGEMENT_PORTS:
        if _vendor_matches(vendor, SWITCH_VENDORS) or "switch" in netbios:
            return DeviceType.SWITCH
        return DeviceType.ROUTER

    if ports & PRINTER_PORTS:
        return DeviceType.PRINTER

    if ports & WINDOWS_SHARING_PORTS:
        return DeviceType.COMPUTER

    if ports & STREAMING_PORTS:
        return DeviceType.MEDIA_DEVICE

    if _vendor_matches(vendor, ("apple",)) and ("iphone" in netbios or "ipad" in netbios):
        return DeviceType.TABLET if "ipad" in netbios else DeviceType.MOBILE

    if _vendor_matches(vendor, TV_VENDORS):
        if ports & TV_PORTS:
            return DeviceType.SMART_TV
        return DeviceType.MOBILE

    if "nas" in netbios or any(_contains_any(s, NAS_SERVICE_KEYWORDS) for s in service_list):
        return DeviceType.NAS

    return DeviceType.UNKNOWN


# Banner keyword -> OS, checked in order
_BANNER_OS_HINTS = [
    ("windows", "Windows"),
    ("microsoft", "Windows"),
    ("ubuntu", "Linux (Ubuntu)"),
    ("debian", "Linux (Debian)"),
    ("raspbian", "Linux (Raspbian)"),
    ("centos", "Linux (CentOS)"),
    ("red hat", "Linux (Red Hat)"),
    ("fedora", "Linux (Fedora)"),
    ("freebsd", "FreeBSD"),
    ("openbsd", "OpenBSD"),
    ("routeros", "RouterOS"),
    ("mikrotik", "RouterOS"),
    ("cisco", "Cisco IOS"),
    ("synology", "DSM (Synology)"),
    ("darwin", "macOS"),
    ("macos", "macOS"),
    ("openssh", "Linux/Unix"),
    ("dropbear", "Linux (embedded)"),
]


def guess_operating_system(open_ports: Iterable[int], services: Iterable[str] = ()) -> str:
    """Best-effort OS hint from service banners, then from port signatures."""
    for service in services:
        lowered = (service or "").lower()
        for keyword, os_name in _BANNER_OS_HINTS:
            if keyword in lowered:
                return os_name

    ports = set(open_ports)
    if ports & {135, 3389} or {139, 445} <= ports:
        return "Windows"
    if 22 in ports and not ports & WINDOWS_SHARING_PORTS:
        return "Linux/Unix"
    return ""
