"""MAC address helpers shared by the probe pipeline, vendor lookup and Wake-on-LAN."""

import re

_SEPARATORS = re.compile(r"[:\-.\s]")
_HEX12 = re.compile(r"^[0-9A-F]{12}$")


def normalize_mac(mac: str) -> str:
    """Normalise a MAC address to upper-case colon form (AA:BB:CC:DD:EE:FF).

    Accepts colon, dash and dot separated input, and pads single-digit
    octets as printed by some ``arp`` implementations ("a:b:c:d:e:f").
    Returns an empty string if the input is not a MAC address.
    """
    if not mac:
        return ""
    mac = mac.strip()
    parts = re.split(r"[:\-]", mac)
    if len(parts) == 6 and all(1 <= len(p) <= 2 for p in parts):
        hex_digits = "".join(p.zfill(2) for p in parts).upper()
    else:
        hex_digits = _SEPARATORS.sub("", mac).upper()
    if not _HEX12.match(hex_digits):
        return ""
    return ":".join(hex_digits[i : i + 2] for i in range(0, 12, 2))


def mac_to_bytes(mac: str) -> bytes | None:
    """Convert a MAC address to its 6 raw bytes, or None if malformed.

    Separators are stripped first; exactly 12 hex digits must remain.
    """
    if not mac:
        return None
    hex_digits = _SEPARATORS.sub("", mac.strip()).upper()
    if not _HEX12.match(hex_digits):
        return None
    return bytes.fromhex(hex_digits)


def extract_oui(mac: str) -> str:
    """Return the OUI (first 3 bytes) as 6 upper-case hex digits, or ''."""
    if not mac:
        return ""
    hex_digits = _SEPARATORS.sub("", mac.strip()).upper()
    if len(hex_digits) < 6 or not re.match(r"^[0-9A-F]{6}", hex_digits):
        return ""
    return hex_digits[:6]


def is_null_mac(mac: str) -> bool:
    """Return True for all-zero or broadcast MACs that carry no identity."""
    raw = mac_to_bytes(mac)
    return raw is None or raw in (b"\x00" * 6, b"\xff" * 6)
