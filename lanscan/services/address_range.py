"""Subnet arithmetic: CIDR parsing and usable host enumeration."""

import ipaddress
import logging
import re

from ..exceptions import ScanConfigurationError
from ..models.subnet import SubnetDescriptor

logger = logging.getLogger(__name__)

# Enumeration cap, keeps a /8 or wider from allocating millions of addresses
MAX_ADDRESSES = 65534

_FULL_MASK = 0xFFFFFFFF


def ip_to_int(ip: str) -> int:
    """Convert a dotted IPv4 address to its unsigned 32-bit value (network byte order)."""
    return int.from_bytes(ipaddress.IPv4Address(ip).packed, "big")


def int_to_ip(value: int) -> str:
    """Convert an unsigned 32-bit value back to dotted IPv4 notation."""
    return str(ipaddress.IPv4Address((value & _FULL_MASK).to_bytes(4, "big")))


def mask_to_prefix(mask: str) -> int:
    """Count the leading 1-bits of a subnet mask.

    Masks are expected to be contiguous; trailing bits after the first zero
    are ignored rather than rejected.
    """
    value = ip_to_int(mask)
    prefix = 0
    while prefix < 32 and value & (1 << (31 - prefix)):
        prefix += 1
    return prefix


def prefix_to_mask(prefix: int) -> str:
    """Build the dotted subnet mask for a prefix length."""
    if not 0 <= prefix <= 32:
        raise ScanConfigurationError(
            f"CIDR prefix must be between 0 and 32, got {prefix}", {"prefix": prefix}
        )
    value = (_FULL_MASK << (32 - prefix)) & _FULL_MASK
    return int_to_ip(value)


def describe_subnet(address: str, mask: str, interface_name: str = "") -> SubnetDescriptor:
    """Derive the full subnet description from any address in it plus its mask."""
    try:
        address_value = ip_to_int(address)
        mask_value = ip_to_int(mask)
    except ValueError as e:
        raise ScanConfigurationError(
            f"Invalid address or mask: {e}", {"address": address, "mask": mask}
        ) from e

    cidr = mask_to_prefix(mask)
    network = address_value & mask_value
    broadcast = network | (~mask_value & _FULL_MASK)
    total_hosts = 2 ** (32 - cidr)

    if cidr == 32:
        # Single host
        first_usable = last_usable = int_to_ip(network)
        usable_hosts = 1
    elif cidr == 31:
        # Point-to-point link, nothing left after excluding network and broadcast
        first_usable = last_usable = ""
        usable_hosts = 0
    else:
        first_usable = int_to_ip(network + 1)
        last_usable = int_to_ip(broadcast - 1)
        usable_hosts = total_hosts - 2

    return SubnetDescriptor(
        network_address=int_to_ip(network),
        subnet_mask=int_to_ip(mask_value),
        cidr=cidr,
        first_usable=first_usable,
        last_usable=last_usable,
        broadcast_address=int_to_ip(broadcast),
        total_hosts=total_hosts,
        usable_hosts=usable_hosts,
        interface_name=interface_name,
    )


def parse_subnet(text: str) -> SubnetDescriptor:
    """Parse "a.b.c.d/nn" or "a.b.c.d/255.255.255.0" into a SubnetDescriptor.

    Prefixes run from 1 to 32; /0 would mean the whole IPv4 space.

    Raises:
        ScanConfigurationError: If the text is not a valid IPv4 subnet.
    """
    text = (text or "").strip()
    match = re.fullmatch(r"(\d{1,3}(?:\.\d{1,3}){3})/(\S+)", text)
    if not match:
        raise ScanConfigurationError(f"Invalid CIDR range '{text}'", {"range": text})

    address, suffix = match.groups()
    if suffix.isdigit():
        prefix = int(suffix)
        mask = prefix_to_mask(prefix)
    else:
        mask = suffix

    subnet = describe_subnet(address, mask)
    if subnet.cidr < 1:
        raise ScanConfigurationError(
            f"CIDR prefix must be between 1 and 32, got {subnet.cidr}", {"range": text}
        )
    return subnet


def calculate_address_range(
    subnet: SubnetDescriptor, limit: int = MAX_ADDRESSES
) -> list[str]:
    """Return the ordered usable host addresses of a subnet.

    Network and broadcast addresses are excluded. If the subnet holds more
    than ``limit`` usable hosts, the list is truncated and a warning logged.
    """
    if subnet.usable_hosts <= 0 or not subnet.first_usable:
        return []

    start = ip_to_int(subnet.first_usable)
    count = subnet.usable_hosts
    if count > limit:
        logger.warning(
            f"Subnet {subnet.network_range} has {count} usable hosts, "
            f"scanning only the first {limit}"
        )
        count = limit

    return [int_to_ip(start + i) for i in range(count)]
