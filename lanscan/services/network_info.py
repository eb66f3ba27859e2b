"""Local network information: interface subnets, local IP and default gateway."""

import logging
import socket
import subprocess

import psutil

from ..exceptions import ScanConfigurationError
from ..models.subnet import SubnetDescriptor
from .address_range import describe_subnet

logger = logging.getLogger(__name__)

# Loopback and link-local addresses are never scan candidates
_SKIPPED_PREFIXES = ("127.", "169.254.")


def discover_subnets() -> list[SubnetDescriptor]:
    """Describe the IPv4 subnet of every up, non-loopback interface.

    Interfaces without a netmask are skipped. Subnets shared by several
    interfaces are reported once.
    """
    subnets: list[SubnetDescriptor] = []
    seen: set[str] = set()

    try:
        addresses = psutil.net_if_addrs()
        stats = psutil.net_if_stats()
    except (OSError, RuntimeError) as e:
        logger.warning(f"Failed to enumerate network interfaces: {e}")
        return []

    for name, entries in addresses.items():
        interface_stats = stats.get(name)
        if interface_stats is not None and not interface_stats.isup:
            continue

        for entry in entries:
            if entry.family != socket.AF_INET or not entry.netmask:
                continue
            if entry.address.startswith(_SKIPPED_PREFIXES):
                continue
            try:
                subnet = describe_subnet(entry.address, entry.netmask, name)
            except ScanConfigurationError as e:
                logger.debug(f"Skipping interface {name}: {e}")
                continue
            if subnet.network_range in seen:
                continue
            seen.add(subnet.network_range)
            subnets.append(subnet)

    logger.debug(f"Discovered {len(subnets)} local subnets")
    return subnets


def get_local_ip() -> str | None:
    """Get the local/LAN IP address."""
    s = None
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.settimeout(2.0)
        # No packet is sent; connect only selects the outbound interface
        s.connect(("8.8.8.8", 80))
        return s.getsockname()[0]
    except OSError as e:
        logger.debug(f"Failed to get local IP: {e}")
        return None
    finally:
        if s:
            s.close()


def parse_route_table(output: str) -> str | None:
    """Find the default gateway in ``netstat -nr`` output."""
    for line in output.splitlines():
        if "default" in line.lower() or line.startswith("0.0.0.0"):
            parts = line.split()
            if len(parts) >= 2:
                gateway = parts[1]
                # Validate it looks like an IP
                if gateway.count(".") == 3:
                    return gateway
    return None


def get_gateway_ip() -> str | None:
    """Get the default gateway IP address."""
    try:
        result = subprocess.run(
            ["netstat", "-nr"],
            check=False,
            capture_output=True,
            text=True,
            timeout=5.0,
        )
        return parse_route_table(result.stdout)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Failed to get gateway IP: {e}")
    return None
