"""Neighbor (ARP) resolution: IP address to MAC address.

Three implementations share the ``NeighborResolver`` protocol:

* ``SystemArpResolver`` reads the OS neighbor table (``/proc/net/arp`` on
  Linux, ``arp -a`` elsewhere). The preceding ping has usually populated it.
* ``ScapyArpResolver`` sends a broadcast ARP request with scapy. Needs root.
* ``NullNeighborResolver`` never finds anything.
"""

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Protocol

from ..utils import is_null_mac, normalize_mac

logger = logging.getLogger(__name__)

PROC_ARP_PATH = Path("/proc/net/arp")

_MAC_PATTERN = re.compile(r"([0-9a-f]{1,2}(?:[:-][0-9a-f]{1,2}){5})", re.IGNORECASE)

# ATF_COM flag in /proc/net/arp: entry is complete
_ATF_COM = 0x2


class NeighborResolver(Protocol):
    """Resolves the MAC address of an IPv4 neighbor."""

    async def resolve(self, ip: str) -> str | None: ...


class NullNeighborResolver:
    """Resolver for environments without neighbor access."""

    async def resolve(self, ip: str) -> str | None:
        return None


def parse_proc_arp(content: str) -> dict[str, str]:
    """Parse /proc/net/arp into an IP -> MAC map of complete entries."""
    entries: dict[str, str] = {}
    for line in content.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 4:
            continue
        ip, _hw_type, flags, mac = parts[:4]
        try:
            if not int(flags, 16) & _ATF_COM:
                continue
        except ValueError:
            continue
        mac = normalize_mac(mac)
        if mac and not is_null_mac(mac):
            entries[ip] = mac
    return entries


def parse_arp_output(output: str, ip: str) -> str | None:
    """Find the MAC for ``ip`` in ``arp -a`` output (Windows, macOS or BSD format)."""
    ip_pattern = re.compile(rf"(?<![\d.]){re.escape(ip)}(?![\d.])")
    for line in output.splitlines():
        if not ip_pattern.search(line):
            continue
        match = _MAC_PATTERN.search(line)
        if match:
            mac = normalize_mac(match.group(1))
            if mac and not is_null_mac(mac):
                return mac
    return None


class SystemArpResolver:
    """Looks up the operating system's neighbor table."""

    def __init__(self, arp_path: Path = PROC_ARP_PATH, timeout: float = 2.0):
        self.arp_path = arp_path
        self.timeout = timeout

    async def resolve(self, ip: str) -> str | None:
        if self.arp_path.exists():
            return self.read_table().get(ip)
        return await self._resolve_with_arp_command(ip)

    def read_table(self) -> dict[str, str]:
        """Read the neighbor table file on the loop thread (procfs, no disk I/O)."""
        try:
            content = self.arp_path.read_text()
        except OSError as e:
            logger.debug(f"Could not read {self.arp_path}: {e}")
            return {}
        return parse_proc_arp(content)

    async def _resolve_with_arp_command(self, ip: str) -> str | None:
        try:
            process = await asyncio.create_subprocess_exec(
                "arp",
                "-a",
                ip,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except FileNotFoundError:
            logger.debug("arp command not found")
            return None

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except (TimeoutError, asyncio.CancelledError):
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        return parse_arp_output(stdout.decode(errors="ignore"), ip)


class ScapyArpResolver:
    """Sends a broadcast ARP who-has with scapy (runs in thread pool)."""

    def __init__(self, timeout: float = 1.0):
        self.timeout = timeout

    @staticmethod
    def has_privileges() -> bool:
        """Check if we have root/admin privileges for raw socket access."""
        if hasattr(os, "geteuid"):
            return os.geteuid() == 0
        # On Windows, scapy reports the problem itself
        return True

    async def resolve(self, ip: str) -> str | None:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._arp_request, ip)

    def _arp_request(self, ip: str) -> str | None:
        from scapy.all import ARP, Ether, conf, srp

        # Suppress scapy warnings
        conf.verb = 0

        packet = Ether(dst="ff:ff:ff:ff:ff:ff") / ARP(pdst=ip)
        answered = srp(packet, timeout=self.timeout, verbose=False)[0]

        for _sent, received in answered:
            if received.psrc == ip:
                mac = normalize_mac(received.hwsrc)
                return mac or None
        return None


def create_neighbor_resolver(kind: str = "system") -> NeighborResolver:
    """Build the resolver named in the settings ("system", "scapy" or "none")."""
    if kind == "system":
        return SystemArpResolver()
    if kind == "scapy":
        if not ScapyArpResolver.has_privileges():
            logger.warning("scapy ARP resolution needs root, falling back to the system ARP table")
            return SystemArpResolver()
        return ScapyArpResolver()
    if kind == "none":
        return NullNeighborResolver()
    raise ValueError(f"Unknown neighbor resolver '{kind}'")
