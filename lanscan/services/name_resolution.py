"""Hostname resolution: reverse DNS with a NetBIOS name-query fallback."""

import asyncio
import logging
import random
import socket
import struct
from concurrent.futures import Executor

logger = logging.getLogger(__name__)

NETBIOS_PORT = 137

# "*" padded with NULs, first-level encoded (RFC 1001 section 14.1)
_WILDCARD_NAME = b"CK" + b"A" * 30

_NBSTAT = 0x0021
_CLASS_IN = 0x0001

# Header (12) + encoded name (34) + type, class, TTL, rdlength (10)
_NAME_COUNT_OFFSET = 56
_NAME_ENTRY_SIZE = 18
_GROUP_NAME_FLAG = 0x8000


async def resolve_hostname(ip: str, executor: Executor | None = None) -> str:
    """Reverse DNS lookup (runs in thread pool). Returns '' when there is no PTR record.

    Callers bound this with their own timeout. The lookup thread cannot be
    interrupted and stays busy until the system resolver gives up; scans
    pass a dedicated ``executor`` so such threads never hold the default pool.
    """
    loop = asyncio.get_running_loop()
    try:
        hostname, _, _ = await loop.run_in_executor(executor, socket.gethostbyaddr, ip)
    except (socket.herror, socket.gaierror):
        return ""  # No reverse DNS
    if hostname == ip:
        return ""
    return hostname


def build_netbios_query(transaction_id: int | None = None) -> bytes:
    """Build an NBSTAT (node status) query for the wildcard name."""
    if transaction_id is None:
        transaction_id = random.randint(0, 0xFFFF)
    header = struct.pack(">HHHHHH", transaction_id, 0x0010, 1, 0, 0, 0)
    question = bytes([len(_WILDCARD_NAME)]) + _WILDCARD_NAME + b"\x00"
    return header + question + struct.pack(">HH", _NBSTAT, _CLASS_IN)


def parse_netbios_response(data: bytes) -> str:
    """Extract the machine name from an NBSTAT response.

    Prefers the first unique (non-group) name with suffix 0x00, the
    workstation name. Falls back to the first name in the table.
    """
    if len(data) <= _NAME_COUNT_OFFSET:
        return ""

    count = data[_NAME_COUNT_OFFSET]
    names: list[tuple[str, int, int]] = []
    offset = _NAME_COUNT_OFFSET + 1
    for _ in range(count):
        entry = data[offset : offset + _NAME_ENTRY_SIZE]
        if len(entry) < _NAME_ENTRY_SIZE:
            break
        name = entry[:15].decode("ascii", errors="ignore").replace("\x00", "").strip()
        suffix = entry[15]
        flags = struct.unpack(">H", entry[16:18])[0]
        names.append((name, suffix, flags))
        offset += _NAME_ENTRY_SIZE

    for name, suffix, flags in names:
        if name and suffix == 0x00 and not flags & _GROUP_NAME_FLAG:
            return name
    for name, _, _ in names:
        if name:
            return name
    return ""


def _netbios_exchange(ip: str, timeout: float) -> bytes:
    """Send the query and wait for one reply (blocking - call from executor)."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.settimeout(timeout)
        sock.sendto(build_netbios_query(), (ip, NETBIOS_PORT))
        data, _ = sock.recvfrom(1024)
        return data


async def query_netbios_name(
    ip: str, timeout: float = 1.0, executor: Executor | None = None
) -> str:
    """Ask a host for its NetBIOS name over UDP 137. Returns '' on no answer."""
    loop = asyncio.get_running_loop()
    try:
        data = await loop.run_in_executor(executor, _netbios_exchange, ip, timeout)
    except (TimeoutError, OSError) as e:
        logger.debug(f"NetBIOS query failed for {ip}: {e}")
        return ""
    return parse_netbios_response(data)
