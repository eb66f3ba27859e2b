"""TCP connect port scanning and service banner grabbing."""

import asyncio
import logging
import re

from .timeouts import race

logger = logging.getLogger(__name__)

BANNER_READ_SIZE = 1024

# Ports that get an HTTP probe before reading. 443 is TLS and gets none:
# it falls back to the well-known name "HTTPS".
HTTP_PROBE_PORTS = {80, 8080}
HTTP_PROBE = b"HEAD / HTTP/1.0\r\n\r\n"

WELL_KNOWN_SERVICES = {
    21: "FTP",
    22: "SSH",
    23: "Telnet",
    25: "SMTP",
    53: "DNS",
    67: "DHCP",
    80: "HTTP",
    110: "POP3",
    135: "RPC",
    139: "NetBIOS",
    143: "IMAP",
    161: "SNMP",
    443: "HTTPS",
    445: "SMB",
    515: "LPD",
    554: "RTSP",
    631: "IPP",
    1433: "MSSQL",
    1883: "MQTT",
    1935: "RTMP",
    2049: "NFS",
    3306: "MySQL",
    3389: "RDP",
    5432: "PostgreSQL",
    7676: "Samsung TV",
    8080: "HTTP-Proxy",
    8883: "MQTT-TLS",
    9100: "JetDirect",
}

_SERVER_HEADER = re.compile(r"Server:\s*([^\r\n]+)", re.IGNORECASE)
_SMTP_GREETING = re.compile(r"220\s+([^\s]+)")


def well_known_service(port: int) -> str:
    """Return the conventional service name for a port."""
    return WELL_KNOWN_SERVICES.get(port, f"Port {port}")


def extract_service_name(banner: str, port: int) -> str:
    """Derive a human-readable service identifier from a raw banner."""
    if "HTTP/" in banner:
        match = _SERVER_HEADER.search(banner)
        if match:
            return match.group(1).strip()
        return "HTTP"

    if banner.startswith("SSH-"):
        return banner.splitlines()[0].strip()

    if "220" in banner and port == 21:
        return banner.splitlines()[0].strip()

    if "220" in banner and port == 25:
        match = _SMTP_GREETING.search(banner)
        if match:
            return f"SMTP - {match.group(1)}"

    return well_known_service(port)


async def _close_writer(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except (ConnectionError, OSError):
        pass  # Peer already gone


async def _connect(ip: str, port: int) -> bool:
    _, writer = await asyncio.open_connection(ip, port)
    await _close_writer(writer)
    return True


async def is_port_open(
    ip: str,
    port: int,
    timeout: float,
    cancel_event: asyncio.Event | None = None,
) -> bool:
    """Attempt a TCP connect. Closed, filtered and timed-out ports return False.

    Raises:
        ProbeCancelled: If the scan is cancelled while connecting.
    """
    try:
        return await race(_connect(ip, port), timeout, cancel_event)
    except (TimeoutError, OSError):
        return False


async def scan_ports(
    ip: str,
    ports: list[int],
    timeout: float,
    limiter: asyncio.Semaphore | None = None,
    cancel_event: asyncio.Event | None = None,
) -> list[int]:
    """Connect-scan ``ports`` concurrently and return the open ones, ascending."""
    limiter = limiter or asyncio.Semaphore(20)

    async def check(port: int) -> int | None:
        async with limiter:
            if await is_port_open(ip, port, timeout, cancel_event):
                return port
        return None

    results = await asyncio.gather(*(check(port) for port in ports))
    return sorted({port for port in results if port is not None})


async def _read_banner(ip: str, port: int) -> bytes:
    reader, writer = await asyncio.open_connection(ip, port)
    try:
        if port in HTTP_PROBE_PORTS:
            writer.write(HTTP_PROBE)
            await writer.drain()
        return await reader.read(BANNER_READ_SIZE)
    finally:
        await _close_writer(writer)


async def grab_banner(
    ip: str,
    port: int,
    timeout: float = 2.0,
    cancel_event: asyncio.Event | None = None,
) -> str:
    """Read the service banner on an open port.

    Falls back to the well-known port name on timeout, error or silence.

    Raises:
        ProbeCancelled: If the scan is cancelled while reading.
    """
    try:
        data = await race(_read_banner(ip, port), timeout, cancel_event)
    except (TimeoutError, OSError) as e:
        logger.debug(f"Banner grab failed for {ip}:{port}: {e or 'timeout'}")
        return well_known_service(port)

    if not data:
        return well_known_service(port)
    return extract_service_name(data.decode("ascii", errors="ignore"), port)


async def grab_banners(
    ip: str,
    ports: list[int],
    timeout: float = 2.0,
    limiter: asyncio.Semaphore | None = None,
    cancel_event: asyncio.Event | None = None,
) -> dict[int, str]:
    """Grab banners for all ``ports`` concurrently. Returns port -> service."""
    limiter = limiter or asyncio.Semaphore(20)

    async def grab(port: int) -> tuple[int, str]:
        async with limiter:
            return port, await grab_banner(ip, port, timeout, cancel_event)

    results = await asyncio.gather(*(grab(port) for port in ports))
    return {port: banner for port, banner in sorted(results) if banner}
