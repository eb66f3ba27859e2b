"""ICMP reachability check using the system ping utility."""

import asyncio
import logging
import math
import platform
import re
import shutil
import time

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Matches "time=0.42 ms", "time<1ms", "Zeit=3ms", "temps=12 ms"
_RTT_PATTERN = re.compile(r"(?:time|zeit|temps|tiempo)[=<]\s*([\d.,]+)\s*ms", re.IGNORECASE)

# Extra seconds granted to the ping process on top of its own timeout
_PROCESS_GRACE = 0.5


class PingResult(BaseModel):
    """Outcome of a single echo request."""

    reachable: bool = False
    rtt_ms: int = -1


def build_ping_command(ip: str, timeout: float, system: str | None = None) -> list[str]:
    """Build a single-echo ping command for the current platform."""
    system = (system or platform.system()).lower()
    if system == "windows":
        return ["ping", "-n", "1", "-w", str(max(1, int(timeout * 1000))), ip]
    if system == "darwin":
        # macOS -W takes milliseconds
        return ["ping", "-c", "1", "-W", str(max(1, int(timeout * 1000))), ip]
    return ["ping", "-c", "1", "-W", str(max(1, math.ceil(timeout))), ip]


def parse_rtt(output: str) -> int | None:
    """Extract the round-trip time in whole milliseconds from ping output."""
    match = _RTT_PATTERN.search(output)
    if not match:
        return None
    try:
        return int(float(match.group(1).replace(",", ".")))
    except ValueError:
        return None


class Pinger:
    """Sends one ICMP echo per call through the system ``ping`` binary.

    Raw ICMP sockets need elevated privileges on most systems, the ping
    binary does not.
    """

    def __init__(self, ping_path: str | None = None):
        self.ping_path = ping_path or shutil.which("ping")

    @property
    def available(self) -> bool:
        return self.ping_path is not None

    async def ping(self, ip: str, timeout: float) -> PingResult:
        """Ping a host once.

        Failures yield an unreachable result. A hung ping process is killed
        and TimeoutError raised.
        """
        if not self.available:
            logger.debug("ping binary not found, treating hosts as unreachable")
            return PingResult()

        cmd = build_ping_command(ip, timeout)
        cmd[0] = self.ping_path
        start = time.perf_counter()

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.debug(f"Failed to start ping for {ip}: {e}")
            return PingResult()

        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(), timeout=timeout + _PROCESS_GRACE
            )
        except (TimeoutError, asyncio.CancelledError):
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        if process.returncode != 0:
            return PingResult()

        output = stdout.decode(errors="ignore")
        # Windows returns 0 for "Destination host unreachable" replies from the gateway
        if "unreachable" in output.lower():
            return PingResult()

        rtt = parse_rtt(output)
        if rtt is None:
            rtt = int((time.perf_counter() - start) * 1000)
        return PingResult(reachable=True, rtt_ms=rtt)
