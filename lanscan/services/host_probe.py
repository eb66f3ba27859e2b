"""Per-host probe pipeline.

Stages run in order: liveness, MAC resolution, vendor lookup, hostname
resolution (DNS, then NetBIOS), port scan, banner grab, classification.
A failing stage is logged at debug level and leaves its fields empty; it
never stops later stages. Only cancellation stops the pipeline early.
"""

import asyncio
import logging
from concurrent.futures import Executor
from datetime import datetime

from ..models.config import ScanOptions
from ..models.scan_result import DiscoveredHost
from .classifier import classify_device, guess_operating_system
from .name_resolution import query_netbios_name, resolve_hostname
from .neighbors import NeighborResolver, NullNeighborResolver
from .port_scanner import grab_banners, scan_ports
from .reachability import Pinger, PingResult
from .timeouts import ProbeCancelled, is_cancelled, race_or_default
from .vendor_lookup import UNKNOWN_VENDOR, VendorLookup

logger = logging.getLogger(__name__)

# Budget for one neighbor table lookup
NEIGHBOR_TIMEOUT = 2.0


class HostProbe:
    """Runs the probe pipeline for one address at a time.

    Collaborators are injected so tests can replace the network-facing
    parts; any left as None use the real implementation (or, for vendor
    lookup, are skipped).
    """

    def __init__(
        self,
        pinger: Pinger | None = None,
        neighbor_resolver: NeighborResolver | None = None,
        vendor_lookup: VendorLookup | None = None,
    ):
        self.pinger = pinger or Pinger()
        self.neighbor_resolver = neighbor_resolver or NullNeighborResolver()
        self.vendor_lookup = vendor_lookup

    async def probe(
        self,
        ip: str,
        options: ScanOptions,
        cancel_event: asyncio.Event | None = None,
        port_limiter: asyncio.Semaphore | None = None,
        executor: Executor | None = None,
    ) -> DiscoveredHost | None:
        """Probe one host.

        ``executor`` runs the blocking name lookups (reverse DNS, NetBIOS);
        the loop's default executor is used when it is None.

        Returns None for an unreachable host (unless offline hosts are
        included) and for a probe abandoned because the scan was cancelled.
        """
        try:
            return await self._run_pipeline(ip, options, cancel_event, port_limiter, executor)
        except ProbeCancelled:
            logger.debug(f"Probe of {ip} abandoned after cancellation")
            return None

    async def _run_pipeline(
        self,
        ip: str,
        options: ScanOptions,
        cancel_event: asyncio.Event | None,
        port_limiter: asyncio.Semaphore | None,
        executor: Executor | None,
    ) -> DiscoveredHost | None:
        ping = await self.check_liveness(ip, options, cancel_event)
        if not ping.reachable and not options.scan_offline_hosts:
            return None

        now = datetime.now()
        host = DiscoveredHost(
            ip=ip,
            is_reachable=ping.reachable,
            response_time_ms=ping.rtt_ms if ping.reachable else -1,
            first_seen=now,
            last_seen=now,
        )

        if ping.reachable:
            await self.resolve_mac(host, cancel_event)
            if host.mac:
                await self.resolve_vendor(host, cancel_event)

        if options.resolve_hostnames:
            await self.resolve_names(host, options, cancel_event, executor)

        if options.perform_port_scan and ping.reachable:
            await self.scan_ports(host, options, cancel_event, port_limiter)
            if options.perform_banner_grab and host.open_ports:
                await self.grab_banners(host, options, cancel_event, port_limiter)

        self.classify(host)
        logger.debug(f"Probed {ip}: {host.hostname or 'Unknown'} ({host.device_type.value})")
        return host

    async def check_liveness(
        self, ip: str, options: ScanOptions, cancel_event: asyncio.Event | None
    ) -> PingResult:
        """Send one echo request; unreachable on timeout or error."""
        # Outer bound covers process start-up on top of the ping's own timeout
        return await race_or_default(
            self.pinger.ping(ip, options.ping_timeout),
            options.ping_timeout + 1.0,
            PingResult(),
            cancel_event,
            f"Ping {ip}",
        )

    async def resolve_mac(self, host: DiscoveredHost, cancel_event: asyncio.Event | None) -> None:
        mac = await race_or_default(
            self.neighbor_resolver.resolve(host.ip),
            NEIGHBOR_TIMEOUT,
            None,
            cancel_event,
            f"MAC resolution for {host.ip}",
        )
        if mac:
            host.mac = mac

    async def resolve_vendor(self, host: DiscoveredHost, cancel_event: asyncio.Event | None) -> None:
        if self.vendor_lookup is None:
            return
        if is_cancelled(cancel_event):
            raise ProbeCancelled()
        try:
            host.vendor = await self.vendor_lookup.get_vendor(host.mac)
        except Exception as e:
            logger.debug(f"Vendor lookup failed for {host.mac}: {e}")
            host.vendor = UNKNOWN_VENDOR

    async def resolve_names(
        self,
        host: DiscoveredHost,
        options: ScanOptions,
        cancel_event: asyncio.Event | None,
        executor: Executor | None = None,
    ) -> None:
        """Reverse DNS, then NetBIOS if DNS found nothing and NetBIOS is enabled."""
        hostname = await race_or_default(
            resolve_hostname(host.ip, executor),
            options.dns_timeout,
            "",
            cancel_event,
            f"Reverse DNS for {host.ip}",
        )
        if hostname:
            host.hostname = hostname
            return

        if options.use_netbios:
            netbios_name = await race_or_default(
                query_netbios_name(host.ip, options.netbios_timeout, executor),
                options.netbios_timeout + 0.5,
                "",
                cancel_event,
                f"NetBIOS query for {host.ip}",
            )
            if netbios_name:
                host.netbios_name = netbios_name
                host.hostname = netbios_name

    async def scan_ports(
        self,
        host: DiscoveredHost,
        options: ScanOptions,
        cancel_event: asyncio.Event | None,
        port_limiter: asyncio.Semaphore | None,
    ) -> None:
        try:
            host.open_ports = await scan_ports(
                host.ip,
                options.ports_to_scan,
                options.port_scan_timeout,
                port_limiter or asyncio.Semaphore(options.max_concurrent_ports),
                cancel_event,
            )
        except ProbeCancelled:
            raise
        except Exception as e:
            logger.debug(f"Port scan failed for {host.ip}: {e}")

    async def grab_banners(
        self,
        host: DiscoveredHost,
        options: ScanOptions,
        cancel_event: asyncio.Event | None,
        port_limiter: asyncio.Semaphore | None,
    ) -> None:
        try:
            host.services = await grab_banners(
                host.ip,
                host.open_ports,
                options.banner_timeout,
                port_limiter or asyncio.Semaphore(options.max_concurrent_ports),
                cancel_event,
            )
        except ProbeCancelled:
            raise
        except Exception as e:
            logger.debug(f"Banner grab failed for {host.ip}: {e}")

    @staticmethod
    def classify(host: DiscoveredHost) -> None:
        """Set device type and OS guess from the accumulated evidence."""
        services = list(host.services.values())
        host.device_type = classify_device(
            host.open_ports, host.vendor, host.netbios_name, services
        )
        if not host.operating_system:
            host.operating_system = guess_operating_system(host.open_ports, services)
