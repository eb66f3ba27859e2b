"""Subnet scan orchestration.

``NetworkScanner.scan`` enumerates the subnet, fans host probes out under a
``ConcurrencyGovernor`` and collects results into a device registry keyed
by IP address. Each run moves Idle -> Running -> Completed, Cancelled or
Failed.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from ..exceptions import ScanConfigurationError, ScanError, ScanFailedError
from ..models.config import ScanOptions
from ..models.scan_result import DiscoveredHost, ScanProgress, ScanResult, ScanState
from ..models.subnet import SubnetDescriptor
from .address_range import calculate_address_range, parse_subnet
from .governor import ConcurrencyGovernor
from .host_probe import HostProbe
from .listeners import ScanListener
from .neighbors import create_neighbor_resolver
from .network_info import discover_subnets
from .timeouts import ProbeCancelled

logger = logging.getLogger(__name__)


class NetworkScanner:
    """Concurrent subnet scanner.

    Args:
        probe: Host probe pipeline; defaults to one reading the system
            neighbor table, with no vendor lookup.
        on_launch: Optional instrumentation hook called with each address
            as its probe is launched.
    """

    def __init__(
        self,
        probe: HostProbe | None = None,
        on_launch: Callable[[str], None] | None = None,
    ):
        self.probe = probe or HostProbe(neighbor_resolver=create_neighbor_resolver("system"))
        self.on_launch = on_launch
        self.governor: ConcurrencyGovernor | None = None
        self._devices: dict[str, DiscoveredHost] = {}
        self._lock = asyncio.Lock()
        self._cancel_event: asyncio.Event | None = None
        self._resolver_pool: ThreadPoolExecutor | None = None
        self._state = ScanState.IDLE

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == ScanState.RUNNING

    @property
    def devices(self) -> list[DiscoveredHost]:
        """Point-in-time copy of the device registry."""
        return [device.model_copy(deep=True) for device in self._devices.values()]

    def cancel(self) -> None:
        """Request cancellation: no new probes start, in-flight probes drain."""
        if self._cancel_event is not None and self.is_running:
            logger.info("Cancelling subnet scan")
            self._cancel_event.set()

    async def discover_subnets(self) -> list[SubnetDescriptor]:
        """Discover the IPv4 subnets of the local machine's active interfaces."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, discover_subnets)

    def _validate(
        self, subnet: SubnetDescriptor | str, options: ScanOptions | None
    ) -> tuple[SubnetDescriptor, ScanOptions]:
        if isinstance(subnet, str):
            subnet = parse_subnet(subnet)
        options = options or ScanOptions()
        if options.perform_port_scan and not options.ports_to_scan:
            raise ScanConfigurationError("No ports to scan while port scanning is enabled")
        return subnet, options

    async def scan(
        self,
        subnet: SubnetDescriptor | str,
        options: ScanOptions | None = None,
        listener: ScanListener | None = None,
    ) -> ScanResult:
        """Scan a subnet and return the discovered devices.

        Args:
            subnet: Subnet descriptor or CIDR string such as "192.168.1.0/24".
            options: Probe configuration; defaults apply if omitted.
            listener: Receives progress, device and completion events.

        Returns:
            ScanResult with state COMPLETED, or CANCELLED after ``cancel()``
            with the hosts completed up to that point.

        Raises:
            ScanConfigurationError: Invalid subnet or options (before the scan starts).
            ScanError: A scan is already running on this scanner.
            ScanFailedError: Unexpected failure while orchestrating the scan.
        """
        if self.is_running:
            raise ScanError("A scan is already running")

        subnet, options = self._validate(subnet, options)
        listener = listener or ScanListener()

        self._devices.clear()
        self._cancel_event = asyncio.Event()
        self.governor = ConcurrencyGovernor(
            options.max_concurrent_scans, options.max_concurrent_ports, self.on_launch
        )
        # Name lookups get their own threads; a stuck resolver call keeps its
        # thread after the probe gives up on it
        self._resolver_pool = ThreadPoolExecutor(
            max_workers=options.max_concurrent_scans, thread_name_prefix="lanscan-resolver"
        )
        self._state = ScanState.RUNNING
        started_at = datetime.now()
        start = time.monotonic()
        tasks: set[asyncio.Task] = set()

        logger.info(f"Starting subnet scan: {subnet.network_range}")

        try:
            addresses = calculate_address_range(subnet)
            await self._fan_out(addresses, options, listener, tasks)
        except asyncio.CancelledError:
            await self._abort(tasks)
            self._state = ScanState.CANCELLED
            logger.info("Subnet scan was cancelled")
            raise
        except Exception as e:
            await self._abort(tasks)
            self._state = ScanState.FAILED
            logger.error(f"Error during subnet scan: {e}")
            listener.on_scan_failed(e)
            raise ScanFailedError(
                f"Scan of {subnet.network_range} failed: {e}",
                {"subnet": subnet.network_range},
            ) from e
        finally:
            self._shutdown_resolver_pool()

        duration = time.monotonic() - start
        self._state = (
            ScanState.CANCELLED if self._cancel_event.is_set() else ScanState.COMPLETED
        )
        result = ScanResult(
            subnet=subnet,
            devices=self.devices,
            state=self._state,
            started_at=started_at,
            duration_seconds=duration,
        )
        logger.info(
            f"Subnet scan {self._state.value}. Found {result.device_count} devices "
            f"in {duration:.2f} seconds"
        )
        listener.on_scan_completed(result)
        return result

    async def _fan_out(
        self,
        addresses: list[str],
        options: ScanOptions,
        listener: ScanListener,
        tasks: set[asyncio.Task],
    ) -> None:
        total = len(addresses)
        failures: list[BaseException] = []

        def on_done(task: asyncio.Task) -> None:
            tasks.discard(task)
            if not task.cancelled() and task.exception() is not None:
                failures.append(task.exception())

        for ip in addresses:
            if failures:
                raise failures[0]
            if self._cancel_event.is_set():
                break
            try:
                await self.governor.acquire(self._cancel_event)
            except ProbeCancelled:
                break

            self.governor.launch(ip)
            task = asyncio.create_task(self._scan_host(ip, options, listener, total))
            tasks.add(task)
            task.add_done_callback(on_done)

        if tasks:
            await asyncio.gather(*list(tasks))
        if failures:
            raise failures[0]

    async def _scan_host(
        self, ip: str, options: ScanOptions, listener: ScanListener, total: int
    ) -> None:
        try:
            try:
                host = await self.probe.probe(
                    ip,
                    options,
                    self._cancel_event,
                    self.governor.port_limiter(),
                    executor=self._resolver_pool,
                )
            except Exception as e:
                logger.debug(f"Error scanning host {ip}: {e}")
                host = None

            async with self._lock:
                # Results that land after cancel() are abandoned, not completions
                abandoned = self._cancel_event.is_set()
                if host is not None and not abandoned:
                    host.mark_seen()
                    self._devices[ip] = host
                completed = self.governor.finish(counted=not abandoned)
                if abandoned:
                    return
                if host is not None:
                    listener.on_device_discovered(host.model_copy(deep=True))
                listener.on_progress(ScanProgress(current_host=ip, completed=completed, total=total))
        finally:
            self.governor.release()

    def _shutdown_resolver_pool(self) -> None:
        """Release the name lookup threads without waiting for stuck lookups."""
        if self._resolver_pool is not None:
            self._resolver_pool.shutdown(wait=False, cancel_futures=True)
            self._resolver_pool = None

    @staticmethod
    async def _abort(tasks: set[asyncio.Task]) -> None:
        """Cancel outstanding probes and wait for them to unwind."""
        pending = list(tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
