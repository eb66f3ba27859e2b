"""Concurrency limits and progress counters for a scan run."""

import asyncio
from collections.abc import Callable

from .timeouts import ProbeCancelled, is_cancelled


class ConcurrencyGovernor:
    """Bounds in-flight host probes and hands out per-host port limiters.

    Host probes share one semaphore of ``max_hosts`` slots. Each host gets
    its own port semaphore of ``max_ports`` slots, so port fan-out is bounded
    per host instead of multiplying across the whole scan.

    Args:
        max_hosts: Maximum simultaneous host probes.
        max_ports: Maximum simultaneous port probes within one host.
        on_launch: Optional hook called with the address of every launched probe.
    """

    def __init__(
        self,
        max_hosts: int,
        max_ports: int = 20,
        on_launch: Callable[[str], None] | None = None,
    ):
        if max_hosts < 1 or max_ports < 1:
            raise ValueError("Concurrency limits must be at least 1")
        self.max_hosts = max_hosts
        self.max_ports = max_ports
        self.on_launch = on_launch
        self._host_semaphore = asyncio.Semaphore(max_hosts)
        self.launched = 0
        self.in_flight = 0
        self.completed = 0
        self.peak_in_flight = 0

    async def acquire(self, cancel_event: asyncio.Event | None = None) -> None:
        """Wait for a free host slot, giving up if the scan is cancelled.

        Raises:
            ProbeCancelled: If cancellation is signalled while waiting.
        """
        if is_cancelled(cancel_event):
            raise ProbeCancelled()
        if cancel_event is None:
            await self._host_semaphore.acquire()
            return

        acquire_task = asyncio.ensure_future(self._host_semaphore.acquire())
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({acquire_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            acquire_task.cancel()
            raise
        finally:
            cancel_task.cancel()

        if acquire_task.done() and not acquire_task.cancelled():
            if is_cancelled(cancel_event):
                self._host_semaphore.release()
                raise ProbeCancelled()
            return

        acquire_task.cancel()
        raise ProbeCancelled()

    def release(self) -> None:
        self._host_semaphore.release()

    def launch(self, address: str) -> None:
        """Record a probe launch."""
        self.launched += 1
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        if self.on_launch is not None:
            self.on_launch(address)

    def finish(self, counted: bool = True) -> int:
        """Record a probe finishing. Returns the completed count."""
        self.in_flight -= 1
        if counted:
            self.completed += 1
        return self.completed

    def port_limiter(self) -> asyncio.Semaphore:
        """Create the port semaphore for one host probe."""
        return asyncio.Semaphore(self.max_ports)

    def snapshot(self) -> dict[str, int]:
        """Point-in-time copy of the counters."""
        return {
            "launched": self.launched,
            "in_flight": self.in_flight,
            "completed": self.completed,
            "peak_in_flight": self.peak_in_flight,
        }
