"""Scan event sinks passed to ``NetworkScanner.scan``."""

import asyncio
import logging
from typing import Literal

from ..models.scan_result import DiscoveredHost, ScanProgress, ScanResult

logger = logging.getLogger(__name__)

EventKind = Literal["progress", "device", "completed", "failed"]


class ScanListener:
    """Receives scan events. Subclass and override the callbacks you need.

    Callbacks run on the event loop between probe completions and must not
    block. Payloads are snapshots; mutating them does not affect the scan.
    """

    def on_progress(self, progress: ScanProgress) -> None:
        pass

    def on_device_discovered(self, device: DiscoveredHost) -> None:
        pass

    def on_scan_completed(self, result: ScanResult) -> None:
        pass

    def on_scan_failed(self, error: BaseException) -> None:
        pass


class QueueScanListener(ScanListener):
    """Puts ``(kind, payload)`` tuples on an asyncio queue for any consumer."""

    def __init__(self, queue: asyncio.Queue | None = None):
        self.queue: asyncio.Queue[tuple[EventKind, object]] = queue or asyncio.Queue()

    def on_progress(self, progress: ScanProgress) -> None:
        self.queue.put_nowait(("progress", progress))

    def on_device_discovered(self, device: DiscoveredHost) -> None:
        self.queue.put_nowait(("device", device))

    def on_scan_completed(self, result: ScanResult) -> None:
        self.queue.put_nowait(("completed", result))

    def on_scan_failed(self, error: BaseException) -> None:
        self.queue.put_nowait(("failed", error))

    def drain(self) -> list[tuple[EventKind, object]]:
        """Return all queued events without waiting."""
        events = []
        while not self.queue.empty():
            events.append(self.queue.get_nowait())
        return events


class LoggingScanListener(ScanListener):
    """Logs scan events."""

    def on_progress(self, progress: ScanProgress) -> None:
        logger.debug(
            f"Progress {progress.completed}/{progress.total} "
            f"({progress.percentage:.1f}%) - {progress.current_host}"
        )

    def on_device_discovered(self, device: DiscoveredHost) -> None:
        logger.info(f"Discovered {device.ip} - {device.display_name} ({device.device_type.value})")

    def on_scan_completed(self, result: ScanResult) -> None:
        logger.info(
            f"Scan of {result.subnet.network_range} {result.state.value}: "
            f"{result.device_count} devices in {result.duration_seconds:.2f}s"
        )

    def on_scan_failed(self, error: BaseException) -> None:
        logger.error(f"Scan failed: {error}")
