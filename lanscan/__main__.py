"""Command line entry point: ``python -m lanscan`` or ``lanscan``."""

import argparse
import asyncio
import atexit
import logging
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from .exceptions import LanScanError
from .models.config import Config, ScanOptions
from .models.scan_result import DiscoveredHost, ScanProgress, ScanResult
from .models.subnet import SubnetDescriptor
from .services.address_range import parse_subnet
from .services.export import EXPORT_FORMATS, export_devices
from .services.host_probe import HostProbe
from .services.listeners import ScanListener
from .services.neighbors import create_neighbor_resolver
from .services.network_info import discover_subnets, get_gateway_ip, get_local_ip
from .services.network_scanner import NetworkScanner
from .services.vendor_cache import VendorCache
from .services.vendor_lookup import MacVendorService
from .services.wake_on_lan import WakeOnLanSender

_logger = logging.getLogger(__name__)
console = Console()


def setup_logging(log_level: str = "INFO", log_file: str | None = "logs/lanscan.log") -> None:
    """Configure logging with rotation support.

    Args:
        log_level: The logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Rotating log file path, or None for stderr only
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            # Rotate at 10MB, keep 5 backup files
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            handlers.append(file_handler)
        except (PermissionError, OSError):
            pass  # Skip file logging if we can't write

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )


def _cleanup() -> None:
    """Cleanup handler called on exit."""
    _logger.debug("lanscan shutdown complete")


def parse_ports(value: str) -> list[int]:
    """Parse a comma separated port list such as "22,80,443"."""
    try:
        ports = [int(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid port list '{value}'")
    if not ports:
        raise argparse.ArgumentTypeError("Port list is empty")
    return ports


class RichProgressListener(ScanListener):
    """Drives a rich progress bar from scan events."""

    def __init__(self, progress: Progress, task_id, verbose: bool = False):
        self.progress = progress
        self.task_id = task_id
        self.verbose = verbose

    def on_progress(self, progress: ScanProgress) -> None:
        self.progress.update(
            self.task_id,
            completed=progress.completed,
            total=progress.total,
            description=f"Scanning {progress.current_host}",
        )

    def on_device_discovered(self, device: DiscoveredHost) -> None:
        if self.verbose:
            self.progress.console.print(f"[green]Found[/green] {device.ip} {device.display_name}")


def display_results(result: ScanResult) -> None:
    """Print the discovered devices as a table."""
    if not result.devices:
        console.print("No devices found.")
        return

    table = Table(title=f"Devices on {result.subnet.network_range}")
    table.add_column("#", style="dim", width=3)
    table.add_column("IP Address", style="cyan", no_wrap=True)
    table.add_column("MAC Address", style="magenta")
    table.add_column("Name")
    table.add_column("Vendor", style="green")
    table.add_column("Type", style="yellow")
    table.add_column("Open Ports")
    table.add_column("OS")
    table.add_column("RTT", justify="right")

    devices = sorted(result.devices, key=lambda d: tuple(int(p) for p in d.ip.split(".")))
    for i, device in enumerate(devices, 1):
        table.add_row(
            str(i),
            device.ip,
            device.mac or "N/A",
            device.hostname or device.netbios_name,
            device.vendor,
            device.device_type.value,
            ", ".join(str(port) for port in device.open_ports),
            device.operating_system,
            device.response_time_text,
        )

    console.print(table)


def _select_subnet(args: argparse.Namespace, config: Config) -> SubnetDescriptor:
    if args.cidr:
        return parse_subnet(args.cidr)
    if args.target:
        target = config.get_target(args.target)
        if target is None:
            raise LanScanError(f"Unknown target '{args.target}'")
        return parse_subnet(target.range)
    if config.targets:
        return parse_subnet(config.targets[0].range)

    subnets = discover_subnets()
    if not subnets:
        raise LanScanError("No subnet given and no local subnet found")
    _logger.info(f"Scanning local subnet {subnets[0]}")
    return subnets[0]


def _build_options(args: argparse.Namespace, config: Config) -> ScanOptions:
    data = config.scan.model_dump()
    if args.ports is not None:
        data["ports_to_scan"] = args.ports
    if args.no_ports:
        data["perform_port_scan"] = False
    if args.no_banners:
        data["perform_banner_grab"] = False
    if args.offline:
        data["scan_offline_hosts"] = True
    if args.concurrency is not None:
        data["max_concurrent_scans"] = args.concurrency
    return ScanOptions.model_validate(data)


def _build_vendor_service(config: Config) -> MacVendorService:
    vendor = config.vendor
    cache = VendorCache(vendor.cache_path, ttl_hours=vendor.cache_ttl_hours)
    return MacVendorService(
        cache=cache,
        use_vendor_database=vendor.use_vendor_database,
        online_lookup=vendor.online_lookup,
        timeout=vendor.timeout_ms / 1000,
    )


async def _run_scan(args: argparse.Namespace, config: Config) -> int:
    subnet = _select_subnet(args, config)
    options = _build_options(args, config)
    vendor_service = _build_vendor_service(config)
    probe = HostProbe(
        neighbor_resolver=create_neighbor_resolver(config.settings.neighbor_resolver),
        vendor_lookup=vendor_service,
    )
    scanner = NetworkScanner(probe)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, scanner.cancel)
    except (NotImplementedError, RuntimeError):
        signal.signal(signal.SIGINT, lambda signum, frame: loop.call_soon_threadsafe(scanner.cancel))

    console.print(
        f"Scanning [cyan]{subnet.network_range}[/cyan] "
        f"({subnet.usable_hosts} hosts, {options.max_concurrent_scans} concurrent)"
    )

    try:
        with Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task_id = progress.add_task("Starting", total=subnet.usable_hosts)
            listener = RichProgressListener(progress, task_id, verbose=args.verbose)
            result = await scanner.scan(subnet, options, listener)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            signal.signal(signal.SIGINT, signal.default_int_handler)
        await vendor_service.aclose()

    display_results(result)
    console.print(
        f"{result.device_count} devices ({result.devices_online} online) "
        f"in {result.duration_seconds:.1f}s - {result.state.value}"
    )

    if args.export:
        path = export_devices(result.devices, args.format, args.export)
        console.print(f"Results exported to {path}")

    return 130 if result.was_cancelled else 0


def _show_interfaces() -> int:
    subnets = discover_subnets()
    table = Table(title="Local Subnets")
    table.add_column("Interface", style="cyan")
    table.add_column("Network")
    table.add_column("Mask")
    table.add_column("Usable Range")
    table.add_column("Hosts", justify="right")
    for subnet in subnets:
        table.add_row(
            subnet.interface_name,
            subnet.network_range,
            subnet.subnet_mask,
            subnet.usable_range,
            str(subnet.usable_hosts),
        )
    console.print(table)
    console.print(f"Local IP: {get_local_ip() or 'N/A'}")
    console.print(f"Gateway:  {get_gateway_ip() or 'N/A'}")
    return 0


def _wake(args: argparse.Namespace) -> int:
    sender = WakeOnLanSender(subnet_broadcast=args.broadcast)
    if sender.send(args.mac):
        console.print(f"Magic packet sent to {args.mac}")
        return 0
    console.print(f"[red]Failed to send magic packet to {args.mac}[/red]")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lanscan",
        description="lanscan - concurrent LAN scanner with device classification and Wake-on-LAN",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("lanscan.json"),
        help="Path to configuration file (default: lanscan.json)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    subparsers = parser.add_subparsers(dest="command")

    scan = subparsers.add_parser("scan", help="Scan a subnet")
    scan.add_argument("cidr", nargs="?", help="Subnet to scan, e.g. 192.168.1.0/24")
    scan.add_argument("--target", help="Named target from the configuration file")
    scan.add_argument("--ports", type=parse_ports, help="Comma separated ports to scan")
    scan.add_argument("--no-ports", action="store_true", help="Skip the port scan")
    scan.add_argument("--no-banners", action="store_true", help="Skip banner grabbing")
    scan.add_argument("--offline", action="store_true", help="Include unreachable hosts")
    scan.add_argument("--concurrency", type=int, help="Maximum concurrent host probes")
    scan.add_argument("--export", type=Path, help="Export results to this file")
    scan.add_argument(
        "--format",
        choices=EXPORT_FORMATS,
        help="Export format (default: from the file suffix)",
    )

    subparsers.add_parser("interfaces", help="List local subnets and the gateway")

    wake = subparsers.add_parser("wake", help="Send a Wake-on-LAN magic packet")
    wake.add_argument("mac", help="MAC address of the device to wake")
    wake.add_argument("--broadcast", help="Additional directed broadcast address")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Handle version flag
    if args.version:
        from . import __version__

        print(f"lanscan v{__version__}")
        return 0

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = Config.load_or_default(args.config)
    except (ValidationError, ValueError) as e:
        print(f"Invalid configuration in {args.config}: {e}", file=sys.stderr)
        return 2

    log_level = "DEBUG" if args.verbose else config.settings.log_level
    setup_logging(log_level, config.settings.log_file)
    atexit.register(_cleanup)

    try:
        if args.command == "scan":
            return asyncio.run(_run_scan(args, config))
        if args.command == "interfaces":
            return _show_interfaces()
        if args.command == "wake":
            return _wake(args)
    except ValidationError as e:
        console.print(f"[red]Invalid scan options:[/red] {e}")
        return 2
    except LanScanError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
