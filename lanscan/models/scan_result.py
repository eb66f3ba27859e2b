"""Network scan result models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .subnet import SubnetDescriptor


class DeviceType(str, Enum):
    """Device classification tag."""

    UNKNOWN = "unknown"
    COMPUTER = "computer"
    SERVER = "server"
    ROUTER = "router"
    SWITCH = "switch"
    ACCESS_POINT = "access_point"
    PRINTER = "printer"
    MOBILE = "mobile"
    TABLET = "tablet"
    IOT = "iot"
    CAMERA = "camera"
    NAS = "nas"
    MEDIA_DEVICE = "media_device"
    GAME_CONSOLE = "game_console"
    SMART_TV = "smart_tv"
    VOIP = "voip"


class DeviceStatus(str, Enum):
    """Reachability status of a discovered host."""

    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


class ScanState(str, Enum):
    """Lifecycle state of a scan run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class DiscoveredHost(BaseModel):
    """Information about a probed network host.

    Mutated in place as probe stages complete. Missing data is an empty
    string, an empty collection or -1 for the response time.
    """

    model_config = ConfigDict(validate_assignment=True)

    ip: str
    mac: str = ""
    hostname: str = ""
    netbios_name: str = ""
    vendor: str = ""
    device_type: DeviceType = DeviceType.UNKNOWN
    is_reachable: bool = False
    response_time_ms: int = -1
    open_ports: list[int] = Field(default_factory=list)
    services: dict[int, str] = Field(default_factory=dict)
    operating_system: str = ""
    notes: str = ""
    first_seen: datetime = Field(default_factory=datetime.now)
    last_seen: datetime = Field(default_factory=datetime.now)

    @field_validator("open_ports")
    @classmethod
    def sort_ports(cls, v: list[int]) -> list[int]:
        """Keep open ports ascending and deduplicated."""
        return sorted(set(v))

    @property
    def status(self) -> DeviceStatus:
        return DeviceStatus.ONLINE if self.is_reachable else DeviceStatus.OFFLINE

    @property
    def response_time_text(self) -> str:
        """Return the round-trip time for display."""
        if self.response_time_ms < 0:
            return "N/A"
        if self.response_time_ms == 0:
            return "<1ms"
        return f"{self.response_time_ms}ms"

    @property
    def display_name(self) -> str:
        """Return best available name for display."""
        if self.hostname and self.hostname != self.ip:
            return self.hostname.split(".")[0]
        if self.netbios_name:
            return self.netbios_name
        if self.vendor and self.vendor != "Unknown":
            return f"{self.ip} ({self.vendor})"
        return self.ip

    @property
    def supports_wol(self) -> bool:
        """Wake-on-LAN needs a MAC address."""
        return bool(self.mac)

    def mark_seen(self) -> None:
        """Refresh the last-seen timestamp."""
        self.last_seen = datetime.now()


class ScanProgress(BaseModel):
    """Immutable progress snapshot emitted after each host completes."""

    model_config = ConfigDict(frozen=True)

    current_host: str
    completed: int
    total: int

    @property
    def percentage(self) -> float:
        """Percentage complete, clamped to [0, 100]."""
        if self.total <= 0:
            return 0.0
        return max(0.0, min(100.0, self.completed / self.total * 100))


class ScanResult(BaseModel):
    """Result of a subnet scan."""

    subnet: SubnetDescriptor
    devices: list[DiscoveredHost] = Field(default_factory=list)
    state: ScanState = ScanState.COMPLETED
    started_at: datetime = Field(default_factory=datetime.now)
    duration_seconds: float = 0.0
    error: str | None = None

    @property
    def device_count(self) -> int:
        return len(self.devices)

    @property
    def devices_online(self) -> int:
        """Count of reachable devices."""
        return sum(1 for d in self.devices if d.is_reachable)

    @property
    def devices_by_type(self) -> dict[DeviceType, int]:
        """Count devices per device type."""
        counts: dict[DeviceType, int] = {}
        for device in self.devices:
            counts[device.device_type] = counts.get(device.device_type, 0) + 1
        return counts

    @property
    def was_cancelled(self) -> bool:
        return self.state == ScanState.CANCELLED
