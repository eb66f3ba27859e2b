"""Configuration models using Pydantic for validation."""

import ipaddress
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_PORTS = [
    21, 22, 23, 25, 53, 67, 80, 110, 135, 139, 143, 443, 445,
    515, 631, 1433, 1883, 3306, 3389, 5432, 8080, 8883, 9100,
]


def default_max_concurrency() -> int:
    """Four probes per available CPU, never less than one."""
    return max(1, (os.cpu_count() or 1) * 4)


class ScanOptions(BaseModel):
    """Per-scan probe configuration. Every stage is independently toggleable."""

    ping_timeout_ms: int = 1000
    port_scan_timeout_ms: int = 500
    banner_timeout_ms: int = 2000
    dns_timeout_ms: int = 1000
    netbios_timeout_ms: int = 1000
    resolve_hostnames: bool = True
    use_netbios: bool = True
    perform_port_scan: bool = True
    perform_banner_grab: bool = True
    scan_offline_hosts: bool = False
    max_concurrent_scans: int = Field(default_factory=default_max_concurrency, ge=1)
    max_concurrent_ports: int = Field(default=20, ge=1)
    ports_to_scan: list[int] = Field(default_factory=lambda: list(DEFAULT_PORTS))

    @field_validator(
        "ping_timeout_ms",
        "port_scan_timeout_ms",
        "banner_timeout_ms",
        "dns_timeout_ms",
        "netbios_timeout_ms",
    )
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Validate that timeouts are positive."""
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v

    @field_validator("ports_to_scan")
    @classmethod
    def validate_ports(cls, v: list[int]) -> list[int]:
        """Validate port numbers and normalise to a sorted, unique list."""
        for port in v:
            if not 1 <= port <= 65535:
                raise ValueError(f"Port must be between 1 and 65535, got {port}")
        return sorted(set(v))

    @model_validator(mode="after")
    def validate_port_scan_has_ports(self) -> "ScanOptions":
        """A port scan needs at least one port."""
        if self.perform_port_scan and not self.ports_to_scan:
            raise ValueError("No ports to scan while port scanning is enabled")
        return self

    @property
    def ping_timeout(self) -> float:
        return self.ping_timeout_ms / 1000

    @property
    def port_scan_timeout(self) -> float:
        return self.port_scan_timeout_ms / 1000

    @property
    def banner_timeout(self) -> float:
        return self.banner_timeout_ms / 1000

    @property
    def dns_timeout(self) -> float:
        return self.dns_timeout_ms / 1000

    @property
    def netbios_timeout(self) -> float:
        return self.netbios_timeout_ms / 1000

    @property
    def smallest_timeout(self) -> float:
        """Upper bound on how long an in-flight probe takes to notice cancellation."""
        return min(
            self.ping_timeout,
            self.port_scan_timeout,
            self.banner_timeout,
            self.dns_timeout,
            self.netbios_timeout,
        )


class ScanTarget(BaseModel):
    """A named subnet to scan."""

    name: str
    range: str  # CIDR notation, e.g., "192.168.1.0/24"

    @field_validator("range")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        """Validate that range is a valid IPv4 CIDR notation."""
        try:
            network = ipaddress.IPv4Network(v, strict=False)
        except ValueError as e:
            raise ValueError(f"Invalid CIDR range '{v}': {e}")
        if network.prefixlen < 1:
            raise ValueError(f"Invalid CIDR range '{v}': prefix must be between 1 and 32")
        return v


class VendorLookupConfig(BaseModel):
    """MAC vendor lookup configuration."""

    online_lookup: bool = True
    use_vendor_database: bool = True
    timeout_ms: int = Field(default=300, gt=0)
    cache_path: str | None = None  # Persist the OUI cache to this JSON file
    cache_ttl_hours: int = Field(default=24, ge=0)


class Settings(BaseModel):
    """General application settings."""

    neighbor_resolver: Literal["system", "scapy", "none"] = "system"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: str = "logs/lanscan.log"


class Config(BaseModel):
    """Main configuration model."""

    scan: ScanOptions = Field(default_factory=ScanOptions)
    targets: list[ScanTarget] = Field(default_factory=list)
    vendor: VendorLookupConfig = Field(default_factory=VendorLookupConfig)
    settings: Settings = Field(default_factory=Settings)

    def get_target(self, name: str) -> ScanTarget | None:
        """Find a target by name (case-insensitive)."""
        for target in self.targets:
            if target.name.lower() == name.lower():
                return target
        return None

    @classmethod
    def load(cls, path: Path | str = "lanscan.json") -> "Config":
        """Load configuration from a JSON file."""
        import json

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def load_or_default(cls, path: Path | str = "lanscan.json") -> "Config":
        """Load configuration or return default if file doesn't exist."""
        try:
            return cls.load(path)
        except FileNotFoundError:
            return cls()
