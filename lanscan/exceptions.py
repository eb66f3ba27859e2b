"""Exception hierarchy for lanscan.

Per-host probe failures are never raised; they are absorbed by the probe
pipeline and show up as missing data on the host record. The exceptions here
cover configuration problems, orchestration failures and misuse of the
utility APIs.
"""


class LanScanError(Exception):
    """Base exception for all lanscan errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ScanConfigurationError(LanScanError, ValueError):
    """Invalid scan input, rejected before the scan starts.

    Raised for a malformed CIDR string, a prefix outside 0..32 or an empty
    port list while port scanning is enabled.

    Examples:
        >>> raise ScanConfigurationError("Invalid CIDR range", {"range": "10.0.0.0/33"})
    """


class ScanError(LanScanError):
    """Orchestration errors, e.g. starting a scan while one is running."""


class ScanFailedError(ScanError):
    """Unexpected failure outside the per-host error boundary.

    The partial device list of a failed scan is not guaranteed to be
    consistent and should be discarded.
    """


class WakeOnLanError(LanScanError, ValueError):
    """Absent or malformed MAC address given to the Wake-on-LAN sender."""


class ExportError(LanScanError):
    """Unsupported export format or unreadable import data."""
