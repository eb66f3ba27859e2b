"""Subnet descriptor model."""

import ipaddress

from pydantic import BaseModel, ConfigDict


class SubnetDescriptor(BaseModel):
    """An IPv4 subnet with its derived addresses and host counts.

    Built by ``lanscan.services.address_range.describe_subnet`` or
    ``parse_subnet``. A /31 has no usable range (first/last usable are empty);
    a /32 is a single-host range containing the address itself.
    """

    model_config = ConfigDict(frozen=True)

    network_address: str
    subnet_mask: str
    cidr: int
    first_usable: str = ""
    last_usable: str = ""
    broadcast_address: str
    total_hosts: int
    usable_hosts: int
    interface_name: str = ""

    @property
    def network_range(self) -> str:
        """Return the subnet in CIDR notation, e.g. 192.168.1.0/24."""
        return f"{self.network_address}/{self.cidr}"

    @property
    def usable_range(self) -> str:
        """Return the usable host range for display."""
        if not self.first_usable:
            return ""
        return f"{self.first_usable} - {self.last_usable}"

    def contains(self, ip: str) -> bool:
        """Check whether an IPv4 address belongs to this subnet."""
        try:
            address = int(ipaddress.IPv4Address(ip))
        except ValueError:
            return False
        mask = int(ipaddress.IPv4Address(self.subnet_mask))
        return address & mask == int(ipaddress.IPv4Address(self.network_address))

    def __str__(self) -> str:
        if self.interface_name:
            return f"{self.network_range} ({self.interface_name})"
        return self.network_range
