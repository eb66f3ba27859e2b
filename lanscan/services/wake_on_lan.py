"""Wake-on-LAN magic packet construction and broadcast."""

import logging
import socket
from collections.abc import Callable

from ..exceptions import WakeOnLanError
from ..models.scan_result import DiscoveredHost
from ..utils import mac_to_bytes

logger = logging.getLogger(__name__)

BROADCAST_ADDRESS = "255.255.255.255"
WOL_PORTS = (9, 7)
MAGIC_PACKET_SIZE = 102


def build_magic_packet(mac: str) -> bytes:
    """Build the 102-byte magic packet: 6 x 0xFF, then the MAC 16 times.

    Raises:
        WakeOnLanError: If the MAC is absent or not 12 hex digits once
            ``:``, ``-`` and ``.`` separators are stripped.
    """
    if not mac or not mac.strip():
        raise WakeOnLanError("MAC address is required for Wake-on-LAN")

    raw = mac_to_bytes(mac)
    if raw is None:
        raise WakeOnLanError(f"Invalid MAC address '{mac}'", {"mac": mac})

    return b"\xff" * 6 + raw * 16


class WakeOnLanSender:
    """Broadcasts magic packets over UDP.

    Packets go to 255.255.255.255 on ports 9 and 7 and, when
    ``subnet_broadcast`` is given, to that directed broadcast address too.
    Delivery is fire-and-forget: no retries and no confirmation.

    Args:
        subnet_broadcast: Optional directed broadcast, e.g. "192.168.1.255".
        socket_factory: Creates the UDP socket; tests inject a fake.
    """

    def __init__(
        self,
        subnet_broadcast: str | None = None,
        socket_factory: Callable[[], socket.socket] | None = None,
    ):
        self.subnet_broadcast = subnet_broadcast
        self._socket_factory = socket_factory or self._create_socket

    @staticmethod
    def _create_socket() -> socket.socket:
        return socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    @property
    def targets(self) -> list[tuple[str, int]]:
        """Destination (address, port) pairs in send order."""
        targets = [(BROADCAST_ADDRESS, port) for port in WOL_PORTS]
        if self.subnet_broadcast and self.subnet_broadcast != BROADCAST_ADDRESS:
            targets.extend((self.subnet_broadcast, port) for port in WOL_PORTS)
        return targets

    def send(self, mac: str) -> bool:
        """Send the magic packet for ``mac``.

        Returns:
            True once every packet was handed to the socket, False on a
            socket error.

        Raises:
            WakeOnLanError: If the MAC address is absent or malformed.
        """
        packet = build_magic_packet(mac)
        logger.info(f"Sending Wake-on-LAN packet to {mac}")

        try:
            sock = self._socket_factory()
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
                for target in self.targets:
                    sock.sendto(packet, target)
            finally:
                sock.close()
        except OSError as e:
            logger.error(f"Failed to send Wake-on-LAN packet to {mac}: {e}")
            return False

        logger.info(f"Wake-on-LAN packet sent successfully to {mac}")
        return True

    def wake_device(self, host: DiscoveredHost) -> bool:
        """Wake a discovered host. Returns False if it has no MAC address."""
        if not host.supports_wol:
            logger.warning(f"Cannot send WOL packet: MAC address not available for {host.ip}")
            return False
        return self.send(host.mac)
