"""Tests for port scanning and banner grabbing against loopback servers."""

import asyncio
import socket

import pytest

from lanscan.services.port_scanner import (
    extract_service_name,
    grab_banner,
    grab_banners,
    is_port_open,
    scan_ports,
    well_known_service,
)
from lanscan.services.timeouts import ProbeCancelled

LOOPBACK = "127.0.0.1"


def unused_port() -> int:
    """Return a loopback port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((LOOPBACK, 0))
        return sock.getsockname()[1]


async def start_server(greeting: bytes | None = None):
    """Start a loopback server that optionally sends a greeting on connect."""

    async def handle(reader, writer):
        if greeting:
            writer.write(greeting)
            await writer.drain()
        try:
            await reader.read(100)
        except ConnectionError:
            pass
        writer.close()

    server = await asyncio.start_server(handle, LOOPBACK, 0)
    port = server.sockets[0].getsockname()[1]
    return server, port


class TestExtractServiceName:
    """Tests for extract_service_name."""

    def test_http_server_header(self):
        """Test the Server header names HTTP services."""
        banner = "HTTP/1.0 200 OK\r\nServer: nginx/1.24.0\r\nContent-Length: 0\r\n\r\n"
        assert extract_service_name(banner, 80) == "nginx/1.24.0"

    def test_http_without_server_header(self):
        """Test plain HTTP replies."""
        assert extract_service_name("HTTP/1.1 404 Not Found\r\n\r\n", 8080) == "HTTP"

    def test_ssh(self):
        """Test SSH identification strings."""
        assert extract_service_name("SSH-2.0-OpenSSH_9.6\r\n", 22) == "SSH-2.0-OpenSSH_9.6"

    def test_ftp(self):
        """Test FTP greetings on port 21."""
        assert extract_service_name("220 ProFTPD Server ready.\r\n", 21) == "220 ProFTPD Server ready."

    def test_smtp(self):
        """Test SMTP greetings on port 25."""
        assert extract_service_name("220 mail.example.com ESMTP Postfix\r\n", 25) == "SMTP - mail.example.com"

    def test_220_on_other_port(self):
        """Test a 220 greeting elsewhere falls back to the port name."""
        assert extract_service_name("220 hello", 143) == "IMAP"

    def test_unknown_banner(self):
        """Test unrecognised banners fall back to the port name."""
        assert extract_service_name("garbage", 9100) == "JetDirect"
        assert extract_service_name("garbage", 12345) == "Port 12345"


class TestWellKnownService:
    """Tests for well_known_service."""

    def test_known_and_unknown(self):
        """Test table hits and the fallback."""
        assert well_known_service(443) == "HTTPS"
        assert well_known_service(445) == "SMB"
        assert well_known_service(2049) == "NFS"
        assert well_known_service(40000) == "Port 40000"


class TestPortScanning:
    """Tests for connect scanning."""

    @pytest.mark.asyncio
    async def test_open_port(self):
        """Test a listening port is open."""
        server, port = await start_server()
        async with server:
            assert await is_port_open(LOOPBACK, port, timeout=1.0) is True

    @pytest.mark.asyncio
    async def test_closed_port(self):
        """Test a port with no listener is closed."""
        assert await is_port_open(LOOPBACK, unused_port(), timeout=1.0) is False

    @pytest.mark.asyncio
    async def test_cancelled(self):
        """Test a set cancellation event stops the probe."""
        event = asyncio.Event()
        event.set()
        with pytest.raises(ProbeCancelled):
            await is_port_open(LOOPBACK, unused_port(), timeout=1.0, cancel_event=event)

    @pytest.mark.asyncio
    async def test_scan_ports_sorted(self):
        """Test only open ports are reported, ascending."""
        server_a, port_a = await start_server()
        server_b, port_b = await start_server()
        closed = unused_port()
        async with server_a, server_b:
            result = await scan_ports(
                LOOPBACK, [port_b, closed, port_a], timeout=1.0, limiter=asyncio.Semaphore(2)
            )
        assert result == sorted([port_a, port_b])

    @pytest.mark.asyncio
    async def test_scan_ports_empty(self):
        """Test an empty port list."""
        assert await scan_ports(LOOPBACK, [], timeout=1.0) == []


class TestBannerGrabbing:
    """Tests for banner grabbing."""

    @pytest.mark.asyncio
    async def test_greeting_banner(self):
        """Test a greeting sent on connect is identified."""
        server, port = await start_server(b"SSH-2.0-dropbear_2022.83\r\n")
        async with server:
            assert await grab_banner(LOOPBACK, port, timeout=1.0) == "SSH-2.0-dropbear_2022.83"

    @pytest.mark.asyncio
    async def test_silent_service_falls_back(self):
        """Test a silent service gets the well-known name after the timeout."""
        server, port = await start_server()
        async with server:
            assert await grab_banner(LOOPBACK, port, timeout=0.1) == f"Port {port}"

    @pytest.mark.asyncio
    async def test_closed_port_falls_back(self):
        """Test a refused connection gets the well-known name."""
        port = unused_port()
        assert await grab_banner(LOOPBACK, port, timeout=1.0) == f"Port {port}"

    @pytest.mark.asyncio
    async def test_grab_banners(self):
        """Test banners are collected per port."""
        server, port = await start_server(b"SSH-2.0-OpenSSH_9.6\r\n")
        async with server:
            services = await grab_banners(LOOPBACK, [port], timeout=1.0)
        assert services == {port: "SSH-2.0-OpenSSH_9.6"}
