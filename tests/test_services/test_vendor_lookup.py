"""Tests for MAC vendor lookup."""

import asyncio

import httpx
import pytest

from lanscan.services.vendor_cache import VendorCache
from lanscan.services.vendor_lookup import (
    UNKNOWN_VENDOR,
    MacVendorService,
    parse_vendor_response,
    shorten_vendor_name,
)


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestParseVendorResponse:
    """Tests for parse_vendor_response."""

    def test_macvendors_com_plain_text(self):
        """Test the plain-text API."""
        assert parse_vendor_response("Apple, Inc.\n", "https://api.macvendors.com/001124") == "Apple, Inc."

    def test_macvendors_com_error_json(self):
        """Test errors from the plain-text API are ignored."""
        body = '{"errors":{"detail":"Not Found"}}'
        assert parse_vendor_response(body, "https://api.macvendors.com/FFFFFF") == ""

    def test_macvendors_co(self):
        """Test the JSON result.company format."""
        body = '{"result": {"company": "Cisco Systems, Inc"}}'
        assert parse_vendor_response(body, "https://macvendors.co/api/000142") == "Cisco Systems, Inc"

    def test_macvendorlookup_com(self):
        """Test the JSON list format."""
        body = '[{"company": "NETGEAR"}]'
        assert parse_vendor_response(body, "https://www.macvendorlookup.com/api/v2/001B2F") == "NETGEAR"

    def test_invalid_json(self):
        """Test malformed JSON yields nothing."""
        assert parse_vendor_response("{oops", "https://macvendors.co/api/000142") == ""

    def test_empty(self):
        """Test empty bodies yield nothing."""
        assert parse_vendor_response("  ", "https://api.macvendors.com/000142") == ""


class TestShortenVendorName:
    """Tests for shorten_vendor_name."""

    def test_known_name(self):
        """Test long registry names are shortened."""
        assert shorten_vendor_name("Samsung Electronics Co.,Ltd") == "Samsung"

    def test_unknown_name_unchanged(self):
        """Test other names pass through trimmed."""
        assert shorten_vendor_name(" Acme Widgets ") == "Acme Widgets"


class TestMacVendorService:
    """Tests for the lookup chain."""

    @pytest.mark.asyncio
    async def test_invalid_mac(self):
        """Test a MAC without an OUI is unknown."""
        service = MacVendorService(use_vendor_database=False, online_lookup=False)
        assert await service.get_vendor("") == UNKNOWN_VENDOR
        assert await service.get_vendor("zz:zz") == UNKNOWN_VENDOR

    @pytest.mark.asyncio
    async def test_builtin_table(self):
        """Test well-known OUIs resolve offline and are cached."""
        cache = VendorCache()
        service = MacVendorService(cache=cache, use_vendor_database=False, online_lookup=False)
        assert await service.get_vendor("b8:27:eb:12:34:56") == "Raspberry Pi"
        assert cache.get("B827EB") == "Raspberry Pi"

    @pytest.mark.asyncio
    async def test_cache_checked_first(self):
        """Test cached vendors win over the built-in table."""
        cache = VendorCache()
        cache.set("B827EB", "Custom Name")
        service = MacVendorService(cache=cache, use_vendor_database=False, online_lookup=False)
        assert await service.get_vendor("B8-27-EB-12-34-56") == "Custom Name"

    @pytest.mark.asyncio
    async def test_nothing_enabled_caches_unknown(self):
        """Test a miss with every source disabled is cached as unknown."""
        cache = VendorCache()
        service = MacVendorService(cache=cache, use_vendor_database=False, online_lookup=False)
        assert await service.get_vendor("12:34:56:78:9A:BC") == UNKNOWN_VENDOR
        assert cache.get("123456") == UNKNOWN_VENDOR

    @pytest.mark.asyncio
    async def test_database_lookup_shortened(self, monkeypatch):
        """Test database answers are shortened and cached."""
        service = MacVendorService(use_vendor_database=True, online_lookup=False)

        async def fake_database(mac):
            return "Intel Corporate"

        monkeypatch.setattr(service, "_lookup_database", fake_database)
        assert await service.get_vendor("12:34:56:78:9A:BC") == "Intel"
        assert service.cache.get("123456") == "Intel"

    @pytest.mark.asyncio
    async def test_online_lookup(self):
        """Test the first online API answer is used."""
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, text="Apple, Inc.")

        client = make_client(handler)
        service = MacVendorService(
            use_vendor_database=False, online_lookup=True, timeout=5.0, client=client
        )
        assert await service.get_vendor("12:34:56:78:9A:BC") == "Apple"
        assert requested == ["https://api.macvendors.com/123456"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_online_falls_through_services(self):
        """Test failing services are skipped."""

        def handler(request: httpx.Request) -> httpx.Response:
            if "macvendorlookup.com" in request.url.host:
                return httpx.Response(200, json=[{"company": "NETGEAR"}])
            return httpx.Response(404, text="Not Found")

        client = make_client(handler)
        service = MacVendorService(
            use_vendor_database=False, online_lookup=True, timeout=5.0, client=client
        )
        assert await service.get_vendor("12:34:56:78:9A:BC") == "Netgear"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_online_transport_errors(self):
        """Test network errors end in unknown, never an exception."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        client = make_client(handler)
        service = MacVendorService(
            use_vendor_database=False, online_lookup=True, timeout=5.0, client=client
        )
        assert await service.get_vendor("12:34:56:78:9A:BC") == UNKNOWN_VENDOR
        await client.aclose()

    @pytest.mark.asyncio
    async def test_timeout_not_cached(self, monkeypatch):
        """Test a slow lookup gives up quickly and leaves the cache alone."""
        service = MacVendorService(use_vendor_database=True, online_lookup=False, timeout=0.05)

        async def slow_lookup(mac, oui):
            await asyncio.sleep(1)
            return "Too Late"

        monkeypatch.setattr(service, "_lookup_slow", slow_lookup)
        assert await service.get_vendor("12:34:56:78:9A:BC") == UNKNOWN_VENDOR
        assert service.cache.get("123456") is None

    @pytest.mark.asyncio
    async def test_unexpected_error(self, monkeypatch):
        """Test unexpected failures are absorbed."""
        service = MacVendorService(use_vendor_database=True, online_lookup=False)

        async def broken_lookup(mac, oui):
            raise RuntimeError("boom")

        monkeypatch.setattr(service, "_lookup_slow", broken_lookup)
        assert await service.get_vendor("12:34:56:78:9A:BC") == UNKNOWN_VENDOR

    @pytest.mark.asyncio
    async def test_aclose_saves_cache(self, temp_dir):
        """Test closing persists the cache."""
        path = temp_dir / "vendors.json"
        service = MacVendorService(
            cache=VendorCache(path), use_vendor_database=False, online_lookup=False
        )
        await service.get_vendor("b8:27:eb:12:34:56")
        await service.aclose()
        assert VendorCache(path).get("B827EB") == "Raspberry Pi"

    @pytest.mark.asyncio
    async def test_aclose_keeps_shared_client_open(self):
        """Test an injected client is left to its owner."""
        client = make_client(lambda request: httpx.Response(404))
        service = MacVendorService(use_vendor_database=False, client=client)
        await service.aclose()
        assert client.is_closed is False
        await client.aclose()
