"""MAC vendor lookup: OUI cache, built-in table, offline database, online APIs."""

import asyncio
import json
import logging
from typing import Protocol

import httpx

from ..utils import extract_oui
from .vendor_cache import VendorCache

logger = logging.getLogger(__name__)

UNKNOWN_VENDOR = "Unknown"

# Timeout for a single online API request; the overall lookup has its own budget
HTTP_TIMEOUT = 10.0

USER_AGENT = "lanscan/1.0"

ONLINE_SERVICES = [
    "https://api.macvendors.com/{oui}",
    "https://macvendors.co/api/{oui}",
    "https://www.macvendorlookup.com/api/v2/{oui}",
]

# Common OUIs for offline lookup
BUILTIN_OUIS = {
    # Apple
    "001124": "Apple", "001451": "Apple", "0016CB": "Apple", "001EC2": "Apple",
    "001F5B": "Apple", "002241": "Apple", "002332": "Apple", "002436": "Apple",
    "0026BB": "Apple", "003065": "Apple", "0C74C2": "Apple", "28CFE9": "Apple",
    "3C0754": "Apple", "40CBC0": "Apple", "60334B": "Apple", "7073CB": "Apple",
    "8C8EF2": "Apple", "A85C2C": "Apple", "B8782E": "Apple", "D49A20": "Apple",
    "F0DBF8": "Apple", "FC253F": "Apple",
    # Microsoft
    "000D3A": "Microsoft", "0050F2": "Microsoft", "001DD8": "Microsoft",
    "0017FA": "Microsoft", "00155D": "Microsoft", "7C1E52": "Microsoft",
    # Samsung
    "002454": "Samsung", "0024E9": "Samsung", "00264A": "Samsung", "001485": "Samsung",
    "8806BF": "Samsung", "8C77DC": "Samsung", "BC44AA": "Samsung", "E4B021": "Samsung",
    # Intel
    "001B63": "Intel", "00A0C9": "Intel", "001111": "Intel", "3497F6": "Intel",
    "7085C2": "Intel", "A0A8CD": "Intel", "B479A7": "Intel",
    # Cisco
    "000142": "Cisco", "000163": "Cisco", "00016C": "Cisco", "000195": "Cisco",
    "0001C7": "Cisco", "0001C9": "Cisco", "0002FD": "Cisco", "000318": "Cisco",
    "000A41": "Cisco", "000A42": "Cisco", "000C30": "Cisco", "000F23": "Cisco",
    # HP
    "001279": "HP", "001321": "HP", "001438": "HP", "0016B9": "HP",
    "001708": "HP", "00188B": "HP", "001A4B": "HP", "00236C": "HP",
    # Dell
    "000874": "Dell", "000B3B": "Dell", "000D56": "Dell", "000F1F": "Dell",
    "001143": "Dell", "001344": "Dell", "0014D1": "Dell", "001AA0": "Dell",
    # ASUS
    "000C6E": "ASUS", "000EA6": "ASUS", "0015F2": "ASUS", "001731": "ASUS",
    "107B44": "ASUS", "2C56DC": "ASUS", "50465D": "ASUS", "AC9E17": "ASUS",
    # D-Link
    "001195": "D-Link", "001346": "D-Link", "001CF0": "D-Link", "002191": "D-Link",
    "1C7EE5": "D-Link", "340804": "D-Link",
    # TP-Link
    "001E58": "TP-Link", "002268": "TP-Link", "04C066": "TP-Link", "0C80DA": "TP-Link",
    "149558": "TP-Link", "50C7BF": "TP-Link", "A42BB0": "TP-Link", "F46D04": "TP-Link",
    # Netgear
    "001B2F": "Netgear", "0024B2": "Netgear", "002713": "Netgear", "0846D6": "Netgear",
    "20E52A": "Netgear", "2C3033": "Netgear", "A040A0": "Netgear",
    # Synology / QNAP
    "001132": "Synology", "0008A1": "QNAP", "245EBE": "QNAP",
    # Virtual machines and single-board computers
    "005056": "VMware", "000C29": "VMware", "080027": "VirtualBox", "525400": "QEMU",
    "B827EB": "Raspberry Pi", "DCA632": "Raspberry Pi", "E45F01": "Raspberry Pi",
    # Philips Hue
    "001788": "Philips Hue", "ECB5FA": "Philips Hue",
}

# Map of long registry names to shorter versions
VENDOR_SHORTENINGS = {
    "Apple, Inc.": "Apple",
    "Samsung Electronics Co.,Ltd": "Samsung",
    "Intel Corporate": "Intel",
    "Raspberry Pi Foundation": "Raspberry Pi",
    "Raspberry Pi Trading Ltd": "Raspberry Pi",
    "HUAWEI TECHNOLOGIES CO.,LTD": "Huawei",
    "Amazon Technologies Inc.": "Amazon",
    "Google, Inc.": "Google",
    "Microsoft Corporation": "Microsoft",
    "Sony Corporation": "Sony",
    "LG Electronics": "LG",
    "Xiaomi Communications Co Ltd": "Xiaomi",
    "TP-LINK TECHNOLOGIES CO.,LTD.": "TP-Link",
    "ASUSTek COMPUTER INC.": "ASUS",
    "Hewlett Packard": "HP",
    "Dell Inc.": "Dell",
    "Cisco Systems, Inc": "Cisco",
    "NETGEAR": "Netgear",
    "Belkin International Inc.": "Belkin",
    "Hon Hai Precision Ind. Co.,Ltd.": "Foxconn",
    "Espressif Inc.": "Espressif",
    "Synology Incorporated": "Synology",
    "QNAP Systems, Inc.": "QNAP",
}


class VendorLookup(Protocol):
    """Resolves a MAC address to a vendor name, "Unknown" when not found."""

    async def get_vendor(self, mac: str) -> str: ...


def shorten_vendor_name(vendor: str) -> str:
    """Shorten common long vendor names for display."""
    return VENDOR_SHORTENINGS.get(vendor.strip(), vendor.strip())


def parse_vendor_response(content: str, service_url: str) -> str:
    """Extract the company name from one of the supported API responses."""
    if not content or not content.strip():
        return ""

    try:
        if "macvendors.com" in service_url:
            # Plain text body; errors come back as JSON
            text = content.strip()
            return "" if text.startswith("{") else text
        if "macvendors.co" in service_url:
            return json.loads(content).get("result", {}).get("company", "") or ""
        if "macvendorlookup.com" in service_url:
            data = json.loads(content)
            if isinstance(data, list) and data:
                return data[0].get("company", "") or ""
    except (json.JSONDecodeError, AttributeError) as e:
        logger.debug(f"Error parsing vendor response from {service_url}: {e}")
    return ""


class MacVendorService:
    """Vendor lookup with cache -> built-in table -> database -> online fallback.

    Everything after the built-in table runs under ``timeout`` seconds so a
    slow registry or API never holds up a host probe; on timeout the answer
    is "Unknown" and nothing is cached, so a later probe can retry.

    Args:
        cache: OUI cache; a fresh in-memory cache is used if omitted.
        use_vendor_database: Consult the mac-vendor-lookup offline registry.
        online_lookup: Query the public MAC vendor APIs.
        timeout: Seconds allowed for database and online lookups together.
        client: Optional shared httpx client.
    """

    def __init__(
        self,
        cache: VendorCache | None = None,
        use_vendor_database: bool = True,
        online_lookup: bool = True,
        timeout: float = 0.3,
        client: httpx.AsyncClient | None = None,
    ):
        self.cache = cache if cache is not None else VendorCache()
        self.use_vendor_database = use_vendor_database
        self.online_lookup = online_lookup
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._mac_lookup = None

    async def get_vendor(self, mac: str) -> str:
        """Resolve a MAC address to a vendor name. Never raises."""
        oui = extract_oui(mac)
        if not oui:
            return UNKNOWN_VENDOR

        cached = self.cache.get(oui)
        if cached is not None:
            return cached

        builtin = BUILTIN_OUIS.get(oui)
        if builtin:
            self.cache.set(oui, builtin)
            return builtin

        try:
            vendor = await asyncio.wait_for(self._lookup_slow(mac, oui), timeout=self.timeout)
        except TimeoutError:
            logger.debug(f"Vendor lookup for {oui} timed out after {self.timeout:.2f}s")
            return UNKNOWN_VENDOR
        except Exception as e:
            logger.warning(f"Error looking up vendor for MAC address {mac}: {e}")
            return UNKNOWN_VENDOR

        vendor = shorten_vendor_name(vendor) if vendor else UNKNOWN_VENDOR
        self.cache.set(oui, vendor)
        return vendor

    async def _lookup_slow(self, mac: str, oui: str) -> str:
        if self.use_vendor_database:
            vendor = await self._lookup_database(mac)
            if vendor:
                return vendor
        if self.online_lookup:
            return await self._lookup_online(oui)
        return ""

    async def _lookup_database(self, mac: str) -> str:
        """Look up the offline IEEE registry shipped by mac-vendor-lookup."""
        from mac_vendor_lookup import AsyncMacLookup, VendorNotFoundError

        if self._mac_lookup is None:
            self._mac_lookup = AsyncMacLookup()
        try:
            return await self._mac_lookup.lookup(mac)
        except (VendorNotFoundError, KeyError):
            return ""
        except Exception as e:
            logger.debug(f"Vendor database lookup failed for {mac}: {e}")
            return ""

    async def _lookup_online(self, oui: str) -> str:
        client = self._get_client()
        for template in ONLINE_SERVICES:
            url = template.format(oui=oui)
            try:
                response = await client.get(url)
                if response.status_code == 200:
                    vendor = parse_vendor_response(response.text, url)
                    if vendor and vendor != UNKNOWN_VENDOR:
                        logger.debug(f"Found vendor '{vendor}' for OUI {oui} from {url}")
                        return vendor
            except httpx.HTTPError as e:
                logger.debug(f"Failed to lookup vendor from {url} for OUI {oui}: {e}")
        return ""

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=HTTP_TIMEOUT, headers={"User-Agent": USER_AGENT}
            )
        return self._client

    async def aclose(self) -> None:
        """Close the owned HTTP client and persist the cache."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        self.cache.save()
