"""Bounded OUI -> vendor cache with optional JSON file persistence."""

import json
import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from pathlib import Path

logger = logging.getLogger(__name__)

MAX_CACHE_SIZE = 10000


class VendorCache:
    """In-memory vendor cache keyed by OUI, evicting oldest entries first.

    When ``path`` is given the cache is loaded from and saved to that JSON
    file; entries older than ``ttl_hours`` are dropped on load. Persistence
    is disabled if the file's directory is not writable.
    """

    def __init__(
        self,
        path: Path | str | None = None,
        ttl_hours: int = 24,
        max_size: int = MAX_CACHE_SIZE,
    ):
        self.path = Path(path) if path else None
        self.ttl = timedelta(hours=ttl_hours)
        self.max_size = max_size
        self._entries: OrderedDict[str, tuple[str, datetime]] = OrderedDict()
        self._persistent = self.path is not None

        if self.path is not None:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                # Test write permission
                test_file = self.path.parent / ".test"
                test_file.touch()
                test_file.unlink()
            except (PermissionError, OSError) as e:
                logger.warning(f"Vendor cache persistence disabled - cannot write to {self.path}: {e}")
                self._persistent = False
            else:
                self.load()

    @property
    def persistent(self) -> bool:
        return self._persistent

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, oui: str) -> bool:
        return oui.upper() in self._entries

    def get(self, oui: str) -> str | None:
        """Get a cached vendor if present and not expired."""
        entry = self._entries.get(oui.upper())
        if entry is None:
            return None
        vendor, cached_at = entry
        if datetime.now() - cached_at > self.ttl:
            logger.debug(f"Vendor cache expired for {oui}")
            del self._entries[oui.upper()]
            return None
        return vendor

    def set(self, oui: str, vendor: str) -> None:
        """Cache a vendor, evicting the oldest entries beyond ``max_size``."""
        key = oui.upper()
        self._entries.pop(key, None)
        self._entries[key] = (vendor, datetime.now())
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted {evicted} from vendor cache")

    def clear(self) -> None:
        """Clear all cached entries (and the file, if persistent)."""
        self._entries.clear()
        if self.path is not None:
            self.path.unlink(missing_ok=True)

    def load(self) -> None:
        """Load non-expired entries from the cache file."""
        if self.path is None or not self.path.exists():
            return

        try:
            with open(self.path) as f:
                data = json.load(f)

            now = datetime.now()
            for oui, entry in data.get("entries", {}).items():
                cached_at = datetime.fromisoformat(entry["cached_at"])
                if now - cached_at <= self.ttl:
                    self._entries[oui.upper()] = (entry["vendor"], cached_at)

            logger.debug(f"Loaded {len(self._entries)} cached vendors")

        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to read vendor cache {self.path}: {e}")

    def save(self) -> bool:
        """Write the cache to its file. Returns False if not persistent or on error."""
        if not self._persistent or self.path is None:
            return False

        data = {
            "entries": {
                oui: {"vendor": vendor, "cached_at": cached_at.isoformat()}
                for oui, (vendor, cached_at) in self._entries.items()
            }
        }
        try:
            with open(self.path, "w") as f:
                json.dump(data, f, indent=2)
            logger.debug(f"Saved {len(self._entries)} cached vendors")
            return True
        except (TypeError, OSError) as e:
            logger.warning(f"Failed to save vendor cache: {e}")
            return False
