"""Tests for the OUI vendor cache."""

import json
import time
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from lanscan.services.vendor_cache import VendorCache


class TestVendorCacheInit:
    """Tests for VendorCache initialization."""

    def test_in_memory_by_default(self):
        """Test a cache without a path is not persistent."""
        cache = VendorCache()
        assert cache.persistent is False
        assert cache.save() is False

    def test_creates_cache_directory(self, temp_dir):
        """Test that the cache file's directory is created."""
        path = temp_dir / "nested" / "vendors.json"
        cache = VendorCache(path)
        assert path.parent.exists()
        assert cache.persistent is True

    def test_disabled_on_permission_error(self, temp_dir, monkeypatch):
        """Test persistence is disabled when the directory is not writable."""

        # Make touch fail
        def mock_touch(*args, **kwargs):
            raise PermissionError("Permission denied")

        monkeypatch.setattr(Path, "touch", mock_touch)
        cache = VendorCache(temp_dir / "vendors.json")
        assert cache.persistent is False
        cache.set("001122", "Acme")
        assert cache.get("001122") == "Acme"
        assert cache.save() is False


class TestVendorCacheOperations:
    """Tests for cache get/set operations."""

    @pytest.fixture
    def cache(self):
        return VendorCache(ttl_hours=1)

    def test_set_and_get(self, cache):
        """Test basic set and get operations."""
        cache.set("001122", "Acme")
        assert cache.get("001122") == "Acme"
        assert "001122" in cache
        assert len(cache) == 1

    def test_keys_case_insensitive(self, cache):
        """Test OUIs are matched regardless of case."""
        cache.set("b827eb", "Raspberry Pi")
        assert cache.get("B827EB") == "Raspberry Pi"

    def test_get_nonexistent_key(self, cache):
        """Test getting an OUI that isn't cached."""
        assert cache.get("FFFFFF") is None

    def test_set_overwrites(self, cache):
        """Test that set overwrites existing data."""
        cache.set("001122", "Old")
        cache.set("001122", "New")
        assert cache.get("001122") == "New"
        assert len(cache) == 1

    def test_get_expired_key(self):
        """Test that expired entries return None and are dropped."""
        cache = VendorCache(ttl_hours=0)
        cache.set("001122", "Acme")

        # Need to wait a tiny bit for the TTL check
        time.sleep(0.01)
        assert cache.get("001122") is None
        assert len(cache) == 0

    def test_oldest_entries_evicted(self):
        """Test the cache stays bounded, evicting the oldest first."""
        cache = VendorCache(max_size=3)
        for i in range(5):
            cache.set(f"00000{i}", f"Vendor {i}")
        assert len(cache) == 3
        assert cache.get("000000") is None
        assert cache.get("000001") is None
        assert cache.get("000004") == "Vendor 4"

    def test_clear(self, cache):
        """Test clearing all entries."""
        cache.set("001122", "Acme")
        cache.clear()
        assert len(cache) == 0


class TestVendorCachePersistence:
    """Tests for saving and loading the cache file."""

    def test_save_and_reload(self, temp_dir):
        """Test entries survive a save and reload."""
        path = temp_dir / "vendors.json"
        cache = VendorCache(path)
        cache.set("001122", "Acme")
        assert cache.save() is True

        reloaded = VendorCache(path)
        assert reloaded.get("001122") == "Acme"

    def test_expired_entries_skipped_on_load(self, temp_dir):
        """Test stale file entries are not loaded."""
        path = temp_dir / "vendors.json"
        stale = (datetime.now() - timedelta(hours=48)).isoformat()
        fresh = datetime.now().isoformat()
        path.write_text(
            json.dumps(
                {
                    "entries": {
                        "AAAAAA": {"vendor": "Stale", "cached_at": stale},
                        "BBBBBB": {"vendor": "Fresh", "cached_at": fresh},
                    }
                }
            )
        )
        cache = VendorCache(path, ttl_hours=24)
        assert cache.get("AAAAAA") is None
        assert cache.get("BBBBBB") == "Fresh"

    def test_corrupted_file(self, temp_dir):
        """Test a corrupted cache file is ignored."""
        path = temp_dir / "vendors.json"
        path.write_text("not valid json {{{")
        cache = VendorCache(path)
        assert len(cache) == 0
        assert cache.persistent is True

    def test_clear_removes_file(self, temp_dir):
        """Test clear deletes the cache file."""
        path = temp_dir / "vendors.json"
        cache = VendorCache(path)
        cache.set("001122", "Acme")
        cache.save()
        cache.clear()
        assert not path.exists()
