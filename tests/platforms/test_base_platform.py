"""Tests for BasePlatform cache handling."""

import json
import time

import pytest
from pydantic import BaseModel

from team_roster.errors import PlatformNotReadyError
from team_roster.platforms.base import BasePlatform


class _Data(BaseModel):
    items: list[str] = []


class _FakePlatform(BasePlatform[_Data]):
    name = "Fake"
    data_model = _Data

    def __init__(self, cache_dir, ttl_seconds=900, items=None, error=None):
        super().__init__(cache_dir, ttl_seconds)
        self.items = items or ["a"]
        self.error = error
        self.fetch_count = 0

    async def fetch(self) -> _Data:
        self.fetch_count += 1
        if self.error:
            raise self.error
        return _Data(items=self.items)


class TestSnapshot:
    """Tests for snapshot access."""

    def test_not_ready_raises(self, tmp_path):
        platform = _FakePlatform(tmp_path)

        assert platform.is_ready is False
        with pytest.raises(PlatformNotReadyError, match="Fake has no cached data"):
            platform.snapshot

    def test_set_snapshot(self, tmp_path):
        platform = _FakePlatform(tmp_path)

        platform.set_snapshot(_Data(items=["x"]), timestamp=42.0)

        assert platform.is_ready
        assert platform.snapshot.items == ["x"]
        assert platform.timestamp == 42.0


class TestCacheFile:
    """Tests for saving and loading the cache file."""

    @pytest.mark.asyncio
    async def test_save_then_load(self, tmp_path):
        """A saved cache is loaded by a new instance."""
        platform = _FakePlatform(tmp_path)
        platform.set_snapshot(_Data(items=["x", "y"]), timestamp=123.0)
        await platform.save_cache()

        fresh = _FakePlatform(tmp_path)
        loaded = await fresh.load_saved_cache()

        assert loaded is True
        assert fresh.snapshot.items == ["x", "y"]
        assert fresh.timestamp == 123.0

    @pytest.mark.asyncio
    async def test_cache_file_layout(self, tmp_path):
        platform = _FakePlatform(tmp_path / "cache")
        platform.set_snapshot(_Data(items=["x"]), timestamp=1.0)

        await platform.save_cache()

        saved = json.loads((tmp_path / "cache" / "Fake.json").read_text())
        assert saved == {"timestamp": 1.0, "data": {"items": ["x"]}}

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        platform = _FakePlatform(tmp_path)

        assert await platform.load_saved_cache() is False
        assert platform.is_ready is False

    @pytest.mark.asyncio
    async def test_unreadable_file_is_ignored(self, tmp_path):
        (tmp_path / "Fake.json").write_text("{not json")
        platform = _FakePlatform(tmp_path)

        assert await platform.load_saved_cache() is False
        assert platform.is_ready is False


class TestRefresh:
    """Tests for refresh."""

    @pytest.mark.asyncio
    async def test_fetches_and_saves(self, tmp_path):
        platform = _FakePlatform(tmp_path, items=["new"])

        await platform.refresh()

        assert platform.snapshot.items == ["new"]
        assert (tmp_path / "Fake.json").exists()

    @pytest.mark.asyncio
    async def test_fresh_saved_cache_skips_fetch(self, tmp_path):
        """A saved cache younger than the TTL is used as is."""
        saved = _FakePlatform(tmp_path)
        saved.set_snapshot(_Data(items=["saved"]), timestamp=time.time())
        await saved.save_cache()

        platform = _FakePlatform(tmp_path)
        await platform.refresh()

        assert platform.fetch_count == 0
        assert platform.snapshot.items == ["saved"]

    @pytest.mark.asyncio
    async def test_stale_cache_is_refetched(self, tmp_path):
        platform = _FakePlatform(tmp_path, ttl_seconds=60, items=["new"])
        platform.set_snapshot(_Data(items=["old"]), timestamp=time.time() - 120)

        await platform.refresh()

        assert platform.fetch_count == 1
        assert platform.snapshot.items == ["new"]

    @pytest.mark.asyncio
    async def test_force(self, tmp_path):
        platform = _FakePlatform(tmp_path)
        platform.set_snapshot(_Data(items=["old"]))

        await platform.refresh(force=True)

        assert platform.fetch_count == 1

    @pytest.mark.asyncio
    async def test_fetch_error_keeps_previous_snapshot(self, tmp_path):
        platform = _FakePlatform(tmp_path, error=RuntimeError("down"))
        platform.set_snapshot(_Data(items=["old"]), timestamp=0.0)

        with pytest.raises(RuntimeError, match="down"):
            await platform.refresh()

        assert platform.snapshot.items == ["old"]
