"""Tests for the SQLite local cache."""

import json
import pytest

from chronos.storage import LocalCache


@pytest.fixture
def cache():
    """Create an in-memory LocalCache for testing."""
    cache = LocalCache(":memory:")
    cache.connect()
    yield cache
    cache.close()


class TestLocalCacheSchema:
    """Tests for database schema initialization."""

    def test_connect_creates_tables(self):
        """Test that connect() creates all required tables."""
        cache = LocalCache(":memory:")
        cache.connect()

        tables = cache._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ).fetchall()
        table_names = [t[0] for t in tables]

        assert "kv_store" in table_names
        assert "pending_sync" in table_names
        cache.close()

    def test_connect_is_idempotent(self, cache):
        """Test that calling connect() multiple times is safe."""
        cache.set_item("k", "v")
        cache.connect()
        cache.connect()

        assert cache.get_item("k") == "v"

    def test_file_backed_cache_persists(self, tmp_path):
        """Test data survives reopening a file-backed cache."""
        db_path = tmp_path / "nested" / "cache.db"

        first = LocalCache(db_path)
        first.set_item("k", "v")
        first.close()

        second = LocalCache(db_path)
        assert second.get_item("k") == "v"
        assert "db_size_mb" in second.get_stats()
        second.close()


class TestKeyValue:
    """Tests for key/value operations."""

    def test_get_missing(self, cache):
        assert cache.get_item("missing") is None

    def test_set_overwrites(self, cache):
        """Test a second write replaces the first."""
        cache.set_item("k", "one")
        cache.set_item("k", "two")

        assert cache.get_item("k") == "two"
        assert cache.get_stats()["keys_count"] == 1

    def test_remove_item(self, cache):
        cache.set_item("k", "v")

        assert cache.remove_item("k") is True
        assert cache.remove_item("k") is False
        assert cache.get_item("k") is None

    def test_json_roundtrip(self, cache):
        cache.set_json("data", {"entries": {}, "essays": []})
        assert cache.get_json("data") == {"entries": {}, "essays": []}

    def test_get_json_missing(self, cache):
        assert cache.get_json("missing") is None

    def test_get_json_corrupt(self, cache):
        """Test corrupt values surface as decode errors."""
        cache.set_item("data", "{not json")

        with pytest.raises(json.JSONDecodeError):
            cache.get_json("data")


class TestPendingSync:
    """Tests for pending cloud write bookkeeping."""

    def test_mark_and_get_pending(self, cache):
        """Test pending entries are listed per user."""
        cache.mark_pending("2026-03-14", "user-1", "offline")
        cache.mark_pending("2026-03-15", "user-1")
        cache.mark_pending("2026-03-14", "user-2")

        pending = cache.get_pending("user-1")

        assert [p["entry_id"] for p in pending] == ["2026-03-14", "2026-03-15"]
        assert pending[0]["last_error"] == "offline"
        assert len(cache.get_pending("user-2")) == 1

    def test_mark_pending_twice_updates_error(self, cache):
        """Test re-marking keeps one row with the newest error."""
        cache.mark_pending("2026-03-14", "user-1", "first")
        cache.mark_pending("2026-03-14", "user-1", "second")

        pending = cache.get_pending("user-1")

        assert len(pending) == 1
        assert pending[0]["last_error"] == "second"

    def test_clear_pending(self, cache):
        cache.mark_pending("2026-03-14", "user-1")

        assert cache.clear_pending("2026-03-14", "user-1") is True
        assert cache.clear_pending("2026-03-14", "user-1") is False
        assert cache.get_pending("user-1") == []

    def test_get_pending_limit(self, cache):
        for day in range(1, 6):
            cache.mark_pending(f"2026-03-0{day}", "user-1")

        assert len(cache.get_pending("user-1", limit=3)) == 3

    def test_stats(self, cache):
        cache.set_item("k", "v")
        cache.mark_pending("2026-03-14", "user-1")

        stats = cache.get_stats()

        assert stats["keys_count"] == 1
        assert stats["pending_count"] == 1
