"""Unit tests for crawlsync.cleanup."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from crawlsync.cleanup import RetentionCleaner, retention_cutoff_ms
from crawlsync.config import RetentionSettings

if TYPE_CHECKING:
    from conftest import FakeVectorStore

NOW = datetime(2025, 6, 30, 12, 0, tzinfo=UTC)


def _seed(store: FakeVectorStore, point_id: str, seen_at: datetime) -> None:
    store.points[point_id] = {
        "source": "docs",
        "url": f"https://example.com/{point_id}",
        "content_hash": "h",
        "crawled_at_epoch": int(seen_at.timestamp() * 1000),
    }


class TestRetentionCutoff:
    def test_cutoff_is_now_minus_days(self) -> None:
        expected = int((NOW - timedelta(days=30)).timestamp() * 1000)
        assert retention_cutoff_ms(NOW, 30) == expected


class TestRetentionCleaner:
    async def test_boundary(self, store: FakeVectorStore) -> None:
        cutoff = NOW - timedelta(days=30)
        _seed(store, "older", cutoff - timedelta(milliseconds=1))
        _seed(store, "exact", cutoff)
        _seed(store, "newer", cutoff + timedelta(milliseconds=1))

        returned = await RetentionCleaner(store, RetentionSettings(days=30)).cleanup(now=NOW)

        assert returned == int(cutoff.timestamp() * 1000)
        assert set(store.points) == {"exact", "newer"}

    async def test_single_filtered_delete(self, store: FakeVectorStore) -> None:
        await RetentionCleaner(store, RetentionSettings(days=7)).cleanup(now=NOW)
        assert store.retention_cutoffs == [retention_cutoff_ms(NOW, 7)]

    async def test_defaults_to_current_time(self, store: FakeVectorStore) -> None:
        before = datetime.now(UTC)
        cutoff = await RetentionCleaner(store, RetentionSettings(days=1)).cleanup()
        assert cutoff >= retention_cutoff_ms(before, 1)

    async def test_thirty_day_window(self, store: FakeVectorStore) -> None:
        _seed(store, "31_days", NOW - timedelta(days=31))
        _seed(store, "29_days", NOW - timedelta(days=29))

        await RetentionCleaner(store, RetentionSettings(days=30)).cleanup(now=NOW)

        assert set(store.points) == {"29_days"}
