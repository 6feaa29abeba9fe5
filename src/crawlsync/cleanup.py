"""Retention cleanup: drop vector store content not seen within the retention window."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from crawlsync.config import RetentionSettings
    from crawlsync.protocols import VectorStoreProtocol

log = structlog.get_logger()


def retention_cutoff_ms(now: datetime, days: int) -> int:
    """Epoch milliseconds of ``now - days``."""
    return int((now - timedelta(days=days)).timestamp() * 1000)


class RetentionCleaner:
    """Deletes every point whose ``crawled_at_epoch`` is strictly before the cutoff.

    Content re-seen by a crawl or feed run (indexed or merely touched) always
    has a fresh epoch, so only content that disappeared from its source ages
    out. A point exactly at the cutoff survives.
    """

    def __init__(self, store: VectorStoreProtocol, settings: RetentionSettings) -> None:
        self._store = store
        self._days = settings.days

    async def cleanup(self, now: datetime | None = None) -> int:
        """Run one filtered delete and return the cutoff used."""
        now = now or datetime.now(UTC)
        cutoff = retention_cutoff_ms(now, self._days)
        log.info("retention_cleanup_started", retention_days=self._days, cutoff_epoch_ms=cutoff)
        await self._store.delete_older_than(cutoff)
        log.info("retention_cleanup_complete", cutoff_epoch_ms=cutoff)
        return cutoff
