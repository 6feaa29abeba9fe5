"""Bounded, polite breadth-first web crawler.

Each site is crawled in three phases:

  SEEDED      seeds that pass the allow rules are queued at depth 0
  TRAVERSING  up to ``concurrency`` visits run at once; each sleeps a random
              politeness delay, fetches, enqueues allowed outbound links and
              syncs the page into the vector store
  DRAINED     the frontier is empty and no visit is in flight

Sites are crawled one after another. A failure on one page or one site is
logged and never stops the others.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

import structlog

from crawlsync.frontier import UrlFrontier
from crawlsync.models.documents import SourceDocument
from crawlsync.rules import UrlRules

if TYPE_CHECKING:
    from crawlsync.config import CrawlerSettings, SiteSettings
    from crawlsync.models.content import FetchedContent, FrontierItem
    from crawlsync.protocols import FetcherProtocol
    from crawlsync.sync import DocumentSyncer

log = structlog.get_logger()


@dataclass
class CrawlStats:
    """Per-site counters for one crawl."""

    site: str
    visited: int = 0
    indexed: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class _SiteRun:
    """Everything one ``crawl_site`` call shares between its visits."""

    site: SiteSettings
    rules: UrlRules
    frontier: UrlFrontier
    max_depth: int
    stats: CrawlStats


def to_source_document(source: str, url: str, content: FetchedContent) -> SourceDocument:
    """Key fetched content by the URL that was requested, not the redirect target."""
    return SourceDocument(
        source=source,
        url=url,
        text=content.text,
        kind=content.kind,
        fetched_at=content.fetched_at,
        title=content.title,
        summary=content.summary,
        author=content.author,
        published_at=content.published_at,
        modified_at=content.modified_at,
        mime_type=content.mime_type,
        content_length_bytes=content.content_length_bytes,
        page_count=content.page_count,
    )


class WebCrawler:
    def __init__(
        self,
        settings: CrawlerSettings,
        fetcher: FetcherProtocol,
        syncer: DocumentSyncer,
    ) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._syncer = syncer

    async def crawl_all(self) -> list[CrawlStats]:
        """Crawl every configured site in order. Site failures are logged, not raised."""
        results: list[CrawlStats] = []
        for site in self._settings.sites:
            try:
                results.append(await self.crawl_site(site))
            except Exception:
                log.error("site_crawl_failed", site=site.name, exc_info=True)
        return results

    async def crawl_site(self, site: SiteSettings) -> CrawlStats:
        run = _SiteRun(
            site=site,
            rules=UrlRules.from_site(site),
            frontier=UrlFrontier(self._settings.pages_for(site)),
            max_depth=self._settings.depth_for(site),
            stats=CrawlStats(site=site.name),
        )
        concurrency = self._settings.concurrency_for(site)

        # SEEDED
        for seed in site.seeds:
            if run.rules.is_allowed(seed):
                run.frontier.add(seed, 0)
            else:
                log.warning("seed_not_allowed", site=site.name, url=seed)

        log.info(
            "site_crawl_started",
            site=site.name,
            seeds=run.frontier.seen_count,
            max_depth=run.max_depth,
            max_pages=run.frontier.max_pages,
            concurrency=concurrency,
        )

        # TRAVERSING
        in_flight: set[asyncio.Task[None]] = set()
        try:
            while True:
                while run.frontier.has_next() and len(in_flight) < concurrency:
                    item = run.frontier.next()
                    in_flight.add(asyncio.create_task(self._visit(run, item)))
                if not in_flight:
                    break
                _done, in_flight = await asyncio.wait(
                    in_flight, return_when=asyncio.FIRST_COMPLETED
                )
        finally:
            for task in in_flight:
                task.cancel()
            await asyncio.gather(*in_flight, return_exceptions=True)

        # DRAINED
        log.info("site_crawl_complete", **asdict(run.stats), seen=run.frontier.seen_count)
        return run.stats

    async def _visit(self, run: _SiteRun, item: FrontierItem) -> None:
        """Fetch one URL, enqueue its links and sync it. Never raises."""
        stats = run.stats
        try:
            await asyncio.sleep(self._politeness_delay())
            stats.visited += 1
            result = await self._fetcher.fetch(item.url)

            if result.outcome == "failed":
                stats.failed += 1
                log.info(
                    "page_fetch_failed", site=run.site.name, url=item.url, reason=result.reason
                )
                return
            if result.outcome != "ok" or result.content is None:
                stats.skipped += 1
                log.debug(
                    "page_skipped",
                    site=run.site.name,
                    url=item.url,
                    outcome=result.outcome,
                    reason=result.reason,
                )
                return

            content = result.content
            if item.depth < run.max_depth:
                self._enqueue_links(run, content.links, item.depth + 1)

            document = to_source_document(run.site.name, item.url, content)
            outcome = await self._syncer.sync(document)
            if outcome == "unchanged":
                stats.unchanged += 1
            else:
                stats.indexed += 1
        except Exception:
            stats.failed += 1
            log.warning("page_process_failed", site=run.site.name, url=item.url, exc_info=True)

    def _enqueue_links(self, run: _SiteRun, links: list[str], depth: int) -> None:
        added = 0
        for link in links:
            if run.rules.is_allowed(link) and run.frontier.add(link, depth):
                added += 1
        if added:
            log.debug("links_enqueued", site=run.site.name, count=added, depth=depth)

    def _politeness_delay(self) -> float:
        low, high = self._settings.politeness_delay_ms
        return random.uniform(low, high) / 1000
