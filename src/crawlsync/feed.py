"""Social feed ingestion: page posts from the Graph API into the vector store.

Each configured page becomes its own source, ``{source_prefix}{page.name}``.
A post is keyed by its permalink, or ``fb://{post_id}`` when the API does not
return one, and goes through the same sync cycle as crawled pages.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from crawlsync.extract import parse_iso_date
from crawlsync.fingerprint import normalize_text
from crawlsync.models.content import ContentKind
from crawlsync.models.documents import SourceDocument
from crawlsync.models.feed import FeedPost

if TYPE_CHECKING:
    from crawlsync.config import FeedPageSettings, FeedSettings
    from crawlsync.protocols import FeedClientProtocol
    from crawlsync.sync import DocumentSyncer

log = structlog.get_logger()

FEED_FIELDS = "id,message,created_time,permalink_url"
# Graph API rejects page sizes above 100
MAX_PAGE_SIZE = 100


def build_feed_client(settings: FeedSettings) -> httpx.AsyncClient:
    headers = {"Accept": "application/json"}
    if settings.access_token:
        headers["Authorization"] = f"Bearer {settings.access_token}"
    return httpx.AsyncClient(
        base_url=settings.api_base,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers=headers,
        follow_redirects=True,
    )


class FeedClient:
    """Reads recent posts of a page, following ``paging.next`` links."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch_recent_posts(self, page: FeedPageSettings, max_posts: int) -> list[FeedPost]:
        """Return up to ``max_posts`` posts, newest first.

        A failed API call ends pagination; posts gathered before it are kept.
        """
        posts: list[FeedPost] = []
        next_url: str | None = f"/{page.page_id}/posts"
        params: dict[str, Any] | None = {
            "fields": FEED_FIELDS,
            "limit": min(max_posts, MAX_PAGE_SIZE),
        }

        while next_url is not None and len(posts) < max_posts:
            payload = await self._get_json(next_url, params)
            if payload is None:
                break

            for node in payload.get("data") or []:
                if len(posts) >= max_posts:
                    break
                post = _parse_post(node)
                if post is not None:
                    posts.append(post)

            # paging.next is absolute and already carries fields, limit and cursor
            paging_next = (payload.get("paging") or {}).get("next")
            next_url = paging_next if isinstance(paging_next, str) and paging_next else None
            params = None

        log.debug("feed_posts_fetched", page=page.name, count=len(posts))
        return posts

    async def _get_json(self, url: str, params: dict[str, Any] | None) -> dict[str, Any] | None:
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError):
            log.warning("feed_api_call_failed", url=url, exc_info=True)
            return None

        if not isinstance(payload, dict):
            log.warning("feed_api_unexpected_payload", url=url)
            return None
        return payload


def _parse_post(node: object) -> FeedPost | None:
    if not isinstance(node, dict) or not node.get("id"):
        return None
    return FeedPost(
        id=str(node["id"]),
        message=node.get("message") or "",
        created_time=node.get("created_time"),
        permalink_url=node.get("permalink_url"),
    )


@dataclass
class FeedStats:
    """Per-page counters for one ingestion."""

    page: str
    fetched: int = 0
    indexed: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0


class FeedPipeline:
    def __init__(
        self,
        settings: FeedSettings,
        client: FeedClientProtocol,
        syncer: DocumentSyncer,
    ) -> None:
        self._settings = settings
        self._client = client
        self._syncer = syncer

    def source_for(self, page: FeedPageSettings) -> str:
        return f"{self._settings.source_prefix}{page.name}"

    async def ingest_all(self) -> list[FeedStats]:
        """Ingest every configured page. Page failures are logged, not raised."""
        results: list[FeedStats] = []
        for page in self._settings.pages:
            try:
                results.append(await self.ingest_page(page))
            except Exception:
                log.warning("feed_page_ingest_failed", page=page.name, exc_info=True)
        return results

    async def ingest_page(self, page: FeedPageSettings) -> FeedStats:
        stats = FeedStats(page=page.name)
        posts = await self._client.fetch_recent_posts(page, self._settings.max_posts)
        stats.fetched = len(posts)
        log.info("feed_page_fetched", page=page.name, posts=len(posts))

        for post in posts:
            try:
                await self._ingest_post(page, post, stats)
            except Exception:
                stats.failed += 1
                log.warning(
                    "feed_post_ingest_failed", page=page.name, post_id=post.id, exc_info=True
                )

        log.info("feed_page_complete", **asdict(stats))
        return stats

    async def _ingest_post(self, page: FeedPageSettings, post: FeedPost, stats: FeedStats) -> None:
        text = normalize_text(post.message)
        if not text:
            stats.skipped += 1
            log.debug("feed_post_empty", page=page.name, post_id=post.id)
            return

        document = SourceDocument(
            source=self.source_for(page),
            url=post.permalink_url or f"fb://{post.id}",
            text=text,
            kind=ContentKind.FEED_POST,
            fetched_at=datetime.now(UTC),
            author=page.name,
            published_at=parse_iso_date(post.created_time),
            mime_type="text/plain",
            content_length_bytes=len(text.encode("utf-8")),
            post_id=post.id,
        )
        outcome = await self._syncer.sync(document)
        if outcome == "unchanged":
            stats.unchanged += 1
        else:
            stats.indexed += 1
