"""Integration test fixtures.

Provides a fully wired AppState: the real Fetcher and FeedClient on httpx
clients (mocked per test with respx), the in-memory vector store and a
whitespace-token chunker from tests/conftest.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from crawlsync.config import (
    CrawlerSettings,
    FeedPageSettings,
    FeedSettings,
    RetentionSettings,
    Settings,
    SiteSettings,
)
from crawlsync.feed import FeedClient, build_feed_client
from crawlsync.fetcher import Fetcher, build_http_client
from crawlsync.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from conftest import FakeVectorStore

    from crawlsync.chunker import TokenChunker


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        crawler=CrawlerSettings(
            max_depth=1,
            politeness_delay_ms=(0, 0),
            sites=[
                SiteSettings(
                    name="docs",
                    seeds=["https://docs.test/"],
                    allowed_hosts=["docs.test"],
                    exclude_url_regex=r".*/private/.*",
                )
            ],
        ),
        feed=FeedSettings(
            base_url="https://graph.test",
            access_token="token",
            pages=[FeedPageSettings(name="club", page_id="123")],
        ),
        retention=RetentionSettings(days=30),
    )


@pytest.fixture()
async def app_state(
    settings: Settings, store: FakeVectorStore, chunker: TokenChunker
) -> AsyncGenerator[AppState, None]:
    """Full AppState wired for pipeline integration tests."""
    async with (
        build_http_client(settings.crawler) as crawl_client,
        build_feed_client(settings.feed) as feed_client,
    ):
        yield AppState(
            settings=settings,
            store=store,
            fetcher=Fetcher(crawl_client, settings.crawler),
            feed_client=FeedClient(feed_client),
            chunker=chunker,
        )
