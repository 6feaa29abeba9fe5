"""Application state container.

AppState is created once per process inside the ``lifespan`` context manager
in ``main`` and passed to every pipeline and scheduler coroutine. It owns no
mutable crawl state: frontiers and stats live inside a single run.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from crawlsync.chunker import TokenChunker
    from crawlsync.config import Settings
    from crawlsync.protocols import FeedClientProtocol, FetcherProtocol, VectorStoreProtocol


@dataclass
class AppState:
    """Holds all shared runtime state."""

    settings: Settings
    store: VectorStoreProtocol
    fetcher: FetcherProtocol
    feed_client: FeedClientProtocol
    chunker: TokenChunker
