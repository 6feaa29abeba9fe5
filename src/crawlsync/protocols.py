"""Protocol interfaces for swappable components.

Pipelines and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory implementations
- Another vector backend to be swapped in without touching the pipelines
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from datetime import datetime

    from crawlsync.config import FeedPageSettings
    from crawlsync.models.content import FetchResult
    from crawlsync.models.documents import ChunkDocument, FingerprintLookup
    from crawlsync.models.feed import FeedPost


class VectorStoreProtocol(Protocol):
    """Interface for the vector store holding chunk records and fingerprints."""

    async def find_fingerprint(self, source: str, url: str) -> FingerprintLookup: ...

    async def touch(self, source: str, url: str, crawled_at: datetime) -> None: ...

    async def delete_identity(self, source: str, url: str) -> None: ...

    async def delete_older_than(self, cutoff_epoch_ms: int) -> None: ...

    async def upsert(self, chunks: list[ChunkDocument]) -> None: ...

    async def ensure_payload_indexes(self) -> None: ...

    async def ensure_collection(self, vector_size: int) -> None: ...


class FetcherProtocol(Protocol):
    """Interface for the HTTP page fetcher."""

    async def fetch(self, url: str) -> FetchResult: ...


class EmbedderProtocol(Protocol):
    """Interface for the text embedding backend."""

    async def embed(self, texts: list[str]) -> list[list[float]]: ...


class FeedClientProtocol(Protocol):
    """Interface for the social feed API client."""

    async def fetch_recent_posts(
        self, page: FeedPageSettings, max_posts: int
    ) -> list[FeedPost]: ...
