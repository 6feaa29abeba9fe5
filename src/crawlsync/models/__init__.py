from __future__ import annotations

from crawlsync.models.content import (
    ContentKind,
    FetchedContent,
    FetchOutcome,
    FetchResult,
    FrontierItem,
)
from crawlsync.models.documents import (
    ChunkDocument,
    FingerprintLookup,
    LookupStatus,
    SourceDocument,
    SyncOutcome,
)
from crawlsync.models.feed import FeedPost

__all__ = [
    # content
    "ContentKind",
    "FrontierItem",
    "FetchedContent",
    "FetchOutcome",
    "FetchResult",
    # documents
    "SourceDocument",
    "ChunkDocument",
    "FingerprintLookup",
    "LookupStatus",
    "SyncOutcome",
    # feed
    "FeedPost",
]
