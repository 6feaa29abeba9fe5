from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

from crawlsync.models.content import ContentKind


class SourceDocument(BaseModel):
    """One logical document keyed by ``(source, url)``, ready to be synced."""

    source: str
    url: str
    text: str
    kind: ContentKind
    fetched_at: datetime
    title: str | None = None
    summary: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    modified_at: datetime | None = None
    mime_type: str | None = None
    content_length_bytes: int | None = None
    page_count: int | None = None
    post_id: str | None = None  # Feed posts only

    def base_metadata(self, content_hash: str) -> dict[str, Any]:
        """Payload shared by every chunk of this document. None values are dropped."""
        epoch_ms = int(self.fetched_at.timestamp() * 1000)
        payload: dict[str, Any] = {
            "source": self.source,
            "url": self.url,
            "title": self.title,
            "kind": str(self.kind),
            "content_hash": content_hash,
            "content_len": len(self.text),
            "crawled_at": self.fetched_at.isoformat(),
            "crawled_at_epoch": epoch_ms,
            "summary": self.summary,
            "author": self.author,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "modified_at": self.modified_at.isoformat() if self.modified_at else None,
            "mime_type": self.mime_type,
            "content_length_bytes": self.content_length_bytes,
            "page_count": self.page_count,
            "post_id": self.post_id,
        }
        return {k: v for k, v in payload.items() if v is not None}


class ChunkDocument(BaseModel):
    """A single chunk as written to the vector store."""

    id: str  # Deterministic UUID
    text: str
    metadata: dict[str, Any]


LookupStatus = Literal["found", "absent", "error"]


@dataclass(frozen=True)
class FingerprintLookup:
    """Result of looking up the stored content hash for ``(source, url)``."""

    status: LookupStatus
    content_hash: str | None = None

    def matches(self, content_hash: str) -> bool:
        return self.status == "found" and self.content_hash == content_hash


SyncOutcome = Literal["indexed", "unchanged"]
