from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel


class ContentKind(StrEnum):
    WEB_PAGE = "web_page"
    PDF = "pdf"
    FEED_POST = "feed_post"


@dataclass(frozen=True)
class FrontierItem:
    """A discovered URL and the link depth it was found at (seeds are depth 0)."""

    url: str
    depth: int


class FetchedContent(BaseModel):
    """Normalized text and best-effort metadata extracted from one URL."""

    url: str  # Final URL after redirects
    text: str  # Whitespace-normalized readable text
    title: str | None = None
    kind: ContentKind
    fetched_at: datetime
    summary: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    modified_at: datetime | None = None
    mime_type: str | None = None
    content_length_bytes: int | None = None
    page_count: int | None = None  # PDFs only
    links: list[str] = []  # Absolute outbound links, HTML only


FetchOutcome = Literal["ok", "empty", "skipped", "failed"]


@dataclass(frozen=True)
class FetchResult:
    """Outcome of fetching one URL.

    ``ok`` carries content. ``empty`` means the document had no extractable
    text, ``skipped`` means the content type or size was not acceptable and
    ``failed`` covers network errors and non-2xx responses. None of these
    are retried within a run.
    """

    outcome: FetchOutcome
    content: FetchedContent | None = None
    reason: str = ""

    @classmethod
    def ok(cls, content: FetchedContent) -> FetchResult:
        return cls(outcome="ok", content=content)

    @classmethod
    def empty(cls, reason: str) -> FetchResult:
        return cls(outcome="empty", reason=reason)

    @classmethod
    def skipped(cls, reason: str) -> FetchResult:
        return cls(outcome="skipped", reason=reason)

    @classmethod
    def failed(cls, reason: str) -> FetchResult:
        return cls(outcome="failed", reason=reason)
