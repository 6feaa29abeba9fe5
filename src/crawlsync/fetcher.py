"""HTTP page fetcher with HTML extraction and PDF fallback.

All crawl network I/O goes through a single Fetcher instance per run. The
Fetcher receives an httpx.AsyncClient via constructor injection; the
lifespan in ``main`` owns the client lifecycle.

Fetching never raises for expected failures. Every call returns a
FetchResult so the crawler decides what a miss means.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import httpx
import structlog

from crawlsync.extract import extract_html
from crawlsync.models.content import FetchResult
from crawlsync.pdf import extract_pdf, looks_like_pdf

if TYPE_CHECKING:
    from crawlsync.config import CrawlerSettings

log = structlog.get_logger()

HTML_MIME_TYPES = frozenset({"text/html", "application/xhtml+xml"})


def build_http_client(settings: CrawlerSettings) -> httpx.AsyncClient:
    """Create the shared crawl client. Called once per run."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": settings.user_agent},
        limits=httpx.Limits(
            max_connections=max(10, settings.concurrency * 2),
            max_keepalive_connections=5,
        ),
    )


def _mime_type(content_type: str) -> str:
    return content_type.split(";")[0].strip().lower()


def _content_length(response: httpx.Response) -> int | None:
    raw = response.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


class Fetcher:
    """Fetches one URL and returns its normalized text, or why it has none."""

    def __init__(self, client: httpx.AsyncClient, settings: CrawlerSettings) -> None:
        self._client = client
        self._max_pdf_bytes = settings.max_pdf_bytes

    async def fetch(self, url: str) -> FetchResult:
        """GET ``url`` (following redirects) and extract HTML or PDF text."""
        fetched_at = datetime.now(UTC)

        try:
            async with self._client.stream("GET", url) as response:
                if not response.is_success:
                    log.debug("fetch_http_error", url=url, status_code=response.status_code)
                    return FetchResult.failed(f"HTTP {response.status_code}")

                final_url = str(response.url)
                content_type = response.headers.get("content-type", "")
                mime_type = _mime_type(content_type)
                last_modified = response.headers.get("last-modified")

                if not mime_type or mime_type in HTML_MIME_TYPES:
                    await response.aread()
                    content = extract_html(
                        response.text,
                        url=final_url,
                        fetched_at=fetched_at,
                        mime_type=mime_type or None,
                        last_modified=last_modified,
                        content_length=_content_length(response),
                    )
                elif looks_like_pdf(final_url, content_type) or looks_like_pdf(url, None):
                    declared = _content_length(response)
                    if declared is not None and declared > self._max_pdf_bytes:
                        log.info("pdf_too_large", url=url, content_length=declared)
                        return FetchResult.skipped(f"PDF too large ({declared} bytes)")

                    data = await self._read_bounded(response)
                    if data is None:
                        log.info("pdf_too_large", url=url, limit=self._max_pdf_bytes)
                        return FetchResult.skipped("PDF exceeded size limit")
                    if not data:
                        return FetchResult.empty("empty PDF download")

                    pdf_content = extract_pdf(
                        data,
                        url=final_url,
                        fetched_at=fetched_at,
                        mime_type=mime_type,
                        last_modified=last_modified,
                    )
                    if pdf_content is None:
                        return FetchResult.failed("unreadable PDF")
                    content = pdf_content
                else:
                    log.debug("fetch_unsupported_content", url=url, content_type=content_type)
                    return FetchResult.skipped(f"unsupported content type {mime_type!r}")

        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.debug("fetch_network_error", url=url, error=str(exc))
            return FetchResult.failed(f"network error: {exc}")

        if not content.text:
            log.debug("fetch_no_text", url=url, kind=content.kind)
            return FetchResult.empty("no extractable text")

        log.debug(
            "fetch_complete",
            url=url,
            final_url=content.url,
            kind=content.kind,
            text_length=len(content.text),
        )
        return FetchResult.ok(content)

    async def _read_bounded(self, response: httpx.Response) -> bytes | None:
        """Read the body, or return None as soon as it exceeds the PDF size limit."""
        buffer = bytearray()
        async for chunk in response.aiter_bytes():
            buffer.extend(chunk)
            if len(buffer) > self._max_pdf_bytes:
                return None
        return bytes(buffer)
