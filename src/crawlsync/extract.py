"""Readable-text and metadata extraction from HTML pages."""

from __future__ import annotations

from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from crawlsync.fingerprint import normalize_text
from crawlsync.models.content import ContentKind, FetchedContent

if TYPE_CHECKING:
    from bs4 import Tag

# Elements that never hold page content
_NON_CONTENT = "script,style,noscript,svg,canvas,header,footer,nav,aside,form"

SUMMARY_EXCERPT_CHARS = 240


def extract_html(
    html: str,
    *,
    url: str,
    fetched_at: datetime,
    mime_type: str | None = None,
    last_modified: str | None = None,
    content_length: int | None = None,
) -> FetchedContent:
    """Parse an HTML document into FetchedContent.

    Links are collected before non-content elements are stripped, so
    navigation menus still feed the frontier. Text comes from ``main``,
    then ``article``, then the whole body.
    """
    soup = BeautifulSoup(html, "html.parser")

    links = extract_links(soup, url)

    title = _first_non_blank(
        _clean(soup.title.get_text()) if soup.title else None,
        _meta(soup, "property", "og:title"),
        _meta(soup, "name", "twitter:title"),
    )
    author = _first_non_blank(
        _meta(soup, "name", "author"),
        _meta(soup, "property", "article:author"),
    )
    published_at = _first_non_none(
        parse_iso_date(_meta(soup, "property", "article:published_time")),
        parse_iso_date(_meta(soup, "name", "publish_date")),
        parse_iso_date(_meta(soup, "name", "date")),
    )
    modified_at = _first_non_none(
        parse_http_date(last_modified),
        parse_iso_date(_meta(soup, "property", "article:modified_time")),
        parse_iso_date(_meta(soup, "property", "og:updated_time")),
    )
    description = _first_non_blank(
        _meta(soup, "name", "description"),
        _meta(soup, "property", "og:description"),
    )

    text = extract_readable_text(soup)

    return FetchedContent(
        url=url,
        text=text,
        title=title,
        kind=ContentKind.WEB_PAGE,
        fetched_at=fetched_at,
        summary=description or excerpt(text, SUMMARY_EXCERPT_CHARS),
        author=author,
        published_at=published_at,
        modified_at=modified_at,
        mime_type=mime_type or "text/html",
        content_length_bytes=(
            content_length if content_length is not None else len(text.encode("utf-8"))
        ),
        links=links,
    )


def extract_readable_text(soup: BeautifulSoup) -> str:
    """Strip non-content elements and return normalized text. Mutates ``soup``."""
    for element in soup.select(_NON_CONTENT):
        element.decompose()

    container: Tag | BeautifulSoup = (
        soup.find("main") or soup.find("article") or soup.body or soup
    )
    return normalize_text(container.get_text(" "))


def extract_links(soup: BeautifulSoup, base_url: str) -> list[str]:
    """Absolute ``a[href]`` targets in document order, without duplicates."""
    seen: set[str] = set()
    links: list[str] = []
    for anchor in soup.select("a[href]"):
        href = str(anchor.get("href", "")).strip()
        if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue
        absolute = urljoin(base_url, href)
        if absolute not in seen:
            seen.add(absolute)
            links.append(absolute)
    return links


def excerpt(text: str | None, max_chars: int) -> str | None:
    if not text:
        return None
    if len(text) <= max_chars:
        return text
    return text[:max_chars].strip()


def parse_http_date(value: str | None) -> datetime | None:
    """Parse an RFC 1123 date header. Returns None when absent or malformed."""
    if not value or not value.strip():
        return None
    try:
        return parsedate_to_datetime(value.strip())
    except (TypeError, ValueError):
        return None


def parse_iso_date(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp. Returns None when absent or malformed."""
    if not value or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def _meta(soup: BeautifulSoup, attr: str, value: str) -> str | None:
    tag = soup.find("meta", attrs={attr: value})
    if tag is None:
        return None
    content = tag.get("content")
    return _clean(str(content)) if content else None


def _clean(value: str | None) -> str | None:
    normalized = normalize_text(value)
    return normalized or None


def _first_non_blank(*values: str | None) -> str | None:
    for value in values:
        if value and value.strip():
            return value
    return None


def _first_non_none(*values: datetime | None) -> datetime | None:
    for value in values:
        if value is not None:
            return value
    return None
