"""PDF text and metadata extraction.

Text is pulled page by page with pypdf. Scanned, image-only PDFs produce no
text; callers treat that as an empty document rather than an error.
"""

from __future__ import annotations

import io
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from crawlsync.extract import SUMMARY_EXCERPT_CHARS, excerpt, parse_http_date
from crawlsync.fingerprint import normalize_text
from crawlsync.models.content import ContentKind, FetchedContent

if TYPE_CHECKING:
    from pypdf import DocumentInformation

log = structlog.get_logger()

PDF_MIME_TYPE = "application/pdf"


def looks_like_pdf(url: str, content_type: str | None) -> bool:
    """True for a PDF content type, or any URL that mentions ``.pdf``."""
    if content_type and content_type.split(";")[0].strip().lower() == PDF_MIME_TYPE:
        return True
    return ".pdf" in url.lower()


def extract_pdf(
    data: bytes,
    *,
    url: str,
    fetched_at: datetime,
    mime_type: str | None = None,
    last_modified: str | None = None,
) -> FetchedContent | None:
    """Extract normalized text and document info from PDF bytes.

    Returns None when the bytes are not a readable PDF. A readable PDF
    without text comes back with ``text == ""``.
    """
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
        info = reader.metadata
    except (PyPdfError, ValueError, KeyError, TypeError):
        log.warning("pdf_parse_failed", url=url, exc_info=True)
        return None

    text = normalize_text("\n".join(pages))

    title = _info_field(info, "title")
    author = _info_field(info, "author")
    subject = _info_field(info, "subject")

    return FetchedContent(
        url=url,
        text=text,
        title=title,
        kind=ContentKind.PDF,
        fetched_at=fetched_at,
        summary=subject or excerpt(text, SUMMARY_EXCERPT_CHARS),
        author=author,
        published_at=_info_date(info, "creation_date"),
        modified_at=_info_date(info, "modification_date") or parse_http_date(last_modified),
        mime_type=mime_type or PDF_MIME_TYPE,
        content_length_bytes=len(data),
        page_count=len(pages),
    )


def _info_field(info: DocumentInformation | None, name: str) -> str | None:
    if info is None:
        return None
    try:
        value = getattr(info, name)
    except (PyPdfError, ValueError, TypeError):
        return None
    normalized = normalize_text(value) if isinstance(value, str) else ""
    return normalized or None


def _info_date(info: DocumentInformation | None, name: str) -> datetime | None:
    if info is None:
        return None
    try:
        value = getattr(info, name)
    except (PyPdfError, ValueError, TypeError):
        # Malformed PDF date strings raise on access
        return None
    return value if isinstance(value, datetime) else None
