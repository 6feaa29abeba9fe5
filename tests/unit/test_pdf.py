"""Unit tests for crawlsync.pdf."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from crawlsync.models.content import ContentKind
from crawlsync.pdf import PDF_MIME_TYPE, extract_pdf, looks_like_pdf

if TYPE_CHECKING:
    from collections.abc import Callable

FETCHED_AT = datetime(2025, 3, 1, tzinfo=UTC)


class TestLooksLikePdf:
    @pytest.mark.parametrize(
        ("url", "content_type"),
        [
            ("https://example.com/file", "application/pdf"),
            ("https://example.com/file", "Application/PDF; charset=binary"),
            ("https://example.com/report.pdf", "application/octet-stream"),
            ("https://example.com/download.PDF?id=1", None),
        ],
    )
    def test_detected(self, url: str, content_type: str | None) -> None:
        assert looks_like_pdf(url, content_type)

    def test_not_detected(self) -> None:
        assert not looks_like_pdf("https://example.com/image.png", "image/png")


class TestExtractPdf:
    def test_text_and_metadata(self, text_pdf: Callable[..., bytes]) -> None:
        data = text_pdf(
            "Quarterly  report for the lake association.", title="Report", author="Board"
        )
        content = extract_pdf(data, url="https://example.com/report.pdf", fetched_at=FETCHED_AT)

        assert content is not None
        assert content.kind == ContentKind.PDF
        assert "Quarterly report for the lake association." in content.text
        assert content.title == "Report"
        assert content.author == "Board"
        assert content.page_count == 1
        assert content.content_length_bytes == len(data)
        assert content.mime_type == PDF_MIME_TYPE
        assert content.links == []

    def test_scanned_pdf_yields_empty_text(self, blank_pdf: bytes) -> None:
        content = extract_pdf(blank_pdf, url="https://example.com/scan.pdf", fetched_at=FETCHED_AT)

        assert content is not None
        assert content.text == ""
        assert content.page_count == 1

    def test_garbage_returns_none(self) -> None:
        content = extract_pdf(
            b"this is not a pdf", url="https://example.com/x.pdf", fetched_at=FETCHED_AT
        )
        assert content is None

    def test_last_modified_header_used_without_pdf_dates(
        self, text_pdf: Callable[..., bytes]
    ) -> None:
        content = extract_pdf(
            text_pdf("Some text here."),
            url="https://example.com/x.pdf",
            fetched_at=FETCHED_AT,
            last_modified="Wed, 21 Oct 2015 07:28:00 GMT",
        )
        assert content is not None
        assert content.modified_at == datetime(2015, 10, 21, 7, 28, tzinfo=UTC)
