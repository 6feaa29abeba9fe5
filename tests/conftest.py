"""Shared test fixtures for the crawlsync test suite."""

from __future__ import annotations

import io
import re
from datetime import datetime
from typing import TYPE_CHECKING, Any

import pytest
from pypdf import PdfWriter

from crawlsync.chunker import TokenChunker
from crawlsync.config import ChunkingSettings
from crawlsync.errors import ErrorCode, IngestError
from crawlsync.models.documents import FingerprintLookup

if TYPE_CHECKING:
    from collections.abc import Callable

    from crawlsync.models.documents import ChunkDocument


# ---------------------------------------------------------------------------
# In-memory vector store
# ---------------------------------------------------------------------------


class FakeVectorStore:
    """VectorStoreProtocol backed by a dict of point id -> payload.

    Applies the same filter semantics as the Qdrant adapter and records every
    call so tests can assert on what was (not) re-embedded.
    """

    def __init__(self) -> None:
        self.points: dict[str, dict[str, Any]] = {}
        self.upserted: list[ChunkDocument] = []
        self.deleted: list[tuple[str, str]] = []
        self.touched: list[tuple[str, str, datetime]] = []
        self.retention_cutoffs: list[int] = []
        self.ensure_calls: list[str] = []
        self.lookup_error = False
        self.fail_upsert_urls: set[str] = set()

    def identity(self, source: str, url: str) -> list[dict[str, Any]]:
        return [
            payload
            for payload in self.points.values()
            if payload["source"] == source and payload["url"] == url
        ]

    async def find_fingerprint(self, source: str, url: str) -> FingerprintLookup:
        if self.lookup_error:
            return FingerprintLookup(status="error")
        matches = self.identity(source, url)
        if not matches:
            return FingerprintLookup(status="absent")
        return FingerprintLookup(status="found", content_hash=matches[0]["content_hash"])

    async def touch(self, source: str, url: str, crawled_at: datetime) -> None:
        self.touched.append((source, url, crawled_at))
        for payload in self.identity(source, url):
            payload["crawled_at"] = crawled_at.isoformat()
            payload["crawled_at_epoch"] = int(crawled_at.timestamp() * 1000)

    async def delete_identity(self, source: str, url: str) -> None:
        self.deleted.append((source, url))
        self.points = {
            point_id: payload
            for point_id, payload in self.points.items()
            if not (payload["source"] == source and payload["url"] == url)
        }

    async def delete_older_than(self, cutoff_epoch_ms: int) -> None:
        self.retention_cutoffs.append(cutoff_epoch_ms)
        self.points = {
            point_id: payload
            for point_id, payload in self.points.items()
            if payload["crawled_at_epoch"] >= cutoff_epoch_ms
        }

    async def upsert(self, chunks: list[ChunkDocument]) -> None:
        for chunk in chunks:
            if chunk.metadata["url"] in self.fail_upsert_urls:
                raise IngestError(ErrorCode.VECTOR_STORE_FAILED, "upsert rejected")
        for chunk in chunks:
            self.upserted.append(chunk)
            self.points[chunk.id] = {**chunk.metadata, "text": chunk.text}

    async def ensure_payload_indexes(self) -> None:
        self.ensure_calls.append("indexes")

    async def ensure_collection(self, vector_size: int) -> None:
        self.ensure_calls.append(f"collection:{vector_size}")


@pytest.fixture()
def store() -> FakeVectorStore:
    return FakeVectorStore()


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------


class WhitespaceEncoding:
    """Token encoding where each word plus its trailing whitespace is one token."""

    _PIECE_RE = re.compile(r"\s*\S+\s*|\s+")

    def __init__(self) -> None:
        self._ids: dict[str, int] = {}
        self._pieces: list[str] = []

    def encode_ordinary(self, text: str) -> list[int]:
        tokens: list[int] = []
        for piece in self._PIECE_RE.findall(text):
            if piece not in self._ids:
                self._ids[piece] = len(self._pieces)
                self._pieces.append(piece)
            tokens.append(self._ids[piece])
        return tokens

    def decode(self, tokens: list[int]) -> str:
        return "".join(self._pieces[token] for token in tokens)


def make_chunker(
    *,
    chunk_size: int = 50,
    min_chunk_size_chars: int = 20,
    min_chunk_length_to_embed: int = 5,
    max_num_chunks: int = 10_000,
) -> TokenChunker:
    settings = ChunkingSettings(
        chunk_size=chunk_size,
        min_chunk_size_chars=min_chunk_size_chars,
        min_chunk_length_to_embed=min_chunk_length_to_embed,
        max_num_chunks=max_num_chunks,
    )
    return TokenChunker(settings, encoding=WhitespaceEncoding())


@pytest.fixture()
def chunker() -> TokenChunker:
    return make_chunker()


# ---------------------------------------------------------------------------
# PDFs
# ---------------------------------------------------------------------------


def _pdf_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_text_pdf(text: str, *, title: str | None = None, author: str | None = None) -> bytes:
    """A single-page PDF drawing ``text`` in Helvetica, with correct xref offsets."""
    content = f"BT /F1 12 Tf 72 720 Td ({_pdf_string(text)}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R"
        b" /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(content)).encode() + b" >>\nstream\n" + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    info_entries: list[str] = []
    if title:
        info_entries.append(f"/Title ({_pdf_string(title)})")
    if author:
        info_entries.append(f"/Author ({_pdf_string(author)})")
    if info_entries:
        objects.append(("<< " + " ".join(info_entries) + " >>").encode("latin-1"))

    out = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += str(number).encode() + b" 0 obj\n" + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 " + str(len(objects) + 1).encode() + b"\n"
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()

    trailer = f"<< /Size {len(objects) + 1} /Root 1 0 R"
    if info_entries:
        trailer += f" /Info {len(objects)} 0 R"
    out += f"trailer\n{trailer} >>\nstartxref\n{xref_offset}\n".encode()
    out += b"%%EOF\n"
    return bytes(out)


def build_blank_pdf() -> bytes:
    """A valid PDF with one page and no text, like a scanned document."""
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture()
def text_pdf() -> Callable[..., bytes]:
    return build_text_pdf


@pytest.fixture()
def blank_pdf() -> bytes:
    return build_blank_pdf()


@pytest.fixture()
def chunker_factory() -> Callable[..., TokenChunker]:
    return make_chunker
