"""Token-bounded, deterministic chunking with content-addressed chunk ids.

The splitter walks the token stream in windows of ``chunk_size`` tokens and
cuts each window back to its last sentence boundary when that boundary lies
past ``min_chunk_size_chars``. Same text and settings always yield the same
chunks, in the same order, with the same ids.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import tiktoken

from crawlsync.fingerprint import chunk_id
from crawlsync.models.documents import ChunkDocument

if TYPE_CHECKING:
    from crawlsync.config import ChunkingSettings
    from crawlsync.models.documents import SourceDocument

_SENTENCE_ENDS = (".", "?", "!", "\n")


class TokenEncoding(Protocol):
    """The subset of ``tiktoken.Encoding`` the chunker relies on."""

    def encode_ordinary(self, text: str) -> list[int]: ...

    def decode(self, tokens: list[int]) -> str: ...


class TokenChunker:
    def __init__(
        self,
        settings: ChunkingSettings,
        encoding: TokenEncoding | None = None,
    ) -> None:
        self._settings = settings
        self._encoding: TokenEncoding = encoding or tiktoken.get_encoding(settings.encoding)

    def split(self, text: str) -> list[str]:
        """Split ``text`` into token-bounded chunks."""
        s = self._settings
        tokens = self._encoding.encode_ordinary(text)
        chunks: list[str] = []

        while tokens and len(chunks) < s.max_num_chunks:
            window = tokens[: s.chunk_size]
            window_text = self._encoding.decode(window)

            if not window_text.strip():
                tokens = tokens[len(window) :]
                continue

            cut = max(window_text.rfind(p) for p in _SENTENCE_ENDS)
            if cut != -1 and cut > s.min_chunk_size_chars:
                window_text = window_text[: cut + 1]

            piece = window_text.strip()
            if len(piece) > s.min_chunk_length_to_embed:
                chunks.append(piece)

            consumed = len(self._encoding.encode_ordinary(window_text))
            tokens = tokens[min(max(consumed, 1), len(window)) :]

        return chunks

    def build_chunks(self, document: SourceDocument, content_hash: str) -> list[ChunkDocument]:
        """Split a document and assign ids derived from ``(source, url, chunk index)``.

        Non-blank text always yields at least one chunk: when every window is
        dropped as too short, the whole stripped text becomes chunk 0.
        """
        base = document.base_metadata(content_hash)
        pieces = self.split(document.text)
        if not pieces and document.text.strip():
            pieces = [document.text.strip()]

        chunks: list[ChunkDocument] = []
        for index, piece in enumerate(pieces):
            chunks.append(
                ChunkDocument(
                    id=chunk_id(document.source, document.url, index),
                    text=piece,
                    metadata={**base, "chunk": index},
                )
            )
        return chunks
