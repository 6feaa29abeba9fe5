"""The fingerprint, chunk and replace cycle shared by every content source.

For one ``(source, url)`` document:

1. Hash the normalized text.
2. Look up the stored hash. On a match, refresh ``crawled_at`` on the
   existing chunks and stop: nothing is re-embedded.
3. Otherwise delete every existing chunk of the identity, then chunk,
   embed and upsert the new text.

A lookup error is treated like a missing fingerprint, so the document is
re-indexed. Delete always precedes upsert, so a document never carries
chunks from two generations once the cycle completes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from crawlsync.fingerprint import content_hash

if TYPE_CHECKING:
    from crawlsync.chunker import TokenChunker
    from crawlsync.models.documents import SourceDocument, SyncOutcome
    from crawlsync.protocols import VectorStoreProtocol

log = structlog.get_logger()


class DocumentSyncer:
    def __init__(self, store: VectorStoreProtocol, chunker: TokenChunker) -> None:
        self._store = store
        self._chunker = chunker

    async def sync(self, document: SourceDocument) -> SyncOutcome:
        """Bring the store in line with ``document``. Store write errors propagate."""
        fingerprint = content_hash(document.text)
        lookup = await self._store.find_fingerprint(document.source, document.url)

        if lookup.matches(fingerprint):
            await self._store.touch(document.source, document.url, document.fetched_at)
            log.debug("document_unchanged", source=document.source, url=document.url)
            return "unchanged"

        if lookup.status == "error":
            log.info(
                "document_reindex_after_lookup_error",
                source=document.source,
                url=document.url,
            )

        await self._store.delete_identity(document.source, document.url)
        chunks = self._chunker.build_chunks(document, fingerprint)
        await self._store.upsert(chunks)

        log.info(
            "document_indexed",
            source=document.source,
            url=document.url,
            chunks=len(chunks),
            replaced=lookup.status == "found",
        )
        return "indexed"
