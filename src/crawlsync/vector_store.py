"""Qdrant adapter: fingerprint lookup, filtered deletes, upserts, index bootstrap.

Read and write failures are handled differently:

- ``find_fingerprint`` never raises. Any failure is reported as
  ``FingerprintLookup(status="error")`` and the sync layer re-embeds, which
  costs money but never leaves stale content behind.
- Writes (touch, delete, upsert, index creation) raise ``IngestError`` so the
  caller can count the item as failed.

No state about the collection is cached between calls.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.http.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    IntegerIndexParams,
    IntegerIndexType,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    Range,
    VectorParams,
)

from crawlsync.errors import ErrorCode, IngestError
from crawlsync.models.documents import FingerprintLookup

if TYPE_CHECKING:
    from collections.abc import Awaitable
    from datetime import datetime

    from crawlsync.config import QdrantSettings
    from crawlsync.models.documents import ChunkDocument
    from crawlsync.protocols import EmbedderProtocol

log = structlog.get_logger()

CONTENT_PAYLOAD_KEY = "text"
UPSERT_BATCH_SIZE = 256

# Payload fields used in filters. crawled_at_epoch needs range support for
# retention deletes.
PAYLOAD_INDEXES: dict[str, Any] = {
    "source": PayloadSchemaType.KEYWORD,
    "url": PayloadSchemaType.KEYWORD,
    "crawled_at_epoch": IntegerIndexParams(
        type=IntegerIndexType.INTEGER, lookup=False, range=True
    ),
}

_QDRANT_ERRORS = (UnexpectedResponse, ResponseHandlingException)


def build_qdrant_client(settings: QdrantSettings) -> AsyncQdrantClient:
    return AsyncQdrantClient(
        url=settings.url,
        api_key=settings.api_key or None,
        timeout=int(settings.timeout_seconds),
    )


def identity_filter(source: str, url: str) -> Filter:
    """Filter matching every point of one ``(source, url)`` document."""
    return Filter(
        must=[
            FieldCondition(key="source", match=MatchValue(value=source)),
            FieldCondition(key="url", match=MatchValue(value=url)),
        ]
    )


def older_than_filter(cutoff_epoch_ms: int) -> Filter:
    """Filter matching points whose freshness epoch is strictly before the cutoff."""
    return Filter(must=[FieldCondition(key="crawled_at_epoch", range=Range(lt=cutoff_epoch_ms))])


class QdrantStore:
    """Vector store adapter implementing VectorStoreProtocol on AsyncQdrantClient."""

    def __init__(
        self,
        client: AsyncQdrantClient,
        collection: str,
        embedder: EmbedderProtocol,
    ) -> None:
        self._client = client
        self._collection = collection
        self._embedder = embedder

    @property
    def collection(self) -> str:
        return self._collection

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def ensure_collection(self, vector_size: int) -> None:
        """Create the collection (cosine distance) if it does not exist yet."""
        try:
            exists = await self._client.collection_exists(self._collection)
        except _QDRANT_ERRORS as exc:
            raise self._error("collection lookup", exc) from exc
        if exists:
            return

        created = await self._write(
            self._client.create_collection(
                collection_name=self._collection,
                vectors_config=VectorParams(size=vector_size, distance=Distance.COSINE),
            ),
            action="collection create",
            tolerate=(409,),
        )
        if created:
            log.info("qdrant_collection_created", collection=self._collection, size=vector_size)

    async def ensure_index(self, field_name: str, field_schema: Any) -> None:
        """Create a payload index. An index that already exists counts as success.

        Depending on version, Qdrant answers a duplicate create with 409 or 400.
        """
        created = await self._write(
            self._client.create_payload_index(
                collection_name=self._collection,
                field_name=field_name,
                field_schema=field_schema,
                wait=True,
            ),
            action=f"index {field_name}",
            tolerate=(400, 409),
        )
        if created:
            log.info("qdrant_index_ensured", collection=self._collection, field=field_name)
        else:
            log.debug("qdrant_index_exists", collection=self._collection, field=field_name)

    async def ensure_payload_indexes(self) -> None:
        for field_name, field_schema in PAYLOAD_INDEXES.items():
            await self.ensure_index(field_name, field_schema)

    # ------------------------------------------------------------------
    # Fingerprints
    # ------------------------------------------------------------------

    async def find_fingerprint(self, source: str, url: str) -> FingerprintLookup:
        """Return the stored content hash for ``(source, url)``. Never raises."""
        try:
            points, _next_offset = await self._client.scroll(
                collection_name=self._collection,
                scroll_filter=identity_filter(source, url),
                limit=1,
                with_payload=["content_hash"],
                with_vectors=False,
            )
        except _QDRANT_ERRORS:
            log.warning("fingerprint_lookup_error", source=source, url=url, exc_info=True)
            return FingerprintLookup(status="error")

        if not points:
            return FingerprintLookup(status="absent")

        stored = (points[0].payload or {}).get("content_hash")
        if not isinstance(stored, str) or not stored.strip():
            log.debug("fingerprint_missing_hash", source=source, url=url)
            return FingerprintLookup(status="absent")

        return FingerprintLookup(status="found", content_hash=stored)

    async def touch(self, source: str, url: str, crawled_at: datetime) -> None:
        """Refresh the freshness timestamps on every chunk of ``(source, url)``."""
        await self._write(
            self._client.set_payload(
                collection_name=self._collection,
                payload={
                    "crawled_at": crawled_at.isoformat(),
                    "crawled_at_epoch": int(crawled_at.timestamp() * 1000),
                },
                points=identity_filter(source, url),
                wait=True,
            ),
            action="touch",
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def delete_identity(self, source: str, url: str) -> None:
        """Delete every chunk of ``(source, url)``."""
        await self._write(
            self._client.delete(
                collection_name=self._collection,
                points_selector=FilterSelector(filter=identity_filter(source, url)),
                wait=True,
            ),
            action="delete",
        )

    async def delete_older_than(self, cutoff_epoch_ms: int) -> None:
        """Delete every point, across all sources, last seen before the cutoff."""
        await self._write(
            self._client.delete(
                collection_name=self._collection,
                points_selector=FilterSelector(filter=older_than_filter(cutoff_epoch_ms)),
                wait=True,
            ),
            action="retention delete",
        )

    async def upsert(self, chunks: list[ChunkDocument]) -> None:
        """Embed chunk texts and upsert them as points."""
        if not chunks:
            return

        vectors = await self._embedder.embed([chunk.text for chunk in chunks])

        for start in range(0, len(chunks), UPSERT_BATCH_SIZE):
            batch = chunks[start : start + UPSERT_BATCH_SIZE]
            points = [
                PointStruct(
                    id=chunk.id,
                    vector=vector,
                    payload={**chunk.metadata, CONTENT_PAYLOAD_KEY: chunk.text},
                )
                for chunk, vector in zip(
                    batch, vectors[start : start + UPSERT_BATCH_SIZE], strict=True
                )
            ]
            await self._write(
                self._client.upsert(collection_name=self._collection, points=points, wait=True),
                action="upsert",
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _write(
        self,
        call: Awaitable[object],
        *,
        action: str,
        tolerate: tuple[int, ...] = (),
    ) -> bool:
        """Await a write. Returns False if Qdrant answered with a status in ``tolerate``."""
        try:
            await call
        except UnexpectedResponse as exc:
            if exc.status_code in tolerate:
                return False
            raise self._error(action, exc) from exc
        except ResponseHandlingException as exc:
            raise self._error(action, exc) from exc
        return True

    def _error(self, action: str, detail: object) -> IngestError:
        return IngestError(
            code=ErrorCode.VECTOR_STORE_FAILED,
            message=f"Qdrant {action} failed on collection {self._collection!r}: {detail}",
            recoverable=True,
        )
