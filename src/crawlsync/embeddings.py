"""Embedding client for OpenAI-compatible embedding endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

import openai
import structlog
from openai import AsyncOpenAI

from crawlsync.errors import ErrorCode, IngestError

if TYPE_CHECKING:
    from crawlsync.config import EmbeddingSettings

log = structlog.get_logger()


def build_embedding_client(settings: EmbeddingSettings) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=settings.api_key or None,
        base_url=settings.base_url,
        timeout=settings.timeout_seconds,
        max_retries=settings.max_retries,
    )


class OpenAIEmbedder:
    """Embeds texts in batches. Output order always matches input order."""

    def __init__(self, client: AsyncOpenAI, settings: EmbeddingSettings) -> None:
        self._client = client
        self._model = settings.model
        self._batch_size = settings.batch_size

    async def embed(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self._batch_size):
            batch = texts[start : start + self._batch_size]
            vectors.extend(await self._embed_batch(batch))
        return vectors

    async def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(
                model=self._model, input=batch, encoding_format="float"
            )
        except openai.OpenAIError as exc:
            raise IngestError(
                code=ErrorCode.EMBEDDING_FAILED,
                message=f"Embedding request failed for {len(batch)} texts: {exc}",
                recoverable=True,
            ) from exc

        if len(response.data) != len(batch):
            raise IngestError(
                code=ErrorCode.EMBEDDING_FAILED,
                message=f"Expected {len(batch)} embeddings, got {len(response.data)}",
                recoverable=True,
            )

        ordered = sorted(response.data, key=lambda item: item.index)
        log.debug("embeddings_received", count=len(ordered), model=self._model)
        return [item.embedding for item in ordered]
