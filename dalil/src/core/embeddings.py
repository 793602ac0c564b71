"""
Dalil - Embedding Service
==========================
Thin wrapper around a LangChain embedding model.

``EmbeddingService.embed`` is the async entry point used per request:
query vectors are cached (bounded, 24 h TTL) and the blocking model call
runs in a worker thread.  A provider failure is logged and surfaces as
``None`` so retrieval can still run its non-vector stages.

``EmbeddingService.embed_documents`` batches catalog texts for ingestion.

Usage:
    service = EmbeddingService(build_default_embedder())
    vector = await service.embed("beach clubs to chill")
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

from dalil.config.settings import settings
from dalil.src.utils.cache import EmbeddingCache
from dalil.src.utils.logger import get_logger
from dalil.src.utils.text_utils import normalize_query

logger = get_logger(__name__)


@runtime_checkable
class Embedder(Protocol):
    """Anything that can produce embedding vectors from text."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    def embed_query(self, text: str) -> list[float]: ...


def build_default_embedder() -> Embedder:
    """Gemini embeddings via ``langchain-google-genai``."""
    from langchain_google_genai import GoogleGenerativeAIEmbeddings

    embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    logger.info("Embedding model initialised: %s", settings.EMBEDDING_MODEL)
    return embedder


class EmbeddingService:
    """
    Cached, async-friendly access to an ``Embedder``.

    Parameters
    ----------
    embedder
        The underlying model (``GoogleGenerativeAIEmbeddings`` in production).
    cache
        Query-vector cache.  Defaults to ``EMBEDDING_CACHE_SIZE`` entries
        living ``EMBEDDING_CACHE_TTL_SECONDS``.
    batch_size
        Texts per ``embed_documents`` call during ingestion.
    """

    __slots__ = ("_embedder", "_cache", "_batch_size")

    def __init__(self, embedder: Embedder, cache: EmbeddingCache | None = None, batch_size: int | None = None) -> None:
        self._embedder = embedder
        self._cache = cache if cache is not None else EmbeddingCache(settings.EMBEDDING_CACHE_SIZE, settings.EMBEDDING_CACHE_TTL_SECONDS)
        self._batch_size = batch_size or settings.EMBED_BATCH_SIZE


    @property
    def embedder(self) -> Embedder:
        return self._embedder


    async def embed(self, text: str) -> list[float] | None:
        key = normalize_query(text)
        if not key:
            return None

        cached = self._cache.get(key)
        if cached is not None:
            return list(cached)

        try:
            vector = await asyncio.to_thread(self._embedder.embed_query, text)
        except Exception:
            logger.exception("[EMBED] Query embedding failed for '%s'.", key[:60])
            return None

        self._cache.put(key, vector)
        return list(vector)


    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in batches; output order matches input order."""
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self._batch_size):
            batch = texts[start:start + self._batch_size]
            vectors.extend(self._embedder.embed_documents(batch))
            logger.debug("[EMBED] Batch %d–%d embedded.", start, start + len(batch) - 1)
        if len(vectors) != len(texts):
            raise ValueError(f"Embedder returned {len(vectors)} vectors for {len(texts)} texts.")
        return vectors
