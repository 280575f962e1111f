"""Caching wrapper around an Embedder that stores query vectors in SQLite."""

from __future__ import annotations

from evidence_engine.embeddings.cache import EmbeddingCache
from evidence_engine.observability.logger import get_logger
from evidence_engine.protocols.embedder import Embedder

logger = get_logger("cached_embedder")


class CachedEmbedder:
    """Wraps any Embedder, checks EmbeddingCache first, calls delegate on a miss."""

    def __init__(self, delegate: Embedder, cache: EmbeddingCache) -> None:
        self._delegate = delegate
        self._cache = cache

    @property
    def dimensions(self) -> int:
        return self._delegate.dimensions

    async def embed_query(self, query: str) -> list[float]:
        cached = await self._cache.get(query)
        if cached is not None:
            logger.debug("embed_query_cache_hit", query_len=len(query))
            return cached

        embedding = await self._delegate.embed_query(query)
        await self._cache.put(query, embedding)
        logger.debug("embed_query_cache_miss", query_len=len(query))
        return embedding
