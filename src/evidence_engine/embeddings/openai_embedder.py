"""OpenAI embedding provider using text-embedding-3-small."""

from __future__ import annotations

from openai import APIConnectionError, APITimeoutError, AsyncOpenAI, RateLimitError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from evidence_engine.exceptions import EmbeddingError
from evidence_engine.observability.logger import get_logger

logger = get_logger("embeddings")

TRANSIENT_ERRORS = (RateLimitError, APIConnectionError, APITimeoutError)


class OpenAIEmbedder:
    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        batch_size: int = 100,
        _dimensions: int = 1536,
        max_query_chars: int = 2048,
        retry_attempts: int = 3,
    ) -> None:
        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model
        self._batch_size = batch_size
        self._dimensions = _dimensions
        self._max_query_chars = max_query_chars
        self._retry_attempts = retry_attempts

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def _create(self, batch: list[str]) -> list[list[float]]:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._client.embeddings.create(input=batch, model=self._model)
        return [item.embedding for item in response.data]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed corpus passages in batches. Used when seeding a corpus."""
        if not texts:
            return []
        all_embeddings: list[list[float]] = []
        try:
            for i in range(0, len(texts), self._batch_size):
                all_embeddings.extend(await self._create(texts[i : i + self._batch_size]))
            logger.info("embedded_texts", count=len(texts), model=self._model)
        except Exception as e:
            raise EmbeddingError(f"Failed to embed {len(texts)} texts: {e}") from e
        return all_embeddings

    async def embed_query(self, query: str) -> list[float]:
        try:
            vectors = await self._create([query[: self._max_query_chars]])
            return vectors[0]
        except Exception as e:
            raise EmbeddingError(f"Failed to embed query: {e}") from e
