import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from notesearch.constants import (
    BASE_DELAY_MS,
    DEFAULT_CONCURRENCY,
    DEFAULT_EMBEDDING_MODEL,
    EMBEDDING_DIMENSIONS,
    EMBEDDING_MAX_LENGTH,
    MAX_RETRIES,
)
from notesearch.embedding.base import EmbeddingProvider
from notesearch.embedding.retry import with_retry
from notesearch.errors import EmbeddingError
from notesearch.logging import get_logger
from notesearch.utils import elapsed_ms, ms_now

if TYPE_CHECKING:
    from notesearch.config import Config

_logger = get_logger(__name__)


def empty_vector() -> np.ndarray:
    return np.empty(0, dtype=np.float64)


@dataclass
class EmbeddingResult:
    vector: np.ndarray
    token_count: int | None = None
    duration_ms: int = 0


@dataclass
class BatchEmbeddingResult:
    """Index-aligned with the input texts; failed items hold an empty vector."""

    vectors: list[np.ndarray] = field(default_factory=list)
    total_tokens: int = 0
    total_duration_ms: int = 0
    success_count: int = 0
    failure_count: int = 0


class EmbeddingClient:
    def __init__(
        self,
        provider: EmbeddingProvider,
        model: str = DEFAULT_EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIMENSIONS,
        max_length: int = EMBEDDING_MAX_LENGTH,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BASE_DELAY_MS / 1000,
    ):
        self.provider = provider
        self.model = model
        self.dimensions = dimensions
        self.max_length = max_length
        self.max_retries = max_retries
        self.base_delay = base_delay

    @classmethod
    def from_config(cls, config: "Config") -> "EmbeddingClient":
        from notesearch.embedding.openai import OpenAIEmbeddingProvider

        provider = OpenAIEmbeddingProvider(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            timeout=config.request_timeout,
        )
        return cls(
            provider=provider,
            model=config.embedding_model,
            dimensions=config.embedding_dimensions,
            max_length=config.embedding_max_length,
            max_retries=config.max_retries,
            base_delay=config.retry_base_delay,
        )

    async def close(self) -> None:
        await self.provider.close()

    async def embed_one(self, text: str) -> EmbeddingResult:
        start = ms_now()

        if not text or not text.strip():
            raise EmbeddingError("empty input: text cannot be empty for embedding generation")

        truncated = text[: self.max_length]

        try:
            response = await with_retry(
                self.provider.embed,
                truncated,
                self.model,
                max_retries=self.max_retries,
                base_delay=self.base_delay,
            )
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"Embedding generation failed: {e}") from e

        vector = np.asarray(response.vector, dtype=np.float64)
        if vector.ndim != 1 or vector.shape[0] != self.dimensions:
            raise EmbeddingError(f"invalid dimensions: expected {self.dimensions}, got {vector.size}")

        return EmbeddingResult(
            vector=vector,
            token_count=response.total_tokens,
            duration_ms=elapsed_ms(start),
        )

    async def embed_batch(self, texts: list[str], concurrency: int = DEFAULT_CONCURRENCY) -> BatchEmbeddingResult:
        """Embed ``texts`` in sequential chunks of ``concurrency`` parallel calls.

        A failed item never aborts the batch: it is logged, counted in
        ``failure_count`` and represented by an empty vector at its index.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        start = ms_now()
        result = BatchEmbeddingResult()
        if not texts:
            return result

        for chunk_start in range(0, len(texts), concurrency):
            chunk = texts[chunk_start : chunk_start + concurrency]
            outcomes = await asyncio.gather(
                *(self.embed_one(text) for text in chunk),
                return_exceptions=True,
            )

            for offset, outcome in enumerate(outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    _logger.error("Batch embedding failed (item %d): %s", chunk_start + offset, outcome)
                    result.vectors.append(empty_vector())
                    result.failure_count += 1
                    continue

                result.vectors.append(outcome.vector)
                result.total_tokens += outcome.token_count or 0
                result.success_count += 1

        result.total_duration_ms = elapsed_ms(start)
        return result
