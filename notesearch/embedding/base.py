from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderEmbedding:
    vector: list[float]
    total_tokens: int | None = None


class EmbeddingProvider(ABC):
    """One remote embedding call, without retry or validation."""

    @abstractmethod
    async def embed(self, text: str, model: str) -> ProviderEmbedding: ...

    @abstractmethod
    async def close(self) -> None: ...
