from notesearch.embedding.base import EmbeddingProvider, ProviderEmbedding
from notesearch.embedding.client import BatchEmbeddingResult, EmbeddingClient, EmbeddingResult
from notesearch.embedding.retry import is_transient, with_retry

__all__ = [
    "BatchEmbeddingResult",
    "EmbeddingClient",
    "EmbeddingProvider",
    "EmbeddingResult",
    "ProviderEmbedding",
    "is_transient",
    "with_retry",
]
