import asyncio
import hashlib
from datetime import UTC, datetime, timedelta

import numpy as np
import pytest

from notesearch.embedding import EmbeddingClient, EmbeddingProvider, ProviderEmbedding
from notesearch.search import NoteSearchRecord, SemanticSearch

TEST_EMBEDDING_DIM = 1536
T0 = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


def mock_embedding(text: str) -> np.ndarray:
    h = hashlib.md5(text.encode()).hexdigest()
    # MD5 is 32 chars, repeat to get TEST_EMBEDDING_DIM
    arr = np.array([int(c, 16) / 15.0 for c in h] * (TEST_EMBEDDING_DIM // 32))
    norm = np.linalg.norm(arr)
    return arr / norm if norm > 0 else arr


def unit_vector(*components: float) -> np.ndarray:
    vec = np.zeros(TEST_EMBEDDING_DIM)
    vec[: len(components)] = components
    return vec


def vector_with_similarity(similarity: float) -> np.ndarray:
    """Vector whose cosine similarity to ``unit_vector(1.0)`` is ``similarity``."""
    return unit_vector(similarity, float(np.sqrt(1 - similarity**2)))


def make_note(
    id: str,
    title: str = "Untitled",
    body: str = "",
    tags: list[str] | None = None,
    folder_id: str | None = None,
    embedding=None,
    embedding_generated_at: datetime | None = None,
    content_modified_at: datetime | None = T0,
) -> NoteSearchRecord:
    return NoteSearchRecord(
        id=id,
        title=title,
        body_markup=body,
        tag_names=tags or [],
        folder_id=folder_id,
        embedding=embedding,
        embedding_generated_at=embedding_generated_at,
        content_modified_at=content_modified_at,
    )


def fresh_note(id: str, embedding, **kwargs) -> NoteSearchRecord:
    return make_note(id, embedding=embedding, embedding_generated_at=T0 + timedelta(minutes=5), **kwargs)


class FakeProvider(EmbeddingProvider):
    """Deterministic provider.

    ``vectors`` maps an exact input text to the vector returned for it; other
    texts get ``mock_embedding``. ``errors`` maps a substring to an exception
    raised for every input containing it.
    """

    def __init__(
        self,
        vectors: dict[str, np.ndarray] | None = None,
        errors: dict[str, Exception] | None = None,
        tokens: int = 7,
        delay: float = 0.0,
    ):
        self.vectors = vectors or {}
        self.errors = errors or {}
        self.tokens = tokens
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False

    async def embed(self, text: str, model: str) -> ProviderEmbedding:
        self.calls.append(text)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            for needle, error in self.errors.items():
                if needle in text:
                    raise error
            vector = self.vectors.get(text)
            if vector is None:
                vector = mock_embedding(text)
            return ProviderEmbedding(vector=list(vector), total_tokens=self.tokens)
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def client(provider: FakeProvider) -> EmbeddingClient:
    return EmbeddingClient(provider, base_delay=0)


@pytest.fixture
def engine(client: EmbeddingClient) -> SemanticSearch:
    return SemanticSearch(client)
