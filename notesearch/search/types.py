from dataclasses import dataclass, field
from datetime import datetime

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from notesearch.constants import MAX_SEARCH_RESULTS, MAX_SEARCH_RESULTS_LIMIT, SIMILARITY_THRESHOLD

type Embedding = np.ndarray


@dataclass
class NoteSearchRecord:
    """A note as seen by semantic search.

    ``embedding`` and ``embedding_generated_at`` are reassigned in place when a
    search regenerates the vector; everything else is read only.
    """

    id: str
    title: str
    body_markup: str
    tag_names: list[str] = field(default_factory=list)
    folder_id: str | None = None
    embedding: Embedding | None = None
    embedding_generated_at: datetime | None = None
    content_modified_at: datetime | None = None

    def __repr__(self) -> str:
        embedding = f"<{len(self.embedding)}>" if self.embedding is not None else None
        return (
            f"NoteSearchRecord(id={self.id!r}, title={self.title!r}, embedding={embedding}, "
            f"embedding_generated_at={self.embedding_generated_at!r}, "
            f"content_modified_at={self.content_modified_at!r})"
        )


@dataclass(frozen=True)
class NoteSummary:
    id: str
    title: str
    body_markup: str
    tag_names: list[str]
    folder_id: str | None

    @classmethod
    def from_record(cls, record: NoteSearchRecord) -> "NoteSummary":
        return cls(
            id=record.id,
            title=record.title,
            body_markup=record.body_markup,
            tag_names=list(record.tag_names),
            folder_id=record.folder_id,
        )


@dataclass(frozen=True)
class SearchResult:
    note: NoteSummary
    similarity: float


@dataclass
class SearchStatistics:
    total_notes_considered: int = 0
    regenerated_count: int = 0
    reused_count: int = 0
    failed_count: int = 0
    total_duration_ms: int = 0
    embedding_phase_duration_ms: int = 0
    similarity_phase_duration_ms: int = 0
    embedding_api_call_count: int = 0
    tokens_consumed: int = 0


@dataclass(frozen=True)
class PendingEmbedding:
    """A regenerated vector the caller should upsert onto note ``id``."""

    id: str
    embedding: Embedding
    embedding_generated_at: datetime


@dataclass
class SearchResponse:
    results: list[SearchResult]
    stats: SearchStatistics
    query: str
    executed_at: datetime
    pending_persistence: list[PendingEmbedding] = field(default_factory=list)


class SearchOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_similarity: float = Field(default=SIMILARITY_THRESHOLD, ge=0.0, le=1.0)
    max_results: int = Field(default=MAX_SEARCH_RESULTS, ge=1, le=MAX_SEARCH_RESULTS_LIMIT)
    regenerate_stale: bool = True

    # Optional narrowing of the candidate set, applied before freshness checks
    folder_id: str | None = None
    tag_names: list[str] | None = None
