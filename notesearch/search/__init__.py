from notesearch.search.freshness import (
    EmbeddingStatus,
    FreshnessCheck,
    FreshnessReason,
    analyze_embedding_status,
    classify,
)
from notesearch.search.ranking import (
    Candidate,
    RankedCandidate,
    cosine_similarity,
    format_similarity,
    rank,
    similarity_level,
)
from notesearch.search.service import SemanticSearch
from notesearch.search.types import (
    NoteSearchRecord,
    NoteSummary,
    PendingEmbedding,
    SearchOptions,
    SearchResponse,
    SearchResult,
    SearchStatistics,
)

__all__ = [
    "Candidate",
    "EmbeddingStatus",
    "FreshnessCheck",
    "FreshnessReason",
    "NoteSearchRecord",
    "NoteSummary",
    "PendingEmbedding",
    "RankedCandidate",
    "SearchOptions",
    "SearchResponse",
    "SearchResult",
    "SearchStatistics",
    "SemanticSearch",
    "analyze_embedding_status",
    "classify",
    "cosine_similarity",
    "format_similarity",
    "rank",
    "similarity_level",
]
