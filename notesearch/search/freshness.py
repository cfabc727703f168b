"""Decide whether a note's cached embedding can be reused.

Staleness is never cached: it is derived on every call from the vector and the
two timestamps carried by the record.
"""

from dataclasses import dataclass
from enum import StrEnum

from notesearch.constants import EMBEDDING_DIMENSIONS
from notesearch.search.types import NoteSearchRecord
from notesearch.utils import ensure_utc


class FreshnessReason(StrEnum):
    NO_EMBEDDING = "no_embedding"
    MISSING_TIMESTAMP = "missing_timestamp"
    CORRUPTED = "corrupted"
    CONTENT_UPDATED = "content_updated"


@dataclass(frozen=True)
class FreshnessCheck:
    needs_regeneration: bool
    reason: FreshnessReason | None = None


FRESH = FreshnessCheck(needs_regeneration=False)


def classify(record: NoteSearchRecord, dimensions: int = EMBEDDING_DIMENSIONS) -> FreshnessCheck:
    embedding = record.embedding
    if embedding is None or len(embedding) == 0:
        return FreshnessCheck(True, FreshnessReason.NO_EMBEDDING)

    if len(embedding) != dimensions:
        return FreshnessCheck(True, FreshnessReason.CORRUPTED)

    generated_at = ensure_utc(record.embedding_generated_at)
    modified_at = ensure_utc(record.content_modified_at)
    if generated_at is None or modified_at is None:
        return FreshnessCheck(True, FreshnessReason.MISSING_TIMESTAMP)

    if generated_at < modified_at:
        return FreshnessCheck(True, FreshnessReason.CONTENT_UPDATED)

    return FRESH


@dataclass(frozen=True)
class EmbeddingStatus:
    total: int = 0
    fresh: int = 0
    no_embedding: int = 0
    stale: int = 0
    corrupted: int = 0

    @property
    def needs_regeneration(self) -> int:
        return self.no_embedding + self.stale + self.corrupted


def analyze_embedding_status(
    records: list[NoteSearchRecord],
    dimensions: int = EMBEDDING_DIMENSIONS,
) -> EmbeddingStatus:
    """Count notes by freshness; ``stale`` covers edited and untimestamped notes."""
    counts = {reason: 0 for reason in FreshnessReason}
    fresh = 0

    for record in records:
        check = classify(record, dimensions)
        if check.reason is None:
            fresh += 1
        else:
            counts[check.reason] += 1

    return EmbeddingStatus(
        total=len(records),
        fresh=fresh,
        no_embedding=counts[FreshnessReason.NO_EMBEDDING],
        stale=counts[FreshnessReason.CONTENT_UPDATED] + counts[FreshnessReason.MISSING_TIMESTAMP],
        corrupted=counts[FreshnessReason.CORRUPTED],
    )
