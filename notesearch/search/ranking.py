import math
from collections.abc import Iterable, Sequence
from typing import NamedTuple

import numpy as np

from notesearch.constants import MAX_SEARCH_RESULTS, SIMILARITY_THRESHOLD
from notesearch.errors import DimensionMismatchError

type Vector = np.ndarray | Sequence[float]


class Candidate(NamedTuple):
    id: str
    vector: Vector


class RankedCandidate(NamedTuple):
    id: str
    similarity: float


def cosine_similarity(a: Vector, b: Vector) -> float:
    """Cosine similarity clamped to [0, 1].

    0 when either vector has zero magnitude or holds non-finite values.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(va.size, vb.size)

    with np.errstate(invalid="ignore", over="ignore"):
        norm_a = np.linalg.norm(va)
        norm_b = np.linalg.norm(vb)
        if norm_a == 0 or norm_b == 0:
            return 0.0
        similarity = float(np.dot(va, vb) / (norm_a * norm_b))

    if not math.isfinite(similarity):
        return 0.0
    return max(0.0, min(1.0, similarity))


def rank(
    query: Vector,
    candidates: Iterable[Candidate],
    min_similarity: float = SIMILARITY_THRESHOLD,
    max_results: int = MAX_SEARCH_RESULTS,
) -> list[RankedCandidate]:
    scored = [RankedCandidate(c.id, cosine_similarity(query, c.vector)) for c in candidates]
    kept = [r for r in scored if r.similarity >= min_similarity]
    # list.sort is stable, so equal scores keep candidate order
    kept.sort(key=lambda r: r.similarity, reverse=True)
    return kept[:max_results]


def format_similarity(similarity: float) -> str:
    return f"{round(similarity * 100)}%"


def similarity_level(similarity: float) -> str:
    if similarity >= 0.9:
        return "Very High"
    if similarity >= 0.8:
        return "High"
    if similarity >= 0.7:
        return "Good"
    if similarity >= 0.6:
        return "Moderate"
    return "Low"
