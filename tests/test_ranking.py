import numpy as np
import pytest

from notesearch.errors import DimensionMismatchError
from notesearch.search.ranking import (
    Candidate,
    cosine_similarity,
    format_similarity,
    rank,
    similarity_level,
)
from tests.conftest import mock_embedding, unit_vector, vector_with_similarity


class TestCosineSimilarity:
    def test_identical(self):
        vec = mock_embedding("quicksort")
        assert cosine_similarity(vec, vec) == pytest.approx(1.0, abs=1e-6)

    def test_scaled_copy_is_identical(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [2.0, 4.0, 6.0]) == pytest.approx(1.0, abs=1e-6)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0
        assert cosine_similarity([1.0, 2.0, 3.0], [0.0, 0.0, 0.0]) == 0.0

    def test_negative_clamped_to_zero(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == 0.0

    def test_known_value(self):
        assert cosine_similarity(unit_vector(1.0), vector_with_similarity(0.42)) == pytest.approx(0.42)

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_bounds(self):
        rng = np.random.default_rng(7)
        for _ in range(50):
            a, b = rng.normal(size=(2, 64))
            assert 0.0 <= cosine_similarity(a, b) <= 1.0

    @pytest.mark.parametrize("bad", [float("inf"), float("nan")])
    def test_non_finite_scores_zero(self, bad):
        assert cosine_similarity([1.0, 1.0, 1.0, 1.0], [bad] * 4) == 0.0
        assert cosine_similarity([bad, 0.0, 0.0, 0.0], [1.0, 0.0, 0.0, 0.0]) == 0.0


class TestRank:
    def test_filters_sorts_and_truncates(self):
        query = unit_vector(1.0)
        candidates = [
            Candidate("low", vector_with_similarity(0.1)),
            Candidate("mid", vector_with_similarity(0.5)),
            Candidate("high", vector_with_similarity(0.9)),
            Candidate("top", vector_with_similarity(0.95)),
        ]
        ranked = rank(query, candidates, min_similarity=0.3, max_results=2)

        assert [r.id for r in ranked] == ["top", "high"]

    def test_threshold_is_inclusive(self):
        ranked = rank([1.0, 0.0], [Candidate("a", [1.0, 0.0])], min_similarity=1.0)
        assert [r.id for r in ranked] == ["a"]

    def test_ties_keep_input_order(self):
        vec = vector_with_similarity(0.7)
        candidates = [Candidate(name, vec) for name in ("first", "second", "third")]
        ranked = rank(unit_vector(1.0), candidates)
        assert [r.id for r in ranked] == ["first", "second", "third"]

    def test_output_properties(self):
        query = mock_embedding("query")
        candidates = [Candidate(str(i), mock_embedding(f"note {i}")) for i in range(40)]
        ranked = rank(query, candidates, min_similarity=0.5, max_results=20)

        assert len(ranked) <= 20
        assert all(r.similarity >= 0.5 for r in ranked)
        sims = [r.similarity for r in ranked]
        assert sims == sorted(sims, reverse=True)

    def test_nan_candidate_dropped(self):
        candidates = [Candidate("nan", [float("nan"), 0.0, 0.0, 0.0]), Candidate("ok", [0.5, 0.5, 0.0, 0.0])]
        ranked = rank([1.0, 0.0, 0.0, 0.0], candidates)
        assert [r.id for r in ranked] == ["ok"]

    def test_empty(self):
        assert rank([1.0], []) == []


class TestPresentation:
    def test_format_similarity(self):
        assert format_similarity(0.853) == "85%"
        assert format_similarity(1.0) == "100%"
        assert format_similarity(0.0) == "0%"

    @pytest.mark.parametrize(
        ("similarity", "level"),
        [(0.95, "Very High"), (0.9, "Very High"), (0.85, "High"), (0.7, "Good"), (0.65, "Moderate"), (0.3, "Low")],
    )
    def test_similarity_level(self, similarity, level):
        assert similarity_level(similarity) == level
