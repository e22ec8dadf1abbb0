"""
Unit tests for cosine similarity.
"""
import numpy as np
import pytest

from src.semantic.similarity import cosine_similarity


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical_vectors_score_one(self):
        """A non-zero vector is perfectly similar to itself."""
        v = np.array([0.3, -1.2, 4.0, 0.5])
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_opposite_vectors_score_minus_one(self):
        v = np.array([1.0, 2.0, 3.0])
        assert cosine_similarity(v, -v) == pytest.approx(-1.0)

    def test_orthogonal_vectors_score_zero(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_accepts_plain_lists(self):
        assert cosine_similarity([1.0, 1.0], [2.0, 2.0]) == pytest.approx(1.0)

    def test_mismatched_length_returns_zero(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0]) == 0.0

    def test_empty_vectors_return_zero(self):
        assert cosine_similarity([], []) == 0.0

    def test_none_returns_zero(self):
        assert cosine_similarity(None, [1.0]) == 0.0
        assert cosine_similarity([1.0], None) == 0.0

    def test_zero_norm_returns_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0

    def test_non_finite_returns_zero(self):
        assert cosine_similarity([np.inf, 1.0], [1.0, 1.0]) == 0.0

    def test_result_is_within_bounds(self):
        rng = np.random.default_rng(7)
        for _ in range(20):
            a, b = rng.normal(size=16), rng.normal(size=16)
            score = cosine_similarity(a, b)
            assert -1.0 <= score <= 1.0
