"""
Tests for cosine similarity and text quality helpers.
"""
import math
import random

import pytest

from careercompass.exceptions import DimensionMismatchError, ValidationError
from careercompass.utils.vector_math import cosine_similarity
from careercompass.utils.text_quality import compute_quality, count_unique_words, information_density


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical_vectors(self):
        """Test a vector is maximally similar to itself."""
        assert cosine_similarity([1.0, 0.0, 0.0], [1.0, 0.0, 0.0]) == pytest.approx(1.0)
        assert cosine_similarity([0.3, -2.5, 7.1], [0.3, -2.5, 7.1]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        """Test orthogonal vectors have zero similarity."""
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        """Test opposite vectors have similarity -1."""
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_magnitude_independent(self):
        """Test scaling a vector does not change similarity."""
        assert cosine_similarity([1.0, 1.0], [10.0, 10.0]) == pytest.approx(1.0)

    def test_bounds_on_random_vectors(self):
        """Test similarity always lies in [-1, 1]."""
        rng = random.Random(42)
        for _ in range(200):
            size = rng.randint(1, 64)
            a = [rng.uniform(-1e3, 1e3) for _ in range(size)]
            b = [rng.uniform(-1e3, 1e3) for _ in range(size)]
            similarity = cosine_similarity(a, b)
            assert -1.0 <= similarity <= 1.0
            assert -1.0 <= cosine_similarity(a, a) <= 1.0
            assert cosine_similarity(a, a) == pytest.approx(1.0)

    def test_zero_norm_returns_zero(self):
        """Test a zero vector on either side yields 0, never NaN."""
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0
        assert cosine_similarity([1.0, 2.0], [0.0, 0.0]) == 0.0
        result = cosine_similarity([0.0, 0.0], [0.0, 0.0])
        assert result == 0.0
        assert not math.isnan(result)

    def test_dimension_mismatch(self):
        """Test vectors of different length raise DimensionMismatchError."""
        with pytest.raises(DimensionMismatchError) as exc_info:
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

        assert exc_info.value.left == 2
        assert exc_info.value.right == 3
        assert "2 != 3" in str(exc_info.value)

    def test_dimension_mismatch_is_value_error(self):
        """Test DimensionMismatchError can be handled as ValueError."""
        with pytest.raises(ValueError):
            cosine_similarity([1.0], [1.0, 2.0])

    def test_large_magnitudes_do_not_overflow(self):
        """Test finite vectors with huge components still score correctly."""
        assert cosine_similarity([1e200, 0.0], [-1e200, 0.0]) == pytest.approx(-1.0)
        assert cosine_similarity([1e200, 1e200], [1e200, 1e200]) == pytest.approx(1.0)
        assert cosine_similarity([1e200, 0.0], [0.0, 1e-200]) == pytest.approx(0.0)

    def test_tiny_magnitudes(self):
        """Test subnormal components are not treated as a zero vector."""
        assert cosine_similarity([5e-324, 0.0], [1.0, 0.0]) == pytest.approx(1.0)

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_rejected(self, bad):
        """Test NaN and infinite components raise instead of scoring."""
        with pytest.raises(ValidationError):
            cosine_similarity([bad, 0.0], [0.0, 1.0])
        with pytest.raises(ValidationError):
            cosine_similarity([0.0, 1.0], [bad, 0.0])


class TestTextQuality:
    """Tests for text quality metrics."""

    def test_unique_words_case_insensitive(self):
        """Test words are lowercased before counting."""
        assert count_unique_words("Python python PYTHON developer") == 2

    def test_unique_words_leading_whitespace(self):
        """Test leading whitespace contributes an empty token."""
        assert count_unique_words("  python") == 2

    def test_information_density(self):
        """Test density is unique words per character."""
        assert information_density(3, 12) == pytest.approx(0.25)

    def test_information_density_zero_length(self):
        """Test empty text has zero density without dividing by zero."""
        assert information_density(0, 0) == 0.0

    def test_compute_quality(self):
        """Test the quality block for a short sentence."""
        quality = compute_quality("data data science")

        assert quality["text_length"] == 17
        assert quality["unique_words"] == 2
        assert quality["information_density"] == pytest.approx(2 / 17)
