"""
Vector math helpers for brute-force similarity search.
"""
from typing import Sequence

import numpy as np

from careercompass.exceptions import DimensionMismatchError, ValidationError


def ensure_finite(vector: Sequence[float], field: str = "vector") -> None:
    """
    Raises:
        ValidationError: If the vector holds NaN or infinite values
    """
    if not np.all(np.isfinite(np.asarray(vector, dtype=np.float64))):
        raise ValidationError("Vector must contain only finite numbers", field=field)


def _unit(vec: np.ndarray) -> np.ndarray:
    # Scale by max-abs first so squaring large components cannot overflow
    scale = float(np.max(np.abs(vec))) if vec.size else 0.0
    if scale == 0.0:
        return vec
    scaled = vec / scale
    return scaled / np.linalg.norm(scaled)


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Compute cosine similarity between two vectors.

    Accumulates in float64 on max-abs scaled copies, so any finite input
    gives a finite score. A zero-norm vector on either side yields 0.0
    rather than NaN.

    Args:
        vec_a: First vector
        vec_b: Second vector

    Returns:
        Cosine similarity score between -1 and 1

    Raises:
        DimensionMismatchError: If the vectors have different lengths
        ValidationError: If either vector holds NaN or infinite values
    """
    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)

    if a.shape != b.shape:
        raise DimensionMismatchError(a.size, b.size)

    ensure_finite(a)
    ensure_finite(b)

    if not np.any(a) or not np.any(b):
        return 0.0

    similarity = float(np.dot(_unit(a), _unit(b)))

    # Rounding can push |similarity| a hair past 1
    return float(np.clip(similarity, -1.0, 1.0))
