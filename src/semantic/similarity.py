"""
Similarity Engine - cosine similarity between two embedding vectors.

Stateless and total: malformed input yields 0.0 rather than an exception,
because a scope check must never crash on a bad vector.
"""
from __future__ import annotations

from typing import Sequence

import numpy as np


def cosine_similarity(
    emb1: np.ndarray | Sequence[float] | None,
    emb2: np.ndarray | Sequence[float] | None,
) -> float:
    """
    Calculate cosine similarity between two embeddings.

    Returns:
        Score in [-1, 1]. 0.0 for empty, mismatched-length or zero-norm vectors.
    """
    if emb1 is None or emb2 is None:
        return 0.0

    a = np.asarray(emb1, dtype=np.float64).ravel()
    b = np.asarray(emb2, dtype=np.float64).ravel()

    if a.size == 0 or a.shape != b.shape:
        return 0.0

    norm1 = np.linalg.norm(a)
    norm2 = np.linalg.norm(b)
    if norm1 == 0 or norm2 == 0 or not np.isfinite(norm1) or not np.isfinite(norm2):
        return 0.0

    score = float(np.dot(a, b) / (norm1 * norm2))
    return max(-1.0, min(1.0, score))
