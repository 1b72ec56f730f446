"""
Vector math for ranking.

Cosine similarity between two embeddings and its conversion into the
0–100 ATS score.  Both routines are synchronous and side effect free.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _sk_cosine_similarity

from ..errors import DimensionMismatch


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between ``a`` and ``b``.

    A zero vector on either side has no direction; the similarity is
    reported as ``0.0`` instead of NaN.

    Raises:
        DimensionMismatch: if the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatch(len(a), len(b))
    if len(a) == 0:
        return 0.0
    left = np.asarray(a, dtype=float).reshape(1, -1)
    right = np.asarray(b, dtype=float).reshape(1, -1)
    # scikit-learn leaves zero rows unnormalised, so they score 0
    return float(_sk_cosine_similarity(left, right)[0][0])


def to_score(similarity: float) -> float:
    """Scale a similarity to a percentage clamped to ``[0, 100]``."""
    return max(0.0, min(100.0, similarity * 100))
