"""Cosine-similarity ranking over the in-memory vector table.

Every query is a full linear scan (O(n·d)); there is no index.  A vector
with zero norm has no direction, so it scores ``0.0`` against anything
instead of producing NaN.

Vectors are rescaled by their peak magnitude before norms are taken, so
components near the float limits do not overflow; inf and NaN are rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

import numpy as np

from docchat.errors import SimilarityError
from docchat.retrieval.models import ScoredCandidate

logger = logging.getLogger(__name__)


def _unit_scaled(values: np.ndarray) -> np.ndarray:
    """Divide each row by its largest magnitude so norms cannot overflow."""
    if not np.isfinite(values).all():
        raise SimilarityError("Vectors must contain only finite values")
    peak = np.max(np.abs(values), axis=-1, keepdims=True) if values.size else np.ones_like(values)
    return np.divide(values, peak, out=np.zeros_like(values), where=peak > 0)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``, or ``0.0`` if either norm is zero."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape or va.ndim != 1:
        raise SimilarityError(f"Cannot compare vectors of shapes {va.shape} and {vb.shape}")
    va, vb = _unit_scaled(va), _unit_scaled(vb)

    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))


def rank(
    query: Sequence[float],
    corpus: Mapping[str, Sequence[float]],
    k: int | None = None,
) -> list[ScoredCandidate]:
    """Score every corpus entry against *query* and return the best first.

    Parameters
    ----------
    query:
        Embedding of the user's question.
    corpus:
        ``text -> vector`` mapping.  Equal scores keep the mapping's
        iteration order.
    k:
        Maximum number of candidates to return; ``None`` returns all.

    Returns
    -------
    list[ScoredCandidate]
        Candidates in descending score order.
    """
    if k is not None and k < 0:
        raise ValueError(f"k must be non-negative, got {k}")
    if not corpus:
        return []

    texts = list(corpus)
    q = np.asarray(query, dtype=np.float64)
    try:
        matrix = np.asarray([corpus[t] for t in texts], dtype=np.float64)
    except ValueError as exc:
        raise SimilarityError(f"Corpus vectors have inconsistent dimensions: {exc}") from exc

    if q.ndim != 1 or matrix.ndim != 2 or matrix.shape[1] != q.shape[0]:
        raise SimilarityError(
            f"Query has {q.shape[-1] if q.ndim else 0} dimensions, corpus has {matrix.shape[-1]}"
        )
    q, matrix = _unit_scaled(q), _unit_scaled(matrix)

    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(matrix, axis=1)
    denom = row_norms * q_norm
    zero = denom == 0.0
    if zero.any():
        if q_norm == 0.0:
            logger.warning("Query vector has zero norm; every candidate scores 0.0")
        else:
            logger.warning("%d stored vector(s) have zero norm and score 0.0", int(zero.sum()))

    dots = matrix @ q
    scores = np.divide(dots, denom, out=np.zeros_like(dots), where=~zero)
    scores = np.clip(scores, -1.0, 1.0)

    order = np.argsort(-scores, kind="stable")
    if k is not None:
        order = order[:k]
    return [ScoredCandidate(text=texts[i], score=float(scores[i])) for i in order]
