"""Brute-force cosine similarity over a bounded candidate pool.

Scoring is a pure numeric step: it never sorts, filters by threshold or
touches the store, so it can be tested and swapped independently. Above a few
tens of thousands of documents the candidate pool should come from an ANN
index maintained by the store instead; this contract stays the same.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np
import structlog

from api.models import ScoredResult, SourceDocument

logger = structlog.get_logger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero norm.

    Scalar reference for ``score``, which computes the same value for a whole
    pool in one matrix product.
    """
    a_arr = np.asarray(a, dtype=np.float64)
    b_arr = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(a_arr)
    norm_b = np.linalg.norm(b_arr)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a_arr, b_arr) / (norm_a * norm_b))


def score(query_vector: Sequence[float], candidates: Sequence[SourceDocument]) -> List[ScoredResult]:
    """Score every usable candidate against the query vector.

    Candidates without an embedding, with a different dimensionality or with a
    zero-norm embedding are skipped with a warning. Values are not clamped, so
    rounding may put a similarity a few ulps outside [-1, 1].

    Returns:
        One ScoredResult per usable candidate, in input order (unsorted).
    """
    query = np.asarray(query_vector, dtype=np.float64)
    query_norm = np.linalg.norm(query)
    if query.ndim != 1 or query.size == 0 or query_norm == 0:
        logger.warning("Query vector unusable for similarity", dimensions=int(query.size))
        return []

    usable: List[SourceDocument] = []
    rows: List[List[float]] = []
    for doc in candidates:
        embedding = doc.embedding
        if embedding is None:
            logger.warning("Skipping candidate without embedding", doc_id=doc.id)
            continue
        if len(embedding) != query.size:
            logger.warning(
                "Skipping candidate with mismatched embedding dimensions",
                doc_id=doc.id,
                expected=int(query.size),
                actual=len(embedding),
            )
            continue
        usable.append(doc)
        rows.append(embedding)

    if not usable:
        return []

    matrix = np.asarray(rows, dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1)
    dots = matrix @ query

    results: List[ScoredResult] = []
    for doc, dot, norm in zip(usable, dots, norms):
        if norm == 0:
            logger.warning("Skipping candidate with zero-norm embedding", doc_id=doc.id)
            continue
        results.append(ScoredResult(document=doc, similarity=float(dot / (norm * query_norm))))
    return results


def rank(results: Sequence[ScoredResult], limit: int, threshold: float) -> List[ScoredResult]:
    """Sort descending and keep the top ``limit`` results at or above ``threshold``."""
    ordered = sorted(results, key=lambda r: r.similarity, reverse=True)
    return [r for r in ordered if r.similarity >= threshold][:limit]
