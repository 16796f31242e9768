from __future__ import annotations

__all__ = []

import logging
from typing import TypedDict

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.spatial.distance import cdist

from rdnad.exceptions import ValidationError
from rdnad.utils._array import ensure_features, ensure_vector

_logger = logging.getLogger(__name__)

# number of query rows compared against the training set at once
CHUNK_SIZE = 1024


class CoverageResult(TypedDict):
    """
    Type definition for coverage test output.

    Attributes
    ----------
    neighbor_counts : NDArray[np.intp]
        Number of training neighbourhoods covering each query instance
    outlier_count : int
        Number of query instances covered by no training neighbourhood
    accuracy : float or None
        In-domain accuracy, or None when no query instance is covered
    """

    neighbor_counts: NDArray[np.intp]
    outlier_count: int
    accuracy: float | None


def validate_correctness(correctness: ArrayLike, num_queries: int) -> NDArray[np.float64]:
    """Checks correctness holds one flag in [0, 1] per query instance."""
    correctness = ensure_vector(correctness, "correctness", num_queries)
    if ((correctness < 0) | (correctness > 1)).any():
        raise ValidationError("correctness values must be 0/1 flags or fractions in [0, 1].")
    return correctness


def count_neighbors(
    query: NDArray[np.float64], training: NDArray[np.float64], thresholds: NDArray[np.float64]
) -> NDArray[np.intp]:
    """Counts, per query row, the training instances whose radius reaches it."""
    counts = np.empty(len(query), dtype=np.intp)
    for start in range(0, len(query), CHUNK_SIZE):
        chunk = cdist(query[start : start + CHUNK_SIZE], training, metric="euclidean")
        counts[start : start + CHUNK_SIZE] = np.count_nonzero(chunk <= thresholds, axis=1)
    return counts


def summarize_coverage(neighbor_counts: NDArray[np.intp], correctness: NDArray[np.float64]) -> CoverageResult:
    """Derives the outlier count and in-domain accuracy from per-query neighbour counts."""
    in_domain = neighbor_counts > 0
    covered = int(np.count_nonzero(in_domain))
    accuracy = float(correctness[in_domain].sum() / covered) if covered else None
    return {
        "neighbor_counts": neighbor_counts,
        "outlier_count": len(neighbor_counts) - covered,
        "accuracy": accuracy,
    }


def compute_coverage(
    correctness: ArrayLike,
    query: ArrayLike,
    training: ArrayLike,
    thresholds: ArrayLike,
) -> CoverageResult:
    """
    Places query instances onto the training neighbourhood map.

    A query instance is covered by a training instance when their Euclidean distance is
    equal to or smaller than that training instance's radius. Coverage is asymmetric: each
    training instance projects its own radius regardless of the query. Query instances with
    at least one covering neighbourhood are in domain and contribute to the accuracy.

    Parameters
    ----------
    correctness : ArrayLike
        Flag per query instance, 1 when the external prediction was correct and 0 otherwise, shape (M,).
    query : ArrayLike
        Query features of shape (M, F), normalized with the training bounds. An empty query
        set has no outliers and an undefined accuracy.
    training : ArrayLike
        Training features of shape (N, F), normalized with the training bounds.
    thresholds : ArrayLike
        Coverage radius per training instance, shape (N,).

    Returns
    -------
    CoverageResult
        Mapping with keys:
        - neighbor_counts : NDArray[np.intp] - Covering training neighbourhoods per query instance
        - outlier_count : int - Query instances outside every neighbourhood
        - accuracy : float | None - Mean correctness of in-domain query instances, None if none are covered

    Raises
    ------
    ValidationError
        If inputs hold missing values or their shapes do not agree.

    Notes
    -----
    Cost is O(M x N x F) time; memory is bounded by comparing at most 1024 query rows at once.

    Examples
    --------
    >>> from rdnad.core import compute_coverage
    >>> result = compute_coverage([1, 0, 1], [[0.1], [0.45], [2.0]], [[0.0], [0.5]], [0.2, 0.1])
    >>> result["neighbor_counts"].tolist(), result["outlier_count"], result["accuracy"]
    ([1, 1, 0], 1, 0.5)
    """
    query = ensure_features(query, "query", allow_empty=True)
    training = ensure_features(training, "training")
    if query.shape[1] != training.shape[1]:
        raise ValidationError(
            f"Query has {query.shape[1]} features but training has {training.shape[1]}; feature sets must match."
        )
    thresholds = ensure_vector(thresholds, "thresholds", len(training))
    correctness = validate_correctness(correctness, len(query))

    neighbor_counts = count_neighbors(query, training, thresholds)
    result = summarize_coverage(neighbor_counts, correctness)
    _logger.debug(f"Coverage: {result['outlier_count']} of {len(query)} outside domain, accuracy={result['accuracy']}")
    return result
