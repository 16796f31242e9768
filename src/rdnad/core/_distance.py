from __future__ import annotations

__all__ = []

import logging
import warnings
from typing import Literal, TypedDict

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.spatial.distance import cdist

from rdnad.exceptions import DegenerateFeatureError, DegenerateFeatureWarning, ValidationError
from rdnad.utils._array import as_numpy, ensure_features

_logger = logging.getLogger(__name__)

ConstantFeaturePolicy = Literal["raise", "zero"]


class DistanceResult(TypedDict):
    """
    Type definition for sorted distance matrix output.

    Attributes
    ----------
    distances : NDArray[np.float64]
        Matrix of shape (n_reference, n_query) where each row holds the Euclidean distances
        from one reference instance to every query instance, sorted in ascending order.
    mins : NDArray[np.float64]
        Per-feature minimum of the reference set used for normalization.
    maxs : NDArray[np.float64]
        Per-feature maximum of the reference set used for normalization.
    """

    distances: NDArray[np.float64]
    mins: NDArray[np.float64]
    maxs: NDArray[np.float64]


def feature_bounds(reference: ArrayLike) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Derives the per-feature min-max normalization bounds of a reference set.

    Parameters
    ----------
    reference : ArrayLike
        Reference feature matrix of shape (N, F) with no missing values.

    Returns
    -------
    tuple[NDArray[np.float64], NDArray[np.float64]]
        Per-feature minimums and maximums, each of shape (F,).
    """
    reference = ensure_features(reference, "reference")
    return reference.min(axis=0), reference.max(axis=0)


def normalize(
    features: ArrayLike,
    mins: ArrayLike,
    maxs: ArrayLike,
    constant_features: ConstantFeaturePolicy = "raise",
) -> NDArray[np.float64]:
    """
    Scales features with :math:`(x_{ij} - min_j) / (max_j - min_j)` using externally derived bounds.

    Bounds are applied unmodified, so query instances outside the reference range fall outside [0, 1].

    Parameters
    ----------
    features : ArrayLike
        Feature matrix of shape (N, F) with no missing values. May hold no instances.
    mins : ArrayLike
        Per-feature minimums of shape (F,), usually from :func:`feature_bounds`.
    maxs : ArrayLike
        Per-feature maximums of shape (F,), usually from :func:`feature_bounds`.
    constant_features : {"raise", "zero"}, default "raise"
        Policy for features whose bounds have zero range. ``"raise"`` rejects them and
        ``"zero"`` sets their normalized value to 0 for every instance.

    Returns
    -------
    NDArray[np.float64]
        Normalized copy of the features.

    Raises
    ------
    ValidationError
        If the features hold missing values or do not match the number of bounds.
    DegenerateFeatureError
        If a feature has zero range and `constant_features` is ``"raise"``.
    """
    features = ensure_features(features, "features", allow_empty=True)
    mins = as_numpy(mins, dtype=np.float64, required_ndim=1)
    maxs = as_numpy(maxs, dtype=np.float64, required_ndim=1)
    if not features.shape[1] == len(mins) == len(maxs):
        raise ValidationError(
            f"Features have {features.shape[1]} columns but bounds describe {len(mins)} and {len(maxs)} features."
        )
    return scale_features(features, mins, maxs, constant_features)


def scale_features(
    features: NDArray[np.float64],
    mins: NDArray[np.float64],
    maxs: NDArray[np.float64],
    constant_features: ConstantFeaturePolicy,
) -> NDArray[np.float64]:
    """Min-max scales a validated feature matrix, applying the constant feature policy."""
    ranges = maxs - mins
    constant = ranges == 0
    if constant.any():
        indices = np.flatnonzero(constant).tolist()
        if constant_features == "raise":
            raise DegenerateFeatureError(indices)
        if constant_features != "zero":
            raise ValidationError(f"Unknown constant feature policy '{constant_features}'.")
        warnings.warn(f"Setting zero range features {indices} to 0 after normalization.", DegenerateFeatureWarning)

    scaled = (features - mins) / np.where(constant, 1.0, ranges)
    scaled[:, constant] = 0.0
    return scaled


def compute_distances(
    reference: ArrayLike,
    query: ArrayLike,
    constant_features: ConstantFeaturePolicy = "raise",
) -> DistanceResult:
    """
    Computes row-sorted Euclidean distances between min-max normalized reference and query sets.

    Both sets are normalized with bounds derived from `reference` only. Each row of the
    resulting matrix belongs to one reference instance and is sorted independently in
    ascending order, so column positions carry rank and not neighbour identity.

    Parameters
    ----------
    reference : ArrayLike
        Reference feature matrix of shape (N, F). Must not be empty.
    query : ArrayLike
        Query feature matrix of shape (M, F), possibly with no instances. For the training
        neighbourhood map this is the reference set itself, giving a self-distance of 0 at
        position 0 of every row.
    constant_features : {"raise", "zero"}, default "raise"
        Policy for features with zero range in `reference`, see :func:`normalize`.

    Returns
    -------
    DistanceResult
        Mapping with keys:
        - distances : NDArray[np.float64] - Row-sorted distance matrix of shape (N, M)
        - mins : NDArray[np.float64] - Per-feature reference minimums
        - maxs : NDArray[np.float64] - Per-feature reference maximums

    Raises
    ------
    ValidationError
        If either set holds missing or non-finite values, or the feature counts differ.
    DegenerateFeatureError
        If a feature has zero range in `reference` and `constant_features` is ``"raise"``.

    Examples
    --------
    >>> from rdnad.core import compute_distances
    >>> result = compute_distances([[0.0], [1.0], [2.0]], [[0.0], [1.0], [2.0]])
    >>> result["distances"]
    array([[0. , 0.5, 1. ],
           [0. , 0.5, 0.5],
           [0. , 0.5, 1. ]])
    """
    reference = ensure_features(reference, "reference")
    query = ensure_features(query, "query", allow_empty=True)
    if reference.shape[1] != query.shape[1]:
        raise ValidationError(
            f"Reference has {reference.shape[1]} features but query has {query.shape[1]}; feature sets must match."
        )

    _logger.debug(f"Computing distance matrix for {len(reference)} reference and {len(query)} query instances.")
    mins, maxs = reference.min(axis=0), reference.max(axis=0)
    scaled_reference = scale_features(reference, mins, maxs, constant_features)
    scaled_query = scale_features(query, mins, maxs, constant_features)
    return {"distances": sorted_distances(scaled_reference, scaled_query), "mins": mins, "maxs": maxs}


def sorted_distances(reference: NDArray[np.float64], query: NDArray[np.float64]) -> NDArray[np.float64]:
    """Row-sorted Euclidean distances between two already normalized feature matrices."""
    distances = cdist(reference, query, metric="euclidean")
    distances.sort(axis=1)
    return distances
