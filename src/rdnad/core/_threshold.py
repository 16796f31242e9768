from __future__ import annotations

__all__ = []

import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray

from rdnad._log import LogMessage
from rdnad.exceptions import DegenerateCaseError, ValidationError
from rdnad.utils._array import as_numpy, ensure_vector

_logger = logging.getLogger(__name__)

FENCE_FACTOR = 1.5
COMPRESSION = 3.0


def validate_reliability(
    agreement: ArrayLike, dispersion: ArrayLike, num_instances: int
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Checks agreement and dispersion hold one in-range value per training instance."""
    agreement = ensure_vector(agreement, "agreement", num_instances)
    dispersion = ensure_vector(dispersion, "dispersion", num_instances)
    if ((agreement < 0) | (agreement > 1)).any():
        raise ValidationError("agreement values must be fractions in [0, 1].")
    if ((dispersion < 0) | (dispersion > 1)).any():
        raise ValidationError("dispersion values must be standard deviations of probabilities in [0, 1].")
    return agreement, dispersion


def _fenced_mean_distances(neighbor_distances: NDArray[np.float64], k: int) -> np.ma.MaskedArray:
    # density outliers beyond the Tukey fence of the k-nearest-neighbour averages are left out
    k_avg_distances = neighbor_distances[:, :k].mean(axis=1)
    q1, q3 = np.quantile(k_avg_distances, [0.25, 0.75], method="linear")
    ref_bound = q3 + FENCE_FACTOR * (q3 - q1)

    kept = neighbor_distances <= ref_bound
    counts = kept.sum(axis=1)
    sums = np.where(kept, neighbor_distances, 0.0).sum(axis=1)
    means = np.divide(sums, counts, out=np.zeros(len(counts)), where=counts > 0)

    _logger.debug(
        LogMessage(lambda: f"k={k}: Q1={q1:.6g} Q3={q3:.6g} fence={ref_bound:.6g} unresolved={int((counts == 0).sum())}")
    )
    return np.ma.masked_array(means, mask=counts == 0)


def _backfill(raw_thresholds: np.ma.MaskedArray, k: int) -> NDArray[np.float64]:
    if raw_thresholds.mask.all():
        raise DegenerateCaseError(k, "no training instance has a neighbour within the distance fence.")
    return raw_thresholds.filled(raw_thresholds.min())


def _correction_factors(agreement: NDArray[np.float64], dispersion: NDArray[np.float64], k: int) -> NDArray[np.float64]:
    correct = (1 - dispersion) * agreement
    positive = correct[correct > 0]
    if positive.size == 0:
        raise DegenerateCaseError(k, "no training instance has a positive reliability correction factor.")
    return np.where(correct == 0, positive.min(), correct)


def compute_thresholds(
    distances: ArrayLike,
    agreement: ArrayLike,
    dispersion: ArrayLike,
    k: int,
) -> NDArray[np.float64]:
    """
    Calculates the neighbourhood coverage radius of every training instance for `k` nearest neighbours.

    The radius of an instance starts from the mean distance to all of its training neighbours
    that fall within a Tukey fence (:math:`Q3 + 1.5 (Q3 - Q1)`) over the average distance of
    every instance to its `k` nearest neighbours. Instances with no neighbour inside the fence
    take the smallest radius found for this `k`. The radius is then shrunk by the local
    reliability correction :math:`(1 - dispersion) \\cdot agreement` and compressed to a third.

    Parameters
    ----------
    distances : ArrayLike
        Row-sorted training versus training distance matrix of shape (N, N), as returned
        by :func:`compute_distances`. Position 0 of every row is the self-distance.
    agreement : ArrayLike
        Fraction in [0, 1] of ensemble members agreeing with each training instance's label, shape (N,).
    dispersion : ArrayLike
        Ensemble standard deviation of one class probability for each training instance, shape (N,).
    k : int
        Number of nearest (non-self) neighbours, 1 <= k <= N - 1.

    Returns
    -------
    NDArray[np.float64]
        Compressed coverage radius per training instance, shape (N,).

    Raises
    ------
    ValidationError
        If `k` is out of range or the reliability vectors do not match the training instances.
    DegenerateCaseError
        If no instance has a resolvable radius or no instance has a positive correction factor.

    Notes
    -----
    Quartiles use linear interpolation between order statistics (``numpy.quantile`` with
    ``method="linear"``, Hyndman and Fan type 7).
    """
    distances = as_numpy(distances, dtype=np.float64, required_ndim=2)
    num_instances = len(distances)
    if num_instances < 2 or distances.shape[1] < 2:
        raise ValidationError(f"At least 2 training instances are required, got distances of shape {distances.shape}.")
    if not 1 <= k <= distances.shape[1] - 1:
        raise ValidationError(f"k must be between 1 and {distances.shape[1] - 1} (non-self neighbours), got {k}.")
    agreement, dispersion = validate_reliability(agreement, dispersion, num_instances)
    return thresholds_for_k(distances, agreement, dispersion, k)


def thresholds_for_k(
    distances: NDArray[np.float64], agreement: NDArray[np.float64], dispersion: NDArray[np.float64], k: int
) -> NDArray[np.float64]:
    """Compressed thresholds from inputs already checked by :func:`compute_thresholds`."""
    _logger.debug(f"Computing thresholds for {k} nearest neighbours.")
    raw_thresholds = _backfill(_fenced_mean_distances(distances[:, 1:], k), k)
    return raw_thresholds * _correction_factors(agreement, dispersion, k) / COMPRESSION
