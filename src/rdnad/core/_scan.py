from __future__ import annotations

__all__ = []

import logging
import math
from enum import Enum
from functools import partial
from typing import TypedDict

import numpy as np
from numpy.typing import ArrayLike, NDArray
from tqdm.auto import tqdm

from rdnad.config import get_max_processes
from rdnad.core._coverage import count_neighbors, summarize_coverage, validate_correctness
from rdnad.core._distance import ConstantFeaturePolicy, scale_features, sorted_distances
from rdnad.core._threshold import thresholds_for_k, validate_reliability
from rdnad.exceptions import ValidationError
from rdnad.utils._array import ensure_features
from rdnad.utils._multiprocessing import PoolWrapper

_logger = logging.getLogger(__name__)

DEFAULT_SCAN_STEPS = 65
DEFAULT_SCAN_COMPRESS_END = 31
DEFAULT_SCAN_DECOMPRESS_START = 41


class Phase(Enum):
    """
    Radius scaling phase of a scan step.

    Thresholds from :func:`compute_thresholds` are compressed to a third of the fenced
    mean neighbour distance. Each phase multiplies them back towards the full distance.
    """

    COMPRESSED = "compressed"
    HALF = "half"
    FULL = "full"

    @property
    def multiplier(self) -> float:
        """Factor applied to compressed thresholds."""
        return _MULTIPLIERS[self]


_MULTIPLIERS = {Phase.COMPRESSED: 1.0, Phase.HALF: 1.5, Phase.FULL: 3.0}


def phase_for_step(step: int, compress_end: int, decompress_start: int) -> Phase:
    """
    Returns the radius scaling phase of a 1-based scan step.

    Parameters
    ----------
    step : int
        Scan step, equal to the number of nearest neighbours k.
    compress_end : int
        First step of the half radius phase.
    decompress_start : int
        First step of the full radius phase.

    Examples
    --------
    >>> [phase_for_step(i, 31, 41).name for i in (30, 31, 40, 41)]
    ['COMPRESSED', 'HALF', 'HALF', 'FULL']
    """
    if step < compress_end:
        return Phase.COMPRESSED
    if step < decompress_start:
        return Phase.HALF
    return Phase.FULL


class ScanResult(TypedDict):
    """
    Type definition for the reliability versus coverage profile.

    Attributes
    ----------
    k : list[int]
        Number of nearest neighbours of each step
    phases : list[Phase]
        Radius scaling phase of each step
    outlier_counts : list[int]
        Query instances outside the domain at each step
    accuracies : list[float | None]
        In-domain accuracy at each step, None where no query instance is covered
    """

    k: list[int]
    phases: list[Phase]
    outlier_counts: list[int]
    accuracies: list[float | None]


def _scan_step(
    k: int,
    *,
    distances: NDArray[np.float64],
    agreement: NDArray[np.float64],
    dispersion: NDArray[np.float64],
    correctness: NDArray[np.float64],
    training: NDArray[np.float64],
    query: NDArray[np.float64],
    compress_end: int,
    decompress_start: int,
) -> tuple[int, Phase, int, float | None]:
    phase = phase_for_step(k, compress_end, decompress_start)
    thresholds = thresholds_for_k(distances, agreement, dispersion, k) * phase.multiplier
    coverage = summarize_coverage(count_neighbors(query, training, thresholds), correctness)
    _logger.debug(f"Step k={k} ({phase.value}): outliers={coverage['outlier_count']} accuracy={coverage['accuracy']}")
    return k, phase, coverage["outlier_count"], coverage["accuracy"]


def validate_schedule(steps: int, compress_end: int, decompress_start: int, num_training: int) -> None:
    """Checks the scan schedule is ordered and every step has enough training neighbours."""
    if compress_end < 1:
        raise ValidationError(f"compress_end must be at least 1, got {compress_end}.")
    if not compress_end < decompress_start <= steps:
        raise ValidationError(
            "Scan schedule must satisfy compress_end < decompress_start <= steps, "
            f"got compress_end={compress_end}, decompress_start={decompress_start}, steps={steps}."
        )
    if steps > num_training - 1:
        raise ValidationError(
            f"steps ({steps}) cannot exceed the number of non-self training neighbours ({num_training - 1})."
        )


def scan(
    correctness: ArrayLike,
    training: ArrayLike,
    query: ArrayLike,
    agreement: ArrayLike,
    dispersion: ArrayLike,
    steps: int = DEFAULT_SCAN_STEPS,
    compress_end: int = DEFAULT_SCAN_COMPRESS_END,
    decompress_start: int = DEFAULT_SCAN_DECOMPRESS_START,
    *,
    constant_features: ConstantFeaturePolicy = "raise",
    stop_when_covered: bool = False,
    progress: bool = False,
) -> ScanResult:
    """
    Profiles in-domain accuracy against outlying query instances for widening neighbourhoods.

    The training distance matrix and both normalized feature sets are computed once and
    shared by every step. Step `i` uses thresholds for ``k = i`` nearest neighbours scaled
    by the phase of the step: a third of the neighbour distance before `compress_end`, half
    of it before `decompress_start` and the full distance afterwards.

    Parameters
    ----------
    correctness : ArrayLike
        Flag per query instance, 1 when the external prediction was correct and 0 otherwise, shape (M,).
    training : ArrayLike
        Raw training features of shape (N, F).
    query : ArrayLike
        Raw query features of shape (M, F). An empty query set gives no outliers and an
        undefined accuracy at every step.
    agreement : ArrayLike
        Ensemble agreement per training instance, shape (N,).
    dispersion : ArrayLike
        Ensemble standard deviation per training instance, shape (N,).
    steps : int, default 65
        Number of scan steps; the largest k evaluated.
    compress_end : int, default 31
        First step of the half radius phase.
    decompress_start : int, default 41
        First step of the full radius phase.
    constant_features : {"raise", "zero"}, default "raise"
        Policy for features with zero range in the training set.
    stop_when_covered : bool, default False
        End the scan at the first full radius step leaving no query instance outside the
        domain. The returned profile is then shorter than `steps`.
    progress : bool, default False
        Display a progress bar over scan steps.

    Returns
    -------
    ScanResult
        Mapping of per-step lists ``k``, ``phases``, ``outlier_counts`` and ``accuracies``,
        ordered by step.

    Raises
    ------
    ValidationError
        If inputs are malformed or the schedule is out of order. Nothing is computed.
    DegenerateFeatureError
        If a training feature has zero range and `constant_features` is ``"raise"``.
    DegenerateCaseError
        If any step has no valid thresholds. No partial profile is returned.

    Notes
    -----
    Steps run in parallel when :func:`rdnad.config.set_max_processes` allows more than one
    process. Results do not depend on the number of processes.
    """
    training = ensure_features(training, "training")
    query = ensure_features(query, "query", allow_empty=True)
    if training.shape[1] != query.shape[1]:
        raise ValidationError(
            f"Training has {training.shape[1]} features but query has {query.shape[1]}; feature sets must match."
        )
    correctness = validate_correctness(correctness, len(query))
    agreement, dispersion = validate_reliability(agreement, dispersion, len(training))
    validate_schedule(steps, compress_end, decompress_start, len(training))

    mins, maxs = training.min(axis=0), training.max(axis=0)
    scaled_training = scale_features(training, mins, maxs, constant_features)
    step_fn = partial(
        _scan_step,
        distances=sorted_distances(scaled_training, scaled_training),
        agreement=agreement,
        dispersion=dispersion,
        correctness=correctness,
        training=scaled_training,
        query=scale_features(query, mins, maxs, constant_features),
        compress_end=compress_end,
        decompress_start=decompress_start,
    )

    profile: ScanResult = {"k": [], "phases": [], "outlier_counts": [], "accuracies": []}
    with PoolWrapper(processes=get_max_processes()) as pool:
        chunksize = math.ceil(steps / pool.processes)
        for k, phase, outlier_count, accuracy in tqdm(
            pool.imap(step_fn, range(1, steps + 1), chunksize), total=steps, desc="Scanning", disable=not progress
        ):
            profile["k"].append(k)
            profile["phases"].append(phase)
            profile["outlier_counts"].append(outlier_count)
            profile["accuracies"].append(accuracy)
            if stop_when_covered and phase is Phase.FULL and outlier_count == 0:
                _logger.info(f"All query instances covered at k={k}; stopping scan early.")
                break
    return profile
