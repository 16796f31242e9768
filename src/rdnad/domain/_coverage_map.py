__all__ = []

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing_extensions import Self

from rdnad.core._coverage import count_neighbors, summarize_coverage, validate_correctness
from rdnad.core._distance import ConstantFeaturePolicy, scale_features, sorted_distances
from rdnad.core._scan import Phase
from rdnad.core._threshold import compute_thresholds, validate_reliability
from rdnad.exceptions import ValidationError
from rdnad.types import DictOutput, Evaluator, EvaluatorConfig, set_metadata
from rdnad.utils._array import ensure_features

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoverageOutput(DictOutput):
    """
    Output class for the :class:`.CoverageMap` evaluator.

    Attributes
    ----------
    neighbor_counts : NDArray[np.intp]
        Number of training neighbourhoods covering each query instance.
    in_domain : NDArray[np.bool_]
        True for query instances covered by at least one training neighbourhood.
    outlier_count : int
        Number of query instances outside the applicability domain.
    accuracy : float or None
        In-domain accuracy. None when no correctness flags were given or no query
        instance is covered.
    """

    neighbor_counts: NDArray[np.intp]
    in_domain: NDArray[np.bool_]
    outlier_count: int
    accuracy: float | None


class CoverageMap(Evaluator):
    """
    Reusable training neighbourhood map for a single neighbourhood size and radius phase.

    Once a scan has identified a suitable `k` and phase, the map can be fit on the training
    set and used to sort new predictions into in-domain and out-of-domain instances. The
    number of covering neighbourhoods serves as a reliability ranking for in-domain queries.

    Parameters
    ----------
    k : int, default 1
        Number of nearest neighbours used for the thresholds.
    phase : Phase, default Phase.FULL
        Radius scaling phase applied to the thresholds.
    constant_features : {"raise", "zero"}, default "raise"
        Policy for features with zero range in the training set.
    config : CoverageMap.Config or None, default None
        Configuration object. Explicit arguments take precedence over its values.

    Attributes
    ----------
    thresholds : NDArray[np.float64]
        Coverage radius of each training instance after fitting.

    Examples
    --------
    >>> cmap = CoverageMap(k=3, phase=Phase.HALF).fit(train, agreement, dispersion)
    >>> result = cmap.evaluate(test)
    >>> most_reliable_first = result.neighbor_counts.argsort()[::-1]
    """

    class Config(EvaluatorConfig):
        """
        Configuration for CoverageMap evaluator.

        Attributes
        ----------
        k : int, default 1
            Number of nearest neighbours used for the thresholds.
        phase : Phase, default Phase.FULL
            Radius scaling phase applied to the thresholds.
        constant_features : {"raise", "zero"}, default "raise"
            Policy for features with zero range in the training set.
        """

        k: int = 1
        phase: Phase = Phase.FULL
        constant_features: ConstantFeaturePolicy = "raise"

    k: int
    phase: Phase
    constant_features: ConstantFeaturePolicy
    config: Config

    thresholds: NDArray[np.float64]
    _training: NDArray[np.float64]
    _mins: NDArray[np.float64]
    _maxs: NDArray[np.float64]

    def __init__(
        self,
        k: int | None = None,
        phase: Phase | None = None,
        constant_features: ConstantFeaturePolicy | None = None,
        config: Config | None = None,
    ) -> None:
        super().__init__(locals())
        self._fitted = False

    def fit(self, training: ArrayLike, agreement: ArrayLike, dispersion: ArrayLike) -> Self:
        """
        Compute the neighbourhood radius of every training instance.

        Parameters
        ----------
        training : ArrayLike
            Raw training features of shape (N, F).
        agreement : ArrayLike
            Ensemble agreement per training instance, shape (N,).
        dispersion : ArrayLike
            Ensemble standard deviation per training instance, shape (N,).

        Returns
        -------
        Self
        """
        training = ensure_features(training, "training")
        agreement, dispersion = validate_reliability(agreement, dispersion, len(training))

        self._mins, self._maxs = training.min(axis=0), training.max(axis=0)
        self._training = scale_features(training, self._mins, self._maxs, self.constant_features)
        distances = sorted_distances(self._training, self._training)
        self.thresholds = compute_thresholds(distances, agreement, dispersion, self.k) * self.phase.multiplier
        self._fitted = True
        _logger.debug(f"Fit coverage map with {len(training)} neighbourhoods for k={self.k} ({self.phase.value}).")
        return self

    @set_metadata(state=["k", "phase"])
    def evaluate(self, query: ArrayLike, correctness: ArrayLike | None = None) -> CoverageOutput:
        """
        Place query instances onto the fitted neighbourhood map.

        Parameters
        ----------
        query : ArrayLike
            Raw query features of shape (M, F), possibly empty; normalized with the training bounds.
        correctness : ArrayLike or None, default None
            Optional flag per query instance, 1 when the external prediction was correct.
            Required to report an in-domain accuracy.

        Returns
        -------
        CoverageOutput

        Raises
        ------
        RuntimeError
            If the map has not been fit.
        ValidationError
            If the query set is malformed or does not match the training features.
        """
        if not self._fitted:
            raise RuntimeError("CoverageMap must be fit before evaluating query instances.")
        query = ensure_features(query, "query", allow_empty=True)
        if query.shape[1] != self._training.shape[1]:
            raise ValidationError(
                f"Query has {query.shape[1]} features but the map was fit on {self._training.shape[1]}."
            )
        flags = None if correctness is None else validate_correctness(correctness, len(query))
        scaled = scale_features(query, self._mins, self._maxs, self.constant_features)
        neighbor_counts = count_neighbors(scaled, self._training, self.thresholds)
        accuracy = None if flags is None else summarize_coverage(neighbor_counts, flags)["accuracy"]
        return CoverageOutput(
            neighbor_counts=neighbor_counts,
            in_domain=neighbor_counts > 0,
            outlier_count=int(np.count_nonzero(neighbor_counts == 0)),
            accuracy=accuracy,
        )
