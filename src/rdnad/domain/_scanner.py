__all__ = []

from dataclasses import dataclass

import numpy as np
import polars as pl
from numpy.typing import ArrayLike, NDArray

from rdnad.core._distance import ConstantFeaturePolicy
from rdnad.core._scan import (
    DEFAULT_SCAN_COMPRESS_END,
    DEFAULT_SCAN_DECOMPRESS_START,
    DEFAULT_SCAN_STEPS,
    scan,
)
from rdnad.types import DictOutput, Evaluator, EvaluatorConfig, set_metadata

PROFILE_SCHEMA = {
    "k": pl.Int64,
    "phase": pl.Utf8,
    "multiplier": pl.Float64,
    "outlier_count": pl.Int64,
    "accuracy": pl.Float64,
}


@dataclass(frozen=True)
class ScanOutput(DictOutput):
    """
    Output class for the :class:`.DomainScanner` evaluator.

    Attributes
    ----------
    profile : pl.DataFrame
        One row per scan step, in step order:

        - k: int - Number of nearest neighbours used for the thresholds
        - phase: str - Radius scaling phase ("compressed", "half" or "full")
        - multiplier: float - Factor applied to the compressed thresholds
        - outlier_count: int - Query instances outside the applicability domain
        - accuracy: float | null - In-domain accuracy, null when no query instance is covered
    num_queries : int
        Number of query instances evaluated at every step.
    """

    profile: pl.DataFrame
    num_queries: int

    def __len__(self) -> int:
        return self.profile.height

    def outlier_counts(self) -> NDArray[np.intp]:
        """Query instances outside the domain at each step."""
        return self.profile["outlier_count"].to_numpy().astype(np.intp)

    def accuracies(self) -> list[float | None]:
        """In-domain accuracy at each step, None where the accuracy is undefined."""
        return self.profile["accuracy"].to_list()

    def coverage(self) -> NDArray[np.float64]:
        """Fraction of query instances inside the domain at each step, 1.0 for an empty query set."""
        if self.num_queries == 0:
            return np.ones(len(self))
        return 1.0 - self.outlier_counts() / self.num_queries


class DomainScanner(Evaluator):
    """
    Maps the Reliability-Density Neighbourhood applicability domain over widening neighbourhoods.

    For every k from 1 to `steps`, each training instance projects a coverage radius derived
    from the average distance to its neighbours, clipped for density outliers and shrunk by
    the ensemble agreement and dispersion of that instance. Query instances inside any radius
    are in domain. The radius is kept at a third of the neighbour distance before
    `compress_end`, grows to half of it until `decompress_start` and to the full distance
    afterwards, scanning densely around training instances before reaching out to the rest
    of the chemical space.

    Parameters
    ----------
    steps : int, default 65
        Number of scan steps; the largest k evaluated. Must not exceed N - 1.
    compress_end : int, default 31
        First step of the half radius phase.
    decompress_start : int, default 41
        First step of the full radius phase.
    constant_features : {"raise", "zero"}, default "raise"
        Policy for features with zero range in the training set.
    stop_when_covered : bool, default False
        End the scan at the first full radius step with no outlying query instance.
    progress : bool, default False
        Display a progress bar over scan steps.
    config : DomainScanner.Config or None, default None
        Configuration object. Explicit arguments take precedence over its values.

    Examples
    --------
    >>> scanner = DomainScanner(steps=20, compress_end=5, decompress_start=10)
    >>> result = scanner.evaluate(correctness, train, test, agreement, dispersion)
    >>> result.profile.columns
    ['k', 'phase', 'multiplier', 'outlier_count', 'accuracy']

    Using configuration:

    >>> config = DomainScanner.Config(steps=20, compress_end=5, decompress_start=10)
    >>> scanner = DomainScanner(config=config)

    References
    ----------
    [1] N Aniceto, AA Freitas, et al. A Novel Applicability Domain Technique for Mapping
    Predictive Reliability Across the Chemical Space of a QSAR: Reliability-Density
    Neighbourhood. J Cheminform. 2016. 8:69.
    """

    class Config(EvaluatorConfig):
        """
        Configuration for DomainScanner evaluator.

        Attributes
        ----------
        steps : int, default 65
            Number of scan steps.
        compress_end : int, default 31
            First step of the half radius phase.
        decompress_start : int, default 41
            First step of the full radius phase.
        constant_features : {"raise", "zero"}, default "raise"
            Policy for features with zero range in the training set.
        stop_when_covered : bool, default False
            End the scan once every query instance is covered at full radius.
        progress : bool, default False
            Display a progress bar over scan steps.
        """

        steps: int = DEFAULT_SCAN_STEPS
        compress_end: int = DEFAULT_SCAN_COMPRESS_END
        decompress_start: int = DEFAULT_SCAN_DECOMPRESS_START
        constant_features: ConstantFeaturePolicy = "raise"
        stop_when_covered: bool = False
        progress: bool = False

    steps: int
    compress_end: int
    decompress_start: int
    constant_features: ConstantFeaturePolicy
    stop_when_covered: bool
    progress: bool
    config: Config

    def __init__(
        self,
        steps: int | None = None,
        compress_end: int | None = None,
        decompress_start: int | None = None,
        constant_features: ConstantFeaturePolicy | None = None,
        stop_when_covered: bool | None = None,
        progress: bool | None = None,
        config: Config | None = None,
    ) -> None:
        super().__init__(locals())

    @set_metadata(state=["steps", "compress_end", "decompress_start", "constant_features", "stop_when_covered"])
    def evaluate(
        self,
        correctness: ArrayLike,
        training: ArrayLike,
        query: ArrayLike,
        agreement: ArrayLike,
        dispersion: ArrayLike,
    ) -> ScanOutput:
        """
        Scan the applicability domain and profile in-domain accuracy per step.

        Parameters
        ----------
        correctness : ArrayLike
            Flag per query instance, 1 when the external prediction was correct and 0 otherwise, shape (M,).
        training : ArrayLike
            Raw training features of shape (N, F).
        query : ArrayLike
            Raw query features of shape (M, F).
        agreement : ArrayLike
            Ensemble agreement per training instance, shape (N,).
        dispersion : ArrayLike
            Ensemble standard deviation per training instance, shape (N,).

        Returns
        -------
        ScanOutput
            Per-step profile of outlier counts and in-domain accuracies.

        Raises
        ------
        ValidationError
            If inputs are malformed or the schedule is out of order.
        DegenerateFeatureError
            If a training feature has zero range and `constant_features` is ``"raise"``.
        DegenerateCaseError
            If any step has no valid thresholds.
        """
        result = scan(
            correctness,
            training,
            query,
            agreement,
            dispersion,
            self.steps,
            self.compress_end,
            self.decompress_start,
            constant_features=self.constant_features,
            stop_when_covered=self.stop_when_covered,
            progress=self.progress,
        )
        profile = pl.DataFrame(
            {
                "k": result["k"],
                "phase": [phase.value for phase in result["phases"]],
                "multiplier": [phase.multiplier for phase in result["phases"]],
                "outlier_count": result["outlier_counts"],
                "accuracy": result["accuracies"],
            },
            schema=PROFILE_SCHEMA,
        )
        return ScanOutput(profile=profile, num_queries=len(correctness))
