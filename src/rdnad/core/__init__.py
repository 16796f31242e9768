"""
Core stateless functions for mapping the Reliability-Density Neighbourhood applicability domain.
"""

__all__ = [
    "ConstantFeaturePolicy",
    "CoverageResult",
    "DistanceResult",
    "Phase",
    "ScanResult",
    "compute_coverage",
    "compute_distances",
    "compute_thresholds",
    "ensemble_agreement",
    "ensemble_dispersion",
    "feature_bounds",
    "normalize",
    "phase_for_step",
    "scan",
]

from rdnad.core._coverage import CoverageResult, compute_coverage
from rdnad.core._distance import ConstantFeaturePolicy, DistanceResult, compute_distances, feature_bounds, normalize
from rdnad.core._reliability import ensemble_agreement, ensemble_dispersion
from rdnad.core._scan import Phase, ScanResult, phase_for_step, scan
from rdnad.core._threshold import compute_thresholds
