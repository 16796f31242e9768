"""
Evaluators that map the applicability domain of a classification model and place new
predictions onto it.
"""

__all__ = [
    "CoverageMap",
    "CoverageOutput",
    "DomainScanner",
    "Phase",
    "ScanOutput",
]

from rdnad.core._scan import Phase
from rdnad.domain._coverage_map import CoverageMap, CoverageOutput
from rdnad.domain._scanner import DomainScanner, ScanOutput
