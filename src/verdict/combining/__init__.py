"""Combining algorithms: strategies that fold policy results into one decision."""

from verdict.combining.algorithms import (
    DenyOverridesAlgorithm,
    DenyUnlessPermitAlgorithm,
    FirstApplicableAlgorithm,
    OnlyOneApplicableAlgorithm,
    PermitOverridesAlgorithm,
    PermitUnlessDenyAlgorithm,
)
from verdict.combining.base import CombiningAlgorithmBase
from verdict.combining.factory import get_algorithm, is_supported, list_algorithms

__all__ = [
    "CombiningAlgorithmBase",
    "DenyOverridesAlgorithm",
    "DenyUnlessPermitAlgorithm",
    "FirstApplicableAlgorithm",
    "OnlyOneApplicableAlgorithm",
    "PermitOverridesAlgorithm",
    "PermitUnlessDenyAlgorithm",
    "get_algorithm",
    "is_supported",
    "list_algorithms",
]
