"""Lookup of combining algorithms by name."""

from verdict.combining.algorithms import (
    DenyOverridesAlgorithm,
    DenyUnlessPermitAlgorithm,
    FirstApplicableAlgorithm,
    OnlyOneApplicableAlgorithm,
    PermitOverridesAlgorithm,
    PermitUnlessDenyAlgorithm,
)
from verdict.combining.base import CombiningAlgorithmBase
from verdict.errors import CombiningAlgorithmError
from verdict.schema import CombiningAlgorithm

_ALGORITHMS: dict[CombiningAlgorithm, CombiningAlgorithmBase] = {
    algorithm.algorithm: algorithm
    for algorithm in (
        DenyOverridesAlgorithm(),
        PermitOverridesAlgorithm(),
        FirstApplicableAlgorithm(),
        OnlyOneApplicableAlgorithm(),
        DenyUnlessPermitAlgorithm(),
        PermitUnlessDenyAlgorithm(),
    )
}


def get_algorithm(name: CombiningAlgorithm | str) -> CombiningAlgorithmBase:
    """
    Return the shared instance for an algorithm.

    Args:
        name: A CombiningAlgorithm member or its wire name

    Raises:
        CombiningAlgorithmError: If the name is not a known algorithm
    """
    try:
        key = CombiningAlgorithm(name)
    except ValueError as e:
        raise CombiningAlgorithmError(algorithm=str(name)) from e
    return _ALGORITHMS[key]


def list_algorithms() -> list[CombiningAlgorithmBase]:
    """All algorithms, in declaration order."""
    return [_ALGORITHMS[member] for member in CombiningAlgorithm]


def is_supported(name: CombiningAlgorithm | str) -> bool:
    try:
        CombiningAlgorithm(name)
    except ValueError:
        return False
    return True
