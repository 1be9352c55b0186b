"""
Base class for combining algorithms.

A combining algorithm folds an ordered list of PolicyResult into a single
Decision. Algorithms are stateless, look only at each result's decision,
and respect input order (first-applicable depends on it).
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from verdict.schema import CombiningAlgorithm, Decision, PolicyResult


class CombiningAlgorithmBase(ABC):
    """
    Abstract base class for all combining algorithms.

    Subclasses must implement:
    - algorithm: The CombiningAlgorithm member they implement
    - description: One-line summary of the rule
    - combine(): The decision table
    """

    algorithm: CombiningAlgorithm
    description: str = ""

    @property
    def name(self) -> str:
        """The algorithm's wire name (e.g., "deny-overrides")."""
        return self.algorithm.value

    @abstractmethod
    def combine(self, results: Sequence[PolicyResult]) -> Decision:
        """
        Reduce policy results to one decision.

        Args:
            results: Policy results in evaluation order

        Returns:
            The combined decision
        """
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.name}>"
