"""
The six combining algorithms.

Decision tables (evaluated over results in order):

    deny-overrides       any Deny ⇒ Deny; else any Permit ⇒ Permit;
                         else any Indeterminate ⇒ Indeterminate; else NotApplicable
    permit-overrides     any Permit ⇒ Permit; else any Deny ⇒ Deny;
                         else any Indeterminate ⇒ Indeterminate; else NotApplicable
    first-applicable     first decision other than NotApplicable; else NotApplicable
    only-one-applicable  one non-NotApplicable ⇒ it; two or more ⇒ Indeterminate;
                         none ⇒ NotApplicable
    deny-unless-permit   any Permit ⇒ Permit; else Deny (also for no results)
    permit-unless-deny   any Deny ⇒ Deny; else Permit (also for no results)
"""

from collections.abc import Sequence

from verdict.combining.base import CombiningAlgorithmBase
from verdict.schema import CombiningAlgorithm, Decision, PolicyResult


def _decisions(results: Sequence[PolicyResult]) -> set[Decision]:
    return {result.decision for result in results}


class DenyOverridesAlgorithm(CombiningAlgorithmBase):
    algorithm = CombiningAlgorithm.DENY_OVERRIDES
    description = "A single Deny wins over any number of Permits"

    def combine(self, results: Sequence[PolicyResult]) -> Decision:
        decisions = _decisions(results)
        for decision in (Decision.DENY, Decision.PERMIT, Decision.INDETERMINATE):
            if decision in decisions:
                return decision
        return Decision.NOT_APPLICABLE


class PermitOverridesAlgorithm(CombiningAlgorithmBase):
    algorithm = CombiningAlgorithm.PERMIT_OVERRIDES
    description = "A single Permit wins over any number of Denies"

    def combine(self, results: Sequence[PolicyResult]) -> Decision:
        decisions = _decisions(results)
        for decision in (Decision.PERMIT, Decision.DENY, Decision.INDETERMINATE):
            if decision in decisions:
                return decision
        return Decision.NOT_APPLICABLE


class FirstApplicableAlgorithm(CombiningAlgorithmBase):
    algorithm = CombiningAlgorithm.FIRST_APPLICABLE
    description = "The first result that is not NotApplicable wins"

    def combine(self, results: Sequence[PolicyResult]) -> Decision:
        for result in results:
            if result.decision != Decision.NOT_APPLICABLE:
                return result.decision
        return Decision.NOT_APPLICABLE


class OnlyOneApplicableAlgorithm(CombiningAlgorithmBase):
    algorithm = CombiningAlgorithm.ONLY_ONE_APPLICABLE
    description = "Exactly one applicable result is required; more is a conflict"

    def combine(self, results: Sequence[PolicyResult]) -> Decision:
        applicable = [r for r in results if r.decision != Decision.NOT_APPLICABLE]
        if not applicable:
            return Decision.NOT_APPLICABLE
        if len(applicable) > 1:
            return Decision.INDETERMINATE
        return applicable[0].decision


class DenyUnlessPermitAlgorithm(CombiningAlgorithmBase):
    algorithm = CombiningAlgorithm.DENY_UNLESS_PERMIT
    description = "Deny unless some result is Permit"

    def combine(self, results: Sequence[PolicyResult]) -> Decision:
        if Decision.PERMIT in _decisions(results):
            return Decision.PERMIT
        return Decision.DENY


class PermitUnlessDenyAlgorithm(CombiningAlgorithmBase):
    algorithm = CombiningAlgorithm.PERMIT_UNLESS_DENY
    description = "Permit unless some result is Deny"

    def combine(self, results: Sequence[PolicyResult]) -> Decision:
        if Decision.DENY in _decisions(results):
            return Decision.DENY
        return Decision.PERMIT
