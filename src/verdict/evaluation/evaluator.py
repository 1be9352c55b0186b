"""
Policy evaluation for Verdict.

The PolicyEvaluator decides, for one request:
- which policies apply (their targets match)
- what each applicable policy says (its condition holds or not)

Evaluation Rules:
    1. No target means the policy applies to every request
    2. Every present target category must evaluate True
    3. No condition means the condition holds
    4. Condition false → NotApplicable, no obligations or advice
    5. Condition true → the policy's effect, with its obligations and advice
    6. An exception while evaluating one policy → Indeterminate for that
       policy only; sibling policies are still evaluated

Condition Semantics:
    - and/or short-circuit; not takes exactly one sub-condition
    - exists/not_exists look at the raw value and only test for None
    - every other comparison resolves its operands first (an unresolved
      attribute becomes "") and applies verdict.evaluation.operators
    - function conditions call a registered function with resolved arguments
"""

import asyncio
import inspect
import logging
from collections.abc import Iterable
from typing import Any

from verdict.errors import EvaluationError, get_error_message
from verdict.evaluation.operators import EXISTENCE_OPERATORS, compare
from verdict.evaluation.resolver import AttributeResolver
from verdict.functions.registry import FunctionRegistry
from verdict.schema import (
    CONDITION_TYPES,
    Advice,
    AttributeReference,
    ComparisonCondition,
    ComparisonOperator,
    Decision,
    Effect,
    FunctionCondition,
    LogicalCondition,
    LogicalOperator,
    Obligation,
    Policy,
    PolicyResult,
    Request,
)

CONDITION_NOT_MET = "Policy condition not met"


class PolicyEvaluator:
    """
    Evaluates policies and condition trees against a request.

    Example:
        >>> evaluator = PolicyEvaluator(FunctionRegistry(), AttributeResolver())
        >>> result = await evaluator.evaluate_policy(request, policy)
        >>> result.decision
        <Decision.PERMIT: 'Permit'>
    """

    def __init__(
        self,
        function_registry: FunctionRegistry,
        attribute_resolver: AttributeResolver,
        logger: logging.Logger | None = None,
    ) -> None:
        self.function_registry = function_registry
        self.attribute_resolver = attribute_resolver
        self.logger = logger or logging.getLogger(__name__)

    # =========================================================================
    # Applicability
    # =========================================================================

    async def find_applicable_policies(
        self,
        request: Request,
        policies: Iterable[Policy],
    ) -> list[Policy]:
        """
        Filter policies down to those whose target matches, preserving order.

        A policy whose target check raises is logged and excluded.
        """
        applicable: list[Policy] = []

        for policy in policies:
            try:
                if await self.is_policy_applicable(request, policy):
                    applicable.append(policy)
            except Exception as e:
                self.logger.warning(
                    "Error checking policy applicability for %s: %s",
                    policy.id,
                    get_error_message(e),
                    extra={"policy_id": policy.id},
                )

        return applicable

    async def is_policy_applicable(self, request: Request, policy: Policy) -> bool:
        """True iff every present target category condition holds."""
        target = policy.target
        if target is None:
            return True

        for condition in (target.subject, target.resource, target.action, target.environment):
            if condition is not None and not await self.evaluate_condition(condition, request):
                return False

        return True

    # =========================================================================
    # Policies
    # =========================================================================

    async def evaluate_policies(
        self,
        request: Request,
        policies: Iterable[Policy],
        errors: list[str] | None = None,
    ) -> list[PolicyResult]:
        """
        Evaluate each policy in order.

        Args:
            request: The enhanced request
            policies: Applicable policies
            errors: Sink for formatted error strings

        Returns:
            One PolicyResult per policy, in input order
        """
        if errors is None:
            errors = []
        results: list[PolicyResult] = []

        for policy in policies:
            try:
                results.append(await self.evaluate_policy(request, policy))
            except Exception as e:
                message = f"Policy evaluation error: {get_error_message(e)}"
                errors.append(message)
                self.logger.error(
                    "Error evaluating policy %s: %s",
                    policy.id,
                    get_error_message(e),
                    extra={"policy_id": policy.id},
                )
                results.append(
                    PolicyResult(decision=Decision.INDETERMINATE, policy=policy, reason=message)
                )

        return results

    async def evaluate_policy(self, request: Request, policy: Policy) -> PolicyResult:
        """
        Evaluate one policy.

        Raises:
            EvaluationError: If the condition tree cannot be evaluated
        """
        if policy.condition is not None:
            try:
                met = await self.evaluate_condition(policy.condition, request)
            except EvaluationError as e:
                if e.policy_id is None:
                    e.policy_id = policy.id
                    e.context["policy_id"] = policy.id
                raise
            if not met:
                return PolicyResult(
                    decision=Decision.NOT_APPLICABLE,
                    policy=policy,
                    reason=CONDITION_NOT_MET,
                )

        decision = Decision.PERMIT if policy.effect == Effect.PERMIT else Decision.DENY
        return PolicyResult(
            decision=decision,
            policy=policy,
            obligations=list(policy.obligations),
            advice=list(policy.advice),
            reason=f"Policy {policy.id} {policy.effect.value.lower()}s access",
        )

    # =========================================================================
    # Conditions
    # =========================================================================

    async def evaluate_condition(self, condition: Any, request: Request) -> bool:
        """
        Evaluate a condition tree to a bool.

        Raises:
            EvaluationError: For non-condition values, a wrong "not" arity,
                an unknown logical operator or an unregistered function
        """
        if isinstance(condition, LogicalCondition):
            return await self._evaluate_logical(condition, request)
        if isinstance(condition, ComparisonCondition):
            return await self._evaluate_comparison(condition, request)
        if isinstance(condition, FunctionCondition):
            return await self._evaluate_function(condition, request)
        raise EvaluationError.invalid_condition(condition)

    async def _evaluate_logical(self, condition: LogicalCondition, request: Request) -> bool:
        operator = condition.operator
        conditions = condition.conditions

        if operator == LogicalOperator.AND:
            for sub in conditions:
                if not await self.evaluate_condition(sub, request):
                    return False
            return True

        if operator == LogicalOperator.OR:
            for sub in conditions:
                if await self.evaluate_condition(sub, request):
                    return True
            return False

        if operator == LogicalOperator.NOT:
            if len(conditions) != 1:
                raise EvaluationError.invalid_operator_arity(operator.value, 1, len(conditions))
            return not await self.evaluate_condition(conditions[0], request)

        raise EvaluationError.unknown_operator(str(operator))

    async def _evaluate_comparison(self, condition: ComparisonCondition, request: Request) -> bool:
        operator = condition.operator

        if operator in EXISTENCE_OPERATORS:
            raw = self._raw_value(condition.left, request)
            if operator == ComparisonOperator.EXISTS.value:
                return raw is not None
            return raw is None

        left = await self.resolve_value(condition.left, request)
        right = await self.resolve_value(condition.right, request)
        return compare(operator, left, right)

    async def _evaluate_function(self, condition: FunctionCondition, request: Request) -> bool:
        fn = self.function_registry.get(condition.function)

        args = await asyncio.gather(*(self.resolve_value(arg, request) for arg in condition.args))

        try:
            result = fn(list(args), request, self.attribute_resolver.get_providers())
            if inspect.isawaitable(result):
                result = await result
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError.function_error(condition.function, get_error_message(e)) from e

        return bool(result)

    # =========================================================================
    # Values
    # =========================================================================

    def _raw_value(self, value: Any, request: Request) -> Any:
        if isinstance(value, AttributeReference):
            return self.attribute_resolver.get_attribute_value(
                request, value.category, value.attribute_id, value.path
            )
        return value

    async def resolve_value(self, value: Any, request: Request) -> Any:
        """
        Resolve an operand.

        Attribute references become their value ("" when unresolved),
        nested conditions become their bool, literals pass through.
        """
        if isinstance(value, AttributeReference):
            resolved = self._raw_value(value, request)
            return "" if resolved is None else resolved
        if isinstance(value, CONDITION_TYPES):
            return await self.evaluate_condition(value, request)
        return value

    # =========================================================================
    # Collection
    # =========================================================================

    @staticmethod
    def collect_obligations(results: Iterable[PolicyResult]) -> list[Obligation]:
        """Flatten obligations across results, in result order."""
        return [obligation for result in results for obligation in result.obligations]

    @staticmethod
    def collect_advice(results: Iterable[PolicyResult]) -> list[Advice]:
        """Flatten advice across results, in result order."""
        return [advice for result in results for advice in result.advice]
