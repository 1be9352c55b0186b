"""
Static policy validation.

Parsing a Policy already guarantees its shape (the condition union,
effects, categories). This module adds the checks a parser cannot make:

Errors (the policy will not behave as written):
    - syntax: unknown comparison operator, "not" without exactly one
      sub-condition, comparison without a right operand
    - reference: function not present in the given registry

Warnings (the policy works but deserves a look):
    - best-practice: obligations/advice without parameters, functions
      called without arguments
    - performance: condition depth above 5, more than 10 obligations

Raw mappings are accepted too; a mapping that does not parse is reported
as syntax errors, one per pydantic error.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from verdict.errors import PolicyValidationError
from verdict.evaluation.operators import COMPARISON_OPERATORS, EXISTENCE_OPERATORS
from verdict.functions.registry import FunctionRegistry
from verdict.schema import (
    CONDITION_TYPES,
    ComparisonCondition,
    FunctionCondition,
    LogicalCondition,
    LogicalOperator,
    Policy,
)

MAX_RECOMMENDED_DEPTH = 5
MAX_RECOMMENDED_OBLIGATIONS = 10

KNOWN_COMPARISON_OPERATORS = frozenset(COMPARISON_OPERATORS) | EXISTENCE_OPERATORS


class ValidationIssue(BaseModel):
    """One error or warning found in a policy."""

    type: Literal[
        "syntax", "semantic", "reference", "unused", "unreachable", "performance", "best-practice"
    ]
    message: str
    path: str
    policy_id: str


class PolicyValidationResult(BaseModel):
    """Outcome of validating one policy."""

    policy_id: str
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


class _Checker:
    def __init__(self, policy_id: str, registry: FunctionRegistry | None) -> None:
        self.policy_id = policy_id
        self.registry = registry
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, kind: str, message: str, path: str) -> None:
        self.errors.append(
            ValidationIssue(type=kind, message=message, path=path, policy_id=self.policy_id)
        )

    def warn(self, kind: str, message: str, path: str) -> None:
        self.warnings.append(
            ValidationIssue(type=kind, message=message, path=path, policy_id=self.policy_id)
        )

    def check_condition(self, condition: Any, path: str) -> None:
        if isinstance(condition, LogicalCondition):
            if condition.operator == LogicalOperator.NOT and len(condition.conditions) != 1:
                self.error(
                    "syntax", f"NOT operator must have exactly one condition at {path}", path
                )
            for index, sub in enumerate(condition.conditions):
                self.check_condition(sub, f"{path}.conditions[{index}]")
        elif isinstance(condition, ComparisonCondition):
            self.check_comparison(condition, path)
        elif isinstance(condition, FunctionCondition):
            self.check_function(condition, path)
        else:
            self.error("syntax", f"Invalid condition format at {path}", path)

    def check_comparison(self, condition: ComparisonCondition, path: str) -> None:
        operator = condition.operator
        if operator not in KNOWN_COMPARISON_OPERATORS:
            self.error("syntax", f"Unknown operator: {operator} at {path}", path)
            return
        if condition.left is None:
            self.error("syntax", f"Missing left operand in comparison at {path}", path)
        if condition.right is None and operator not in EXISTENCE_OPERATORS:
            self.error("syntax", f"Missing right operand in comparison at {path}", path)
        for side in ("left", "right"):
            operand = getattr(condition, side)
            if isinstance(operand, CONDITION_TYPES):
                self.check_condition(operand, f"{path}.{side}")

    def check_function(self, condition: FunctionCondition, path: str) -> None:
        name = condition.function
        if self.registry is not None and not self.registry.has(name):
            self.error("reference", f'Function "{name}" is not registered at {path}', path)
        if not condition.args:
            self.warn(
                "best-practice", f'Function condition "{name}" at {path} has no arguments', path
            )
        for index, arg in enumerate(condition.args):
            if isinstance(arg, CONDITION_TYPES):
                self.check_condition(arg, f"{path}.args[{index}]")


def condition_depth(condition: Any, current: int = 0) -> int:
    """Nesting depth of logical conditions (a leaf has depth 0)."""
    if isinstance(condition, LogicalCondition):
        return max(
            (condition_depth(sub, current + 1) for sub in condition.conditions),
            default=current + 1,
        )
    return current


def validate_policy(
    policy: Policy | Mapping[str, Any],
    registry: FunctionRegistry | None = None,
) -> PolicyValidationResult:
    """
    Validate one policy.

    Args:
        policy: A Policy or its mapping form
        registry: When given, function conditions must name registered functions

    Returns:
        The validation result; result.valid is False when there are errors
    """
    if not isinstance(policy, Policy):
        raw_id = policy.get("id") if isinstance(policy, Mapping) else None
        policy_id = raw_id if isinstance(raw_id, str) and raw_id else "unknown"
        try:
            policy = Policy.model_validate(policy)
        except ValidationError as e:
            return PolicyValidationResult(
                policy_id=policy_id,
                errors=[
                    ValidationIssue(
                        type="syntax",
                        message=err["msg"],
                        path=".".join(str(p) for p in err["loc"]) or "policy",
                        policy_id=policy_id,
                    )
                    for err in e.errors()
                ],
            )

    checker = _Checker(policy.id, registry)

    if policy.target is not None:
        for category in ("subject", "resource", "action", "environment"):
            condition = getattr(policy.target, category)
            if condition is not None:
                checker.check_condition(condition, f"target.{category}")

    if policy.condition is not None:
        checker.check_condition(policy.condition, "condition")

    for index, obligation in enumerate(policy.obligations):
        if not obligation.parameters:
            checker.warn(
                "best-practice",
                f'Obligation "{obligation.id}" has no parameters',
                f"obligations[{index}]",
            )

    for index, advice in enumerate(policy.advice):
        if not advice.parameters:
            checker.warn(
                "best-practice",
                f'Advice "{advice.id}" has no parameters',
                f"advice[{index}]",
            )

    depth = condition_depth(policy.condition)
    if depth > MAX_RECOMMENDED_DEPTH:
        checker.warn(
            "performance",
            f"Condition depth is {depth}, consider simplifying "
            f"(max recommended: {MAX_RECOMMENDED_DEPTH})",
            "condition",
        )

    if len(policy.obligations) > MAX_RECOMMENDED_OBLIGATIONS:
        checker.warn(
            "performance",
            f"Policy has {len(policy.obligations)} obligations, consider reducing",
            "obligations",
        )

    return PolicyValidationResult(
        policy_id=policy.id,
        errors=checker.errors,
        warnings=checker.warnings,
    )


def validate_policies(
    policies: Iterable[Policy | Mapping[str, Any]],
    registry: FunctionRegistry | None = None,
) -> list[PolicyValidationResult]:
    return [validate_policy(policy, registry) for policy in policies]


def validate_policy_or_raise(
    policy: Policy | Mapping[str, Any],
    registry: FunctionRegistry | None = None,
) -> Policy:
    """
    Validate a policy and return it parsed.

    Raises:
        PolicyValidationError: If validation finds any error
    """
    result = validate_policy(policy, registry)
    if not result.valid:
        raise PolicyValidationError(
            policy_id=result.policy_id,
            validation_errors=[{"field": e.path, "message": e.message} for e in result.errors],
        )
    return policy if isinstance(policy, Policy) else Policy.model_validate(policy)
