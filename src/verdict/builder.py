"""
Fluent builders for policies and conditions.

Example:
    policy = (
        PolicyBuilder("doc-owner")
        .description("Owners may edit their documents")
        .permit()
        .target(TargetBuilder().action(ConditionBuilder.is_in(AttributeRef.action("id"), ["edit"])))
        .condition(
            ConditionBuilder.equals(AttributeRef.subject("id"), AttributeRef.resource("owner"))
        )
        .log_obligation({"reason": "owner_edit"})
        .build()
    )
"""

import time
from typing import Any

from pydantic import ValidationError

from verdict.errors import PolicyValidationError
from verdict.schema import (
    Advice,
    AdviceType,
    AttributeCategory,
    AttributeReference,
    ComparisonCondition,
    ComparisonOperator,
    Condition,
    Effect,
    FunctionCondition,
    LogicalCondition,
    LogicalOperator,
    Obligation,
    ObligationType,
    Policy,
    PolicyMetadata,
    PolicyTarget,
)


def _unwrap(condition: "ConditionBuilder | Condition") -> Condition:
    if isinstance(condition, ConditionBuilder):
        return condition.build()
    return condition


def _stamp(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}"


class AttributeRef:
    """Shorthand constructors for AttributeReference."""

    @staticmethod
    def subject(attribute_id: str, path: str | None = None) -> AttributeReference:
        return AttributeReference(
            category=AttributeCategory.SUBJECT, attribute_id=attribute_id, path=path
        )

    @staticmethod
    def resource(attribute_id: str, path: str | None = None) -> AttributeReference:
        return AttributeReference(
            category=AttributeCategory.RESOURCE, attribute_id=attribute_id, path=path
        )

    @staticmethod
    def action(attribute_id: str, path: str | None = None) -> AttributeReference:
        return AttributeReference(
            category=AttributeCategory.ACTION, attribute_id=attribute_id, path=path
        )

    @staticmethod
    def environment(attribute_id: str, path: str | None = None) -> AttributeReference:
        return AttributeReference(
            category=AttributeCategory.ENVIRONMENT, attribute_id=attribute_id, path=path
        )


class ConditionBuilder:
    """
    Builds condition trees.

    Static constructors create leaf conditions; and_/or_/not_ wrap the
    current condition in a logical one and return a new builder.
    """

    def __init__(self, condition: Condition | None = None) -> None:
        self._condition: Condition = condition or ComparisonCondition(
            operator=ComparisonOperator.EQUALS.value, left="", right=""
        )

    # -------------------------------------------------------------------------
    # Comparisons
    # -------------------------------------------------------------------------

    @staticmethod
    def compare(left: Any, operator: ComparisonOperator | str, right: Any) -> "ConditionBuilder":
        return ConditionBuilder(ComparisonCondition(operator=operator, left=left, right=right))

    @staticmethod
    def equals(left: Any, right: Any) -> "ConditionBuilder":
        return ConditionBuilder.compare(left, ComparisonOperator.EQUALS, right)

    @staticmethod
    def not_equals(left: Any, right: Any) -> "ConditionBuilder":
        return ConditionBuilder.compare(left, ComparisonOperator.NOT_EQUALS, right)

    @staticmethod
    def greater_than(left: Any, right: Any) -> "ConditionBuilder":
        return ConditionBuilder.compare(left, ComparisonOperator.GREATER_THAN, right)

    @staticmethod
    def less_than(left: Any, right: Any) -> "ConditionBuilder":
        return ConditionBuilder.compare(left, ComparisonOperator.LESS_THAN, right)

    @staticmethod
    def greater_than_or_equal(left: Any, right: Any) -> "ConditionBuilder":
        return ConditionBuilder.compare(left, ComparisonOperator.GREATER_THAN_OR_EQUAL, right)

    @staticmethod
    def less_than_or_equal(left: Any, right: Any) -> "ConditionBuilder":
        return ConditionBuilder.compare(left, ComparisonOperator.LESS_THAN_OR_EQUAL, right)

    @staticmethod
    def is_in(left: Any, values: list[Any]) -> "ConditionBuilder":
        return ConditionBuilder.compare(left, ComparisonOperator.IN, list(values))

    @staticmethod
    def contains(left: Any, right: Any) -> "ConditionBuilder":
        return ConditionBuilder.compare(left, ComparisonOperator.CONTAINS, right)

    @staticmethod
    def exists(attribute: AttributeReference) -> "ConditionBuilder":
        return ConditionBuilder.compare(attribute, ComparisonOperator.EXISTS, True)

    @staticmethod
    def not_exists(attribute: AttributeReference) -> "ConditionBuilder":
        return ConditionBuilder.compare(attribute, ComparisonOperator.NOT_EXISTS, True)

    @staticmethod
    def function(name: str, *args: Any) -> "ConditionBuilder":
        """Call a registered function; builders among args are built first."""
        resolved = [_unwrap(a) if isinstance(a, ConditionBuilder) else a for a in args]
        return ConditionBuilder(FunctionCondition(function=name, args=resolved))

    # -------------------------------------------------------------------------
    # Logic
    # -------------------------------------------------------------------------

    def and_(self, *conditions: "ConditionBuilder | Condition") -> "ConditionBuilder":
        return ConditionBuilder(
            LogicalCondition(
                operator=LogicalOperator.AND,
                conditions=[self._condition, *(_unwrap(c) for c in conditions)],
            )
        )

    def or_(self, *conditions: "ConditionBuilder | Condition") -> "ConditionBuilder":
        return ConditionBuilder(
            LogicalCondition(
                operator=LogicalOperator.OR,
                conditions=[self._condition, *(_unwrap(c) for c in conditions)],
            )
        )

    def not_(self) -> "ConditionBuilder":
        return ConditionBuilder(
            LogicalCondition(operator=LogicalOperator.NOT, conditions=[self._condition])
        )

    def build(self) -> Condition:
        return self._condition


class TargetBuilder:
    """Builds a PolicyTarget one category at a time."""

    def __init__(self) -> None:
        self._target: dict[str, Condition] = {}

    def subject(self, condition: ConditionBuilder | Condition) -> "TargetBuilder":
        self._target["subject"] = _unwrap(condition)
        return self

    def resource(self, condition: ConditionBuilder | Condition) -> "TargetBuilder":
        self._target["resource"] = _unwrap(condition)
        return self

    def action(self, condition: ConditionBuilder | Condition) -> "TargetBuilder":
        self._target["action"] = _unwrap(condition)
        return self

    def environment(self, condition: ConditionBuilder | Condition) -> "TargetBuilder":
        self._target["environment"] = _unwrap(condition)
        return self

    def build(self) -> PolicyTarget:
        return PolicyTarget(**self._target)


class PolicyBuilder:
    """
    Builds a Policy.

    The version defaults to "1.0.0". build() raises PolicyValidationError
    when the id or the effect is missing.
    """

    def __init__(self, policy_id: str | None = None) -> None:
        self._fields: dict[str, Any] = {"obligations": [], "advice": []}
        self._tags: list[str] = []
        if policy_id:
            self._fields["id"] = policy_id

    @classmethod
    def create(cls, policy_id: str | None = None) -> "PolicyBuilder":
        return cls(policy_id)

    def id(self, policy_id: str) -> "PolicyBuilder":
        self._fields["id"] = policy_id
        return self

    def version(self, version: str) -> "PolicyBuilder":
        self._fields["version"] = version
        return self

    def description(self, description: str) -> "PolicyBuilder":
        self._fields["description"] = description
        return self

    def effect(self, effect: Effect | str) -> "PolicyBuilder":
        self._fields["effect"] = Effect(effect)
        return self

    def permit(self) -> "PolicyBuilder":
        return self.effect(Effect.PERMIT)

    def deny(self) -> "PolicyBuilder":
        return self.effect(Effect.DENY)

    def target(self, target: TargetBuilder | PolicyTarget) -> "PolicyBuilder":
        self._fields["target"] = target.build() if isinstance(target, TargetBuilder) else target
        return self

    def condition(self, condition: ConditionBuilder | Condition) -> "PolicyBuilder":
        self._fields["condition"] = _unwrap(condition)
        return self

    def priority(self, priority: int) -> "PolicyBuilder":
        self._fields["priority"] = priority
        return self

    def obligation(self, obligation: Obligation) -> "PolicyBuilder":
        self._fields["obligations"].append(obligation)
        return self

    def log_obligation(self, parameters: dict[str, Any] | None = None) -> "PolicyBuilder":
        return self.obligation(
            Obligation(id=_stamp("log"), type=ObligationType.LOG, parameters=parameters)
        )

    def notify_obligation(self, parameters: dict[str, Any] | None = None) -> "PolicyBuilder":
        return self.obligation(
            Obligation(id=_stamp("notify"), type=ObligationType.NOTIFY, parameters=parameters)
        )

    def advice(self, advice: Advice) -> "PolicyBuilder":
        self._fields["advice"].append(advice)
        return self

    def warning(self, parameters: dict[str, Any] | None = None) -> "PolicyBuilder":
        return self.advice(
            Advice(id=_stamp("warning"), type=AdviceType.WARNING, parameters=parameters)
        )

    def metadata(self, metadata: PolicyMetadata | None) -> "PolicyBuilder":
        self._fields["metadata"] = metadata
        return self

    def tags(self, *tags: str) -> "PolicyBuilder":
        self._tags.extend(tags)
        return self

    def build(self) -> Policy:
        """
        Build the policy.

        Raises:
            PolicyValidationError: If the id or effect is missing, or the
                assembled policy is otherwise invalid
        """
        policy_id = self._fields.get("id")
        if not policy_id:
            raise PolicyValidationError(
                message="Policy ID is required",
                policy_id="unknown",
                validation_errors=[{"field": "id", "message": "Policy ID is required"}],
            )
        if "effect" not in self._fields:
            raise PolicyValidationError(
                message="Policy effect is required",
                policy_id=policy_id,
                validation_errors=[{"field": "effect", "message": "Policy effect is required"}],
            )

        fields = dict(self._fields)
        fields.setdefault("version", "1.0.0")
        if self._tags:
            metadata = fields.get("metadata") or PolicyMetadata()
            fields["metadata"] = metadata.model_copy(
                update={"tags": [*metadata.tags, *self._tags]}
            )

        try:
            return Policy(**fields)
        except ValidationError as e:
            raise PolicyValidationError(
                policy_id=policy_id,
                validation_errors=[
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ],
            ) from e
