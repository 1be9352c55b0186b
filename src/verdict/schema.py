"""
Schema definitions for Verdict.

This module defines all the Pydantic models used throughout Verdict:
- Request and its Subject/Resource/Action/Environment entities
- AttributeReference and the three Condition shapes
- Policy with its target, obligations, advice and metadata
- PolicyResult and AuthorizationDecision: what evaluation produces
- EngineConfig: engine-level configuration

Design Decisions:
    - Models are frozen; enhancement builds new request objects
    - Wire keys keep camelCase aliases (attributeId, combiningAlgorithm),
      Python code uses snake_case field names
    - The Condition union is a closed set of three shapes, selected by a
      callable discriminator; anything else is rejected at parse time
    - Comparison operators stay plain strings so that unknown operators
      survive parsing and evaluate to False
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    ValidationError,
    field_validator,
)

from verdict.errors import PolicyLoadError


# =============================================================================
# Enums
# =============================================================================


class Decision(str, Enum):
    """The only four values an evaluation ever returns (XACML semantics)."""

    PERMIT = "Permit"
    DENY = "Deny"
    NOT_APPLICABLE = "NotApplicable"
    INDETERMINATE = "Indeterminate"


class Effect(str, Enum):
    """The intended result of a policy whose condition holds."""

    PERMIT = "Permit"
    DENY = "Deny"


class AttributeCategory(str, Enum):
    """Where an attribute lives in a request."""

    SUBJECT = "subject"
    RESOURCE = "resource"
    ACTION = "action"
    ENVIRONMENT = "environment"


class ComparisonOperator(str, Enum):
    """Operators understood by comparison conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    MATCHES_REGEX = "matches_regex"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"


class LogicalOperator(str, Enum):
    """Operators combining sub-conditions."""

    AND = "and"
    OR = "or"
    NOT = "not"


class CombiningAlgorithm(str, Enum):
    """Strategies for reducing many policy results to one decision."""

    DENY_OVERRIDES = "deny-overrides"
    PERMIT_OVERRIDES = "permit-overrides"
    FIRST_APPLICABLE = "first-applicable"
    ONLY_ONE_APPLICABLE = "only-one-applicable"
    DENY_UNLESS_PERMIT = "deny-unless-permit"
    PERMIT_UNLESS_DENY = "permit-unless-deny"


class ObligationType(str, Enum):
    """Kinds of obligations a policy can attach."""

    LOG = "log"
    NOTIFY = "notify"
    TRANSFORM = "transform"
    CUSTOM = "custom"


class AdviceType(str, Enum):
    """Kinds of advice a policy can attach."""

    WARNING = "warning"
    INFO = "info"
    RECOMMENDATION = "recommendation"
    CUSTOM = "custom"


LOGICAL_OPERATORS = frozenset(op.value for op in LogicalOperator)


# =============================================================================
# Request Models
# =============================================================================


class Subject(BaseModel):
    """
    The user or system requesting access.

    Attributes:
        id: Subject identifier (required by the engine, may be empty at parse time)
        attributes: Arbitrary attributes (scalars, datetimes, lists, nested mappings)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default="", description="Subject identifier")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Subject attributes")


class Resource(BaseModel):
    """
    The thing being accessed.

    Attributes:
        id: Resource identifier
        type: Resource type, exposed as the synthetic "type" attribute
        attributes: Arbitrary resource attributes
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default="", description="Resource identifier")
    type: str = Field(default="", description="Resource type")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Resource attributes")


class Action(BaseModel):
    """The operation being performed on the resource."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default="", description="Action identifier")
    attributes: dict[str, Any] = Field(default_factory=dict, description="Action attributes")


class Environment(BaseModel):
    """Contextual information (time, network, session) about the request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    attributes: dict[str, Any] = Field(
        default_factory=dict,
        description="Environment attributes",
    )


class Request(BaseModel):
    """
    An authorization request.

    Requests are immutable. The attribute resolver produces an enhanced
    copy with provider attributes merged in; the original is never touched.

    Attributes:
        subject: Who is asking
        resource: What is being accessed
        action: What they want to do
        environment: Optional context
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    subject: Subject = Field(default_factory=Subject)
    resource: Resource = Field(default_factory=Resource)
    action: Action = Field(default_factory=Action)
    environment: Environment | None = Field(default=None)


# =============================================================================
# Condition Models
# =============================================================================


class AttributeReference(BaseModel):
    """
    Reference to an attribute inside a request.

    Attributes:
        category: subject, resource, action or environment
        attribute_id: Attribute name (wire key: attributeId)
        path: Optional dotted path into a nested mapping value
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    category: AttributeCategory
    attribute_id: str = Field(..., alias="attributeId", min_length=1)
    path: str | None = Field(default=None)


class ComparisonCondition(BaseModel):
    """
    Compares two operands with a comparison operator.

    The operator is kept as a plain string: unknown operators are accepted
    here and evaluate to False.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    operator: str = Field(..., min_length=1)
    left: "Operand" = Field(default=None)
    right: "Operand" = Field(default=None)

    @field_validator("operator", mode="before")
    @classmethod
    def unwrap_operator(cls, v: Any) -> Any:
        """Accept ComparisonOperator members as well as raw strings."""
        if isinstance(v, Enum):
            return v.value
        return v


class LogicalCondition(BaseModel):
    """Combines sub-conditions with and/or/not."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    operator: LogicalOperator
    conditions: list["Condition"] = Field(default_factory=list)


class FunctionCondition(BaseModel):
    """Calls a registered function with resolved arguments."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    function: str = Field(..., min_length=1)
    args: list["Operand"] = Field(default_factory=list)


def _condition_tag(value: Any) -> str | None:
    """Pick the condition shape for a model instance or raw mapping."""
    if isinstance(value, ComparisonCondition):
        return "comparison"
    if isinstance(value, LogicalCondition):
        return "logical"
    if isinstance(value, FunctionCondition):
        return "function"
    if isinstance(value, dict):
        if "function" in value:
            return "function"
        if "conditions" in value:
            return "logical"
        operator = value.get("operator")
        if isinstance(operator, Enum):
            operator = operator.value
        if operator in LOGICAL_OPERATORS:
            return "logical"
        if operator is not None:
            return "comparison"
    return None


def _operand_tag(value: Any) -> str:
    """Tell attribute references and nested conditions apart from literals."""
    if isinstance(value, AttributeReference):
        return "reference"
    if isinstance(value, (ComparisonCondition, LogicalCondition, FunctionCondition)):
        return "condition"
    if isinstance(value, dict):
        if "category" in value and ("attributeId" in value or "attribute_id" in value):
            return "reference"
        if "operator" in value or "function" in value:
            return "condition"
    return "literal"


Condition = Annotated[
    Union[
        Annotated[ComparisonCondition, Tag("comparison")],
        Annotated[LogicalCondition, Tag("logical")],
        Annotated[FunctionCondition, Tag("function")],
    ],
    Discriminator(
        _condition_tag,
        custom_error_type="invalid_condition",
        custom_error_message="Condition must have an 'operator' or a 'function' key",
    ),
]

Operand = Annotated[
    Union[
        Annotated[AttributeReference, Tag("reference")],
        Annotated[Condition, Tag("condition")],
        Annotated[Any, Tag("literal")],
    ],
    Discriminator(_operand_tag),
]

CONDITION_TYPES = (ComparisonCondition, LogicalCondition, FunctionCondition)

ComparisonCondition.model_rebuild()
LogicalCondition.model_rebuild()
FunctionCondition.model_rebuild()


# =============================================================================
# Policy Models
# =============================================================================


class PolicyTarget(BaseModel):
    """Per-category conditions deciding whether a policy is considered at all."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    subject: Condition | None = None
    resource: Condition | None = None
    action: Condition | None = None
    environment: Condition | None = None


class Obligation(BaseModel):
    """An action the caller must perform when the policy's effect applies."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Obligation identifier")
    type: ObligationType = Field(default=ObligationType.CUSTOM)
    parameters: dict[str, Any] | None = Field(default=None)


class Advice(BaseModel):
    """A non-binding suggestion attached to a matching policy."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Advice identifier")
    type: AdviceType = Field(default=AdviceType.CUSTOM)
    parameters: dict[str, Any] | None = Field(default=None)


class PolicyMetadata(BaseModel):
    """Bookkeeping fields; never consulted during evaluation."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    created_by: str | None = Field(default=None, alias="createdBy")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    modified_by: str | None = Field(default=None, alias="modifiedBy")
    modified_at: datetime | None = Field(default=None, alias="modifiedAt")
    tags: list[str] = Field(default_factory=list)


class Policy(BaseModel):
    """
    An attribute-based access control policy.

    Attributes:
        id: Unique policy identifier
        version: Policy version string
        effect: Permit or Deny, returned when the condition holds
        description: Optional human-readable description
        target: Optional per-category applicability gate
        condition: Optional condition tree (absent means always true)
        priority: Informational priority; never used to reorder policies
        obligations: Obligations returned with the policy's effect
        advice: Advice returned with the policy's effect
        metadata: Optional bookkeeping
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1)
    version: str = Field(default="1.0.0")
    effect: Effect
    description: str | None = Field(default=None)
    target: PolicyTarget | None = Field(default=None)
    condition: Condition | None = Field(default=None)
    priority: int | None = Field(default=None)
    obligations: list[Obligation] = Field(default_factory=list)
    advice: list[Advice] = Field(default_factory=list)
    metadata: PolicyMetadata | None = Field(default=None)


# =============================================================================
# Runtime Models
# =============================================================================


class PolicyResult(BaseModel):
    """
    Outcome of evaluating one applicable policy.

    Produced once per applicable policy and consumed by a combining algorithm.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    decision: Decision
    policy: Policy
    obligations: list[Obligation] = Field(default_factory=list)
    advice: list[Advice] = Field(default_factory=list)
    reason: str | None = Field(default=None)


class DecisionDetails(BaseModel):
    """Diagnostics attached to every authorization decision."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total_policies: int = Field(default=0, ge=0)
    applicable_policies: int = Field(default=0, ge=0)
    evaluation_time_ms: float = Field(default=0.0, ge=0)
    errors: list[str] = Field(default_factory=list)


class AuthorizationDecision(BaseModel):
    """
    The engine's final answer for one request.

    Attributes:
        decision: Permit, Deny, NotApplicable or Indeterminate
        obligations: Obligations from every evaluated policy result, in order
        advice: Advice from every evaluated policy result, in order
        matched_policies: Policies whose result was Permit or Deny
        evaluation_details: Counts, timing and collected errors
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    decision: Decision
    obligations: list[Obligation] = Field(default_factory=list)
    advice: list[Advice] = Field(default_factory=list)
    matched_policies: list[Policy] = Field(default_factory=list)
    evaluation_details: DecisionDetails = Field(default_factory=DecisionDetails)

    @property
    def permitted(self) -> bool:
        """Whether access should be granted."""
        return self.decision == Decision.PERMIT

    @property
    def errors(self) -> list[str]:
        """Errors collected while evaluating."""
        return self.evaluation_details.errors


# =============================================================================
# Configuration
# =============================================================================


class EngineConfig(BaseModel):
    """
    Engine configuration.

    Attributes:
        combining_algorithm: Name of the combining algorithm. Resolved at
            evaluation time; an unknown name yields Indeterminate decisions.
        enable_audit_log: Record every decision in the audit service
        enable_performance_metrics: Feed every decision to the metrics collector
        max_evaluation_time: Optional budget in milliseconds for one evaluation
        max_audit_logs: Number of audit entries kept in memory
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    combining_algorithm: str = Field(
        default=CombiningAlgorithm.DENY_OVERRIDES.value,
        alias="combiningAlgorithm",
        min_length=1,
    )
    enable_audit_log: bool = Field(default=True, alias="enableAuditLog")
    enable_performance_metrics: bool = Field(default=True, alias="enablePerformanceMetrics")
    max_evaluation_time: float | None = Field(default=None, alias="maxEvaluationTime", gt=0)
    max_audit_logs: int = Field(default=10_000, alias="maxAuditLogs", gt=0)

    @field_validator("combining_algorithm", mode="before")
    @classmethod
    def unwrap_algorithm(cls, v: Any) -> Any:
        """Accept CombiningAlgorithm members as well as raw strings."""
        if isinstance(v, Enum):
            return v.value
        return v


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def _parse_document(content: str, source: str) -> Any:
    """Parse YAML (and therefore JSON) text."""
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise PolicyLoadError(source=source, underlying_error=str(e)) from e


def _read_text(path: Path | str) -> tuple[str, str]:
    """Read a file, converting OS errors into PolicyLoadError."""
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8"), str(path)
    except OSError as e:
        raise PolicyLoadError(source=str(path), underlying_error=str(e)) from e


def load_policy_entries_from_string(content: str, source: str = "<string>") -> list[Any]:
    """
    Parse YAML or JSON text into raw (unvalidated) policy entries.

    Accepts a single policy mapping, a list of policies, or a mapping with
    a "policies" key holding the list.

    Raises:
        PolicyLoadError: If the text cannot be parsed or has another shape
    """
    data = _parse_document(content, source)

    if data is None:
        return []
    if isinstance(data, dict) and "policies" in data:
        data = data["policies"] or []
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise PolicyLoadError(
            source=source,
            underlying_error="expected a policy mapping or a list of policies",
        )
    return data


def load_policy_entries(path: Path | str) -> list[Any]:
    """Parse a YAML or JSON file into raw (unvalidated) policy entries."""
    content, source = _read_text(path)
    return load_policy_entries_from_string(content, source)


def load_policies_from_string(content: str, source: str = "<string>") -> list[Policy]:
    """
    Load policies from YAML or JSON text.

    Raises:
        PolicyLoadError: If the text cannot be parsed or a policy is invalid
    """
    entries = load_policy_entries_from_string(content, source)
    try:
        return [Policy.model_validate(entry) for entry in entries]
    except ValidationError as e:
        raise PolicyLoadError(source=source, underlying_error=str(e)) from e


def load_policies(path: Path | str) -> list[Policy]:
    """
    Load policies from a YAML or JSON file.

    Args:
        path: Path to the policy file

    Returns:
        Validated policies, in file order

    Raises:
        PolicyLoadError: If the file is unreadable or invalid
    """
    content, source = _read_text(path)
    return load_policies_from_string(content, source)


def load_request_from_string(content: str, source: str = "<string>") -> Request:
    """Load a request from YAML or JSON text."""
    data = _parse_document(content, source)
    try:
        return Request.model_validate(data or {})
    except ValidationError as e:
        raise PolicyLoadError(
            message=f"Failed to load request from {source}: {e}",
            source=source,
            underlying_error=str(e),
        ) from e


def load_request(path: Path | str) -> Request:
    """Load a request from a YAML or JSON file."""
    content, source = _read_text(path)
    return load_request_from_string(content, source)


def load_engine_config_from_string(content: str, source: str = "<string>") -> EngineConfig:
    """Load an EngineConfig from YAML text."""
    data = _parse_document(content, source)
    try:
        return EngineConfig.model_validate(data or {})
    except ValidationError as e:
        raise PolicyLoadError(
            message=f"Failed to load engine config from {source}: {e}",
            source=source,
            underlying_error=str(e),
        ) from e


def load_engine_config(path: Path | str) -> EngineConfig:
    """Load an EngineConfig from a YAML file."""
    content, source = _read_text(path)
    return load_engine_config_from_string(content, source)
