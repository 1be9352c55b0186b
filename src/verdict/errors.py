"""
Exception hierarchy for Verdict.

All Verdict exceptions inherit from VerdictError, allowing callers to catch
all Verdict-specific exceptions with a single except clause.

Exception Categories:
    - RequestValidationError: Request is missing required identifiers
    - EvaluationError: A condition could not be evaluated
    - AttributeResolutionError: An attribute provider misbehaved
    - CombiningAlgorithmError: Unknown or broken combining algorithm
    - ConfigurationError: Invalid engine configuration
    - PolicyValidationError / PolicyLoadError: Malformed or unreadable policies

How errors surface:
    Errors that can be localized to one policy or one provider are caught
    where they happen and show up as a log entry plus a string in the
    decision's error list. Only request validation and combining failures
    are engine-fatal, and even those become an Indeterminate decision.
    Engine.evaluate never raises.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Request errors: 1xxx
ERROR_REQUEST_MISSING_FIELD = 1001
ERROR_REQUEST_INVALID_FIELD = 1002

# Evaluation errors: 2xxx
ERROR_EVALUATION_FAILED = 2001
ERROR_EVALUATION_INVALID_CONDITION = 2002
ERROR_EVALUATION_UNKNOWN_OPERATOR = 2003
ERROR_EVALUATION_OPERATOR_ARITY = 2004
ERROR_EVALUATION_FUNCTION = 2005
ERROR_EVALUATION_TIMEOUT = 2006

# Attribute resolution errors: 3xxx
ERROR_ATTRIBUTE_PROVIDER_FAILED = 3001
ERROR_ATTRIBUTE_CATEGORY_MISMATCH = 3002

# Combining algorithm errors: 4xxx
ERROR_COMBINING_UNKNOWN_ALGORITHM = 4001

# Configuration errors: 5xxx
ERROR_CONFIGURATION_INVALID = 5001

# Policy errors: 6xxx
ERROR_POLICY_VALIDATION = 6001
ERROR_POLICY_LOAD = 6002

# Fallback for wrapped non-Verdict exceptions
ERROR_WRAPPED = 9001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class VerdictError(Exception):
    """
    Base exception for all Verdict errors.

    All Verdict exceptions inherit from this class, providing:
    - Consistent error code for programmatic handling
    - Human-readable message
    - Optional suggestion for resolution
    - Optional context dict for debugging

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Request Errors
# =============================================================================


@dataclass
class RequestValidationError(VerdictError):
    """
    Raised when a request is structurally invalid.

    Attributes:
        field_name: The request field that failed validation (e.g., "Subject ID")
        reason: Why the field is invalid, empty when it is simply missing
    """

    field_name: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            if self.reason:
                self.message = f"Invalid {self.field_name}: {self.reason}"
            else:
                self.message = f"{self.field_name} is required"
        if self.code == 0:
            self.code = (
                ERROR_REQUEST_INVALID_FIELD if self.reason else ERROR_REQUEST_MISSING_FIELD
            )
        self.context["field"] = self.field_name

    @classmethod
    def missing_field(cls, field_name: str) -> "RequestValidationError":
        """Create an error for a missing required field."""
        return cls(field_name=field_name)

    @classmethod
    def invalid_field(cls, field_name: str, reason: str) -> "RequestValidationError":
        """Create an error for a field with an invalid value."""
        return cls(field_name=field_name, reason=reason)


# =============================================================================
# Evaluation Errors
# =============================================================================


@dataclass
class EvaluationError(VerdictError):
    """
    Raised when a condition cannot be evaluated.

    Fatal to the single policy being evaluated: the engine records that
    policy as Indeterminate and keeps going with its siblings.

    Attributes:
        policy_id: ID of the policy being evaluated, when known
    """

    policy_id: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Condition evaluation failed"
        if self.code == 0:
            self.code = ERROR_EVALUATION_FAILED
        if self.policy_id is not None:
            self.context["policy_id"] = self.policy_id

    @classmethod
    def invalid_condition(cls, condition: Any, policy_id: str | None = None) -> "EvaluationError":
        """Create an error for a value that is not a condition."""
        return cls(
            message="Invalid condition format",
            code=ERROR_EVALUATION_INVALID_CONDITION,
            policy_id=policy_id,
            context={"condition": repr(condition)},
        )

    @classmethod
    def malformed_policy(cls, policy_id: str, reason: str) -> "EvaluationError":
        """Create an error for a policy mapping that does not parse."""
        return cls(
            message=f"Policy '{policy_id}' could not be parsed: {reason}",
            code=ERROR_EVALUATION_INVALID_CONDITION,
            policy_id=policy_id,
            suggestion="Run `verdict validate` on the policy file to see every problem",
        )

    @classmethod
    def unknown_operator(cls, operator: str, policy_id: str | None = None) -> "EvaluationError":
        """Create an error for an unsupported logical operator."""
        return cls(
            message=f"Unknown logical operator: {operator}",
            code=ERROR_EVALUATION_UNKNOWN_OPERATOR,
            policy_id=policy_id,
            context={"operator": operator},
        )

    @classmethod
    def invalid_operator_arity(
        cls,
        operator: str,
        expected: int | str,
        actual: int,
        policy_id: str | None = None,
    ) -> "EvaluationError":
        """Create an error for a logical operator with the wrong number of operands."""
        return cls(
            message=f"{operator} operator expects {expected} condition(s), got {actual}",
            code=ERROR_EVALUATION_OPERATOR_ARITY,
            policy_id=policy_id,
            context={"operator": operator, "expected": expected, "actual": actual},
        )

    @classmethod
    def function_error(
        cls,
        function_name: str,
        reason: str,
        policy_id: str | None = None,
    ) -> "EvaluationError":
        """Create an error for a function condition that could not run."""
        return cls(
            message=f"Function '{function_name}' evaluation failed: {reason}",
            code=ERROR_EVALUATION_FUNCTION,
            policy_id=policy_id,
            suggestion="Register the function on the engine before evaluating",
            context={"function_name": function_name, "reason": reason},
        )

    @classmethod
    def timeout(cls, limit_ms: float) -> "EvaluationError":
        """Create an error for an evaluation that exceeded its time budget."""
        return cls(
            message=f"Evaluation exceeded max_evaluation_time of {limit_ms:g}ms",
            code=ERROR_EVALUATION_TIMEOUT,
            context={"max_evaluation_time": limit_ms},
        )


# =============================================================================
# Attribute Resolution Errors
# =============================================================================


@dataclass
class AttributeResolutionError(VerdictError):
    """
    Raised when an attribute provider fails or is misconfigured.

    Attributes:
        category: Attribute category the provider serves
        entity_id: ID of the entity whose attributes were requested
        provider_name: Name of the provider involved
    """

    category: str = ""
    entity_id: str = ""
    provider_name: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Failed to resolve attributes from {self.provider_name} "
                f"for {self.category}:{self.entity_id}"
            )
        if self.code == 0:
            self.code = ERROR_ATTRIBUTE_PROVIDER_FAILED
        self.context.update({
            "category": self.category,
            "entity_id": self.entity_id,
            "provider_name": self.provider_name,
        })

    @classmethod
    def category_mismatch(
        cls,
        expected: str,
        actual: str,
        provider_name: str,
    ) -> "AttributeResolutionError":
        """Create an error for a provider registered under the wrong category."""
        return cls(
            message=f"Provider category mismatch: expected {expected}, got {actual}",
            code=ERROR_ATTRIBUTE_CATEGORY_MISMATCH,
            category=expected,
            entity_id="N/A",
            provider_name=provider_name,
        )


# =============================================================================
# Combining Algorithm Errors
# =============================================================================


@dataclass
class CombiningAlgorithmError(VerdictError):
    """Raised when a combining algorithm cannot be resolved."""

    algorithm: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unknown combining algorithm: {self.algorithm}"
        if self.code == 0:
            self.code = ERROR_COMBINING_UNKNOWN_ALGORITHM
        if not self.suggestion:
            self.suggestion = "Run 'verdict algorithms' to list supported algorithms"
        self.context["algorithm"] = self.algorithm


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigurationError(VerdictError):
    """Raised when engine configuration is invalid."""

    field_name: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration for {self.field_name}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_CONFIGURATION_INVALID
        self.context.update({"field": self.field_name, "reason": self.reason})


# =============================================================================
# Policy Errors
# =============================================================================


@dataclass
class PolicyValidationError(VerdictError):
    """
    Raised when one or more policies fail validation.

    Attributes:
        policy_id: ID of the offending policy ("unknown" when absent)
        validation_errors: List of {"field", "message"} entries
    """

    policy_id: str = ""
    validation_errors: list[dict[str, str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            joined = ", ".join(e.get("message", "") for e in self.validation_errors)
            self.message = f"Policy validation failed: {joined}"
        if self.code == 0:
            self.code = ERROR_POLICY_VALIDATION
        self.context["policy_id"] = self.policy_id


@dataclass
class PolicyLoadError(VerdictError):
    """Raised when policies or requests cannot be read or parsed."""

    source: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to load policies from {self.source}"
            if self.underlying_error:
                self.message += f": {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_POLICY_LOAD
        self.context.update({
            "source": self.source,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Helpers
# =============================================================================


def get_error_message(error: BaseException) -> str:
    """Extract a plain message from any exception."""
    if isinstance(error, VerdictError):
        return error.message
    return str(error) or error.__class__.__name__


def wrap_error(error: BaseException) -> VerdictError:
    """Wrap an arbitrary exception into a VerdictError, passing Verdict errors through."""
    if isinstance(error, VerdictError):
        return error
    return VerdictError(
        message=get_error_message(error),
        code=ERROR_WRAPPED,
        context={"original_type": error.__class__.__name__},
    )


def format_error_for_user(error: VerdictError) -> str:
    """Render an error with its validation details and context for terminal output."""
    message = f"[E{error.code}] {error.message}"

    if isinstance(error, PolicyValidationError) and error.validation_errors:
        message += "\nValidation errors:\n"
        message += "\n".join(
            f"  - {e.get('field', '')}: {e.get('message', '')}" for e in error.validation_errors
        )

    context_lines = [
        f"  {key}: {value!r}"
        for key, value in error.context.items()
        if value not in (None, "")
    ]
    if context_lines:
        message += "\nContext:\n" + "\n".join(context_lines)

    if error.suggestion:
        message += f"\nSuggestion: {error.suggestion}"

    return message
