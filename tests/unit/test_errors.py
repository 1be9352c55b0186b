"""
Unit tests for error hierarchy.

Tests cover:
- Base VerdictError behavior
- Request, evaluation and attribute errors with context
- Policy loading and validation errors
- Helpers (get_error_message, wrap_error, format_error_for_user)
"""

import pytest

from verdict.errors import (
    ERROR_ATTRIBUTE_CATEGORY_MISMATCH,
    ERROR_COMBINING_UNKNOWN_ALGORITHM,
    ERROR_EVALUATION_FUNCTION,
    ERROR_EVALUATION_OPERATOR_ARITY,
    ERROR_EVALUATION_TIMEOUT,
    ERROR_POLICY_LOAD,
    ERROR_REQUEST_INVALID_FIELD,
    ERROR_REQUEST_MISSING_FIELD,
    ERROR_WRAPPED,
    AttributeResolutionError,
    CombiningAlgorithmError,
    ConfigurationError,
    EvaluationError,
    PolicyLoadError,
    PolicyValidationError,
    RequestValidationError,
    VerdictError,
    format_error_for_user,
    get_error_message,
    wrap_error,
)


class TestVerdictError:
    """Tests for base VerdictError."""

    def test_basic_error(self) -> None:
        """Create a basic error with message."""
        err = VerdictError(message="Something went wrong", code=9999)
        assert err.message == "Something went wrong"
        assert err.code == 9999
        assert err.suggestion is None
        assert err.context == {}

    def test_str_includes_code_and_suggestion(self) -> None:
        """String form carries code, message and suggestion."""
        err = VerdictError(message="Failed", code=1, suggestion="Try again")
        assert str(err) == "[E1] Failed\nSuggestion: Try again"

    def test_to_dict(self) -> None:
        """Errors serialize to a plain dictionary."""
        err = VerdictError(message="Failed", code=7, context={"key": "value"})
        data = err.to_dict()
        assert data["error_type"] == "VerdictError"
        assert data["code"] == 7
        assert data["context"] == {"key": "value"}

    def test_can_be_raised(self) -> None:
        """Errors behave like normal exceptions."""
        with pytest.raises(VerdictError):
            raise VerdictError(message="boom", code=1)


class TestRequestValidationError:
    """Tests for request errors."""

    def test_missing_field(self) -> None:
        """Missing fields read '<field> is required'."""
        err = RequestValidationError.missing_field("Subject ID")
        assert err.message == "Subject ID is required"
        assert err.code == ERROR_REQUEST_MISSING_FIELD
        assert err.context["field"] == "Subject ID"

    def test_invalid_field(self) -> None:
        """Invalid fields carry the reason."""
        err = RequestValidationError.invalid_field("request", "expected a mapping")
        assert err.message == "Invalid request: expected a mapping"
        assert err.code == ERROR_REQUEST_INVALID_FIELD


class TestEvaluationError:
    """Tests for evaluation errors."""

    def test_default_message(self) -> None:
        """A bare error gets a generic message."""
        err = EvaluationError()
        assert err.message == "Condition evaluation failed"

    def test_policy_id_in_context(self) -> None:
        """The policy id is copied into the context."""
        err = EvaluationError(message="x", policy_id="p1")
        assert err.context["policy_id"] == "p1"

    def test_arity(self) -> None:
        """Arity errors name the operator and counts."""
        err = EvaluationError.invalid_operator_arity("not", 1, 2)
        assert err.code == ERROR_EVALUATION_OPERATOR_ARITY
        assert "not operator expects 1" in err.message

    def test_function_error(self) -> None:
        """Function errors name the function."""
        err = EvaluationError.function_error("is_vip", "Function not registered")
        assert err.code == ERROR_EVALUATION_FUNCTION
        assert "is_vip" in err.message
        assert err.context["function_name"] == "is_vip"

    def test_timeout(self) -> None:
        """Timeouts report the budget."""
        err = EvaluationError.timeout(50)
        assert err.code == ERROR_EVALUATION_TIMEOUT
        assert "50ms" in err.message

    def test_malformed_policy(self) -> None:
        """Unparseable policies name the policy and the problem."""
        err = EvaluationError.malformed_policy("bad", "effect: Input should be 'Permit' or 'Deny'")
        assert err.message.startswith("Policy 'bad' could not be parsed: effect:")
        assert err.context["policy_id"] == "bad"
        assert "verdict validate" in err.suggestion


class TestOtherErrors:
    """Tests for attribute, combining, configuration and policy errors."""

    def test_category_mismatch(self) -> None:
        """Category mismatches carry both categories."""
        err = AttributeResolutionError.category_mismatch("subject", "resource", "docs")
        assert err.code == ERROR_ATTRIBUTE_CATEGORY_MISMATCH
        assert err.message == "Provider category mismatch: expected subject, got resource"
        assert err.context["provider_name"] == "docs"

    def test_unknown_algorithm(self) -> None:
        """Unknown algorithms suggest listing the supported ones."""
        err = CombiningAlgorithmError(algorithm="majority-vote")
        assert err.code == ERROR_COMBINING_UNKNOWN_ALGORITHM
        assert err.message == "Unknown combining algorithm: majority-vote"
        assert err.suggestion is not None

    def test_configuration_error(self) -> None:
        """Configuration errors name the field."""
        err = ConfigurationError(field_name="name", reason="must not be empty")
        assert "name" in err.message
        assert err.context["reason"] == "must not be empty"

    def test_policy_validation_error_joins_messages(self) -> None:
        """The default message joins every validation message."""
        err = PolicyValidationError(
            policy_id="p1",
            validation_errors=[
                {"field": "id", "message": "a"},
                {"field": "effect", "message": "b"},
            ],
        )
        assert err.message == "Policy validation failed: a, b"

    def test_policy_load_error(self) -> None:
        """Load errors name the source."""
        err = PolicyLoadError(source="policies.yaml", underlying_error="bad indent")
        assert err.code == ERROR_POLICY_LOAD
        assert err.message == "Failed to load policies from policies.yaml: bad indent"


class TestHelpers:
    """Tests for error helpers."""

    def test_get_error_message_verdict(self) -> None:
        """Verdict errors yield their bare message."""
        assert get_error_message(VerdictError(message="plain", code=1)) == "plain"

    def test_get_error_message_other(self) -> None:
        """Other exceptions yield str(), or their class name when empty."""
        assert get_error_message(ValueError("bad")) == "bad"
        assert get_error_message(KeyError()) == "KeyError"

    def test_wrap_error_passthrough(self) -> None:
        """Verdict errors are returned unchanged."""
        err = EvaluationError(message="x")
        assert wrap_error(err) is err

    def test_wrap_error_foreign(self) -> None:
        """Foreign exceptions are wrapped with their type recorded."""
        wrapped = wrap_error(RuntimeError("kaput"))
        assert wrapped.code == ERROR_WRAPPED
        assert wrapped.message == "kaput"
        assert wrapped.context["original_type"] == "RuntimeError"

    def test_format_for_user(self) -> None:
        """User formatting lists validation errors and the suggestion."""
        err = PolicyValidationError(
            policy_id="p1",
            validation_errors=[{"field": "effect", "message": "Policy effect is required"}],
            suggestion="Add an effect",
        )
        text = format_error_for_user(err)
        assert text.startswith("[E6001]")
        assert "  - effect: Policy effect is required" in text
        assert "policy_id: 'p1'" in text
        assert text.endswith("Suggestion: Add an effect")
