"""
Unit tests for condition functions.

Tests cover:
- Built-in functions and their argument fallbacks
- FunctionRegistry registration, lookup and reset
"""

from datetime import UTC, datetime, timedelta

import pytest

from verdict.errors import EvaluationError
from verdict.functions import BUILTIN_FUNCTIONS, FunctionRegistry
from verdict.functions.builtins import (
    array_contains,
    array_size_equals,
    is_current_date,
    is_current_time,
    is_lower_case,
    is_upper_case,
    string_length_equals,
)


class TestBuiltins:
    """Tests for built-in functions."""

    def test_current_date(self) -> None:
        """Today's UTC date matches, yesterday's does not."""
        today = datetime.now(UTC).date()
        assert is_current_date([today.isoformat()])
        assert not is_current_date([(today - timedelta(days=1)).isoformat()])
        assert not is_current_date([])

    def test_current_time_rejects_past(self) -> None:
        """A moment an hour ago is not the current time."""
        assert not is_current_time([datetime.now(UTC) - timedelta(hours=1)])
        assert not is_current_time(["not a time"])

    def test_string_length(self) -> None:
        """string_length_equals compares the text length."""
        assert string_length_equals(["abcd", 4])
        assert string_length_equals(["abcd", "4"])
        assert not string_length_equals(["abcd", 3])
        assert string_length_equals([None, 0])

    def test_case(self) -> None:
        """Case checks ignore characters without case."""
        assert is_upper_case(["ABC-1"])
        assert not is_upper_case(["AbC"])
        assert is_lower_case(["abc-1"])
        assert is_lower_case([])

    def test_array_size(self) -> None:
        """array_size_equals requires a list."""
        assert array_size_equals([["a", "b"], 2])
        assert not array_size_equals(["ab", 2])

    def test_array_contains_strict(self) -> None:
        """array_contains uses strict equality."""
        assert array_contains([["admin", "user"], "admin"])
        assert not array_contains([[1, 2], "1"])
        assert not array_contains(["admin", "admin"])

    def test_registry_of_builtins(self) -> None:
        """Every built-in is exported by name."""
        assert set(BUILTIN_FUNCTIONS) == {
            "is_current_time",
            "is_current_date",
            "string_length_equals",
            "is_upper_case",
            "is_lower_case",
            "array_size_equals",
            "array_contains",
        }


class TestFunctionRegistry:
    """Tests for the function registry."""

    def test_builtins_registered(self) -> None:
        """A new registry has the built-ins."""
        registry = FunctionRegistry()
        assert registry.has("array_contains")
        assert len(registry) == len(BUILTIN_FUNCTIONS)

    def test_without_builtins(self) -> None:
        """Built-ins can be left out."""
        assert len(FunctionRegistry(include_builtins=False)) == 0

    def test_register_and_get(self) -> None:
        """Registered functions can be looked up."""
        registry = FunctionRegistry()

        def is_vip(args, request=None, providers=None) -> bool:
            return True

        registry.register("is_vip", is_vip)
        assert registry.get("is_vip") is is_vip
        assert "is_vip" in registry
        assert not registry.is_builtin("is_vip")

    def test_register_overrides(self) -> None:
        """Registering an existing name replaces it."""
        registry = FunctionRegistry()
        replacement = lambda args, request=None, providers=None: False  # noqa: E731
        registry.register("is_upper_case", replacement)
        assert registry.get("is_upper_case") is replacement

    def test_register_invalid(self) -> None:
        """Empty names and non-callables are rejected."""
        registry = FunctionRegistry()
        with pytest.raises(ValueError):
            registry.register("", lambda args, request=None, providers=None: True)
        with pytest.raises(ValueError):
            registry.register("x", "not callable")  # type: ignore[arg-type]

    def test_get_unknown(self) -> None:
        """Unknown names raise EvaluationError; get_optional returns None."""
        registry = FunctionRegistry()
        with pytest.raises(EvaluationError):
            registry.get("missing")
        assert registry.get_optional("missing") is None

    def test_remove(self) -> None:
        """remove reports whether the function existed."""
        registry = FunctionRegistry()
        assert registry.remove("is_upper_case")
        assert not registry.remove("is_upper_case")

    def test_clear_custom_and_reset(self) -> None:
        """clear_custom keeps built-ins; reset restores them."""
        registry = FunctionRegistry()
        registry.register("custom", lambda args, request=None, providers=None: True)
        registry.clear_custom()
        assert not registry.has("custom")
        assert registry.has("array_contains")

        registry.clear_all()
        assert len(registry) == 0
        registry.reset()
        assert registry.list_functions() == sorted(BUILTIN_FUNCTIONS)

    def test_iteration_sorted(self) -> None:
        """Iteration yields sorted names."""
        registry = FunctionRegistry(include_builtins=False)
        registry.register("b", lambda args, request=None, providers=None: True)
        registry.register("a", lambda args, request=None, providers=None: True)
        assert list(registry) == ["a", "b"]
