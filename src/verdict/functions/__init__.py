"""Condition functions: the registry and the built-in set."""

from verdict.functions.builtins import BUILTIN_FUNCTIONS
from verdict.functions.registry import ConditionFunction, FunctionRegistry

__all__ = ["BUILTIN_FUNCTIONS", "ConditionFunction", "FunctionRegistry"]
