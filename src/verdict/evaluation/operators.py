"""
Comparison operators for condition evaluation.

Each comparison operator maps to a two-argument predicate over already
resolved operand values. The coercions follow the loose scripting-language
rules policy authors expect:

- Ordering operators coerce both sides to numbers (unparseable text is NaN,
  and every comparison with NaN is False)
- contains/starts_with/ends_with/matches_regex coerce both sides to text
- equals/not_equals never coerce: "1" does not equal 1 and True does not
  equal 1
- in/not_in need a list on the right; anything else is simply False

Unknown operators evaluate to False instead of raising.
"""

import math
import re
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

from verdict.errors import EvaluationError
from verdict.schema import ComparisonOperator

_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INFINITIES = {"Infinity": math.inf, "+Infinity": math.inf, "-Infinity": -math.inf}


# =============================================================================
# Coercions
# =============================================================================


def to_number(value: Any) -> float:
    """
    Coerce a value to a float.

    Booleans become 1/0, empty or blank text becomes 0, datetimes become epoch
    milliseconds, single-item lists coerce their item, and anything else that
    is not a number yields NaN.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if value is None:
        return math.nan
    if isinstance(value, datetime):
        return value.timestamp() * 1000
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC).timestamp() * 1000
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _NUMBER_PATTERN.match(text):
            return float(text)
        return _INFINITIES.get(text, math.nan)
    if isinstance(value, (list, tuple)):
        if not value:
            return 0.0
        if len(value) == 1:
            return to_number(to_string(value[0]) if value[0] is not None else "")
        return math.nan
    return math.nan


def to_string(value: Any) -> str:
    """Coerce a value to text ("true"/"false", "null", integral floats without ".0")."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None else to_string(item) for item in value)
    return str(value)


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without type coercion; booleans only ever equal booleans."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if type(left) is not type(right) and not (
        isinstance(left, type(right)) or isinstance(right, type(left))
    ):
        return False
    return bool(left == right)


# =============================================================================
# Operators
# =============================================================================


def _is_in(left: Any, right: Any) -> bool:
    if not isinstance(right, (list, tuple)):
        return False
    return any(strict_equals(left, item) for item in right)


def _not_in(left: Any, right: Any) -> bool:
    if not isinstance(right, (list, tuple)):
        return False
    return not any(strict_equals(left, item) for item in right)


def _matches_regex(left: Any, right: Any) -> bool:
    pattern = to_string(right)
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise EvaluationError(
            message=f"Invalid regular expression '{pattern}': {e}",
            context={"pattern": pattern},
        ) from e
    return compiled.search(to_string(left)) is not None


COMPARISON_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    ComparisonOperator.EQUALS.value: strict_equals,
    ComparisonOperator.NOT_EQUALS.value: lambda a, b: not strict_equals(a, b),
    ComparisonOperator.GREATER_THAN.value: lambda a, b: to_number(a) > to_number(b),
    ComparisonOperator.GREATER_THAN_OR_EQUAL.value: lambda a, b: to_number(a) >= to_number(b),
    ComparisonOperator.LESS_THAN.value: lambda a, b: to_number(a) < to_number(b),
    ComparisonOperator.LESS_THAN_OR_EQUAL.value: lambda a, b: to_number(a) <= to_number(b),
    ComparisonOperator.IN.value: _is_in,
    ComparisonOperator.NOT_IN.value: _not_in,
    ComparisonOperator.CONTAINS.value: lambda a, b: to_string(b) in to_string(a),
    ComparisonOperator.STARTS_WITH.value: lambda a, b: to_string(a).startswith(to_string(b)),
    ComparisonOperator.ENDS_WITH.value: lambda a, b: to_string(a).endswith(to_string(b)),
    ComparisonOperator.MATCHES_REGEX.value: _matches_regex,
}

EXISTENCE_OPERATORS = frozenset({
    ComparisonOperator.EXISTS.value,
    ComparisonOperator.NOT_EXISTS.value,
})


def compare(operator: str, left: Any, right: Any) -> bool:
    """
    Apply a comparison operator to two resolved values.

    Args:
        operator: Operator name (e.g., "greater_than")
        left: Resolved left operand
        right: Resolved right operand

    Returns:
        The comparison result; False for unknown operators

    Raises:
        EvaluationError: If matches_regex is given an invalid pattern
    """
    predicate = COMPARISON_OPERATORS.get(operator)
    if predicate is None:
        return False
    return predicate(left, right)
