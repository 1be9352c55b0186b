"""
Built-in condition functions.

Every engine starts with these registered. Each takes the resolved argument
list, the enhanced request and the provider list, and returns a bool.
Missing or falsy arguments fall back to "" (text) or 0 (numbers).
"""

import math
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

from verdict.evaluation.operators import strict_equals, to_number, to_string


def _falsy(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)):
        return value == 0 or math.isnan(value)
    return isinstance(value, str) and not value


def _arg(args: list[Any], index: int) -> Any:
    return args[index] if index < len(args) else None


def _text_arg(args: list[Any], index: int) -> str:
    value = _arg(args, index)
    return "" if _falsy(value) else to_string(value)


def _number_arg(args: list[Any], index: int) -> float:
    value = _arg(args, index)
    return 0.0 if _falsy(value) else to_number(value)


def _epoch_ms(value: Any) -> float | None:
    if isinstance(value, datetime):
        return value.timestamp() * 1000
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC).timestamp() * 1000
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.timestamp() * 1000
    return None


# =============================================================================
# Time
# =============================================================================


def is_current_time(args: list[Any], request: Any = None, providers: Any = None) -> bool:
    """True if the first argument is the current instant, to the millisecond."""
    target = _epoch_ms(_arg(args, 0))
    if target is None:
        return False
    now = datetime.now(UTC).timestamp() * 1000
    return int(now) == int(target)


def is_current_date(args: list[Any], request: Any = None, providers: Any = None) -> bool:
    """True if the first argument is today's UTC date (YYYY-MM-DD)."""
    today = datetime.now(UTC).date().isoformat()
    return today == _text_arg(args, 0)


# =============================================================================
# Strings
# =============================================================================


def string_length_equals(args: list[Any], request: Any = None, providers: Any = None) -> bool:
    return len(_text_arg(args, 0)) == _number_arg(args, 1)


def is_upper_case(args: list[Any], request: Any = None, providers: Any = None) -> bool:
    text = _text_arg(args, 0)
    return text == text.upper()


def is_lower_case(args: list[Any], request: Any = None, providers: Any = None) -> bool:
    text = _text_arg(args, 0)
    return text == text.lower()


# =============================================================================
# Lists
# =============================================================================


def array_size_equals(args: list[Any], request: Any = None, providers: Any = None) -> bool:
    items = _arg(args, 0)
    return isinstance(items, list) and len(items) == _number_arg(args, 1)


def array_contains(args: list[Any], request: Any = None, providers: Any = None) -> bool:
    items = _arg(args, 0)
    value = _arg(args, 1)
    return isinstance(items, list) and any(strict_equals(item, value) for item in items)


BUILTIN_FUNCTIONS: dict[str, Callable[..., bool]] = {
    "is_current_time": is_current_time,
    "is_current_date": is_current_date,
    "string_length_equals": string_length_equals,
    "is_upper_case": is_upper_case,
    "is_lower_case": is_lower_case,
    "array_size_equals": array_size_equals,
    "array_contains": array_contains,
}
