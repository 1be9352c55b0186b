"""
Function registry for Verdict.

Function conditions in policies refer to functions by name. The registry
maps those names to callables and comes pre-loaded with the built-ins from
verdict.functions.builtins.

Design:
    - One registry per engine; no process-wide singleton
    - Registration replaces any function already registered under the name
    - Mutation is lock-guarded and copy-on-write, so lookups during an
      in-flight evaluation see a consistent snapshot

Usage:
    registry = FunctionRegistry()
    registry.register("is_weekday", lambda args, request, providers: ...)
    fn = registry.get("is_weekday")
"""

import logging
import threading
from collections.abc import Awaitable, Callable, Iterator
from typing import Any

from verdict.errors import EvaluationError
from verdict.functions.builtins import BUILTIN_FUNCTIONS

logger = logging.getLogger(__name__)

ConditionFunction = Callable[..., bool | Awaitable[bool]]
"""(args, request, providers) -> bool, or an awaitable resolving to bool."""


class FunctionRegistry:
    """
    Registry for looking up condition functions by name.

    Attributes:
        _functions: Internal mapping of function names to callables
    """

    def __init__(self, include_builtins: bool = True) -> None:
        """
        Initialize the registry.

        Args:
            include_builtins: Pre-register the built-in functions
        """
        self._lock = threading.Lock()
        self._functions: dict[str, ConditionFunction] = (
            dict(BUILTIN_FUNCTIONS) if include_builtins else {}
        )

    def register(self, name: str, fn: ConditionFunction) -> None:
        """
        Register a function.

        Args:
            name: Name policies use to call the function
            fn: Callable taking (args, request, providers)

        Raises:
            ValueError: If the name is empty or fn is not callable
        """
        if not name:
            msg = "Function must have a non-empty name"
            raise ValueError(msg)
        if not callable(fn):
            msg = f"Function '{name}' is not callable"
            raise ValueError(msg)

        with self._lock:
            updated = dict(self._functions)
            updated[name] = fn
            self._functions = updated
        logger.debug("Function registered: %s", name)

    def get(self, name: str) -> ConditionFunction:
        """
        Look up a function by name.

        Raises:
            EvaluationError: If no function with that name is registered
        """
        fn = self._functions.get(name)
        if fn is None:
            raise EvaluationError.function_error(name, "Function not registered")
        return fn

    def get_optional(self, name: str) -> ConditionFunction | None:
        """Look up a function by name, returning None if not found."""
        return self._functions.get(name)

    def has(self, name: str) -> bool:
        return name in self._functions

    def remove(self, name: str) -> bool:
        """
        Remove a function.

        Returns:
            True if the function was removed, False if it wasn't registered
        """
        with self._lock:
            if name not in self._functions:
                return False
            updated = dict(self._functions)
            del updated[name]
            self._functions = updated
        logger.debug("Function removed: %s", name)
        return True

    def list_functions(self) -> list[str]:
        """All registered function names, sorted."""
        return sorted(self._functions)

    def is_builtin(self, name: str) -> bool:
        """Whether the name belongs to a built-in (registered or not)."""
        return name in BUILTIN_FUNCTIONS

    def clear_custom(self) -> None:
        """Remove every function that is not a built-in."""
        with self._lock:
            self._functions = {
                name: fn for name, fn in self._functions.items() if name in BUILTIN_FUNCTIONS
            }

    def clear_all(self) -> None:
        """Remove every function, built-ins included."""
        with self._lock:
            self._functions = {}

    def reset(self) -> None:
        """Restore the built-in functions and drop everything else."""
        with self._lock:
            self._functions = dict(BUILTIN_FUNCTIONS)

    def __len__(self) -> int:
        return len(self._functions)

    def __iter__(self) -> Iterator[str]:
        return iter(self.list_functions())

    def __contains__(self, name: Any) -> bool:
        return name in self._functions

    def __repr__(self) -> str:
        return f"<FunctionRegistry: [{', '.join(self.list_functions())}]>"
