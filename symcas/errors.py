"""
Error types for symcas.

Every failure in parsing, tree building and evaluation is raised as a
SymError carrying an ErrorKind, so callers can branch on the kind:

    try:
        expr = engine.parse("(1+2")
    except SymError as e:
        if e.kind is ErrorKind.PARENTHESES_MISMATCH:
            ...
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """The kinds of failure the engine can report."""
    STACK_EMPTY = "stack empty"
    NOT_A_NUMBER = "not a number"
    INVALID_OP = "invalid operator"
    INVALID_SIGN = "invalid sign"
    UNKNOWN_FUNCTION = "unknown function"
    INVALID_FUNCTION_ARG_COUNT = "invalid function argument count"
    PARENTHESES_MISMATCH = "parentheses mismatch"
    STACK_NOT_LENGTH_ONE = "malformed expression"
    INCONVERTIBLE = "inconvertible"
    UNDEFINED = "undefined"
    NESTING_TOO_DEEP = "nesting too deep"


class SymError(Exception):
    """Raised by the core with a typed ErrorKind and an optional detail."""

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None):
        self.kind = kind
        self.detail = detail
        message = kind.value if detail is None else f"{kind.value}: {detail}"
        super().__init__(message)

    def __repr__(self) -> str:
        if self.detail is None:
            return f"SymError({self.kind.name})"
        return f"SymError({self.kind.name}, {self.detail!r})"
