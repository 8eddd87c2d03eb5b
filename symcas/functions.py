"""
Native functions for symcas.

A function table maps a name to its arity and a handler. Handlers receive
the already evaluated arguments and return an Expr:

    - a Constant when every argument is a Constant
    - the unevaluated Function when some argument is still symbolic
    - SymError(UNDEFINED) on a domain error such as ln(0)

Handlers are usually built from a float function with numeric_function:

    TABLE = {
        "cbrt": numeric_function("cbrt", 1, lambda x: math.copysign(abs(x) ** (1 / 3), x)),
    }
    engine = Engine().with_functions(TABLE)
"""

import math
import random
from typing import Callable, Dict, Optional, Tuple

from .errors import ErrorKind, SymError
from .expr import Constant, Expr, Function
from .number import Irrational, Number, Rational

# Type aliases
FunctionHandler = Callable[[Tuple[Expr, ...]], Expr]
FunctionEntry = Tuple[int, FunctionHandler]
FunctionTable = Dict[str, FunctionEntry]
ExactHandler = Callable[..., Optional[Number]]

ZERO = Rational(0)
ONE = Rational(1)


# ============================================================
# Handler builders
# ============================================================

def numeric_function(
    name: str,
    arity: int,
    f: Callable[..., float],
    exact: Optional[ExactHandler] = None,
) -> FunctionEntry:
    """
    Create a table entry from a float function.

    Args:
        name: Function name, used for the unevaluated form and errors
        arity: Number of arguments
        f: Float implementation, e.g. math.sin
        exact: Optional shortcut taking the argument Numbers; returns an
            exact Number, or None to fall through to f

    Examples:
        numeric_function("sin", 1, math.sin)
        numeric_function("ln", 1, math.log, exact=lambda x: ZERO if x == ONE else None)
    """
    def handler(args: Tuple[Expr, ...]) -> Expr:
        if not all(isinstance(arg, Constant) for arg in args):
            return Function(name, args)
        values = [arg.value for arg in args]
        if exact is not None:
            result = exact(*values)
            if result is not None:
                return Constant(result)
        try:
            result = f(*(float(v) for v in values))
        except (ValueError, ZeroDivisionError, OverflowError) as e:
            raise SymError(ErrorKind.UNDEFINED, f"{name}: {e}") from None
        if math.isnan(result) or math.isinf(result):
            raise SymError(ErrorKind.UNDEFINED, f"{name}: {result}")
        return Constant(Irrational(result))
    return arity, handler


def zero_at_zero(x: Number) -> Optional[Number]:
    """Exact shortcut for functions with f(0) = 0 (sin, tan, asin, atan)."""
    return ZERO if x.is_zero() else None


def integer_root(k: int, n: int) -> Optional[int]:
    """Exact integer n-th root of k, or None if k is not a perfect power."""
    if k < 0:
        if n % 2 == 0:
            return None
        r = integer_root(-k, n)
        return None if r is None else -r
    if n == 2:
        r = math.isqrt(k)
        return r if r * r == k else None
    guess = round(k ** (1.0 / n))
    for r in (guess - 1, guess, guess + 1):
        if r >= 0 and r ** n == k:
            return r
    return None


def exact_root(degree: Number, value: Number) -> Optional[Number]:
    """Exact n-th root of a Rational when numerator and denominator are perfect powers."""
    if not (isinstance(degree, Rational) and degree.is_integer() and degree.numerator > 0):
        return None
    if not isinstance(value, Rational):
        return None
    n = degree.numerator
    num = integer_root(value.numerator, n)
    den = integer_root(value.denominator, n)
    if num is None or den is None:
        return None
    return Rational(num, den)


def _root(degree: float, value: float) -> float:
    # Odd integer roots of negative values stay real
    if value < 0 and float(degree).is_integer() and int(degree) % 2 == 1:
        return -math.pow(-value, 1.0 / degree)
    return math.pow(value, 1.0 / degree)


def _exact_log(base: Number, value: Number) -> Optional[Number]:
    if value == ONE and not base.is_negative() and not base.is_zero() and base != ONE:
        return ZERO
    return None


def _exact_atan2(y: Number, x: Number) -> Optional[Number]:
    if y.is_zero() and not x.is_zero() and not x.is_negative():
        return ZERO
    return None


# ============================================================
# Built-in table
# ============================================================

BUILTIN_FUNCTIONS: FunctionTable = {
    "ln": numeric_function("ln", 1, math.log, exact=lambda x: ZERO if x == ONE else None),
    "log": numeric_function("log", 2, lambda b, x: math.log(x, b), exact=_exact_log),
    "sqrt": numeric_function("sqrt", 1, math.sqrt,
                             exact=lambda x: exact_root(Rational(2), x)),
    "root": numeric_function("root", 2, _root, exact=exact_root),
    "sin": numeric_function("sin", 1, math.sin, exact=zero_at_zero),
    "cos": numeric_function("cos", 1, math.cos, exact=lambda x: ONE if x.is_zero() else None),
    "tan": numeric_function("tan", 1, math.tan, exact=zero_at_zero),
    "asin": numeric_function("asin", 1, math.asin, exact=zero_at_zero),
    "acos": numeric_function("acos", 1, math.acos, exact=lambda x: ZERO if x == ONE else None),
    "atan": numeric_function("atan", 1, math.atan, exact=zero_at_zero),
    "atan2": numeric_function("atan2", 2, math.atan2, exact=_exact_atan2),
    "rand": numeric_function("rand", 0, random.random),
}
