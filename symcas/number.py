"""
Number model for symcas.

Numbers are either exact fractions (Rational) or floating point
approximations (Irrational):

    Rational(1, 2) + Rational(1, 2)   # => Rational(1, 1)
    Rational(1, 1) + Irrational(1.0)  # => Irrational(2.0)

Two Rationals combine exactly and are always reduced to lowest terms.
Anything involving an Irrational is computed in floating point. When an
exact result no longer fits in a signed 64-bit numerator or denominator it
falls back to an Irrational.
"""

import math
from typing import Union

from .errors import ErrorKind, SymError

INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1

NumericType = Union[int, float]

DIGITS = "0123456789"


def _fits(value: int) -> bool:
    return INT_MIN <= value <= INT_MAX


class Number:
    """Base class for Rational and Irrational."""

    __slots__ = ()

    @staticmethod
    def of(value: NumericType) -> 'Number':
        """Wrap a Python int or float."""
        if isinstance(value, bool):
            raise TypeError("booleans are not numbers")
        if isinstance(value, int):
            return Rational.checked(value, 1)
        if isinstance(value, float):
            return Irrational(value)
        raise TypeError(f"cannot convert {type(value).__name__} to a Number")

    def is_integer(self) -> bool:
        raise NotImplementedError

    def is_zero(self) -> bool:
        return float(self) == 0.0

    def is_negative(self) -> bool:
        return float(self) < 0.0

    def power(self, other: 'Number') -> 'Number':
        """Exponentiation, always computed in floating point."""
        return Irrational(math.pow(float(self), float(other)))

    def __float__(self) -> float:
        raise NotImplementedError

    def __add__(self, other: 'Number') -> 'Number':
        if not isinstance(other, Number):
            return NotImplemented
        if isinstance(self, Rational) and isinstance(other, Rational):
            return Rational.checked(
                self.numerator * other.denominator + other.numerator * self.denominator,
                self.denominator * other.denominator,
            )
        return Irrational(float(self) + float(other))

    def __sub__(self, other: 'Number') -> 'Number':
        if not isinstance(other, Number):
            return NotImplemented
        if isinstance(self, Rational) and isinstance(other, Rational):
            return Rational.checked(
                self.numerator * other.denominator - other.numerator * self.denominator,
                self.denominator * other.denominator,
            )
        return Irrational(float(self) - float(other))

    def __mul__(self, other: 'Number') -> 'Number':
        if not isinstance(other, Number):
            return NotImplemented
        if isinstance(self, Rational) and isinstance(other, Rational):
            return Rational.checked(
                self.numerator * other.numerator,
                self.denominator * other.denominator,
            )
        return Irrational(float(self) * float(other))

    def __truediv__(self, other: 'Number') -> 'Number':
        if not isinstance(other, Number):
            return NotImplemented
        if isinstance(self, Rational) and isinstance(other, Rational):
            return Rational.checked(
                self.numerator * other.denominator,
                self.denominator * other.numerator,
            )
        return Irrational(float(self) / float(other))

    def __eq__(self, other) -> bool:
        if isinstance(self, Rational) and isinstance(other, Rational):
            return (self.numerator == other.numerator
                    and self.denominator == other.denominator)
        if isinstance(other, Number):
            return float(self) == float(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(float(self))


class Rational(Number):
    """An exact fraction in lowest terms with a positive denominator."""

    __slots__ = ('numerator', 'denominator')

    def __init__(self, numerator: int, denominator: int = 1):
        if denominator == 0:
            raise ZeroDivisionError(f"Rational({numerator}, 0)")
        if denominator < 0:
            numerator, denominator = -numerator, -denominator
        divisor = math.gcd(numerator, denominator)
        self.numerator = numerator // divisor
        self.denominator = denominator // divisor

    @classmethod
    def checked(cls, numerator: int, denominator: int) -> Number:
        """Build a reduced Rational, or an Irrational if it overflows 64 bits."""
        exact = cls(numerator, denominator)
        if _fits(exact.numerator) and _fits(exact.denominator):
            return exact
        return Irrational(numerator / denominator)

    def is_integer(self) -> bool:
        return self.denominator == 1

    def is_zero(self) -> bool:
        return self.numerator == 0

    def is_negative(self) -> bool:
        return self.numerator < 0

    def __float__(self) -> float:
        return self.numerator / self.denominator

    def __neg__(self) -> 'Rational':
        return Rational(-self.numerator, self.denominator)

    def __repr__(self) -> str:
        return f"Rational({self.numerator}, {self.denominator})"

    def __str__(self) -> str:
        if self.denominator == 1:
            return str(self.numerator)
        return f"{self.numerator}/{self.denominator}"


class Irrational(Number):
    """A floating point approximation."""

    __slots__ = ('value',)

    def __init__(self, value: float):
        self.value = float(value)

    def is_integer(self) -> bool:
        return self.value.is_integer()

    def __float__(self) -> float:
        return self.value

    def __neg__(self) -> 'Irrational':
        return Irrational(-self.value)

    def __repr__(self) -> str:
        return f"Irrational({self.value!r})"

    def __str__(self) -> str:
        return repr(self.value)


def parse_number(text: str) -> Number:
    """
    Parse a numeric literal.

    A literal containing '.' is an Irrational, anything else a Rational
    with denominator 1. Integers beyond 64 bits become Irrational.

    Raises:
        SymError(NOT_A_NUMBER): for "5.5.0", "12ab", "" and the like
    """
    if not text or not all(c in DIGITS or c == '.' for c in text):
        raise SymError(ErrorKind.NOT_A_NUMBER, text)
    if '.' in text:
        if text.count('.') > 1 or text == '.':
            raise SymError(ErrorKind.NOT_A_NUMBER, text)
        return Irrational(float(text))
    return Rational.checked(int(text), 1)
