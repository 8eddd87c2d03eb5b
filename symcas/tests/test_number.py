"""Tests for the Rational / Irrational number model."""

import pytest

from symcas import ErrorKind, Irrational, Number, Rational, SymError, parse_number
from symcas.number import INT_MAX


class TestRational:
    """Tests for exact fractions."""

    def test_reduced_to_lowest_terms(self):
        """Construction reduces by the gcd."""
        r = Rational(2, 4)
        assert (r.numerator, r.denominator) == (1, 2)

    def test_sign_carried_by_numerator(self):
        """A negative denominator moves its sign to the numerator."""
        r = Rational(1, -2)
        assert (r.numerator, r.denominator) == (-1, 2)

    def test_zero_denominator_raises(self):
        """Denominator 0 is rejected."""
        with pytest.raises(ZeroDivisionError):
            Rational(1, 0)

    def test_exact_addition(self):
        """Two Rationals add exactly."""
        result = Rational(1, 2) + Rational(1, 2)
        assert isinstance(result, Rational)
        assert result == Rational(1)

    def test_exact_subtraction(self):
        """Two Rationals subtract exactly."""
        assert Rational(1, 2) - Rational(1, 3) == Rational(1, 6)

    def test_exact_multiplication(self):
        """Two Rationals multiply exactly."""
        assert Rational(1, 3) * Rational(3) == Rational(1)

    def test_exact_division(self):
        """Two Rationals divide exactly."""
        assert Rational(1, 2) / Rational(1, 4) == Rational(2)

    def test_division_by_zero_raises(self):
        """Dividing by a zero Rational raises ZeroDivisionError."""
        with pytest.raises(ZeroDivisionError):
            Rational(1) / Rational(0)

    def test_negation(self):
        """Unary minus negates the numerator."""
        assert -Rational(1, 2) == Rational(-1, 2)

    def test_str(self):
        """Integers print bare, fractions as n/d."""
        assert str(Rational(3)) == "3"
        assert str(Rational(1, 2)) == "1/2"

    def test_overflow_falls_back_to_irrational(self):
        """Results beyond 64 bits become Irrational."""
        result = Rational(INT_MAX) + Rational(1)
        assert isinstance(result, Irrational)
        assert float(result) == pytest.approx(2.0 ** 63)

    def test_predicates(self):
        """is_integer, is_zero and is_negative."""
        assert Rational(4, 2).is_integer()
        assert not Rational(1, 2).is_integer()
        assert Rational(0).is_zero()
        assert Rational(-1, 3).is_negative()


class TestIrrational:
    """Tests for floating point numbers and mixing."""

    def test_mixed_promotes_to_irrational(self):
        """Rational + Irrational is computed in floating point."""
        result = Rational(1) + Irrational(1.0)
        assert isinstance(result, Irrational)
        assert result.value == 2.0

    def test_power_is_floating_point(self):
        """power() always returns an Irrational."""
        result = Rational(2).power(Rational(3))
        assert isinstance(result, Irrational)
        assert result == Rational(8)

    def test_equality_across_kinds(self):
        """Numbers compare by value."""
        assert Rational(2) == Irrational(2.0)
        assert Rational(1, 2) == Irrational(0.5)
        assert Rational(1, 3) != Irrational(0.3)

    def test_hash_consistent_with_equality(self):
        """Equal numbers hash alike."""
        assert hash(Rational(2)) == hash(Irrational(2.0))

    def test_is_integer(self):
        """Whole floats count as integers."""
        assert Irrational(3.0).is_integer()
        assert not Irrational(3.5).is_integer()


class TestNumberOf:
    """Tests for Number.of."""

    def test_int(self):
        """ints become Rationals."""
        assert isinstance(Number.of(3), Rational)

    def test_float(self):
        """floats become Irrationals."""
        assert isinstance(Number.of(3.5), Irrational)

    def test_bool_rejected(self):
        """booleans are not numbers."""
        with pytest.raises(TypeError):
            Number.of(True)


class TestParseNumber:
    """Tests for numeric literal parsing."""

    def test_integer(self):
        """Digits parse as a Rational."""
        result = parse_number("12")
        assert isinstance(result, Rational)
        assert result == Rational(12)

    def test_decimal(self):
        """A literal with a point parses as an Irrational."""
        result = parse_number("1.5")
        assert isinstance(result, Irrational)
        assert result.value == 1.5

    def test_leading_point(self):
        """'.5' is one half."""
        assert parse_number(".5") == Irrational(0.5)

    @pytest.mark.parametrize("text", ["5.5.0", ".", "12ab", "", "1e5"])
    def test_not_a_number(self, text):
        """Malformed literals raise NOT_A_NUMBER."""
        with pytest.raises(SymError) as info:
            parse_number(text)
        assert info.value.kind is ErrorKind.NOT_A_NUMBER

    def test_huge_integer(self):
        """Integers beyond 64 bits parse as Irrational."""
        result = parse_number("99999999999999999999")
        assert isinstance(result, Irrational)
