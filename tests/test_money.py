"""
Tests for monetary values and basis-point helpers.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from retirement_engine.errors import OutOfDomainInputError
from retirement_engine.models.money import (
    Money,
    apply_basis_points,
    round_half_even,
    to_basis_points,
    to_decimal,
)


class TestMoneyConstruction:
    """Test the explicit Money constructors."""

    def test_of_minor(self):
        """Test building from minor units."""
        assert Money.of_minor(1234).minor_units == 1234

    def test_of_minor_rejects_float(self):
        """Test that floating amounts cannot become Money implicitly."""
        with pytest.raises(OutOfDomainInputError):
            Money.of_minor(12.5)

    def test_model_rejects_float(self):
        """Test that the model itself only accepts integers."""
        with pytest.raises(ValidationError):
            Money(minor_units=12.5)

    def test_from_major_with_exponent(self):
        """Test conversion from major units with a two-digit currency."""
        assert Money.from_major("12.34", exponent=2).minor_units == 1234
        assert Money.from_major(0.1, exponent=2).minor_units == 10

    def test_from_major_rounds_half_even(self):
        """Test that sub-minor amounts round to even."""
        assert Money.from_major("0.125", exponent=2).minor_units == 12
        assert Money.from_major("0.135", exponent=2).minor_units == 14

    def test_from_ten_thousands(self):
        """Test conversion from the 10,000-unit denomination."""
        assert Money.from_ten_thousands(309).minor_units == 3_090_000
        assert Money.from_ten_thousands("0.5").minor_units == 5_000

    def test_negative_exponent_rejected(self):
        """Test that a negative currency exponent is rejected."""
        with pytest.raises(OutOfDomainInputError):
            Money.from_major(1, exponent=-1)

    def test_to_major(self):
        """Test converting back to major units for display."""
        assert Money.of_minor(1234).to_major(2) == Decimal("12.34")


class TestMoneyArithmetic:
    """Test Money arithmetic and comparison."""

    def test_add_and_subtract(self):
        """Test addition and subtraction stay in Money."""
        total = Money.of_minor(100) + Money.of_minor(50) - Money.of_minor(30)
        assert total == Money.of_minor(120)

    def test_negation_and_sign(self):
        """Test negation produces a negative amount."""
        assert (-Money.of_minor(5)).is_negative()
        assert Money.zero().is_zero()

    def test_multiply_by_int(self):
        """Test multiplying by a whole number of periods."""
        assert Money.of_minor(7) * 12 == Money.of_minor(84)
        assert 12 * Money.of_minor(7) == Money.of_minor(84)

    def test_multiply_by_float_not_supported(self):
        """Test that floats cannot scale Money through the * operator."""
        with pytest.raises(TypeError):
            Money.of_minor(7) * 1.5

    def test_add_int_not_supported(self):
        """Test that bare integers cannot be added to Money."""
        with pytest.raises(TypeError):
            Money.of_minor(7) + 3

    def test_divide_rounds_half_even(self):
        """Test division rounding."""
        assert Money.of_minor(18).divide(12) == Money.of_minor(2)  # 1.5 -> 2
        assert Money.of_minor(30).divide(12) == Money.of_minor(2)  # 2.5 -> 2
        assert Money.of_minor(42).divide(12) == Money.of_minor(4)  # 3.5 -> 4

    def test_divide_by_zero(self):
        """Test dividing by zero raises."""
        with pytest.raises(ZeroDivisionError):
            Money.of_minor(1).divide(0)

    def test_scale(self):
        """Test scaling by a decimal factor."""
        assert Money.of_minor(1000).scale("0.7") == Money.of_minor(700)
        assert Money.of_minor(5).scale("0.5") == Money.of_minor(2)

    def test_ordering(self):
        """Test comparisons."""
        small, large = Money.of_minor(1), Money.of_minor(2)
        assert small < large
        assert large >= small
        assert max(small, large) == large

    def test_clamp(self):
        """Test clamping into a band."""
        low, high = Money.of_minor(10), Money.of_minor(20)
        assert Money.of_minor(5).clamp(low, high) == low
        assert Money.of_minor(25).clamp(low, high) == high
        assert Money.of_minor(15).clamp(low, high) == Money.of_minor(15)

    def test_total(self):
        """Test summing amounts, including an empty sum."""
        assert Money.total([Money.of_minor(1), Money.of_minor(2)]) == Money.of_minor(3)
        assert Money.total([]) == Money.zero()

    def test_money_is_immutable(self):
        """Test that Money cannot be mutated."""
        amount = Money.of_minor(1)
        with pytest.raises(ValidationError):
            amount.minor_units = 2


class TestDecimalHelpers:
    """Test decimal and basis-point helpers."""

    def test_to_decimal_avoids_float_artefacts(self):
        """Test float inputs convert through their shortest repr."""
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), True, None, "abc"])
    def test_to_decimal_rejects_invalid(self, bad):
        """Test non-finite and non-numeric values are rejected."""
        with pytest.raises(OutOfDomainInputError):
            to_decimal(bad)

    def test_round_half_even(self):
        assert round_half_even(Decimal("2.5")) == 2
        assert round_half_even(Decimal("3.5")) == 4

    def test_to_basis_points(self):
        """Test ratio conversion to basis points."""
        assert to_basis_points(Decimal(1), Decimal(3)) == 3333
        assert to_basis_points(Decimal(2), Decimal(3)) == 6667

    def test_apply_basis_points(self):
        """Test scaling by a basis-point delta."""
        assert apply_basis_points(Decimal(1000), -3000) == Decimal(700)
        assert apply_basis_points(Decimal(1000), 1440) == Decimal(1144)
