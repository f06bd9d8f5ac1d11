"""
Monetary values and fixed-point percentages.

Every amount in the engine is a ``Money``: an integer count of the smallest
currency unit. Amounts only enter the engine through the explicit conversion
constructors below, so values denominated in major units and values
denominated in units of 10,000 can never be mixed by accident.

Percentages are integers in basis points (10000 bp == 100%).
"""

from decimal import ROUND_CEILING, ROUND_HALF_EVEN, Context, Decimal, localcontext
from functools import total_ordering
from typing import Iterable, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt

from ..errors import OutOfDomainInputError

BASIS_POINTS = 10000
TEN_THOUSAND = 10000

# Precision used by every Decimal calculation in the engine
ENGINE_CONTEXT = Context(prec=34, rounding=ROUND_HALF_EVEN)

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number, field: str = "value") -> Decimal:
    """Convert a number to Decimal without binary float artefacts."""
    if isinstance(value, bool):
        raise OutOfDomainInputError(f"{field} must be a number, got {value!r}", field, value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value))
        except ArithmeticError as e:
            raise OutOfDomainInputError(
                f"{field} is not a valid number: {value!r}", field, value
            ) from e
    else:
        raise OutOfDomainInputError(f"{field} must be a number, got {value!r}", field, value)

    if not result.is_finite():
        raise OutOfDomainInputError(f"{field} must be finite, got {value!r}", field, value)
    return result


def round_half_even(value: Decimal) -> int:
    """Round a Decimal to the nearest integer, ties to even."""
    return int(value.to_integral_value(rounding=ROUND_HALF_EVEN))


def round_up(value: Decimal) -> int:
    """Round a Decimal towards positive infinity."""
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def to_basis_points(numerator: Decimal, denominator: Decimal) -> int:
    """Express ``numerator / denominator`` in basis points."""
    with localcontext(ENGINE_CONTEXT):
        return round_half_even(numerator * BASIS_POINTS / denominator)


def apply_basis_points(value: Decimal, basis_points: int) -> Decimal:
    """Scale ``value`` by ``1 + basis_points / 10000``."""
    with localcontext(ENGINE_CONTEXT):
        return value * (BASIS_POINTS + basis_points) / BASIS_POINTS


@total_ordering
class Money(BaseModel):
    """An amount in minor currency units."""

    model_config = ConfigDict(frozen=True)

    minor_units: StrictInt = Field(..., description="Amount in minor currency units")

    @classmethod
    def of_minor(cls, minor_units: int) -> "Money":
        """Build from an integer count of minor units."""
        if isinstance(minor_units, bool) or not isinstance(minor_units, int):
            raise OutOfDomainInputError(
                f"minor units must be an integer, got {minor_units!r}",
                "minor_units",
                minor_units,
            )
        return cls(minor_units=minor_units)

    @classmethod
    def zero(cls) -> "Money":
        return cls(minor_units=0)

    @classmethod
    def from_major(cls, amount: Number, exponent: int = 0) -> "Money":
        """
        Build from an amount in major units.

        Args:
            amount: Amount in major units (e.g. 12.34 dollars)
            exponent: Number of minor-unit digits of the currency (2 for USD, 0 for KRW)

        Returns:
            Money rounded half-even to the nearest minor unit
        """
        if exponent < 0:
            raise OutOfDomainInputError("currency exponent must be >= 0", "exponent", exponent)
        with localcontext(ENGINE_CONTEXT):
            scaled = to_decimal(amount, "amount") * (Decimal(10) ** exponent)
            return cls(minor_units=round_half_even(scaled))

    @classmethod
    def from_ten_thousands(cls, amount: Number, exponent: int = 0) -> "Money":
        """Build from an amount denominated in units of 10,000 major units."""
        with localcontext(ENGINE_CONTEXT):
            return cls.from_major(to_decimal(amount, "amount") * TEN_THOUSAND, exponent)

    @classmethod
    def total(cls, amounts: Iterable["Money"]) -> "Money":
        """Sum an iterable of Money; an empty iterable sums to zero."""
        return cls(minor_units=sum(amount.minor_units for amount in amounts))

    def as_decimal(self) -> Decimal:
        return Decimal(self.minor_units)

    def to_major(self, exponent: int = 0) -> Decimal:
        """Amount in major units, for display by callers."""
        with localcontext(ENGINE_CONTEXT):
            return self.as_decimal() / (Decimal(10) ** exponent)

    def is_zero(self) -> bool:
        return self.minor_units == 0

    def is_negative(self) -> bool:
        return self.minor_units < 0

    def scale(self, factor: Number) -> "Money":
        """Multiply by a decimal factor, rounding half-even."""
        with localcontext(ENGINE_CONTEXT):
            return Money(minor_units=round_half_even(self.as_decimal() * to_decimal(factor, "factor")))

    def divide(self, divisor: int) -> "Money":
        """Divide by an integer, rounding half-even."""
        if divisor == 0:
            raise ZeroDivisionError("cannot divide Money by zero")
        with localcontext(ENGINE_CONTEXT):
            return Money(minor_units=round_half_even(self.as_decimal() / divisor))

    def clamp(self, lower: "Money", upper: "Money") -> "Money":
        return max(lower, min(self, upper))

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(minor_units=self.minor_units + other.minor_units)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(minor_units=self.minor_units - other.minor_units)

    def __neg__(self) -> "Money":
        return Money(minor_units=-self.minor_units)

    def __mul__(self, other: int) -> "Money":
        if isinstance(other, bool) or not isinstance(other, int):
            return NotImplemented
        return Money(minor_units=self.minor_units * other)

    __rmul__ = __mul__

    def __lt__(self, other: "Money") -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.minor_units < other.minor_units

    def __repr__(self) -> str:
        return f"Money({self.minor_units})"


class MajorUnitConfig(BaseModel):
    """
    Base for configuration whose amounts are written in major currency units.

    The amounts stay human-readable in assumption files regardless of the
    currency; ``currency_exponent`` decides how they become Money.
    """

    model_config = ConfigDict(frozen=True)

    currency_exponent: int = Field(default=0, ge=0, le=4, description="Minor-unit digits")

    def money(self, major_amount: Decimal) -> Money:
        return Money.from_major(major_amount, self.currency_exponent)

    def for_currency(self, exponent: int):
        """Copy of this configuration denominated in a currency with ``exponent`` digits."""
        return self.model_copy(update={"currency_exponent": exponent})
