"""
National pension benefit estimation.

This module implements the simplified earnings-indexed benefit formula

    monthly benefit = (A + B) x contribution years x accrual rate

where A is the economy-wide average indexed monthly income and B is the
person's own average indexed monthly income clamped to a configured band.
Claiming before or after the full-benefit age scales the benefit by a delta
looked up in a table of (age, delta) pairs. The table is data, not a formula,
because the real schedule is piecewise.
"""

import logging
from decimal import Decimal, localcontext
from typing import Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .household import Person
from .money import (
    BASIS_POINTS,
    ENGINE_CONTEXT,
    MajorUnitConfig,
    Money,
    apply_basis_points,
    round_half_even,
)
from ..errors import OutOfDomainInputError

logger = logging.getLogger(__name__)


class ClaimingAdjustment(BaseModel):
    """Benefit delta for claiming at a given age."""

    model_config = ConfigDict(frozen=True)

    age: int = Field(..., ge=30, le=100, description="Claiming age")
    delta_bp: int = Field(..., gt=-BASIS_POINTS, description="Benefit delta in basis points")


DEFAULT_CLAIMING_ADJUSTMENTS: Tuple[ClaimingAdjustment, ...] = tuple(
    ClaimingAdjustment(age=age, delta_bp=delta)
    for age, delta in (
        (60, -3000),
        (61, -2400),
        (62, -1800),
        (63, -1200),
        (64, -600),
        (65, 0),
        (66, 720),
        (67, 1440),
        (68, 2160),
        (69, 2880),
        (70, 3600),
    )
)


class NationalPensionConfig(MajorUnitConfig):
    """Constants of the national pension formula, amounts in major units."""

    a_value: Decimal = Field(
        default=Decimal("3090000"),
        ge=0,
        description="Economy-wide average indexed monthly income",
    )
    b_min: Decimal = Field(default=Decimal("400000"), ge=0, description="Lower bound for B")
    b_max: Decimal = Field(default=Decimal("6370000"), ge=0, description="Upper bound for B")
    accrual_rate: Decimal = Field(default=Decimal("0.005"), gt=0, le=1)
    contribution_start_age: int = Field(default=27, ge=15, le=70)
    max_contribution_years: int = Field(default=33, ge=1, le=60)
    full_benefit_age: int = Field(default=65, ge=50, le=80)
    net_to_gross_ratio: Decimal = Field(
        default=Decimal("0.85"), gt=0, le=1, description="Net income as a share of gross"
    )
    claiming_adjustments: Tuple[ClaimingAdjustment, ...] = Field(
        default=DEFAULT_CLAIMING_ADJUSTMENTS, min_length=1
    )

    @model_validator(mode="after")
    def validate_config(self):
        if self.b_min > self.b_max:
            raise ValueError("B band must satisfy b_min <= b_max")

        ages = [adjustment.age for adjustment in self.claiming_adjustments]
        if ages != sorted(set(ages)):
            raise ValueError("claiming adjustment ages must be unique and ascending")

        deltas = {adjustment.age: adjustment.delta_bp for adjustment in self.claiming_adjustments}
        if deltas.get(self.full_benefit_age) != 0:
            raise ValueError(
                f"claiming adjustments must include the full-benefit age "
                f"{self.full_benefit_age} with a zero delta"
            )
        return self

    @property
    def claim_window(self) -> Tuple[int, int]:
        return self.claiming_adjustments[0].age, self.claiming_adjustments[-1].age

    def adjustment_for(self, claim_age: int) -> int:
        """Delta in basis points for claiming at ``claim_age``."""
        for adjustment in self.claiming_adjustments:
            if adjustment.age == claim_age:
                return adjustment.delta_bp
        earliest, latest = self.claim_window
        raise OutOfDomainInputError(
            f"claim age {claim_age} is not in the claiming table ({earliest}-{latest})",
            "claim_age",
            claim_age,
        )


class NationalPensionEstimate(BaseModel):
    """Estimated national pension benefit for one claiming age."""

    model_config = ConfigDict(frozen=True)

    claim_age: int
    contribution_years: int
    b_value: Money = Field(..., description="Clamped individual average income")
    base_monthly_benefit: Money = Field(..., description="Benefit at the full-benefit age")
    adjustment_bp: int = Field(..., description="Claiming-age delta applied")
    monthly_benefit: Money = Field(..., description="Benefit when claiming at claim_age")


def contribution_years(
    person: Person, claim_age: int, config: NationalPensionConfig
) -> int:
    """Years of contributions counted towards the benefit."""
    end_age = claim_age
    if person.retirement_age is not None:
        end_age = min(end_age, person.retirement_age)
    years = end_age - config.contribution_start_age
    return max(0, min(years, config.max_contribution_years))


def adjust_for_claim_age(
    base_monthly_benefit: Money, claim_age: int, config: NationalPensionConfig
) -> Money:
    """Scale a full-benefit-age amount by the claiming table delta."""
    delta = config.adjustment_for(claim_age)
    return Money.of_minor(
        round_half_even(apply_basis_points(base_monthly_benefit.as_decimal(), delta))
    )


def estimate_national_pension(
    person: Person,
    income_history: Sequence[Money],
    claim_age: int,
    config: Optional[NationalPensionConfig] = None,
) -> NationalPensionEstimate:
    """
    Estimate the monthly national pension benefit.

    Args:
        person: The contributor
        income_history: Indexed monthly incomes whose mean is the B value
        claim_age: Age at which benefits start
        config: Formula constants (defaults if omitted)

    Returns:
        NationalPensionEstimate with the base and claim-age adjusted benefit
    """
    config = NationalPensionConfig() if config is None else config
    if not income_history:
        raise OutOfDomainInputError("income history must not be empty", "income_history", [])
    for income in income_history:
        if income.is_negative():
            raise OutOfDomainInputError(
                f"income history entries must be >= 0, got {income.minor_units}",
                "income_history",
                income.minor_units,
            )

    delta = config.adjustment_for(claim_age)
    average = Money.total(income_history).divide(len(income_history))
    b_value = average.clamp(config.money(config.b_min), config.money(config.b_max))
    years = contribution_years(person, claim_age, config)

    base = (config.money(config.a_value) + b_value).scale(config.accrual_rate * years)
    monthly = adjust_for_claim_age(base, claim_age, config)
    logger.debug(
        f"National pension for {person.id}: B={b_value.minor_units}, years={years}, "
        f"base={base.minor_units}, claim_age={claim_age}, monthly={monthly.minor_units}"
    )
    return NationalPensionEstimate(
        claim_age=claim_age,
        contribution_years=years,
        b_value=b_value,
        base_monthly_benefit=base,
        adjustment_bp=delta,
        monthly_benefit=monthly,
    )


def estimate_from_net_income(
    person: Person,
    monthly_net_income: Money,
    claim_age: int,
    config: Optional[NationalPensionConfig] = None,
) -> NationalPensionEstimate:
    """Estimate from a current net monthly income, grossed up before use as B."""
    config = NationalPensionConfig() if config is None else config
    with localcontext(ENGINE_CONTEXT):
        gross = Money.of_minor(
            round_half_even(monthly_net_income.as_decimal() / config.net_to_gross_ratio)
        )
    return estimate_national_pension(person, [gross], claim_age, config)

