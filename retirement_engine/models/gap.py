"""
Funding gap between retirement and the start of the national pension.
"""

import logging
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .aggregator import FinancialSnapshot
from .household import HouseholdProfile
from .money import BASIS_POINTS, Money
from .normalizer import MONTHS_PER_YEAR
from .ratios import DefinedRatio, RatioResult, UndefinedRatio, ratio

logger = logging.getLogger(__name__)

DEFAULT_RETIREMENT_AGE = 60
DEFAULT_PENSION_START_AGE = 65
DEFAULT_POST_RETIREMENT_EXPENSE_RATIO = Decimal("0.7")


class GapReport(BaseModel):
    """Funding requirement for the years without salary or national pension."""

    model_config = ConfigDict(frozen=True)

    status: Literal["gap", "no_gap"]
    retirement_age: int
    pension_start_age: int
    gap_years: int = Field(..., ge=0)
    monthly_expense_during_gap: Money
    required_gap_fund: Money
    liquid_assets: Money = Field(
        ..., description="Cash, investments and occupational pension balances"
    )
    preparation_rate: RatioResult = Field(
        ..., description="Liquid assets over the required fund, capped at 100%"
    )
    shortfall: Money = Field(..., description="Required fund not covered (never negative)")


def pension_start_age(profile: HouseholdProfile, default: int = DEFAULT_PENSION_START_AGE) -> int:
    """Claim age of the primary person's national pension, or ``default``."""
    primary_id = profile.primary.id
    for entitlement in profile.pensions:
        if (
            entitlement.tier == "national"
            and entitlement.owner == primary_id
            and entitlement.claim_age is not None
        ):
            return entitlement.claim_age
    return default


def analyze_retirement_gap(
    profile: HouseholdProfile,
    snapshot: FinancialSnapshot,
    post_retirement_expense_ratio: Decimal = DEFAULT_POST_RETIREMENT_EXPENSE_RATIO,
    default_pension_start_age: int = DEFAULT_PENSION_START_AGE,
    default_retirement_age: int = DEFAULT_RETIREMENT_AGE,
) -> GapReport:
    """
    Size the fund needed to bridge retirement to the first pension payment.

    Args:
        profile: Household inputs
        snapshot: Snapshot of the same profile
        post_retirement_expense_ratio: Share of current expenses needed after retiring
        default_pension_start_age: Used when no national pension claim age is known
        default_retirement_age: Used when no retirement age is known

    Returns:
        GapReport; ``status`` is "no_gap" and the preparation rate undefined
        when nothing needs to be bridged
    """
    retirement_age = profile.retirement_age_or(default_retirement_age)
    start_age = pension_start_age(profile, default_pension_start_age)
    gap_years = max(0, start_age - retirement_age)

    monthly_need = snapshot.monthly_expense.scale(post_retirement_expense_ratio)
    required = monthly_need * (MONTHS_PER_YEAR * gap_years)
    liquid = snapshot.liquid_assets + snapshot.pension_balance_by_tier["occupational"]

    if required.is_zero():
        preparation: RatioResult = UndefinedRatio(reason="no_gap")
        status = "no_gap"
    else:
        preparation = ratio(liquid, required, "no_gap")
        if isinstance(preparation, DefinedRatio) and preparation.basis_points > BASIS_POINTS:
            preparation = DefinedRatio(basis_points=BASIS_POINTS)
        status = "gap"

    report = GapReport(
        status=status,
        retirement_age=retirement_age,
        pension_start_age=start_age,
        gap_years=gap_years,
        monthly_expense_during_gap=monthly_need,
        required_gap_fund=required,
        liquid_assets=liquid,
        preparation_rate=preparation,
        shortfall=max(required - liquid, Money.zero()),
    )
    logger.debug(f"Retirement gap: {gap_years} years, required {required.minor_units}")
    return report
