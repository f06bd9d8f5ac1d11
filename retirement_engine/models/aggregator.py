"""
Household totals and the derived financial snapshot.

Every total is a plain sum over normalized records. An empty profile yields
zero totals, never an error. ``build_snapshot`` is the single place where a
``FinancialSnapshot`` is produced; snapshots are frozen and a changed profile
always produces a new snapshot.
"""

import logging
from types import MappingProxyType
from typing import Annotated, Dict, Mapping, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer

from .growth import amortized_payment
from .household import (
    ASSET_CLASSES,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    PENSION_TIERS,
    HouseholdProfile,
    HousingType,
    PensionEntitlement,
)
from .money import Money
from .normalizer import MONTHS_PER_YEAR, monthly_flow, one_time_amount
from .ratios import RatioResult, savings_rate

logger = logging.getLogger(__name__)

DEFAULT_PAYOUT_YEARS = 20
DEFAULT_AMORTIZATION_MONTHS = 360

# Read-only view of per-category totals; dumps back to a plain dict
MoneyMap = Annotated[
    Mapping[str, Money],
    AfterValidator(MappingProxyType),
    PlainSerializer(dict, return_type=Dict[str, Money]),
]


class FinancialSnapshot(BaseModel):
    """Point-in-time financial position of a household."""

    model_config = ConfigDict(frozen=True)

    monthly_income: Money
    monthly_expense: Money
    monthly_surplus: Money = Field(..., description="Income minus expense; may be negative")
    annual_income: Money
    income_by_category: MoneyMap
    expense_by_category: MoneyMap
    assets_by_class: MoneyMap
    total_debt: Money
    residential_loan: Money
    housing_type: Optional[HousingType] = None
    property_value: Money
    housing_equity: Money
    net_worth: Money
    monthly_debt_service: Money
    monthly_pension_income: Money
    pension_income_by_tier: MoneyMap
    pension_balance_by_tier: MoneyMap
    education_target: Money
    education_earmarked: Money
    target_retirement_fund: Optional[Money] = None
    savings_rate: RatioResult

    @property
    def liquid_assets(self) -> Money:
        return self.assets_by_class["cash"] + self.assets_by_class["investment"]

    @property
    def gross_assets(self) -> Money:
        """Every asset class plus the value of an owner-occupied home, before debt."""
        assets = Money.total(self.assets_by_class.values())
        if self.housing_type == "owner_occupied":
            assets = assets + self.property_value
        return assets


def income_by_category(profile: HouseholdProfile) -> Dict[str, Money]:
    totals = {category: Money.zero() for category in INCOME_CATEGORIES}
    for record in profile.cash_flows:
        if record.category in INCOME_CATEGORIES:
            totals[record.category] = totals[record.category] + monthly_flow(record)
    return totals


def expense_by_category(profile: HouseholdProfile) -> Dict[str, Money]:
    totals = {category: Money.zero() for category in EXPENSE_CATEGORIES}
    for record in profile.cash_flows:
        if record.category in EXPENSE_CATEGORIES:
            totals[record.category] = totals[record.category] + monthly_flow(record)
    return totals


def monthly_income(profile: HouseholdProfile) -> Money:
    """Total monthly income of all household members."""
    return Money.total(income_by_category(profile).values())


def monthly_expense(profile: HouseholdProfile) -> Money:
    """Total monthly household expense."""
    return Money.total(expense_by_category(profile).values())


def total_assets_by_class(profile: HouseholdProfile) -> Dict[str, Money]:
    """
    Sum assets by class.

    One-time cash flows adjust the cash class. A rental deposit is a
    cash-like asset and is added to the cash class as well.
    """
    totals = {asset_class: Money.zero() for asset_class in ASSET_CLASSES}
    for asset in profile.assets:
        totals[asset.asset_class] = totals[asset.asset_class] + asset.value

    one_time = Money.total(one_time_amount(record) for record in profile.cash_flows)
    totals["cash"] = totals["cash"] + one_time

    if profile.housing is not None and profile.housing.housing_type == "rented":
        totals["cash"] = totals["cash"] + profile.housing.deposit
    return totals


def total_debt(profile: HouseholdProfile) -> Money:
    return Money.total(debt.principal for debt in profile.debts)


def residential_loan(profile: HouseholdProfile) -> Money:
    """Balance of loans secured by the household's residence."""
    return Money.total(debt.principal for debt in profile.debts if debt.secured_by_residence)


def housing_equity(profile: HouseholdProfile) -> Money:
    """Property value minus the residential loan; zero unless owner-occupied."""
    if not profile.is_owner_occupied:
        return Money.zero()
    return profile.housing.property_value - residential_loan(profile)


def net_worth(profile: HouseholdProfile) -> Money:
    """
    Net worth of the household.

    For owner-occupied housing the residential loan is already netted inside
    housing equity, so only the remaining debt is subtracted separately.
    """
    assets = total_assets_by_class(profile)
    debt = total_debt(profile)
    if profile.is_owner_occupied:
        debt = debt - residential_loan(profile)
    return (
        assets["cash"]
        + assets["investment"]
        + assets["real_estate_equity"]
        + housing_equity(profile)
        - debt
    )


def annuitized_monthly_benefit(
    entitlement: PensionEntitlement, payout_years: int = DEFAULT_PAYOUT_YEARS
) -> Money:
    """Monthly income from an entitlement; balances are spread over ``payout_years``."""
    if entitlement.monthly_benefit is not None:
        return entitlement.monthly_benefit
    return entitlement.accumulated_balance.divide(payout_years * MONTHS_PER_YEAR)


def pension_income_by_tier(
    profile: HouseholdProfile, payout_years: int = DEFAULT_PAYOUT_YEARS
) -> Dict[str, Money]:
    totals = {tier: Money.zero() for tier in PENSION_TIERS}
    for entitlement in profile.pensions:
        benefit = annuitized_monthly_benefit(entitlement, payout_years)
        totals[entitlement.tier] = totals[entitlement.tier] + benefit
    return totals


def pension_balance_by_tier(profile: HouseholdProfile) -> Dict[str, Money]:
    totals = {tier: Money.zero() for tier in PENSION_TIERS}
    for entitlement in profile.pensions:
        if entitlement.accumulated_balance is not None:
            totals[entitlement.tier] = totals[entitlement.tier] + entitlement.accumulated_balance
    return totals


def monthly_pension_income(
    profile: HouseholdProfile, payout_years: int = DEFAULT_PAYOUT_YEARS
) -> Money:
    """Total expected monthly pension income across all tiers."""
    return Money.total(pension_income_by_tier(profile, payout_years).values())


def monthly_debt_service(
    profile: HouseholdProfile, default_term_months: int = DEFAULT_AMORTIZATION_MONTHS
) -> Money:
    """Level monthly payment of every debt, each amortized over its own term."""
    return Money.total(
        amortized_payment(
            debt.principal,
            debt.annual_rate_pct,
            default_term_months if debt.term_months is None else debt.term_months,
        ).payment
        for debt in profile.debts
    )


def build_snapshot(
    profile: HouseholdProfile,
    payout_years: int = DEFAULT_PAYOUT_YEARS,
    default_term_months: int = DEFAULT_AMORTIZATION_MONTHS,
) -> FinancialSnapshot:
    """
    Derive the financial snapshot of a household.

    Args:
        profile: Household inputs
        payout_years: Years over which accumulated pension balances are annuitized
        default_term_months: Amortization term for debts without their own term

    Returns:
        A new FinancialSnapshot
    """
    incomes = income_by_category(profile)
    expenses = expense_by_category(profile)
    income = Money.total(incomes.values())
    expense = Money.total(expenses.values())

    snapshot = FinancialSnapshot(
        monthly_income=income,
        monthly_expense=expense,
        monthly_surplus=income - expense,
        annual_income=income * MONTHS_PER_YEAR,
        income_by_category=incomes,
        expense_by_category=expenses,
        assets_by_class=total_assets_by_class(profile),
        total_debt=total_debt(profile),
        residential_loan=residential_loan(profile),
        housing_type=profile.housing.housing_type if profile.housing else None,
        property_value=profile.housing.property_value if profile.housing else Money.zero(),
        housing_equity=housing_equity(profile),
        net_worth=net_worth(profile),
        monthly_debt_service=monthly_debt_service(profile, default_term_months),
        monthly_pension_income=monthly_pension_income(profile, payout_years),
        pension_income_by_tier=pension_income_by_tier(profile, payout_years),
        pension_balance_by_tier=pension_balance_by_tier(profile),
        education_target=Money.total(goal.target_cost for goal in profile.education_goals),
        education_earmarked=Money.total(
            goal.earmarked_savings for goal in profile.education_goals
        ),
        target_retirement_fund=profile.target_retirement_fund,
        savings_rate=savings_rate(income, expense),
    )
    logger.debug(f"Built snapshot with net worth {snapshot.net_worth.minor_units}")
    return snapshot
