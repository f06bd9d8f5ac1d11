"""
Scenario comparison across claiming ages and assumed returns.

Every candidate is evaluated independently; results are collected first and
ranked afterwards, so evaluating candidates in parallel gives exactly the
same answer as evaluating them in order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .aggregator import FinancialSnapshot
from .growth import MONTHS_PER_YEAR, project_balance
from .household import HouseholdProfile
from .money import Money, Number, to_decimal
from .national_pension import NationalPensionConfig, adjust_for_claim_age
from .ratios import RatioResult, UndefinedRatio, ratio
from ..errors import OutOfDomainInputError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_OUTLOOKS: Tuple[Tuple[str, Decimal], ...] = (
    ("optimistic", Decimal("7")),
    ("neutral", Decimal("5")),
    ("conservative", Decimal("3")),
)
# Return assumptions for typical retirement pension products
DEFAULT_RETURN_SCENARIOS: Tuple[Tuple[str, Decimal], ...] = (
    ("deposit", Decimal("2")),
    ("bond", Decimal("4")),
    ("target_date_fund", Decimal("5.5")),
    ("equity", Decimal("7")),
)
DRAWDOWN_YEARS = 30
DEFAULT_RETIREMENT_AGE = 60


class ScenarioResult(BaseModel):
    """One (parameter, outcome) pair of a comparison."""

    model_config = ConfigDict(frozen=True)

    outcome: Money = Field(..., description="Value the scenarios are ranked by")


class ClaimingAgeResult(ScenarioResult):
    """Lifetime payout for claiming the national pension at ``claim_age``."""

    claim_age: int
    adjustment_bp: int
    monthly_benefit: Money
    payout_months: int

    @property
    def total_payout(self) -> Money:
        return self.outcome


class ReturnScenarioResult(ScenarioResult):
    """Final balance under an assumed annual return."""

    annual_rate_pct: Decimal
    total_growth: Money
    name: Optional[str] = Field(default=None, description="Label of the assumption")

    @property
    def final_balance(self) -> Money:
        return self.outcome


class ClaimingComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    ranked: Tuple[ClaimingAgeResult, ...] = Field(..., description="Best payout first")
    best: ClaimingAgeResult


class ReturnComparison(BaseModel):
    model_config = ConfigDict(frozen=True)

    ranked: Tuple[ReturnScenarioResult, ...] = Field(..., description="Highest balance first")
    best: ReturnScenarioResult
    worst: ReturnScenarioResult

    @property
    def spread(self) -> Money:
        """Difference between the best and worst case."""
        return self.best.outcome - self.worst.outcome


class OutlookResult(BaseModel):
    """Projected retirement fund under a named market outlook."""

    model_config = ConfigDict(frozen=True)

    name: str
    annual_rate_pct: Decimal
    retirement_age: int
    projected_fund: Money
    target_fund: Optional[Money] = None
    achievement: RatioResult
    monthly_drawdown: Money = Field(
        ..., description=f"Projected fund spread evenly over {DRAWDOWN_YEARS} years"
    )
    gap: Optional[Money] = Field(default=None, description="Target minus projected fund")


def evaluate_candidates(
    evaluate: Callable[[T], R], candidates: Sequence[T], max_workers: int = 1
) -> List[R]:
    """Evaluate every candidate, in parallel when ``max_workers > 1``; order is preserved."""
    if max_workers > 1 and len(candidates) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(evaluate, candidates))
    return [evaluate(candidate) for candidate in candidates]


def _rank(results: Sequence[ScenarioResult], parameters: Sequence[Number]) -> np.ndarray:
    """Indices ordered by outcome descending, then parameter ascending."""
    outcomes = np.array([result.outcome.minor_units for result in results], dtype=np.int64)
    keys = np.array([float(parameter) for parameter in parameters], dtype=np.float64)
    return np.lexsort((keys, -outcomes))


def compare_claiming_ages(
    base_monthly_benefit: Money,
    life_expectancy: int,
    candidate_ages: Sequence[int],
    config: Optional[NationalPensionConfig] = None,
    max_workers: int = 1,
) -> ClaimingComparison:
    """
    Compare lifetime national pension payouts across claiming ages.

    Args:
        base_monthly_benefit: Monthly benefit at the full-benefit age
        life_expectancy: Age payouts are assumed to end
        candidate_ages: Claiming ages to compare
        config: Claiming adjustment table
        max_workers: Worker threads for evaluating candidates

    Returns:
        ClaimingComparison ranked by total payout, with the arg-max
    """
    config = NationalPensionConfig() if config is None else config
    if isinstance(life_expectancy, bool) or not isinstance(life_expectancy, int) or not (
        30 <= life_expectancy <= 120
    ):
        raise OutOfDomainInputError(
            f"life expectancy must be an integer within [30, 120], got {life_expectancy!r}",
            "life_expectancy",
            life_expectancy,
        )
    if not candidate_ages:
        raise OutOfDomainInputError("candidate_ages must not be empty", "candidate_ages", [])

    def evaluate(age: int) -> ClaimingAgeResult:
        monthly = adjust_for_claim_age(base_monthly_benefit, age, config)
        months = max(0, life_expectancy - age) * MONTHS_PER_YEAR
        return ClaimingAgeResult(
            claim_age=age,
            adjustment_bp=config.adjustment_for(age),
            monthly_benefit=monthly,
            payout_months=months,
            outcome=monthly * months,
        )

    results = evaluate_candidates(evaluate, list(candidate_ages), max_workers)
    order = _rank(results, candidate_ages)
    ranked = tuple(results[index] for index in order)
    logger.debug(f"Best claiming age {ranked[0].claim_age} of {list(candidate_ages)}")
    return ClaimingComparison(ranked=ranked, best=ranked[0])


def compare_return_scenarios(
    balance: Money,
    years: int,
    candidate_rates: Optional[Sequence[Number]] = None,
    monthly_contribution: Money = Money.zero(),
    max_workers: int = 1,
    labels: Optional[Sequence[str]] = None,
) -> ReturnComparison:
    """
    Compare final balances across assumed annual returns.

    Args:
        balance: Current balance
        years: Years until the balance is needed
        candidate_rates: Annual returns in percent (DEFAULT_RETURN_SCENARIOS if omitted)
        monthly_contribution: Level end-of-month contribution
        max_workers: Worker threads for evaluating candidates
        labels: Name of each candidate rate

    Returns:
        ReturnComparison ranked by final balance, with best and worst case
    """
    if candidate_rates is None:
        labels = [name for name, _ in DEFAULT_RETURN_SCENARIOS]
        candidate_rates = [rate for _, rate in DEFAULT_RETURN_SCENARIOS]
    if not candidate_rates:
        raise OutOfDomainInputError("candidate_rates must not be empty", "candidate_rates", [])
    if labels is not None and len(labels) != len(candidate_rates):
        raise OutOfDomainInputError(
            "labels must name every candidate rate", "labels", list(labels)
        )
    rates = [to_decimal(rate, "candidate_rates") for rate in candidate_rates]
    names = list(labels) if labels is not None else [None] * len(rates)
    months = years * MONTHS_PER_YEAR

    def evaluate(candidate: Tuple[Decimal, Optional[str]]) -> ReturnScenarioResult:
        rate, name = candidate
        final = project_balance(balance, monthly_contribution, rate, months)
        return ReturnScenarioResult(
            annual_rate_pct=rate,
            name=name,
            outcome=final,
            total_growth=final - balance - monthly_contribution * months,
        )

    results = evaluate_candidates(evaluate, list(zip(rates, names)), max_workers)
    order = _rank(results, rates)
    ranked = tuple(results[index] for index in order)
    return ReturnComparison(ranked=ranked, best=ranked[0], worst=ranked[-1])


def primary_age(profile: HouseholdProfile, as_of: date) -> int:
    """Age of the primary person on ``as_of``; a birth date is required."""
    age = profile.primary.age_on(as_of)
    if age is None:
        raise OutOfDomainInputError(
            "birth_date of the primary person is required", "birth_date", None
        )
    return age


def years_to_retirement(
    profile: HouseholdProfile, as_of: date, default_age: int = DEFAULT_RETIREMENT_AGE
) -> int:
    """Whole years until the primary person's planned retirement age."""
    age = primary_age(profile, as_of)
    retirement_age = profile.retirement_age_or(default_age)
    return max(0, retirement_age - age)


def compare_outlooks(
    profile: HouseholdProfile,
    snapshot: FinancialSnapshot,
    as_of: date,
    outlooks: Sequence[Tuple[str, Number]] = DEFAULT_OUTLOOKS,
    max_workers: int = 1,
    default_retirement_age: int = DEFAULT_RETIREMENT_AGE,
) -> List[OutlookResult]:
    """
    Project net worth plus current monthly surplus to retirement under each outlook.

    Args:
        profile: Household inputs (ages and targets)
        snapshot: Snapshot of the same profile
        as_of: Date ages are measured on
        outlooks: (name, annual return %) pairs
        max_workers: Worker threads for evaluating outlooks
        default_retirement_age: Used when no retirement age is known

    Returns:
        One OutlookResult per outlook, in the order given
    """
    years = years_to_retirement(profile, as_of, default_retirement_age)
    retirement_age = profile.retirement_age_or(default_retirement_age)
    months = years * MONTHS_PER_YEAR
    principal = max(snapshot.net_worth, Money.zero())
    contribution = max(snapshot.monthly_surplus, Money.zero())
    target = profile.target_retirement_fund

    def evaluate(outlook: Tuple[str, Number]) -> OutlookResult:
        name, rate = outlook
        projected = project_balance(principal, contribution, rate, months)
        if target is None:
            achievement = UndefinedRatio(reason="no_target_fund")
        else:
            achievement = ratio(projected, target, "no_target_fund")
        return OutlookResult(
            name=name,
            annual_rate_pct=to_decimal(rate, "annual_rate_pct"),
            retirement_age=retirement_age,
            projected_fund=projected,
            target_fund=target,
            achievement=achievement,
            monthly_drawdown=projected.divide(DRAWDOWN_YEARS * MONTHS_PER_YEAR),
            gap=None if target is None else target - projected,
        )

    return evaluate_candidates(evaluate, list(outlooks), max_workers)
