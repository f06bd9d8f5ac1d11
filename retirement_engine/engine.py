"""
Projection engine facade.

``ProjectionEngine`` bundles validated assumptions with the calculation
modules. It keeps no reference to any profile between calls: every method is
a pure function of its arguments and the assumptions fixed at construction.
"""

import logging
from datetime import date
from typing import List, Optional, Sequence

from pydantic import ValidationError

from .config import Assumptions, Settings, get_global_settings, load_assumptions
from .errors import ConfigurationError
from .models.aggregator import FinancialSnapshot, build_snapshot
from .models.gap import GapReport, analyze_retirement_gap, pension_start_age
from .models.growth import (
    MONTHS_PER_YEAR,
    AmortizedPayment,
    Contribution,
    DrawdownResult,
    GrowthProjection,
    LifetimeSimulation,
    RequiredContribution,
    amortized_payment,
    project_balance,
    project_growth,
    required_contribution,
    simulate_drawdown,
    simulate_lifetime,
)
from .models.household import HouseholdProfile, Person, PensionTier
from .models.money import Money, Number
from .models.national_pension import NationalPensionEstimate, estimate_national_pension
from .models.pension_tax import (
    PensionTaxResult,
    TaxCreditResult,
    pension_income_tax,
    personal_pension_tax_credit,
)
from .models.ratios import (
    IncomeStability,
    RatioReport,
    ReadinessScores,
    calculate_ratios,
    income_stability,
    readiness_scores,
)
from .models.scenarios import (
    ClaimingComparison,
    OutlookResult,
    ReturnComparison,
    compare_claiming_ages,
    compare_outlooks,
    compare_return_scenarios,
    primary_age,
    years_to_retirement,
)

logger = logging.getLogger(__name__)


class ProjectionEngine:
    """Stateless entry point for every projection the engine offers."""

    def __init__(self, settings: Settings, assumptions: Optional[Assumptions] = None):
        """Initialize the engine.

        Args:
            settings: Engine settings
            assumptions: Lookup tables and constants (defaults if omitted)
        """
        self.settings = settings
        if assumptions is None:
            assumptions = Assumptions()
        self.assumptions = assumptions.for_currency(settings.currency_exponent)

    def money(self, amount: Number) -> Money:
        """Convert a major-unit amount using the configured currency exponent."""
        return Money.from_major(amount, self.settings.currency_exponent)

    def snapshot(self, profile: HouseholdProfile) -> FinancialSnapshot:
        return build_snapshot(
            profile,
            payout_years=self.settings.pension_payout_years,
            default_term_months=self.settings.default_amortization_months,
        )

    def ratios(self, snapshot: FinancialSnapshot) -> RatioReport:
        return calculate_ratios(snapshot, self.assumptions.bands)

    def income_stability(self, snapshot: FinancialSnapshot) -> IncomeStability:
        return income_stability(snapshot)

    def project_balance(
        self,
        principal: Money,
        monthly_contribution: Contribution,
        annual_rate_pct: Number,
        months: int,
    ) -> Money:
        return project_balance(principal, monthly_contribution, annual_rate_pct, months)

    def project_growth(
        self,
        principal: Money,
        monthly_contribution: Money,
        annual_rate_pct: Number,
        years: int,
    ) -> GrowthProjection:
        """Project growth, discounting to real value with the configured inflation rate."""
        return project_growth(
            principal,
            monthly_contribution,
            annual_rate_pct,
            years,
            inflation_rate_pct=self.settings.inflation_rate_pct,
        )

    def required_contribution(
        self, target: Money, principal: Money, annual_rate_pct: Number, months: int
    ) -> RequiredContribution:
        return required_contribution(target, principal, annual_rate_pct, months)

    def amortized_payment(
        self, principal: Money, annual_rate_pct: Number, total_months: Optional[int] = None
    ) -> AmortizedPayment:
        return amortized_payment(
            principal,
            annual_rate_pct,
            self.settings.default_amortization_months if total_months is None else total_months,
        )

    def simulate_drawdown(
        self, balance: Money, monthly_withdrawal: Money, annual_rate_pct: Number, months: int
    ) -> DrawdownResult:
        return simulate_drawdown(balance, monthly_withdrawal, annual_rate_pct, months)

    def simulate_lifetime(
        self,
        profile: HouseholdProfile,
        as_of: date,
        annual_return_pct: Optional[Number] = None,
    ) -> LifetimeSimulation:
        """
        Simulate the household's assets year by year until its life expectancy.

        Starts from today's net worth (floored at zero), income and expenses.
        Pension income starts at the primary person's national pension claim age.
        """
        snapshot = self.snapshot(profile)
        rate = self.settings.default_return_pct if annual_return_pct is None else annual_return_pct
        return simulate_lifetime(
            current_age=primary_age(profile, as_of),
            retirement_age=profile.retirement_age_or(self.settings.default_retirement_age),
            life_expectancy=profile.life_expectancy,
            current_assets=max(snapshot.net_worth, Money.zero()),
            monthly_income=snapshot.monthly_income,
            monthly_expense=snapshot.monthly_expense,
            monthly_pension=snapshot.monthly_pension_income,
            annual_return_pct=rate,
            inflation_rate_pct=self.settings.inflation_rate_pct,
            pension_start_age=pension_start_age(profile, self.settings.pension_start_age),
        )

    def required_monthly_saving(
        self,
        profile: HouseholdProfile,
        as_of: date,
        annual_rate_pct: Optional[Number] = None,
    ) -> Optional[RequiredContribution]:
        """
        Monthly saving needed to grow net worth to the household's target fund.

        Returns None when the household has no target fund.
        """
        if profile.target_retirement_fund is None:
            return None
        snapshot = self.snapshot(profile)
        rate = self.settings.default_return_pct if annual_rate_pct is None else annual_rate_pct
        years = years_to_retirement(profile, as_of, self.settings.default_retirement_age)
        return required_contribution(
            profile.target_retirement_fund,
            max(snapshot.net_worth, Money.zero()),
            rate,
            years * MONTHS_PER_YEAR,
        )

    def estimate_national_pension(
        self, person: Person, income_history: Sequence[Money], claim_age: int
    ) -> NationalPensionEstimate:
        return estimate_national_pension(
            person, income_history, claim_age, self.assumptions.national_pension
        )

    def compare_claiming_ages(
        self,
        base_monthly_benefit: Money,
        life_expectancy: Optional[int] = None,
        candidate_ages: Optional[Sequence[int]] = None,
    ) -> ClaimingComparison:
        """Compare claiming ages; defaults to every age in the claiming table."""
        config = self.assumptions.national_pension
        if candidate_ages is None:
            candidate_ages = [adjustment.age for adjustment in config.claiming_adjustments]
        return compare_claiming_ages(
            base_monthly_benefit,
            self.settings.life_expectancy if life_expectancy is None else life_expectancy,
            candidate_ages,
            config,
            max_workers=self.settings.scenario_max_workers,
        )

    def compare_household_claiming_ages(
        self, profile: HouseholdProfile, base_monthly_benefit: Money
    ) -> ClaimingComparison:
        """Compare claiming ages up to the household's own life-expectancy horizon."""
        return self.compare_claiming_ages(base_monthly_benefit, profile.life_expectancy)

    def compare_return_scenarios(
        self,
        balance: Money,
        years: int,
        candidate_rates: Optional[Sequence[Number]] = None,
        monthly_contribution: Money = Money.zero(),
    ) -> ReturnComparison:
        """Compare returns; defaults to the configured pension product returns."""
        labels = None
        if candidate_rates is None:
            labels = [name for name, _ in self.assumptions.return_scenarios]
            candidate_rates = [rate for _, rate in self.assumptions.return_scenarios]
        return compare_return_scenarios(
            balance,
            years,
            candidate_rates,
            monthly_contribution,
            max_workers=self.settings.scenario_max_workers,
            labels=labels,
        )

    def compare_outlooks(self, profile: HouseholdProfile, as_of: date) -> List[OutlookResult]:
        return compare_outlooks(
            profile,
            self.snapshot(profile),
            as_of,
            self.assumptions.outlooks,
            max_workers=self.settings.scenario_max_workers,
            default_retirement_age=self.settings.default_retirement_age,
        )

    def readiness_scores(self, profile: HouseholdProfile, as_of: date) -> ReadinessScores:
        return readiness_scores(
            self.snapshot(profile),
            primary_age(profile, as_of),
            profile.retirement_age_or(self.settings.default_retirement_age),
            self.assumptions.scoring,
        )

    def retirement_gap(self, profile: HouseholdProfile) -> GapReport:
        return analyze_retirement_gap(
            profile,
            self.snapshot(profile),
            post_retirement_expense_ratio=self.settings.post_retirement_expense_ratio,
            default_pension_start_age=self.settings.pension_start_age,
            default_retirement_age=self.settings.default_retirement_age,
        )

    def pension_tax(self, annual_amount: Money, tier: PensionTier, age: int) -> PensionTaxResult:
        return pension_income_tax(annual_amount, tier, age, self.assumptions.tax_rules)

    def pension_tax_credit(
        self, annual_contribution: Money, annual_income: Money
    ) -> TaxCreditResult:
        return personal_pension_tax_credit(
            annual_contribution, annual_income, self.assumptions.tax_rules
        )


def create_engine(settings: Optional[Settings] = None) -> ProjectionEngine:
    """Create and configure a projection engine.

    Args:
        settings: Engine settings (global settings if omitted)

    Returns:
        ProjectionEngine: Engine with validated assumptions

    Raises:
        ConfigurationError: If the settings or assumptions are invalid
    """
    if settings is None:
        try:
            settings = get_global_settings()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid engine settings: {e}") from e

    logging.getLogger("retirement_engine").setLevel(settings.log_level)
    assumptions = load_assumptions(settings)

    pension = assumptions.national_pension
    logger.info(
        f"Created projection engine (env={settings.app_env}, A={pension.a_value}, "
        f"full benefit age={pension.full_benefit_age}, "
        f"claim window={pension.claim_window})"
    )
    return ProjectionEngine(settings, assumptions)
