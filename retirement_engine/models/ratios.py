"""
Financial ratio calculations and classification bands.

Every ratio is reported in basis points as a ``DefinedRatio``, or as an
``UndefinedRatio`` when its denominator is zero. An undefined ratio is a
distinct state: it is never reported as 0% and never raised as an error.

Classification thresholds live in ``BandTables`` so that every caller
classifies a ratio against the same cutoffs.

Readiness scores map the same kind of ratios onto 0-100 points through
piecewise-linear ``ScoreCurve``s and combine them with configured weights.
"""

import logging
from decimal import Decimal, localcontext
from typing import TYPE_CHECKING, Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .money import BASIS_POINTS, ENGINE_CONTEXT, Money, round_half_even, to_basis_points

if TYPE_CHECKING:
    from .aggregator import FinancialSnapshot

logger = logging.getLogger(__name__)

UndefinedReason = Literal[
    "no_income",
    "no_property",
    "no_education_goal",
    "no_target_fund",
    "no_expense",
    "no_gap",
]


class DefinedRatio(BaseModel):
    """A ratio with a non-zero denominator."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["defined"] = "defined"
    basis_points: int = Field(..., description="Ratio in basis points (10000 = 100%)")
    band: Optional[str] = Field(default=None, description="Classification band label")

    @property
    def percent(self) -> float:
        """Convenience for display; calculations use ``basis_points``."""
        return self.basis_points / 100


class UndefinedRatio(BaseModel):
    """A ratio whose denominator is zero."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["undefined"] = "undefined"
    reason: UndefinedReason = Field(..., description="Why the ratio is undefined")


RatioResult = Annotated[Union[DefinedRatio, UndefinedRatio], Field(discriminator="kind")]


class BandTable(BaseModel):
    """
    Three-band classification of a ratio.

    For ``higher_is_better=False`` values up to ``lower_cutoff_bp`` get the
    first label, values up to ``upper_cutoff_bp`` the second, anything above
    the third. For ``higher_is_better=True`` values at or above
    ``upper_cutoff_bp`` get the first label, values at or above
    ``lower_cutoff_bp`` the second, anything below the third.
    """

    model_config = ConfigDict(frozen=True)

    lower_cutoff_bp: int = Field(..., description="Lower cutoff in basis points")
    upper_cutoff_bp: int = Field(..., description="Upper cutoff in basis points")
    labels: Tuple[str, str, str] = Field(..., description="Best, middle and worst labels")
    higher_is_better: bool = Field(default=False)

    @model_validator(mode="after")
    def validate_cutoffs(self):
        if self.lower_cutoff_bp > self.upper_cutoff_bp:
            raise ValueError(
                f"lower cutoff {self.lower_cutoff_bp} exceeds upper cutoff {self.upper_cutoff_bp}"
            )
        if len(set(self.labels)) != 3:
            raise ValueError("band labels must be distinct")
        return self

    def classify(self, basis_points: int) -> str:
        best, middle, worst = self.labels
        if self.higher_is_better:
            if basis_points >= self.upper_cutoff_bp:
                return best
            if basis_points >= self.lower_cutoff_bp:
                return middle
            return worst

        if basis_points <= self.lower_cutoff_bp:
            return best
        if basis_points <= self.upper_cutoff_bp:
            return middle
        return worst


class BandTables(BaseModel):
    """Classification bands for every ratio the engine reports."""

    model_config = ConfigDict(frozen=True)

    savings_rate: BandTable = BandTable(
        lower_cutoff_bp=1000,
        upper_cutoff_bp=2000,
        labels=("good", "caution", "insufficient"),
        higher_is_better=True,
    )
    ltv: BandTable = BandTable(
        lower_cutoff_bp=4000, upper_cutoff_bp=6000, labels=("stable", "moderate", "elevated")
    )
    dti: BandTable = BandTable(
        lower_cutoff_bp=10000, upper_cutoff_bp=20000, labels=("stable", "moderate", "elevated")
    )
    dsr: BandTable = BandTable(
        lower_cutoff_bp=3000, upper_cutoff_bp=4000, labels=("stable", "moderate", "elevated")
    )
    pension_replacement: BandTable = BandTable(
        lower_cutoff_bp=4000,
        upper_cutoff_bp=6000,
        labels=("sufficient", "moderate", "insufficient"),
        higher_is_better=True,
    )
    education_coverage: BandTable = BandTable(
        lower_cutoff_bp=5000,
        upper_cutoff_bp=10000,
        labels=("funded", "partial", "underfunded"),
        higher_is_better=True,
    )
    retirement_progress: BandTable = BandTable(
        lower_cutoff_bp=5000,
        upper_cutoff_bp=8000,
        labels=("on_track", "behind", "at_risk"),
        higher_is_better=True,
    )


class RatioReport(BaseModel):
    """All ratios derived from a snapshot, classified."""

    model_config = ConfigDict(frozen=True)

    savings_rate: RatioResult
    ltv: RatioResult
    dti: RatioResult
    dsr: RatioResult
    pension_replacement: RatioResult
    education_coverage: RatioResult
    retirement_progress: RatioResult


class IncomeStability(BaseModel):
    """Income mix and emergency fund adequacy."""

    model_config = ConfigDict(frozen=True)

    labor_share_bp: int
    business_share_bp: int
    risk_level: Literal["low", "medium", "high"]
    recommended_emergency_months: int
    current_emergency_months: Optional[int] = Field(
        default=None, description="Months of expenses covered by cash; None without expenses"
    )


def ratio(numerator: Money, denominator: Money, reason: UndefinedReason) -> RatioResult:
    """Divide two amounts, returning an undefined ratio for a zero denominator."""
    if denominator.is_zero():
        return UndefinedRatio(reason=reason)
    return DefinedRatio(
        basis_points=to_basis_points(numerator.as_decimal(), denominator.as_decimal())
    )


def classify(result: RatioResult, bands: BandTable) -> RatioResult:
    """Attach a band label to a defined ratio; undefined ratios pass through."""
    if isinstance(result, UndefinedRatio):
        return result
    return result.model_copy(update={"band": bands.classify(result.basis_points)})


def savings_rate(monthly_income: Money, monthly_expense: Money) -> RatioResult:
    """(income - expense) / income, undefined without income."""
    return ratio(monthly_income - monthly_expense, monthly_income, "no_income")


def loan_to_value(loan_balance: Money, property_value: Money) -> RatioResult:
    return ratio(loan_balance, property_value, "no_property")


def debt_to_income(total_debt: Money, annual_income: Money) -> RatioResult:
    return ratio(total_debt, annual_income, "no_income")


def debt_service_ratio(monthly_debt_service: Money, monthly_income: Money) -> RatioResult:
    return ratio(monthly_debt_service, monthly_income, "no_income")


def pension_replacement_rate(
    monthly_pension_income: Money, monthly_income_before_retirement: Money
) -> RatioResult:
    return ratio(monthly_pension_income, monthly_income_before_retirement, "no_income")


def education_coverage(earmarked: Money, target_cost: Money) -> RatioResult:
    return ratio(earmarked, target_cost, "no_education_goal")


def retirement_progress(net_worth: Money, target_fund: Optional[Money]) -> RatioResult:
    """Net worth against the retirement target, capped at 100%."""
    if target_fund is None:
        return UndefinedRatio(reason="no_target_fund")
    result = ratio(net_worth, target_fund, "no_target_fund")
    if isinstance(result, DefinedRatio) and result.basis_points > BASIS_POINTS:
        return DefinedRatio(basis_points=BASIS_POINTS)
    return result


def calculate_ratios(snapshot: "FinancialSnapshot", bands: BandTables) -> RatioReport:
    """
    Derive and classify every ratio from a snapshot.

    Args:
        snapshot: Financial snapshot of a household
        bands: Classification bands

    Returns:
        RatioReport with each ratio classified against its band table
    """
    if snapshot.housing_type == "owner_occupied":
        ltv = loan_to_value(snapshot.residential_loan, snapshot.property_value)
    else:
        ltv = UndefinedRatio(reason="no_property")

    report = RatioReport(
        savings_rate=classify(snapshot.savings_rate, bands.savings_rate),
        ltv=classify(ltv, bands.ltv),
        dti=classify(debt_to_income(snapshot.total_debt, snapshot.annual_income), bands.dti),
        dsr=classify(
            debt_service_ratio(snapshot.monthly_debt_service, snapshot.monthly_income),
            bands.dsr,
        ),
        pension_replacement=classify(
            pension_replacement_rate(snapshot.monthly_pension_income, snapshot.monthly_income),
            bands.pension_replacement,
        ),
        education_coverage=classify(
            education_coverage(snapshot.education_earmarked, snapshot.education_target),
            bands.education_coverage,
        ),
        retirement_progress=classify(
            retirement_progress(snapshot.net_worth, snapshot.target_retirement_fund),
            bands.retirement_progress,
        ),
    )
    logger.debug(f"Calculated ratio report: {report}")
    return report


def income_stability(snapshot: "FinancialSnapshot") -> IncomeStability:
    """Classify income risk from the labor/business mix and size the emergency fund."""
    labor = snapshot.income_by_category.get("labor_income", Money.zero())
    business = snapshot.income_by_category.get("business_income", Money.zero())
    total = labor + business

    cash = snapshot.assets_by_class.get("cash", Money.zero())
    if snapshot.monthly_expense.is_zero():
        current_months = None
    else:
        current_months = round_half_even(
            cash.as_decimal() / snapshot.monthly_expense.as_decimal()
        )

    if total.is_zero():
        return IncomeStability(
            labor_share_bp=0,
            business_share_bp=0,
            risk_level="high",
            recommended_emergency_months=12,
            current_emergency_months=current_months,
        )

    labor_share = to_basis_points(labor.as_decimal(), total.as_decimal())
    business_share = BASIS_POINTS - labor_share

    if business_share >= 7000:
        risk_level, recommended = "high", 12
    elif business_share >= 3000:
        risk_level, recommended = "medium", 9
    else:
        risk_level, recommended = "low", 6

    return IncomeStability(
        labor_share_bp=labor_share,
        business_share_bp=business_share,
        risk_level=risk_level,
        recommended_emergency_months=recommended,
        current_emergency_months=current_months,
    )


class ScoreCurve(BaseModel):
    """
    Piecewise-linear map from a ratio in basis points to 0-100 points.

    Between two breakpoints the score is interpolated linearly; outside the
    first and last breakpoint it stays flat.
    """

    model_config = ConfigDict(frozen=True)

    points: Tuple[Tuple[int, int], ...] = Field(
        ..., min_length=2, description="(ratio_bp, score) breakpoints, ascending by ratio"
    )

    @model_validator(mode="after")
    def validate_points(self):
        ratios = [ratio_bp for ratio_bp, _ in self.points]
        if any(low >= high for low, high in zip(ratios, ratios[1:])):
            raise ValueError("score curve ratios must be strictly ascending")
        if any(not 0 <= score <= 100 for _, score in self.points):
            raise ValueError("score curve scores must be within [0, 100]")
        return self

    def score(self, basis_points: int) -> Decimal:
        first_bp, first_score = self.points[0]
        if basis_points <= first_bp:
            return Decimal(first_score)
        with localcontext(ENGINE_CONTEXT):
            for (low_bp, low_score), (high_bp, high_score) in zip(self.points, self.points[1:]):
                if basis_points <= high_bp:
                    step = Decimal(high_score - low_score) * (basis_points - low_bp)
                    return low_score + step / (high_bp - low_bp)
        return Decimal(self.points[-1][1])


class ScoreWeights(BaseModel):
    """Weight of each category in the overall score, in percent."""

    model_config = ConfigDict(frozen=True)

    income: int = Field(default=20, ge=0, le=100)
    expense: int = Field(default=15, ge=0, le=100)
    asset: int = Field(default=35, ge=0, le=100)
    debt: int = Field(default=15, ge=0, le=100)
    pension: int = Field(default=15, ge=0, le=100)

    @model_validator(mode="after")
    def validate_total(self):
        total = self.income + self.expense + self.asset + self.debt + self.pension
        if total != 100:
            raise ValueError(f"score weights must sum to 100, got {total}")
        return self


class ScoringRules(BaseModel):
    """Curves, weights and grades of the retirement readiness score."""

    model_config = ConfigDict(frozen=True)

    # Savings rate
    income: ScoreCurve = ScoreCurve(points=((0, 0), (1000, 60), (2000, 80), (3000, 100)))
    # Expense to income
    expense: ScoreCurve = ScoreCurve(
        points=((7000, 100), (8000, 80), (9000, 60), (10000, 40), (14000, 0))
    )
    # Retirement progress relative to where the household should be by now
    asset: ScoreCurve = ScoreCurve(points=((0, 0), (5000, 50), (8000, 80), (10000, 100)))
    # Debt to gross assets
    debt: ScoreCurve = ScoreCurve(
        points=((2000, 100), (4000, 80), (6000, 60), (8000, 40), (10000, 20), (14000, 0))
    )
    # Pension income to expense
    pension: ScoreCurve = ScoreCurve(
        points=((0, 0), (2000, 40), (3000, 60), (4000, 80), (5000, 100))
    )
    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    grades: Tuple[Tuple[int, str], ...] = Field(
        default=(
            (90, "A+"),
            (80, "A"),
            (70, "B+"),
            (60, "B"),
            (50, "C+"),
            (40, "C"),
            (30, "D"),
        ),
        description="(minimum score, grade), descending by score",
    )
    lowest_grade: str = "F"
    career_start_age: int = Field(
        default=25, ge=0, le=60, description="Age from which saving for retirement is expected"
    )

    @model_validator(mode="after")
    def validate_grades(self):
        minimums = [minimum for minimum, _ in self.grades]
        if any(high <= low for high, low in zip(minimums, minimums[1:])):
            raise ValueError("grade minimums must be strictly descending")
        return self

    def grade(self, score: int) -> str:
        for minimum, grade in self.grades:
            if score >= minimum:
                return grade
        return self.lowest_grade


class ReadinessScores(BaseModel):
    """Retirement readiness per category and overall, each 0-100."""

    model_config = ConfigDict(frozen=True)

    income: int = Field(..., ge=0, le=100)
    expense: int = Field(..., ge=0, le=100)
    asset: int = Field(..., ge=0, le=100)
    debt: int = Field(..., ge=0, le=100)
    pension: int = Field(..., ge=0, le=100)
    overall: int = Field(..., ge=0, le=100)
    grade: str


def _ratio_bp(numerator: Money, denominator: Money, fallback_bp: int) -> int:
    if denominator.is_zero():
        return fallback_bp
    return to_basis_points(numerator.as_decimal(), denominator.as_decimal())


def relative_progress(
    snapshot: "FinancialSnapshot", current_age: int, retirement_age: int, career_start_age: int
) -> int:
    """
    Retirement progress against the progress expected at ``current_age``.

    Progress is expected to grow linearly from nothing at the career start
    age to the full target at the retirement age. Without a target fund the
    progress is zero.
    """
    target = snapshot.target_retirement_fund
    if target is None or target.is_zero():
        return 0
    with localcontext(ENGINE_CONTEXT):
        progress = snapshot.net_worth.as_decimal() / target.as_decimal()
        years_left = retirement_age - current_age
        expected = Decimal(1)
        if years_left > 0 and retirement_age > career_start_age:
            expected = 1 - Decimal(years_left) / (retirement_age - career_start_age)
        if expected > 0:
            progress = progress / expected
        return round_half_even(progress * BASIS_POINTS)


def readiness_scores(
    snapshot: "FinancialSnapshot",
    current_age: int,
    retirement_age: int,
    rules: Optional[ScoringRules] = None,
) -> ReadinessScores:
    """
    Score how ready a household is for retirement.

    Args:
        snapshot: Financial snapshot of the household
        current_age: Age of the primary person today
        retirement_age: Planned retirement age
        rules: Curves, weights and grades (defaults if omitted)

    Returns:
        ReadinessScores with per-category scores, the weighted overall score and a grade
    """
    rules = ScoringRules() if rules is None else rules
    income, expense = snapshot.monthly_income, snapshot.monthly_expense

    # A zero denominator falls back to a fixed ratio per category
    exact = {
        "income": rules.income.score(_ratio_bp(income - expense, income, 0)),
        "expense": rules.expense.score(_ratio_bp(expense, income, BASIS_POINTS)),
        "asset": rules.asset.score(
            relative_progress(snapshot, current_age, retirement_age, rules.career_start_age)
        ),
        "debt": rules.debt.score(
            _ratio_bp(
                snapshot.total_debt,
                snapshot.gross_assets,
                0 if snapshot.total_debt.is_zero() else BASIS_POINTS,
            )
        ),
        "pension": rules.pension.score(_ratio_bp(snapshot.monthly_pension_income, expense, 0)),
    }
    with localcontext(ENGINE_CONTEXT):
        weighted = sum(
            score * getattr(rules.weights, category) for category, score in exact.items()
        )
        overall = round_half_even(weighted / 100)

    scores = ReadinessScores(
        **{category: round_half_even(score) for category, score in exact.items()},
        overall=overall,
        grade=rules.grade(overall),
    )
    logger.debug(f"Readiness scores: {scores}")
    return scores
