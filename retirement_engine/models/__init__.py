"""Calculation models for household financial projections."""

from .money import Money
from .household import (
    AssetRecord,
    CashFlowRecord,
    DebtRecord,
    EducationGoal,
    HouseholdProfile,
    Housing,
    PensionEntitlement,
    Person,
)
from .aggregator import FinancialSnapshot, build_snapshot
from .ratios import (
    BandTable,
    BandTables,
    DefinedRatio,
    IncomeStability,
    RatioReport,
    ReadinessScores,
    ScoreCurve,
    ScoreWeights,
    ScoringRules,
    UndefinedRatio,
    calculate_ratios,
    readiness_scores,
)
from .growth import (
    AmortizedPayment,
    DrawdownResult,
    GrowthProjection,
    LifetimeSimulation,
    RequiredContribution,
    amortized_payment,
    project_balance,
    project_balance_with_schedule,
    project_growth,
    required_contribution,
    simulate_drawdown,
    simulate_lifetime,
)
from .national_pension import (
    ClaimingAdjustment,
    NationalPensionConfig,
    NationalPensionEstimate,
    estimate_national_pension,
)
from .scenarios import (
    ClaimingAgeResult,
    ClaimingComparison,
    OutlookResult,
    ReturnComparison,
    ReturnScenarioResult,
    ScenarioResult,
    compare_claiming_ages,
    compare_return_scenarios,
)
from .gap import GapReport, analyze_retirement_gap

__all__ = [
    "Money",
    "Person",
    "CashFlowRecord",
    "AssetRecord",
    "DebtRecord",
    "PensionEntitlement",
    "Housing",
    "EducationGoal",
    "HouseholdProfile",
    "FinancialSnapshot",
    "build_snapshot",
    "BandTable",
    "BandTables",
    "DefinedRatio",
    "UndefinedRatio",
    "IncomeStability",
    "RatioReport",
    "calculate_ratios",
    "ReadinessScores",
    "ScoreCurve",
    "ScoreWeights",
    "ScoringRules",
    "readiness_scores",
    "AmortizedPayment",
    "DrawdownResult",
    "GrowthProjection",
    "LifetimeSimulation",
    "RequiredContribution",
    "amortized_payment",
    "project_balance",
    "project_balance_with_schedule",
    "project_growth",
    "required_contribution",
    "simulate_drawdown",
    "simulate_lifetime",
    "ClaimingAdjustment",
    "NationalPensionConfig",
    "NationalPensionEstimate",
    "estimate_national_pension",
    "ScenarioResult",
    "ClaimingAgeResult",
    "ClaimingComparison",
    "ReturnScenarioResult",
    "ReturnComparison",
    "OutlookResult",
    "compare_claiming_ages",
    "compare_return_scenarios",
    "GapReport",
    "analyze_retirement_gap",
]
