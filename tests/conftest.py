"""
Pytest configuration and shared fixtures for the projection engine tests.
"""

import os
from datetime import date
from unittest.mock import patch

import pytest

from retirement_engine.config import Settings, reset_global_settings
from retirement_engine.engine import ProjectionEngine, create_engine
from retirement_engine.models.household import (
    AssetRecord,
    CashFlowRecord,
    DebtRecord,
    EducationGoal,
    HouseholdProfile,
    Housing,
    PensionEntitlement,
    Person,
)
from retirement_engine.models.money import Money

M = Money.of_minor


@pytest.fixture
def settings() -> Settings:
    """Settings built from a clean environment."""
    with patch.dict(os.environ, {}, clear=True):
        return Settings(_env_file=None)


@pytest.fixture
def engine(settings) -> ProjectionEngine:
    reset_global_settings()
    return create_engine(settings)


@pytest.fixture
def primary() -> Person:
    return Person(id="me", role="self", birth_date=date(1980, 6, 15), retirement_age=60)


@pytest.fixture
def empty_profile(primary) -> HouseholdProfile:
    """A household with a single person and no records."""
    return HouseholdProfile(persons=[primary])


@pytest.fixture
def household(primary) -> HouseholdProfile:
    """An owner-occupied two-earner household with children."""
    return HouseholdProfile(
        persons=[
            primary,
            Person(id="partner", role="spouse", birth_date=date(1982, 3, 1), retirement_age=62),
            Person(id="kid", role="child", birth_date=date(2012, 9, 1)),
        ],
        cash_flows=[
            CashFlowRecord(owner="me", category="labor_income", amount=M(4_000_000)),
            CashFlowRecord(
                owner="partner", category="business_income", amount=M(24_000_000), period="yearly"
            ),
            CashFlowRecord(owner="me", category="fixed_expense", amount=M(2_000_000)),
            CashFlowRecord(owner="partner", category="variable_expense", amount=M(1_000_000)),
        ],
        assets=[
            AssetRecord(owner="me", asset_class="cash", value=M(30_000_000)),
            AssetRecord(
                owner="partner", asset_class="investment", value=M(50_000_000),
                expected_return_pct=6,
            ),
        ],
        debts=[
            DebtRecord(
                owner="me", principal=M(200_000_000), annual_rate_pct=4,
                secured_by_residence=True,
            ),
            DebtRecord(owner="partner", principal=M(10_000_000), annual_rate_pct=6, term_months=60),
        ],
        pensions=[
            PensionEntitlement(owner="me", tier="national", monthly_benefit=M(1_200_000), claim_age=65),
            PensionEntitlement(owner="me", tier="occupational", accumulated_balance=M(48_000_000)),
            PensionEntitlement(owner="partner", tier="personal", accumulated_balance=M(24_000_000)),
        ],
        education_goals=[
            EducationGoal(owner="kid", target_cost=M(80_000_000), earmarked_savings=M(20_000_000)),
        ],
        housing=Housing(housing_type="owner_occupied", property_value=M(500_000_000)),
        target_retirement_age=60,
        target_retirement_fund=M(1_000_000_000),
    )
