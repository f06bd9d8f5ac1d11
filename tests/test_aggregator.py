"""
Tests for household aggregation and the financial snapshot.
"""

import pytest
from pydantic import ValidationError

from retirement_engine.models.aggregator import (
    build_snapshot,
    housing_equity,
    monthly_debt_service,
    monthly_expense,
    monthly_income,
    monthly_pension_income,
    net_worth,
    total_assets_by_class,
    total_debt,
)
from retirement_engine.models.growth import amortized_payment
from retirement_engine.models.household import (
    AssetRecord,
    CashFlowRecord,
    DebtRecord,
    HouseholdProfile,
    Housing,
    PensionEntitlement,
)
from retirement_engine.models.money import Money
from retirement_engine.models.ratios import DefinedRatio, UndefinedRatio

M = Money.of_minor


class TestEmptyProfile:
    """Test that an empty profile aggregates to zero."""

    def test_totals_are_zero(self, empty_profile):
        assert monthly_income(empty_profile) == Money.zero()
        assert monthly_expense(empty_profile) == Money.zero()
        assert total_debt(empty_profile) == Money.zero()
        assert net_worth(empty_profile) == Money.zero()
        assert monthly_pension_income(empty_profile) == Money.zero()
        assert all(value.is_zero() for value in total_assets_by_class(empty_profile).values())

    def test_snapshot_savings_rate_undefined(self, empty_profile):
        """Test that a household without income has an undefined savings rate."""
        snapshot = build_snapshot(empty_profile)
        assert isinstance(snapshot.savings_rate, UndefinedRatio)
        assert snapshot.savings_rate.reason == "no_income"


class TestHouseholdTotals:
    """Test totals for the sample household."""

    def test_monthly_income_normalizes_periods(self, household):
        # 4,000,000 monthly + 24,000,000 yearly
        assert monthly_income(household) == M(6_000_000)

    def test_monthly_expense(self, household):
        assert monthly_expense(household) == M(3_000_000)

    def test_assets_by_class(self, household):
        assets = total_assets_by_class(household)
        assert assets["cash"] == M(30_000_000)
        assert assets["investment"] == M(50_000_000)
        assert assets["real_estate_equity"] == Money.zero()

    def test_housing_equity(self, household):
        assert housing_equity(household) == M(300_000_000)

    def test_net_worth_counts_residential_loan_once(self, household):
        """Test net worth = cash + investment + housing equity - other debt."""
        # 30M + 50M + (500M - 200M) - 10M
        assert net_worth(household) == M(370_000_000)

    def test_pension_income_annuitizes_balances(self, household):
        # 1.2M benefit + 48M / 240 + 24M / 240
        assert monthly_pension_income(household) == M(1_500_000)

    def test_pension_income_with_custom_payout_years(self, household):
        assert monthly_pension_income(household, payout_years=10) == M(1_800_000)

    def test_monthly_debt_service_uses_each_term(self, household):
        """Test that each loan is amortized over its own term or the default."""
        expected = (
            amortized_payment(M(200_000_000), 4, 360).payment
            + amortized_payment(M(10_000_000), 6, 60).payment
        )
        assert monthly_debt_service(household) == expected


class TestHousingTenure:
    """Test how housing tenure changes the balance sheet."""

    def _profile(self, primary, housing, debts=()):
        return HouseholdProfile(
            persons=[primary],
            assets=[AssetRecord(owner="me", asset_class="cash", value=M(10_000_000))],
            debts=list(debts),
            housing=housing,
        )

    def test_rented_deposit_is_cash(self, primary):
        """Test that a rental deposit is a cash-like asset, not equity."""
        profile = self._profile(
            primary,
            Housing(housing_type="rented", deposit=M(150_000_000), property_value=M(900_000_000)),
        )
        assert total_assets_by_class(profile)["cash"] == M(160_000_000)
        assert housing_equity(profile) == Money.zero()
        assert net_worth(profile) == M(160_000_000)

    def test_rented_subtracts_all_debt(self, primary):
        profile = self._profile(
            primary,
            Housing(housing_type="rented", deposit=M(100_000_000)),
            debts=[DebtRecord(owner="me", principal=M(80_000_000), secured_by_residence=True)],
        )
        assert net_worth(profile) == M(30_000_000)

    def test_owner_occupied_underwater(self, primary):
        """Test that negative equity reduces net worth."""
        profile = self._profile(
            primary,
            Housing(housing_type="owner_occupied", property_value=M(100_000_000)),
            debts=[DebtRecord(owner="me", principal=M(120_000_000), secured_by_residence=True)],
        )
        assert housing_equity(profile) == M(-20_000_000)
        assert net_worth(profile) == M(-10_000_000)


class TestOneTimeFlows:
    """Test that one-time records feed assets, not flows."""

    def test_one_time_income_and_expense(self, primary):
        profile = HouseholdProfile(
            persons=[primary],
            cash_flows=[
                CashFlowRecord(owner="me", category="labor_income", amount=M(1_000_000)),
                CashFlowRecord(
                    owner="me", category="business_income", amount=M(5_000_000), period="one_time"
                ),
                CashFlowRecord(
                    owner="me", category="fixed_expense", amount=M(2_000_000), period="one_time"
                ),
            ],
        )
        assert monthly_income(profile) == M(1_000_000)
        assert monthly_expense(profile) == Money.zero()
        assert total_assets_by_class(profile)["cash"] == M(3_000_000)


class TestSnapshot:
    """Test the derived snapshot."""

    def test_snapshot_fields(self, household):
        snapshot = build_snapshot(household)
        assert snapshot.monthly_income == M(6_000_000)
        assert snapshot.monthly_surplus == M(3_000_000)
        assert snapshot.annual_income == M(72_000_000)
        assert snapshot.income_by_category["business_income"] == M(2_000_000)
        assert snapshot.residential_loan == M(200_000_000)
        assert snapshot.property_value == M(500_000_000)
        assert snapshot.pension_balance_by_tier["occupational"] == M(48_000_000)
        assert snapshot.education_target == M(80_000_000)
        assert snapshot.education_earmarked == M(20_000_000)
        assert snapshot.liquid_assets == M(80_000_000)
        assert snapshot.savings_rate == DefinedRatio(basis_points=5000)

    def test_snapshot_is_immutable(self, household):
        snapshot = build_snapshot(household)
        with pytest.raises(ValidationError):
            snapshot.net_worth = Money.zero()

    def test_category_totals_are_read_only(self, household):
        snapshot = build_snapshot(household)
        with pytest.raises(TypeError):
            snapshot.assets_by_class["cash"] = Money.zero()
        with pytest.raises(TypeError):
            snapshot.pension_balance_by_tier["occupational"] = Money.zero()
        assert snapshot.assets_by_class["cash"] == M(30_000_000)

    def test_category_totals_dump_as_dict(self, household):
        dumped = build_snapshot(household).model_dump()
        assert dumped["income_by_category"]["labor_income"] == {"minor_units": 4_000_000}

    def test_gross_assets_include_home(self, household):
        assert build_snapshot(household).gross_assets == M(580_000_000)

    def test_snapshot_is_deterministic(self, household):
        """Test that rebuilding from the same profile gives an identical snapshot."""
        assert build_snapshot(household) == build_snapshot(household)

    def test_changed_profile_gives_new_snapshot(self, household):
        before = build_snapshot(household)
        changed = household.model_copy(
            update={
                "pensions": household.pensions
                + (PensionEntitlement(owner="partner", tier="other", monthly_benefit=M(100_000)),)
            }
        )
        after = build_snapshot(changed)
        assert after.monthly_pension_income == before.monthly_pension_income + M(100_000)
        assert before.monthly_pension_income == M(1_500_000)
