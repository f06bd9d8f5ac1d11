"""
Tests for household profile models and their boundary validation.
"""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from retirement_engine.models.household import (
    AssetRecord,
    CashFlowRecord,
    DebtRecord,
    HouseholdProfile,
    Housing,
    PensionEntitlement,
    Person,
)
from retirement_engine.models.money import Money

M = Money.of_minor


class TestPerson:
    """Test the Person model."""

    def test_basic_person(self):
        person = Person(id="me", role="self", retirement_age=60)
        assert person.retirement_age == 60
        assert person.birth_date is None

    @pytest.mark.parametrize("age", [29, 101])
    def test_retirement_age_out_of_range(self, age):
        """Test that retirement ages outside [30, 100] are rejected."""
        with pytest.raises(ValidationError):
            Person(id="me", role="self", retirement_age=age)

    @pytest.mark.parametrize("age", [30, 100])
    def test_retirement_age_bounds_inclusive(self, age):
        assert Person(id="me", role="self", retirement_age=age).retirement_age == age

    def test_retirement_age_only_for_adults_in_work(self):
        """Test that children cannot carry a retirement age."""
        with pytest.raises(ValidationError) as exc_info:
            Person(id="kid", role="child", retirement_age=60)
        assert "retirement_age is only allowed" in str(exc_info.value)

    def test_age_on(self):
        """Test age calculation around the birthday."""
        person = Person(id="me", role="self", birth_date=date(1980, 6, 15))
        assert person.age_on(date(2026, 6, 14)) == 45
        assert person.age_on(date(2026, 6, 15)) == 46

    def test_age_without_birth_date(self):
        assert Person(id="me", role="self").age_on(date(2026, 1, 1)) is None


class TestRecords:
    """Test validation of financial records."""

    def test_negative_cash_flow_rejected(self):
        """Test that negative amounts surface as validation failures."""
        with pytest.raises(ValidationError) as exc_info:
            CashFlowRecord(owner="me", category="labor_income", amount=M(-1))
        assert "amount must be >= 0" in str(exc_info.value)

    def test_cash_flow_defaults_to_monthly(self):
        record = CashFlowRecord(owner="me", category="fixed_expense", amount=M(10))
        assert record.period == "monthly"
        assert not record.is_income

    def test_unknown_period_rejected(self):
        with pytest.raises(ValidationError):
            CashFlowRecord(owner="me", category="fixed_expense", amount=M(10), period="weekly")

    @pytest.mark.parametrize("rate", [-100.5, 100.5])
    def test_asset_return_out_of_range_rejected(self, rate):
        """Test that expected returns outside [-100, 100] are rejected, not clamped."""
        with pytest.raises(ValidationError):
            AssetRecord(owner="me", asset_class="investment", value=M(1), expected_return_pct=rate)

    def test_asset_return_stored_as_decimal(self):
        asset = AssetRecord(owner="me", asset_class="investment", value=M(1), expected_return_pct=6.5)
        assert asset.expected_return_pct == Decimal("6.5")

    def test_negative_debt_rate_rejected(self):
        with pytest.raises(ValidationError):
            DebtRecord(owner="me", principal=M(100), annual_rate_pct=-1)

    def test_negative_principal_rejected(self):
        with pytest.raises(ValidationError):
            DebtRecord(owner="me", principal=M(-100))

    def test_pension_requires_exactly_one_representation(self):
        """Test that a pension is either a benefit or a balance."""
        with pytest.raises(ValidationError):
            PensionEntitlement(owner="me", tier="national")
        with pytest.raises(ValidationError):
            PensionEntitlement(
                owner="me", tier="personal", monthly_benefit=M(1), accumulated_balance=M(1)
            )

    def test_housing_rejects_negative_value(self):
        with pytest.raises(ValidationError):
            Housing(housing_type="owner_occupied", property_value=M(-1))


class TestHouseholdProfile:
    """Test household-level invariants."""

    def test_requires_exactly_one_self(self):
        with pytest.raises(ValidationError) as exc_info:
            HouseholdProfile(persons=[Person(id="a", role="spouse")])
        assert "exactly one 'self'" in str(exc_info.value)

    def test_rejects_two_spouses(self):
        with pytest.raises(ValidationError):
            HouseholdProfile(
                persons=[
                    Person(id="a", role="self"),
                    Person(id="b", role="spouse"),
                    Person(id="c", role="spouse"),
                ]
            )

    def test_rejects_duplicate_ids(self):
        with pytest.raises(ValidationError):
            HouseholdProfile(persons=[Person(id="a", role="self"), Person(id="a", role="child")])

    def test_rejects_unknown_owner(self):
        """Test that records must belong to a household member."""
        with pytest.raises(ValidationError) as exc_info:
            HouseholdProfile(
                persons=[Person(id="me", role="self")],
                assets=[AssetRecord(owner="ghost", asset_class="cash", value=M(1))],
            )
        assert "ghost" in str(exc_info.value)

    def test_collections_are_immutable(self, household):
        assert isinstance(household.pensions, tuple)
        with pytest.raises(AttributeError):
            household.pensions.append(None)
        with pytest.raises(TypeError):
            household.assets[0] = None

    def test_default_life_expectancy(self, empty_profile):
        assert empty_profile.life_expectancy == 90

    def test_planned_retirement_age_falls_back_to_target(self):
        profile = HouseholdProfile(persons=[Person(id="me", role="self")], target_retirement_age=58)
        assert profile.planned_retirement_age == 58

    def test_accessors(self, household):
        assert household.primary.id == "me"
        assert household.spouse.id == "partner"
        assert household.person("kid").role == "child"
        assert household.is_owner_occupied
        with pytest.raises(KeyError):
            household.person("ghost")

    def test_profile_is_frozen(self, empty_profile):
        with pytest.raises(ValidationError):
            empty_profile.life_expectancy = 80
