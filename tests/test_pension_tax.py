"""
Tests for pension income tax and the personal pension tax credit.
"""

import pytest
from pydantic import ValidationError

from retirement_engine.models.money import Money
from retirement_engine.models.pension_tax import (
    AgeRate,
    PensionTaxRules,
    pension_income_tax,
    personal_pension_tax_credit,
)

M = Money.of_minor


class TestPensionIncomeTax:
    """Test tax on a year of pension income."""

    def test_national_below_threshold_is_exempt(self):
        result = pension_income_tax(M(3_000_000), "national")
        assert result.rate_bp == 0
        assert result.tax_amount == Money.zero()
        assert result.net_amount == M(3_000_000)

    def test_national_above_threshold(self):
        result = pension_income_tax(M(12_000_000), "national")
        assert result.rate_bp == 500
        assert result.tax_amount == M(600_000)
        assert result.net_amount == M(11_400_000)

    @pytest.mark.parametrize(
        "age,rate,tax", [(55, 550, 550_000), (69, 550, 550_000), (70, 440, 440_000), (85, 330, 330_000)]
    )
    def test_occupational_rate_falls_with_age(self, age, rate, tax):
        result = pension_income_tax(M(10_000_000), "occupational", age)
        assert result.rate_bp == rate
        assert result.tax_amount == M(tax)

    @pytest.mark.parametrize("tier", ["personal", "other"])
    def test_other_tiers_use_age_rates(self, tier):
        assert pension_income_tax(M(10_000_000), tier, 72).rate_bp == 440

    def test_tax_rounds_half_even(self):
        # 1,234 x 5.5% = 67.87
        assert pension_income_tax(M(1_234), "personal", 65).tax_amount == M(68)

    def test_custom_rules(self):
        rules = PensionTaxRules(age_rates=(AgeRate(min_age=0, rate_bp=1000),))
        assert pension_income_tax(M(1_000_000), "personal", 90, rules).tax_amount == M(100_000)

    def test_minor_unit_currency(self):
        """Test that the exempt threshold is read in major units."""
        rules = PensionTaxRules(currency_exponent=2)
        assert pension_income_tax(M(300_000_000), "national", rules=rules).rate_bp == 0
        assert pension_income_tax(M(1_200_000_000), "national", rules=rules).rate_bp == 500

    def test_rules_must_start_at_age_zero(self):
        with pytest.raises(ValidationError):
            PensionTaxRules(age_rates=(AgeRate(min_age=60, rate_bp=500),))


class TestPersonalPensionTaxCredit:
    """Test the credit for personal pension contributions."""

    def test_low_income_rate_with_limit(self):
        result = personal_pension_tax_credit(M(12_000_000), M(50_000_000))
        assert result.eligible_amount == M(9_000_000)
        assert result.credit_rate_bp == 1650
        assert result.credit_amount == M(1_485_000)

    def test_high_income_rate(self):
        result = personal_pension_tax_credit(M(12_000_000), M(60_000_000))
        assert result.credit_rate_bp == 1320
        assert result.credit_amount == M(1_188_000)

    def test_threshold_is_inclusive(self):
        result = personal_pension_tax_credit(M(4_000_000), M(55_000_000))
        assert result.eligible_amount == M(4_000_000)
        assert result.credit_amount == M(660_000)

    def test_limits_scale_with_currency(self):
        rules = PensionTaxRules(currency_exponent=2)
        result = personal_pension_tax_credit(M(1_200_000_000), M(5_000_000_000), rules)
        assert result.eligible_amount == M(900_000_000)
        assert result.credit_rate_bp == 1650
