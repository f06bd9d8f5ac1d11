"""
Pension income tax and personal pension tax credit.

Simplified effective rates: national pension income is exempt up to an
annual threshold, occupational and personal pension income is taxed at a
rate that falls with the recipient's age.
"""

from decimal import Decimal
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .household import PensionTier
from .money import BASIS_POINTS, MajorUnitConfig, Money


class AgeRate(BaseModel):
    """Tax rate applying from ``min_age`` upwards."""

    model_config = ConfigDict(frozen=True)

    min_age: int = Field(..., ge=0, le=120)
    rate_bp: int = Field(..., ge=0, le=BASIS_POINTS)


class PensionTaxRules(MajorUnitConfig):
    """Rates and thresholds for pension taxation, amounts in major units."""

    national_exempt_threshold: Decimal = Field(
        default=Decimal("3500000"), ge=0, description="Annual tax-free national pension"
    )
    national_rate_bp: int = Field(default=500, ge=0, le=BASIS_POINTS)
    age_rates: Tuple[AgeRate, ...] = Field(
        default=(
            AgeRate(min_age=0, rate_bp=550),
            AgeRate(min_age=70, rate_bp=440),
            AgeRate(min_age=80, rate_bp=330),
        ),
        min_length=1,
    )
    credit_eligible_limit: Decimal = Field(
        default=Decimal("9000000"), ge=0, description="Annual contribution eligible for credit"
    )
    credit_income_threshold: Decimal = Field(default=Decimal("55000000"), ge=0)
    credit_rate_low_income_bp: int = Field(default=1650, ge=0, le=BASIS_POINTS)
    credit_rate_high_income_bp: int = Field(default=1320, ge=0, le=BASIS_POINTS)

    @model_validator(mode="after")
    def validate_age_rates(self):
        ages = [rate.min_age for rate in self.age_rates]
        if ages != sorted(set(ages)) or ages[0] != 0:
            raise ValueError("age rates must start at age 0 and be unique and ascending")
        return self

    def rate_for_age(self, age: int) -> int:
        rate = self.age_rates[0].rate_bp
        for age_rate in self.age_rates:
            if age >= age_rate.min_age:
                rate = age_rate.rate_bp
        return rate


class PensionTaxResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    gross_amount: Money
    rate_bp: int
    tax_amount: Money
    net_amount: Money


class TaxCreditResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    eligible_amount: Money
    credit_rate_bp: int
    credit_amount: Money


def _apply_rate(amount: Money, rate_bp: int) -> Money:
    return (amount * rate_bp).divide(BASIS_POINTS)


def pension_income_tax(
    annual_amount: Money,
    tier: PensionTier,
    age: int = 65,
    rules: PensionTaxRules = PensionTaxRules(),
) -> PensionTaxResult:
    """
    Tax due on a year of pension income.

    Args:
        annual_amount: Gross annual pension income
        tier: Pension tier the income comes from
        age: Recipient's age
        rules: Rates and thresholds

    Returns:
        Gross, rate, tax and net amounts
    """
    if tier == "national":
        exempt = rules.money(rules.national_exempt_threshold)
        rate = 0 if annual_amount <= exempt else rules.national_rate_bp
    else:
        rate = rules.rate_for_age(age)

    tax = _apply_rate(annual_amount, rate)
    return PensionTaxResult(
        gross_amount=annual_amount,
        rate_bp=rate,
        tax_amount=tax,
        net_amount=annual_amount - tax,
    )


def personal_pension_tax_credit(
    annual_contribution: Money,
    annual_income: Money,
    rules: PensionTaxRules = PensionTaxRules(),
) -> TaxCreditResult:
    """Tax credit earned by personal pension contributions."""
    eligible = min(annual_contribution, rules.money(rules.credit_eligible_limit))
    if annual_income <= rules.money(rules.credit_income_threshold):
        rate = rules.credit_rate_low_income_bp
    else:
        rate = rules.credit_rate_high_income_bp
    return TaxCreditResult(
        eligible_amount=eligible,
        credit_rate_bp=rate,
        credit_amount=_apply_rate(eligible, rate),
    )
