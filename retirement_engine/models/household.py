"""
Pydantic models for household financial profiles.

This module defines the raw inputs of the projection engine: the people in a
household and their cash flows, assets, debts, pension entitlements and
education goals. All models are frozen; the engine never mutates a profile.
"""

from datetime import date
from decimal import Decimal
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .money import Money

PersonRole = Literal["self", "spouse", "child", "dependent_parent"]
CashFlowCategory = Literal[
    "labor_income", "business_income", "fixed_expense", "variable_expense"
]
Period = Literal["monthly", "yearly", "one_time"]
AssetClass = Literal["cash", "investment", "real_estate_equity"]
PensionTier = Literal["national", "occupational", "personal", "other"]
HousingType = Literal["owner_occupied", "rented", "other"]

INCOME_CATEGORIES = ("labor_income", "business_income")
EXPENSE_CATEGORIES = ("fixed_expense", "variable_expense")
ASSET_CLASSES = ("cash", "investment", "real_estate_equity")
PENSION_TIERS = ("national", "occupational", "personal", "other")

DEFAULT_LIFE_EXPECTANCY = 90


def _require_non_negative(value: Optional[Money], field: str) -> Optional[Money]:
    if value is not None and value.is_negative():
        raise ValueError(f"{field} must be >= 0, got {value.minor_units}")
    return value


class Person(BaseModel):
    """A member of the household."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Identifier referenced by records")
    role: PersonRole = Field(..., description="Role within the household")
    birth_date: Optional[date] = Field(default=None, description="Date of birth")
    retirement_age: Optional[int] = Field(
        default=None, ge=30, le=100, description="Planned retirement age"
    )

    @model_validator(mode="after")
    def validate_retirement_age_role(self):
        if self.retirement_age is not None and self.role not in ("self", "spouse"):
            raise ValueError(
                f"retirement_age is only allowed for self or spouse, not {self.role}"
            )
        return self

    def age_on(self, on: date) -> Optional[int]:
        """Age in whole years on the given date, or None without a birth date."""
        if self.birth_date is None:
            return None
        age = on.year - self.birth_date.year
        if (on.month, on.day) < (self.birth_date.month, self.birth_date.day):
            age -= 1
        return age


class CashFlowRecord(BaseModel):
    """A recurring or one-time income or expense."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., min_length=1, description="Person id")
    category: CashFlowCategory = Field(..., description="Cash flow category")
    amount: Money = Field(..., description="Amount per period")
    period: Period = Field(default="monthly", description="Period of the amount")
    name: str = Field(default="", description="Free-form label")

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Money) -> Money:
        return _require_non_negative(v, "amount")

    @property
    def is_income(self) -> bool:
        return self.category in INCOME_CATEGORIES


class AssetRecord(BaseModel):
    """A point-in-time asset holding."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., min_length=1, description="Person id")
    asset_class: AssetClass = Field(..., description="Asset class")
    value: Money = Field(..., description="Current value")
    expected_return_pct: Optional[Decimal] = Field(
        default=None, ge=-100, le=100, description="Expected annual return (%)"
    )
    name: str = Field(default="", description="Free-form label")

    @field_validator("value")
    @classmethod
    def validate_value(cls, v: Money) -> Money:
        return _require_non_negative(v, "value")


class DebtRecord(BaseModel):
    """An outstanding loan."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., min_length=1, description="Person id")
    principal: Money = Field(..., description="Outstanding principal balance")
    annual_rate_pct: Decimal = Field(
        default=Decimal("0"), ge=0, le=100, description="Annual interest rate (%)"
    )
    term_months: Optional[int] = Field(
        default=None, ge=1, le=600, description="Remaining amortization term"
    )
    maturity: Optional[date] = Field(default=None, description="Maturity date")
    secured_by_residence: bool = Field(
        default=False, description="Whether this is the loan on the household's home"
    )
    name: str = Field(default="", description="Free-form label")

    @field_validator("principal")
    @classmethod
    def validate_principal(cls, v: Money) -> Money:
        return _require_non_negative(v, "principal")


class PensionEntitlement(BaseModel):
    """A pension source, either a known benefit or a balance to annuitize."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., min_length=1, description="Person id")
    tier: PensionTier = Field(..., description="Pension tier")
    monthly_benefit: Optional[Money] = Field(
        default=None, description="Known monthly benefit"
    )
    accumulated_balance: Optional[Money] = Field(
        default=None, description="Accumulated balance to be annuitized"
    )
    claim_age: Optional[int] = Field(
        default=None, ge=30, le=100, description="Age benefits start"
    )

    @field_validator("monthly_benefit", "accumulated_balance")
    @classmethod
    def validate_amounts(cls, v: Optional[Money], info) -> Optional[Money]:
        return _require_non_negative(v, info.field_name)

    @model_validator(mode="after")
    def validate_representation(self):
        if (self.monthly_benefit is None) == (self.accumulated_balance is None):
            raise ValueError(
                "exactly one of monthly_benefit or accumulated_balance must be set"
            )
        return self


class Housing(BaseModel):
    """The household's primary residence."""

    model_config = ConfigDict(frozen=True)

    housing_type: HousingType = Field(..., description="Tenure of the residence")
    property_value: Money = Field(default_factory=Money.zero, description="Market value")
    deposit: Money = Field(default_factory=Money.zero, description="Rental deposit")

    @field_validator("property_value", "deposit")
    @classmethod
    def validate_amounts(cls, v: Money, info) -> Money:
        return _require_non_negative(v, info.field_name)


class EducationGoal(BaseModel):
    """Education funding target for a child."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., min_length=1, description="Child's person id")
    target_cost: Money = Field(..., description="Total expected education cost")
    earmarked_savings: Money = Field(
        default_factory=Money.zero, description="Savings set aside for the goal"
    )

    @field_validator("target_cost", "earmarked_savings")
    @classmethod
    def validate_amounts(cls, v: Money, info) -> Money:
        return _require_non_negative(v, info.field_name)


class HouseholdProfile(BaseModel):
    """Aggregate root for all household inputs."""

    model_config = ConfigDict(frozen=True)

    persons: Tuple[Person, ...] = Field(..., min_length=1, description="Household members")
    cash_flows: Tuple[CashFlowRecord, ...] = Field(default_factory=tuple)
    assets: Tuple[AssetRecord, ...] = Field(default_factory=tuple)
    debts: Tuple[DebtRecord, ...] = Field(default_factory=tuple)
    pensions: Tuple[PensionEntitlement, ...] = Field(default_factory=tuple)
    education_goals: Tuple[EducationGoal, ...] = Field(default_factory=tuple)
    housing: Optional[Housing] = Field(default=None, description="Primary residence")
    target_retirement_age: Optional[int] = Field(default=None, ge=30, le=100)
    target_retirement_fund: Optional[Money] = Field(default=None)
    life_expectancy: int = Field(default=DEFAULT_LIFE_EXPECTANCY, ge=30, le=120)

    @field_validator("target_retirement_fund")
    @classmethod
    def validate_target_fund(cls, v: Optional[Money]) -> Optional[Money]:
        return _require_non_negative(v, "target_retirement_fund")

    @model_validator(mode="after")
    def validate_household(self):
        roles = [person.role for person in self.persons]
        if roles.count("self") != 1:
            raise ValueError("household must contain exactly one 'self' person")
        if roles.count("spouse") > 1:
            raise ValueError("household may contain at most one spouse")

        ids = [person.id for person in self.persons]
        if len(ids) != len(set(ids)):
            raise ValueError("person ids must be unique")

        known = set(ids)
        records = [
            *self.cash_flows,
            *self.assets,
            *self.debts,
            *self.pensions,
            *self.education_goals,
        ]
        for record in records:
            if record.owner not in known:
                raise ValueError(f"record owner '{record.owner}' is not a household member")
        return self

    @property
    def primary(self) -> Person:
        return next(person for person in self.persons if person.role == "self")

    @property
    def spouse(self) -> Optional[Person]:
        return next((person for person in self.persons if person.role == "spouse"), None)

    def person(self, person_id: str) -> Person:
        for person in self.persons:
            if person.id == person_id:
                return person
        raise KeyError(person_id)

    @property
    def is_owner_occupied(self) -> bool:
        return self.housing is not None and self.housing.housing_type == "owner_occupied"

    @property
    def planned_retirement_age(self) -> Optional[int]:
        """Retirement age of the primary person, falling back to the household target."""
        if self.primary.retirement_age is not None:
            return self.primary.retirement_age
        return self.target_retirement_age

    def retirement_age_or(self, default: int) -> int:
        planned = self.planned_retirement_age
        return default if planned is None else planned
