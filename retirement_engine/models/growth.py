"""
Compound growth projections for savings and loans.

This module provides forward simulation of a balance under monthly
contributions, the inverse problem (the level contribution needed to reach a
target), level-payment loan amortization, drawdown simulation and a
year-by-year simulation of household assets from today to the end of life.

All arithmetic runs in ``Decimal`` under ``ENGINE_CONTEXT`` and is rounded to
minor units only once, at the end, so results are reproducible bit for bit.
"""

import itertools
import logging
from decimal import Decimal, localcontext
from typing import Iterable, Literal, Optional, Union

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field

from .money import ENGINE_CONTEXT, Money, Number, round_half_even, round_up, to_decimal
from ..errors import OutOfDomainInputError

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12

Contribution = Union[Money, Decimal]


class RequiredContribution(BaseModel):
    """Level monthly contribution needed to reach a target balance."""

    model_config = ConfigDict(frozen=True)

    status: Literal["on_track", "required", "no_time_remaining"] = Field(
        ..., description="Whether further contributions are needed and possible"
    )
    amount: Money = Field(..., description="Monthly contribution rounded up to a minor unit")
    exact_amount: Decimal = Field(..., description="Unrounded monthly contribution")
    shortfall: Money = Field(
        ..., description="Target minus the grown principal (never negative)"
    )


class AmortizedPayment(BaseModel):
    """Level monthly payment for a loan."""

    model_config = ConfigDict(frozen=True)

    payment: Money = Field(..., description="Monthly payment rounded up to a minor unit")
    total_months: int = Field(..., ge=1)
    zero_rate: bool = Field(
        ..., description="True when the rate is zero and the payment is principal / months"
    )

    @property
    def total_paid(self) -> Money:
        return self.payment * self.total_months


class GrowthProjection(BaseModel):
    """Nominal and inflation-adjusted outcome of a growth projection."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    nominal_value: Money
    real_value: Money
    total_contribution: Money
    total_growth: Money
    yearly_nominal: NDArray[np.int64] = Field(
        ..., description="Nominal balance at each year end, starting with year 0"
    )
    yearly_real: NDArray[np.int64] = Field(
        ..., description="Inflation-discounted balance at each year end"
    )


class DrawdownResult(BaseModel):
    """Outcome of drawing a balance down with level monthly withdrawals."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    total_received: Money
    remaining_balance: Money
    exhaustion_month: Optional[int] = Field(
        default=None, description="Month the balance ran out (1-based), if it did"
    )
    exhaustion_year: Optional[int] = Field(
        default=None, description="Year the balance ran out (1-based), if it did"
    )
    yearly_balances: NDArray[np.int64] = Field(
        ..., description="Balance at each year end, starting with year 0"
    )


class LifetimeSimulation(BaseModel):
    """Year-by-year household assets from the current age to life expectancy."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ages: NDArray[np.int64] = Field(..., description="Age during each simulated year")
    balances: NDArray[np.int64] = Field(
        ..., description="Assets at each year end, floored at zero"
    )
    incomes: NDArray[np.int64] = Field(..., description="Earned and pension income per year")
    expenses: NDArray[np.int64] = Field(..., description="Inflated living expenses per year")
    depletion_age: Optional[int] = Field(
        default=None, description="Age in which assets ran out, if they did"
    )

    @property
    def final_balance(self) -> Money:
        return Money.of_minor(int(self.balances[-1]))

    @property
    def is_depleted(self) -> bool:
        return self.depletion_age is not None


def annual_rate(annual_rate_pct: Number, field: str = "annual_rate_pct") -> Decimal:
    """Convert an annual percentage to a decimal rate."""
    rate = to_decimal(annual_rate_pct, field)
    if not Decimal(-100) <= rate <= Decimal(100):
        raise OutOfDomainInputError(
            f"annual rate must be within [-100, 100], got {rate}", field, rate
        )
    with localcontext(ENGINE_CONTEXT):
        return rate / 100


def monthly_rate(annual_rate_pct: Number) -> Decimal:
    """Convert an annual percentage rate to a monthly decimal rate."""
    rate = annual_rate(annual_rate_pct)
    with localcontext(ENGINE_CONTEXT):
        return rate / MONTHS_PER_YEAR


def _contribution_decimal(contribution: Contribution) -> Decimal:
    if isinstance(contribution, Money):
        value = contribution.as_decimal()
    else:
        value = to_decimal(contribution, "contribution")
    if value < 0:
        raise OutOfDomainInputError(
            f"contribution must be >= 0, got {value}", "contribution", value
        )
    return value


def _validate_non_negative(amount: Money, field: str) -> None:
    if amount.is_negative():
        raise OutOfDomainInputError(
            f"{field} must be >= 0, got {amount.minor_units}", field, amount.minor_units
        )


def _validate_months(months: int, field: str = "months") -> None:
    if isinstance(months, bool) or not isinstance(months, int) or months < 0:
        raise OutOfDomainInputError(f"{field} must be a non-negative integer", field, months)


def _read_only(array: NDArray[np.int64]) -> NDArray[np.int64]:
    array.setflags(write=False)
    return array


def _accumulate(principal: Money, contributions: Iterable[Contribution], rate: Decimal):
    """Yield the unrounded balance after each month."""
    with localcontext(ENGINE_CONTEXT):
        growth = 1 + rate
        balance = principal.as_decimal()
        for contribution in contributions:
            # Interest accrues first; the contribution lands at month end
            balance = balance * growth + _contribution_decimal(contribution)
            yield balance


def project_balance_with_schedule(
    principal: Money, contributions: Iterable[Contribution], annual_rate_pct: Number
) -> Money:
    """
    Project a balance under an arbitrary monthly contribution schedule.

    Args:
        principal: Starting balance
        contributions: One contribution per month, in order
        annual_rate_pct: Annual return in percent, compounded monthly

    Returns:
        Balance after the last scheduled month
    """
    _validate_non_negative(principal, "principal")
    rate = monthly_rate(annual_rate_pct)

    balance = principal.as_decimal()
    for balance in _accumulate(principal, contributions, rate):
        pass
    return Money.of_minor(round_half_even(balance))


def project_balance(
    principal: Money,
    monthly_contribution: Contribution,
    annual_rate_pct: Number,
    months: int,
) -> Money:
    """
    Project a balance under a level monthly contribution.

    Args:
        principal: Starting balance
        monthly_contribution: Contribution made at the end of every month
        annual_rate_pct: Annual return in percent, compounded monthly
        months: Number of months to simulate

    Returns:
        Balance after ``months`` months
    """
    _validate_months(months)
    return project_balance_with_schedule(
        principal, itertools.repeat(monthly_contribution, months), annual_rate_pct
    )


def project_growth(
    principal: Money,
    monthly_contribution: Money,
    annual_rate_pct: Number,
    years: int,
    inflation_rate_pct: Number = 0,
) -> GrowthProjection:
    """
    Project a balance and report contributions, growth and real value.

    Args:
        principal: Starting balance
        monthly_contribution: Level end-of-month contribution
        annual_rate_pct: Annual return in percent
        years: Number of years to simulate
        inflation_rate_pct: Annual inflation in percent used to discount to real value

    Returns:
        GrowthProjection with yearly nominal and real trajectories
    """
    _validate_months(years, "years")
    _validate_non_negative(principal, "principal")
    rate = monthly_rate(annual_rate_pct)
    inflation = monthly_rate(inflation_rate_pct)
    months = years * MONTHS_PER_YEAR

    yearly_nominal = np.zeros(years + 1, dtype=np.int64)
    yearly_real = np.zeros(years + 1, dtype=np.int64)
    yearly_nominal[0] = yearly_real[0] = principal.minor_units

    nominal = principal.as_decimal()
    real = nominal
    schedule = itertools.repeat(monthly_contribution, months)
    with localcontext(ENGINE_CONTEXT):
        for month, nominal in enumerate(_accumulate(principal, schedule, rate), start=1):
            real = nominal / (1 + inflation) ** month
            if month % MONTHS_PER_YEAR == 0:
                year = month // MONTHS_PER_YEAR
                yearly_nominal[year] = round_half_even(nominal)
                yearly_real[year] = round_half_even(real)

    nominal_value = Money.of_minor(round_half_even(nominal))
    total_contribution = principal + monthly_contribution * months
    return GrowthProjection(
        nominal_value=nominal_value,
        real_value=Money.of_minor(round_half_even(real)),
        total_contribution=total_contribution,
        total_growth=nominal_value - total_contribution,
        yearly_nominal=_read_only(yearly_nominal),
        yearly_real=_read_only(yearly_real),
    )


def required_contribution(
    target: Money, principal: Money, annual_rate_pct: Number, months: int
) -> RequiredContribution:
    """
    Solve for the level monthly contribution that grows ``principal`` to ``target``.

    Uses the annuity future-value formula
    ``C = (FV - P(1+i)^n) * i / ((1+i)^n - 1)``; with a zero rate the
    shortfall is spread evenly over the months.

    Args:
        target: Target future value
        principal: Current balance
        annual_rate_pct: Annual return in percent, compounded monthly
        months: Months until the target date

    Returns:
        RequiredContribution; never negative
    """
    _validate_months(months)
    _validate_non_negative(target, "target")
    _validate_non_negative(principal, "principal")
    rate = monthly_rate(annual_rate_pct)

    with localcontext(ENGINE_CONTEXT):
        compounded = (1 + rate) ** months
        shortfall = target.as_decimal() - principal.as_decimal() * compounded

        if shortfall <= 0:
            return RequiredContribution(
                status="on_track",
                amount=Money.zero(),
                exact_amount=Decimal(0),
                shortfall=Money.zero(),
            )

        shortfall_money = Money.of_minor(round_half_even(shortfall))
        if months == 0:
            return RequiredContribution(
                status="no_time_remaining",
                amount=Money.zero(),
                exact_amount=Decimal(0),
                shortfall=shortfall_money,
            )

        if rate == 0:
            exact = shortfall / months
        else:
            exact = shortfall * rate / (compounded - 1)

    logger.debug(f"Required contribution {exact} for shortfall {shortfall} over {months} months")
    return RequiredContribution(
        status="required",
        amount=Money.of_minor(round_up(exact)),
        exact_amount=exact,
        shortfall=shortfall_money,
    )


def amortized_payment(
    principal: Money, annual_rate_pct: Number, total_months: int
) -> AmortizedPayment:
    """
    Calculate the level monthly payment that retires a loan.

    ``payment = P * i / (1 - (1+i)^-n)``. A zero rate has no interest term, so
    the payment is ``P / n`` and the result is flagged with ``zero_rate``.

    Args:
        principal: Outstanding principal
        annual_rate_pct: Annual interest rate in percent (>= 0)
        total_months: Amortization length in months (>= 1)

    Returns:
        AmortizedPayment with the payment rounded up to a minor unit
    """
    _validate_non_negative(principal, "principal")
    _validate_months(total_months, "total_months")
    if total_months == 0:
        raise OutOfDomainInputError("total_months must be >= 1", "total_months", total_months)
    rate = monthly_rate(annual_rate_pct)
    if rate < 0:
        raise OutOfDomainInputError(
            "loan interest rate must be >= 0", "annual_rate_pct", annual_rate_pct
        )

    zero_rate = rate == 0
    if principal.is_zero():
        return AmortizedPayment(payment=Money.zero(), total_months=total_months, zero_rate=zero_rate)

    with localcontext(ENGINE_CONTEXT):
        if zero_rate:
            payment = principal.as_decimal() / total_months
        else:
            payment = principal.as_decimal() * rate / (1 - (1 + rate) ** -total_months)

    return AmortizedPayment(
        payment=Money.of_minor(round_up(payment)),
        total_months=total_months,
        zero_rate=zero_rate,
    )


def simulate_drawdown(
    balance: Money, monthly_withdrawal: Money, annual_rate_pct: Number, months: int
) -> DrawdownResult:
    """
    Simulate level monthly withdrawals from an invested balance.

    Each month the balance earns interest first and the withdrawal is taken
    afterwards, capped at what remains.

    Args:
        balance: Starting balance
        monthly_withdrawal: Desired withdrawal per month
        annual_rate_pct: Annual return on the remaining balance, in percent
        months: Length of the payout period

    Returns:
        DrawdownResult with the total received and when the balance ran out
    """
    _validate_non_negative(balance, "balance")
    _validate_non_negative(monthly_withdrawal, "monthly_withdrawal")
    _validate_months(months)
    rate = monthly_rate(annual_rate_pct)

    years = -(-months // MONTHS_PER_YEAR)
    yearly_balances = np.zeros(years + 1, dtype=np.int64)
    yearly_balances[0] = balance.minor_units

    current = balance.as_decimal()
    wanted = monthly_withdrawal.as_decimal()
    received = Decimal(0)
    exhaustion_month = None
    with localcontext(ENGINE_CONTEXT):
        for month in range(1, months + 1):
            current = current * (1 + rate)
            withdrawal = min(current, wanted)
            current -= withdrawal
            received += withdrawal
            if current <= 0 and exhaustion_month is None and wanted > 0:
                exhaustion_month = month
                current = Decimal(0)
            if month % MONTHS_PER_YEAR == 0 or month == months:
                yearly_balances[-(-month // MONTHS_PER_YEAR)] = round_half_even(current)

    return DrawdownResult(
        total_received=Money.of_minor(round_half_even(received)),
        remaining_balance=Money.of_minor(max(0, round_half_even(current))),
        exhaustion_month=exhaustion_month,
        exhaustion_year=(
            None if exhaustion_month is None else -(-exhaustion_month // MONTHS_PER_YEAR)
        ),
        yearly_balances=_read_only(yearly_balances),
    )


def simulate_lifetime(
    current_age: int,
    retirement_age: int,
    life_expectancy: int,
    current_assets: Money,
    monthly_income: Money,
    monthly_expense: Money,
    monthly_pension: Money,
    annual_return_pct: Number = 5,
    inflation_rate_pct: Number = 2,
    pension_start_age: Optional[int] = None,
) -> LifetimeSimulation:
    """
    Simulate household assets one year at a time until life expectancy.

    Each year the assets earn the annual return, then the year's income is
    added and its expenses are taken out. Earned income stops at the
    retirement age, pension income starts at ``pension_start_age`` (the
    retirement age when omitted) and expenses grow with inflation. The
    simulation stops in the year the assets run out.

    Args:
        current_age: Age in the first simulated year
        retirement_age: First age without earned income
        life_expectancy: Last simulated age
        current_assets: Assets at the start
        monthly_income: Earned income per month before retirement
        monthly_expense: Living expenses per month in today's money
        monthly_pension: Pension income per month once it starts
        annual_return_pct: Annual return on the assets, compounded yearly
        inflation_rate_pct: Annual growth of expenses
        pension_start_age: First age with pension income

    Returns:
        LifetimeSimulation with one row per simulated year
    """
    for field, age in (
        ("current_age", current_age),
        ("retirement_age", retirement_age),
        ("life_expectancy", life_expectancy),
    ):
        _validate_months(age, field)
    if current_age > life_expectancy:
        raise OutOfDomainInputError(
            f"current age {current_age} is past life expectancy {life_expectancy}",
            "current_age",
            current_age,
        )
    _validate_non_negative(current_assets, "current_assets")
    _validate_non_negative(monthly_income, "monthly_income")
    _validate_non_negative(monthly_expense, "monthly_expense")
    _validate_non_negative(monthly_pension, "monthly_pension")
    growth = annual_rate(annual_return_pct, "annual_return_pct")
    inflation = annual_rate(inflation_rate_pct, "inflation_rate_pct")
    if pension_start_age is None:
        pension_start_age = retirement_age

    ages, balances, incomes, expenses = [], [], [], []
    depletion_age = None
    balance = current_assets.as_decimal()
    with localcontext(ENGINE_CONTEXT):
        for offset, age in enumerate(range(current_age, life_expectancy + 1)):
            income = Decimal(0)
            if age < retirement_age:
                income += monthly_income.as_decimal() * MONTHS_PER_YEAR
            if age >= pension_start_age:
                income += monthly_pension.as_decimal() * MONTHS_PER_YEAR
            expense = monthly_expense.as_decimal() * MONTHS_PER_YEAR * (1 + inflation) ** offset

            balance = balance * (1 + growth) + income - expense
            ages.append(age)
            balances.append(max(0, round_half_even(balance)))
            incomes.append(round_half_even(income))
            expenses.append(round_half_even(expense))

            # Zero assets with nothing to spend is not a depletion
            if balance < 0 or (balance == 0 and expense > 0):
                depletion_age = age
                break

    logger.debug(
        f"Lifetime simulation from age {current_age} to {ages[-1]}: "
        f"final={balances[-1]}, depletion_age={depletion_age}"
    )
    return LifetimeSimulation(
        ages=_read_only(np.array(ages, dtype=np.int64)),
        balances=_read_only(np.array(balances, dtype=np.int64)),
        incomes=_read_only(np.array(incomes, dtype=np.int64)),
        expenses=_read_only(np.array(expenses, dtype=np.int64)),
        depletion_age=depletion_age,
    )
