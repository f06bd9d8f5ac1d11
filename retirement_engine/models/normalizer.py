"""
Period normalization for cash flow records.

Monthly and yearly amounts are converted to a canonical monthly amount.
One-time amounts are not flows: they are excluded from monthly totals and
contribute to the household's cash position instead.
"""

from .household import CashFlowRecord, EXPENSE_CATEGORIES, INCOME_CATEGORIES
from .money import Money
from ..errors import OutOfDomainInputError

MONTHS_PER_YEAR = 12


def _validate_amount(amount: Money, field: str = "amount") -> None:
    if not isinstance(amount, Money):
        raise OutOfDomainInputError(f"{field} must be Money, got {amount!r}", field, amount)
    if amount.is_negative():
        raise OutOfDomainInputError(
            f"{field} must be >= 0, got {amount.minor_units}", field, amount.minor_units
        )


def to_monthly(amount: Money, period: str) -> Money:
    """
    Convert an amount to its monthly equivalent.

    Args:
        amount: Non-negative amount per ``period``
        period: "monthly" or "yearly"

    Returns:
        Monthly amount; yearly amounts are divided by 12 rounding half-even
    """
    _validate_amount(amount)
    if period == "monthly":
        return amount
    if period == "yearly":
        return amount.divide(MONTHS_PER_YEAR)
    if period == "one_time":
        raise OutOfDomainInputError(
            "one-time amounts have no monthly equivalent", "period", period
        )
    raise OutOfDomainInputError(f"unknown period: {period!r}", "period", period)


def to_yearly_equivalent(monthly_amount: Money) -> Money:
    """Annualize a monthly amount."""
    _validate_amount(monthly_amount)
    return monthly_amount * MONTHS_PER_YEAR


def monthly_flow(record: CashFlowRecord) -> Money:
    """Monthly contribution of a record to income or expense totals."""
    if record.period == "one_time":
        return Money.zero()
    return to_monthly(record.amount, record.period)


def one_time_amount(record: CashFlowRecord) -> Money:
    """
    Signed effect of a one-time record on the cash position.

    One-time income adds to cash and one-time expenses draw it down.
    Recurring records have no one-time effect.
    """
    if record.period != "one_time":
        return Money.zero()
    if record.category in INCOME_CATEGORIES:
        return record.amount
    if record.category in EXPENSE_CATEGORIES:
        return -record.amount
    raise OutOfDomainInputError(
        f"unknown cash flow category: {record.category!r}", "category", record.category
    )
