"""Core installment formulas and the sufficiency check.

All monetary values use decimal.Decimal at full precision.
Profit accrues linearly: the financed remainder is charged `rate` per month
for every month of the repayment period, with no compounding.
Rounding (ROUND_HALF_UP) happens only at the display boundary.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .config import (
    CENT,
    DEFAULT_MONTHLY_PROFIT_RATE,
    ONE,
    SHORTFALL_TOLERANCE,
    ZERO,
    Field,
)


class InfeasibleError(ValueError):
    """Raised when a derived value would be meaningless (non-positive period, etc.)."""

    def __init__(self, field: Field, message: str):
        super().__init__(message)
        self.field = field


@dataclass(frozen=True)
class SufficiencyReport:
    total_with_profit: Decimal
    total_paid: Decimal
    shortfall: Decimal  # > tolerance → payments do not cover price + profit
    tolerance: Decimal = SHORTFALL_TOLERANCE

    @property
    def is_sufficient(self) -> bool:
        return self.shortfall <= self.tolerance


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_months(value: Decimal) -> Decimal:
    return value.quantize(ONE, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal) -> str:
    """Format a monetary amount as a grouped integer, e.g. 2750.4 → '2,750'."""
    return f"{value.quantize(ONE, rounding=ROUND_HALF_UP):,.0f}"


def calculate_installment(
    price: Decimal,
    down_payment: Decimal,
    period: Decimal,
    rate: Decimal = DEFAULT_MONTHLY_PROFIT_RATE,
) -> Decimal:
    """Monthly installment that repays the remainder plus profit over *period*.

        installment = (price - down) * (1 + rate * period) / period
    """
    if period <= ZERO:
        raise ValueError("period must be > 0")

    remaining = price - down_payment
    installment = remaining * (1 + rate * period) / period
    if installment <= ZERO:
        raise InfeasibleError(
            "installment",
            "Cannot compute the installment: the down payment already covers the price.",
        )
    return installment


def calculate_down_payment(
    price: Decimal,
    installment: Decimal,
    period: Decimal,
    rate: Decimal = DEFAULT_MONTHLY_PROFIT_RATE,
) -> Decimal:
    """Down payment needed so that *installment* over *period* settles the rest.

    Inverse of calculate_installment: the installments repay a remainder of
    installment * period / (1 + rate * period), so

        down = price - installment * period / (1 + rate * period)

    A negative result means the installments alone already exceed the price
    plus profit.
    """
    if period <= ZERO:
        raise ValueError("period must be > 0")

    down_payment = price - installment * period / (1 + rate * period)
    if down_payment < ZERO:
        raise InfeasibleError(
            "down",
            "Cannot compute the down payment: the installments alone exceed "
            "the price plus profit.",
        )
    return down_payment


def calculate_period(
    price: Decimal,
    down_payment: Decimal,
    installment: Decimal,
    rate: Decimal = DEFAULT_MONTHLY_PROFIT_RATE,
) -> Decimal:
    """Number of months needed to repay the remainder with *installment*.

    Solves installment * n = remaining * (1 + rate * n) for n:

        n = remaining / (installment - remaining * rate)

    The result is fractional; callers round to whole months for display.
    """
    remaining = price - down_payment
    if remaining <= ZERO:
        raise InfeasibleError(
            "period",
            "Cannot compute the period: the down payment already covers the price.",
        )

    denominator = installment - remaining * rate
    if denominator <= ZERO:
        # The installment never even covers the monthly profit.
        raise InfeasibleError(
            "period",
            "Cannot compute the period: the installment is too small to ever "
            "repay the remaining amount.",
        )
    return remaining / denominator


def check_sufficiency(
    price: Decimal,
    down_payment: Decimal,
    period: Decimal,
    installment: Decimal,
    rate: Decimal = DEFAULT_MONTHLY_PROFIT_RATE,
    tolerance: Decimal = SHORTFALL_TOLERANCE,
) -> SufficiencyReport:
    """Compare what the schedule pays against price plus profit.

        total_with_profit = price + (price - down) * rate * period
        total_paid        = down + installment * period
    """
    remaining = price - down_payment
    total_with_profit = price + remaining * rate * period
    total_paid = down_payment + installment * period
    return SufficiencyReport(
        total_with_profit=total_with_profit,
        total_paid=total_paid,
        shortfall=total_with_profit - total_paid,
        tolerance=tolerance,
    )
