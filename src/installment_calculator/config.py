"""Application-wide constants and configuration defaults.

All tuneable defaults live here so there is a single place to adjust them.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Literal

# ── Type aliases ──────────────────────────────────────────────────────────────

Field = Literal["price", "down", "period", "installment"]

ErrorKind = Literal[
    "missing_price",
    "insufficient_inputs",
    "invalid_input",
    "infeasible_period",
    "infeasible_installment",
    "infeasible_down_payment",
    "shortfall",
]

# ── Pricing policy ────────────────────────────────────────────────────────────

# Linear monthly profit on the financed remainder (0.035 = 3.5% per month).
# Earlier revisions of the product used 0.033.
DEFAULT_MONTHLY_PROFIT_RATE = Decimal("0.035")

# Shortfalls up to this amount are treated as rounding noise (currency units).
SHORTFALL_TOLERANCE = Decimal("1")

# ── Display ───────────────────────────────────────────────────────────────────

DEFAULT_CURRENCY: str = "EGP"

FIELD_LABELS: dict[str, str] = {
    "price": "Cash price",
    "down": "Down payment",
    "period": "Repayment period",
    "installment": "Monthly installment",
}

# ── Field groups ──────────────────────────────────────────────────────────────

SECONDARY_FIELDS: tuple[Field, ...] = ("down", "period", "installment")
ALL_FIELDS: tuple[Field, ...] = ("price", "down", "period", "installment")

# ── Numeric convenience ───────────────────────────────────────────────────────

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")
