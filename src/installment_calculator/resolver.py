"""Installment resolver: field selection, derivation and sufficiency.

One evaluation pass:
1. price must be positive, otherwise nothing is computed.
2. Typed values must be in range (down/installment >= 0, period > 0).
3. At least two of down payment, period and installment must be filled.
4. Pick the single field to derive, never the one the user is typing into.
5. Derive it and check the final trio against price plus profit.

resolve() is a pure function of its inputs. It never mutates the state and
never raises for bad user input; problems come back as an error_kind plus a
human-readable message.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from loguru import logger

from .calculator import (
    InfeasibleError,
    SufficiencyReport,
    calculate_down_payment,
    calculate_installment,
    calculate_period,
    check_sufficiency,
    format_amount,
)
from .config import (
    DEFAULT_MONTHLY_PROFIT_RATE,
    SECONDARY_FIELDS,
    SHORTFALL_TOLERANCE,
    ZERO,
    ErrorKind,
    Field,
)

MSG_MISSING_PRICE = "Enter the cash price to start the calculation."
MSG_INSUFFICIENT_INPUTS = (
    "Fill in at least two of: down payment, monthly installment, repayment period."
)

_INFEASIBLE_KINDS: dict[str, ErrorKind] = {
    "period": "infeasible_period",
    "installment": "infeasible_installment",
    "down": "infeasible_down_payment",
}


@dataclass
class InputState:
    """Current form values.  None means 'field left empty'."""
    price: Optional[Decimal] = None
    down_payment: Optional[Decimal] = None
    period: Optional[Decimal] = None
    installment: Optional[Decimal] = None
    focused_field: Optional[Field] = None
    # Presentation marker: which field the last pass filled in
    calculated_field: Optional[Field] = None

    def get(self, field: Field) -> Optional[Decimal]:
        return getattr(self, _ATTRS[field])

    def set(self, field: Field, value: Optional[Decimal]) -> None:
        setattr(self, _ATTRS[field], value)


_ATTRS: dict[str, str] = {
    "price": "price",
    "down": "down_payment",
    "period": "period",
    "installment": "installment",
}


@dataclass(frozen=True)
class Resolution:
    """Outcome of one evaluation pass."""
    derived_field: Optional[Field] = None
    derived_value: Optional[Decimal] = None
    report: Optional[SufficiencyReport] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    # Empty field currently being typed into; left alone until blur
    pending_field: Optional[Field] = None
    # Final (post-derivation) trio, full precision
    final_down_payment: Optional[Decimal] = None
    final_period: Optional[Decimal] = None
    final_installment: Optional[Decimal] = None

    @property
    def total_with_profit(self) -> Optional[Decimal]:
        return self.report.total_with_profit if self.report else None

    @property
    def total_paid(self) -> Optional[Decimal]:
        return self.report.total_paid if self.report else None

    @property
    def shortfall(self) -> Optional[Decimal]:
        return self.report.shortfall if self.report else None

    @property
    def has_results(self) -> bool:
        return self.report is not None

    @property
    def is_valid(self) -> bool:
        return self.report is not None and self.error_kind is None


def filled_fields(state: InputState) -> list[Field]:
    """Secondary fields that currently hold a value, in display order."""
    return [f for f in SECONDARY_FIELDS if state.get(f) is not None]


def select_derived_field(state: InputState) -> Optional[Field]:
    """Return the field this pass should compute, or None.

    Exactly one empty field: derive it, unless the user is typing into it.
    All three filled: re-derive according to focus so the focused value is
    preserved (period/down/price focus → installment, installment focus →
    period); with no focus the combination is only checked.
    """
    filled = filled_fields(state)
    focus = state.focused_field

    if len(filled) < 2:
        return None

    if len(filled) == 2:
        (empty,) = [f for f in SECONDARY_FIELDS if f not in filled]
        if empty == focus:
            return None
        return empty

    if focus in ("period", "down", "price"):
        return "installment"
    if focus == "installment":
        return "period"
    return None


def _validate(state: InputState) -> Optional[str]:
    if state.down_payment is not None and state.down_payment < ZERO:
        return "Down payment cannot be negative."
    if state.installment is not None and state.installment < ZERO:
        return "Monthly installment cannot be negative."
    if state.period is not None and state.period <= ZERO:
        return "Repayment period must be at least one month."
    return None


def _derive(
    field: Field,
    price: Decimal,
    down: Optional[Decimal],
    period: Optional[Decimal],
    installment: Optional[Decimal],
    rate: Decimal,
) -> Decimal:
    if field == "installment":
        return calculate_installment(price, down, period, rate)
    if field == "down":
        return calculate_down_payment(price, installment, period, rate)
    return calculate_period(price, down, installment, rate)


def resolve(
    state: InputState,
    rate: Decimal = DEFAULT_MONTHLY_PROFIT_RATE,
    tolerance: Decimal = SHORTFALL_TOLERANCE,
) -> Resolution:
    """Evaluate *state* and return derived value, totals and diagnostics."""
    price = state.price

    # --- Step 1: price gate ---
    if price is None or price <= ZERO:
        return Resolution(error_kind="missing_price", message=MSG_MISSING_PRICE)

    # --- Step 2: range checks on typed values ---
    invalid = _validate(state)
    if invalid:
        return Resolution(error_kind="invalid_input", message=invalid)

    # --- Step 3: enough secondary inputs ---
    if len(filled_fields(state)) < 2:
        return Resolution(error_kind="insufficient_inputs", message=MSG_INSUFFICIENT_INPUTS)

    down = state.down_payment
    period = state.period
    installment = state.installment

    # --- Step 4: which field to derive ---
    derived_field = select_derived_field(state)
    logger.debug(
        "resolve: filled={} focus={} derive={}",
        filled_fields(state), state.focused_field, derived_field,
    )

    if derived_field is None and None in (down, period, installment):
        # The only empty field is the one being typed into.
        (pending,) = [f for f in SECONDARY_FIELDS if state.get(f) is None]
        return Resolution(pending_field=pending)

    # --- Step 5: derivation ---
    derived_value: Optional[Decimal] = None
    if derived_field is not None:
        try:
            derived_value = _derive(derived_field, price, down, period, installment, rate)
        except InfeasibleError as exc:
            logger.debug("resolve: {} infeasible: {}", exc.field, exc)
            return Resolution(
                derived_field=derived_field,
                error_kind=_INFEASIBLE_KINDS[exc.field],
                message=str(exc),
            )
        if derived_field == "installment":
            installment = derived_value
        elif derived_field == "down":
            down = derived_value
        else:
            period = derived_value

    # --- Step 6: sufficiency of the final trio ---
    report = check_sufficiency(price, down, period, installment, rate, tolerance)
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    if not report.is_sufficient:
        error_kind = "shortfall"
        message = (
            "The payments do not cover the price plus profit. "
            f"Missing amount: {format_amount(report.shortfall)}."
        )
    logger.debug(
        "resolve: total_with_profit={} total_paid={} shortfall={}",
        report.total_with_profit, report.total_paid, report.shortfall,
    )

    return Resolution(
        derived_field=derived_field,
        derived_value=derived_value,
        report=report,
        error_kind=error_kind,
        message=message,
        final_down_payment=down,
        final_period=period,
        final_installment=installment,
    )
