"""Reactive calculator session.

Holds the single InputState for one user session and re-runs the resolver
after every edit, focus or blur, the way a form re-renders on each keystroke.
Derived values are written back into the state rounded for display (cents for
money, whole months for the period) and subscribers are notified.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from loguru import logger

from .calculator import round_money, round_months
from .config import (
    ALL_FIELDS,
    DEFAULT_MONTHLY_PROFIT_RATE,
    FIELD_LABELS,
    ONE,
    SHORTFALL_TOLERANCE,
    ZERO,
    Field,
)
from .resolver import InputState, Resolution, resolve

Listener = Callable[[InputState, Resolution], None]


def parse_number(raw: Optional[str]) -> Optional[Decimal]:
    """Parse user text into a Decimal.  Empty text means 'field cleared'.

    Spaces are dropped and a comma is accepted as the decimal separator.
    Raises ValueError for text that is not a finite, non-negative number.
    """
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        value = Decimal(text.replace(",", ".").replace(" ", ""))
    except InvalidOperation:
        raise ValueError(f"Invalid number: '{raw}'") from None
    if not value.is_finite():
        raise ValueError(f"Invalid number: '{raw}'")
    if value < ZERO:
        raise ValueError(f"Value must be >= 0: '{raw}'")
    return value


def _check_field(field: str) -> Field:
    if field not in ALL_FIELDS:
        raise ValueError(
            f"Unknown field '{field}'. Expected one of: {', '.join(ALL_FIELDS)}"
        )
    return field  # type: ignore[return-value]


class CalculatorSession:
    """Owns one InputState and keeps its Resolution current."""

    def __init__(
        self,
        rate: Decimal = DEFAULT_MONTHLY_PROFIT_RATE,
        tolerance: Decimal = SHORTFALL_TOLERANCE,
        state: Optional[InputState] = None,
    ):
        self.rate = rate
        self.tolerance = tolerance
        self.state = state if state is not None else InputState()
        self.last_resolution: Resolution = resolve(self.state, rate, tolerance)
        self._listeners: list[Listener] = []

    # ── Subscription ──────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ── Input events ──────────────────────────────────────────────────────────

    def edit(self, field: str, raw: Optional[str]) -> Resolution:
        """Type *raw* into *field*.  The field takes focus for this pass.

        Invalid text raises ValueError and leaves the state untouched.
        """
        name = _check_field(field)
        value = parse_number(raw)
        self.state.focused_field = name
        self.state.set(name, value)
        if self.state.calculated_field == name:
            # A typed value is no longer an auto-computed one.
            self.state.calculated_field = None
        return self.evaluate()

    def focus(self, field: Optional[str]) -> Resolution:
        self.state.focused_field = _check_field(field) if field is not None else None
        return self.evaluate()

    def blur(self) -> Resolution:
        return self.focus(None)

    def clear(self, field: Optional[str] = None) -> Resolution:
        """Empty *field*, or reset the whole form when no field is given."""
        if field is None:
            self.state = InputState()
        else:
            name = _check_field(field)
            self.state.set(name, None)
            if self.state.calculated_field == name:
                self.state.calculated_field = None
        return self.evaluate()

    def set_rate(self, rate: Decimal) -> Resolution:
        if rate < ZERO:
            raise ValueError("Monthly profit rate must be >= 0.")
        self.rate = rate
        return self.evaluate()

    # ── Evaluation ────────────────────────────────────────────────────────────

    def evaluate(self) -> Resolution:
        """Run one full resolver pass and publish the result."""
        resolution = resolve(self.state, self.rate, self.tolerance)

        if resolution.derived_field is not None and resolution.derived_value is not None:
            field = resolution.derived_field
            if field == "period":
                # Never display a zero-month schedule.
                shown = max(round_months(resolution.derived_value), ONE)
            else:
                shown = round_money(resolution.derived_value)
            self.state.set(field, shown)
            self.state.calculated_field = field
            logger.debug("session: {} auto-filled with {}", FIELD_LABELS[field], shown)

        self.last_resolution = resolution
        for listener in list(self._listeners):
            listener(self.state, resolution)
        return resolution
