"""Unit tests for resolver.py — field selection, derivation and diagnostics."""
from dataclasses import replace
from decimal import Decimal

import pytest

from installment_calculator.calculator import round_money, round_months
from installment_calculator.resolver import (
    MSG_INSUFFICIENT_INPUTS,
    MSG_MISSING_PRICE,
    InputState,
    filled_fields,
    resolve,
    select_derived_field,
)

RATE = Decimal("0.035")
EPS = Decimal("1e-9")


_AMOUNTS = ("price", "down_payment", "period", "installment")


def _state(**kwargs) -> InputState:
    defaults = dict(price=Decimal("10000"))
    for key, value in kwargs.items():
        if key in _AMOUNTS and isinstance(value, str):
            value = Decimal(value)
        defaults[key] = value
    return InputState(**defaults)


class TestMissingPrice:
    @pytest.mark.parametrize("price", [None, Decimal("0"), Decimal("-5")])
    def test_blocks_everything(self, price):
        state = _state(price=price, down_payment="2000", period="12")
        result = resolve(state, RATE)
        assert result.error_kind == "missing_price"
        assert result.message == MSG_MISSING_PRICE
        assert result.derived_field is None
        assert result.derived_value is None
        assert result.total_with_profit is None
        assert result.total_paid is None
        assert not result.has_results


class TestInsufficientInputs:
    @pytest.mark.parametrize("filled", [
        {},
        {"down_payment": "2000"},
        {"period": "12"},
        {"installment": "900"},
    ])
    def test_fewer_than_two_fields(self, filled):
        result = resolve(_state(**filled), RATE)
        assert result.error_kind == "insufficient_inputs"
        assert result.message == MSG_INSUFFICIENT_INPUTS
        assert result.derived_field is None
        assert not result.has_results

    def test_zero_down_payment_counts_as_filled(self):
        result = resolve(_state(down_payment="0", period="10"), RATE)
        assert result.error_kind is None
        assert result.derived_field == "installment"


class TestInvalidInput:
    @pytest.mark.parametrize("kwargs,fragment", [
        ({"down_payment": "-1", "period": "12"}, "Down payment"),
        ({"installment": "-900", "period": "12"}, "installment"),
        ({"down_payment": "2000", "period": "0"}, "period"),
    ])
    def test_out_of_range_values(self, kwargs, fragment):
        result = resolve(_state(**kwargs), RATE)
        assert result.error_kind == "invalid_input"
        assert fragment in result.message
        assert not result.has_results


class TestDerivation:
    def test_installment_from_down_and_period(self):
        result = resolve(_state(down_payment="2000", period="12"), RATE)
        assert result.derived_field == "installment"
        assert round_money(result.derived_value) == Decimal("946.67")
        assert result.final_installment == result.derived_value
        assert result.is_valid
        assert abs(result.shortfall) < EPS

    def test_down_payment_from_installment_and_period(self):
        result = resolve(_state(installment="1000", period="12"), RATE)
        assert result.derived_field == "down"
        assert round_money(result.derived_value) == Decimal("1549.30")
        assert result.is_valid

    def test_period_from_down_and_installment(self):
        result = resolve(_state(down_payment="2000", installment="900"), RATE)
        assert result.derived_field == "period"
        assert round_months(result.derived_value) == Decimal("13")
        assert result.final_period == result.derived_value
        assert result.is_valid

    def test_rate_is_injected(self):
        result = resolve(_state(price=Decimal("1200"), down_payment="0", period="12"), Decimal("0"))
        assert result.derived_value == Decimal("100")
        assert result.total_with_profit == Decimal("1200")

    def test_state_is_not_mutated(self):
        state = _state(down_payment="2000", period="12", focused_field="period")
        before = replace(state)
        resolve(state, RATE)
        assert state == before
        assert state.installment is None


class TestInfeasible:
    def test_period_cannot_be_computed(self):
        result = resolve(_state(down_payment="2000", installment="200"), RATE)
        assert result.error_kind == "infeasible_period"
        assert result.derived_field == "period"
        assert result.derived_value is None
        assert "Cannot compute" in result.message
        assert not result.has_results

    def test_installment_cannot_be_computed(self):
        result = resolve(_state(down_payment="10000", period="12"), RATE)
        assert result.error_kind == "infeasible_installment"
        assert result.derived_value is None

    def test_down_payment_cannot_be_computed(self):
        result = resolve(_state(installment="2000", period="12"), RATE)
        assert result.error_kind == "infeasible_down_payment"
        assert result.derived_value is None

    def test_refocused_period_rederivation_infeasible(self):
        state = _state(
            down_payment="2000", period="12", installment="200", focused_field="installment"
        )
        result = resolve(state, RATE)
        assert result.error_kind == "infeasible_period"


class TestShortfall:
    def test_reference_example(self):
        state = _state(price=Decimal("5000"), down_payment="0", period="10", installment="400")
        result = resolve(state, RATE)
        assert result.derived_field is None
        assert result.error_kind == "shortfall"
        assert result.total_with_profit == Decimal("6750")
        assert result.total_paid == Decimal("4000")
        assert result.shortfall == Decimal("2750")
        assert "2,750" in result.message
        assert result.has_results
        assert not result.is_valid

    def test_shortfall_with_derivation(self):
        # Typed installment is too small for the typed period
        state = _state(down_payment="2000", period="12", installment="900")
        result = resolve(state, RATE)
        # 13360 owed vs 12800 paid
        assert result.error_kind == "shortfall"
        assert "560" in result.message

    def test_within_tolerance_is_valid(self):
        state = _state(
            price=Decimal("1000"), down_payment="0", period="1", installment="999.5"
        )
        result = resolve(state, Decimal("0"))
        assert result.error_kind is None
        assert result.is_valid


class TestFieldSelection:
    @pytest.mark.parametrize("kwargs,expected", [
        ({"down_payment": "2000", "period": "12"}, "installment"),
        ({"installment": "900", "period": "12"}, "down"),
        ({"down_payment": "2000", "installment": "900"}, "period"),
    ])
    def test_the_empty_field_is_derived(self, kwargs, expected):
        assert select_derived_field(_state(**kwargs)) == expected

    @pytest.mark.parametrize("kwargs,focus", [
        ({"down_payment": "2000", "period": "12"}, "installment"),
        ({"installment": "900", "period": "12"}, "down"),
        ({"down_payment": "2000", "installment": "900"}, "period"),
    ])
    def test_focused_empty_field_is_left_pending(self, kwargs, focus):
        state = _state(focused_field=focus, **kwargs)
        assert select_derived_field(state) is None
        result = resolve(state, RATE)
        assert result.pending_field == focus
        assert result.error_kind is None
        assert result.derived_field is None
        assert not result.has_results

    @pytest.mark.parametrize("focus,expected", [
        ("period", "installment"),
        ("down", "installment"),
        ("price", "installment"),
        ("installment", "period"),
        (None, None),
    ])
    def test_all_filled_follows_focus(self, focus, expected):
        state = _state(down_payment="2000", period="12", installment="900", focused_field=focus)
        assert select_derived_field(state) == expected

    def test_all_filled_without_focus_only_checks(self):
        state = _state(down_payment="2000", period="13", installment="900")
        result = resolve(state, RATE)
        assert result.derived_field is None
        assert result.derived_value is None
        assert result.is_valid

    @pytest.mark.parametrize("kwargs", [
        {"down_payment": "2000", "period": "12"},
        {"installment": "900", "period": "12"},
        {"down_payment": "2000", "installment": "900"},
        {"down_payment": "2000", "period": "12", "installment": "900"},
    ])
    @pytest.mark.parametrize("focus", ["price", "down", "period", "installment", None])
    def test_derived_field_is_never_focused(self, kwargs, focus):
        state = _state(focused_field=focus, **kwargs)
        result = resolve(state, RATE)
        if focus is not None:
            assert result.derived_field != focus

    def test_filled_fields_order(self):
        state = _state(installment="900", down_payment="0")
        assert filled_fields(state) == ["down", "installment"]
