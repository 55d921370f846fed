"""
Unit tests for move-money validation.
"""

import math

import pytest

from budget_engine.assignment import MAX_ASSIGNED_VALUE
from budget_engine.models import MoveMoneyError, MoveMoneyInput, MoveMoneyWarning
from budget_engine.move_money import validate_move_money


def _move(amount, source_available=1_000, source=1, target=2):
    return validate_move_money(MoveMoneyInput(
        amount=amount,
        source_available=source_available,
        source_category_id=source,
        target_category_id=target,
    ))


class TestRejections:
    """Invalid requests come back as data with a zero clamped amount."""

    def test_negative_amount(self):
        result = _move(-100)
        assert result.valid is False
        assert result.error == "negative_amount"
        assert result.clamped_amount == 0

    def test_same_category(self):
        result = _move(100, source=5, target=5)
        assert result.valid is False
        assert result.error == MoveMoneyError.SAME_CATEGORY
        assert result.clamped_amount == 0

    def test_zero_amount(self):
        assert _move(0).error == MoveMoneyError.ZERO_AMOUNT

    @pytest.mark.parametrize("amount", [math.nan, math.inf, -math.inf])
    def test_non_finite_amount(self, amount):
        result = _move(amount)
        assert result.error == MoveMoneyError.NON_FINITE_AMOUNT
        assert result.clamped_amount == 0

    def test_rules_apply_in_order(self):
        """Non-finite wins over same category, which wins over zero and negative."""
        assert _move(math.nan, source=3, target=3).error == MoveMoneyError.NON_FINITE_AMOUNT
        assert _move(0, source=3, target=3).error == MoveMoneyError.SAME_CATEGORY
        assert _move(-5, source=3, target=3).error == MoveMoneyError.SAME_CATEGORY


class TestAcceptedMoves:
    """Valid requests, with and without warnings."""

    def test_within_available(self):
        result = _move(400)
        assert result.valid
        assert result.clamped_amount == 400
        assert result.error is None
        assert result.warning is None

    def test_exactly_available_has_no_warning(self):
        assert _move(1_000).warning is None

    def test_more_than_available_is_allowed_with_warning(self):
        result = _move(1_500)
        assert result.valid
        assert result.clamped_amount == 1_500
        assert result.warning == "exceeds_available"

    def test_negative_source_available_warns(self):
        assert _move(1, source_available=-50).warning == MoveMoneyWarning.EXCEEDS_AVAILABLE

    def test_amount_is_clamped_to_maximum(self):
        result = _move(MAX_ASSIGNED_VALUE + 10, source_available=MAX_ASSIGNED_VALUE)
        assert result.clamped_amount == MAX_ASSIGNED_VALUE
        assert result.warning is None
