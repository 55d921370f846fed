"""
Unit tests for assignment calculation and validation.
"""

import math
from decimal import Decimal

import pytest

from budget_engine.assignment import MAX_ASSIGNED_VALUE, calculate_assignment, validate_assignment
from budget_engine.models import AssignmentInput, ExistingAssignment


def _assign(existing, carryforward, new_assigned):
    return calculate_assignment(AssignmentInput(
        existing=ExistingAssignment(*existing) if existing is not None else None,
        carryforward=carryforward,
        new_assigned=new_assigned,
    ))


class TestCalculateAssignment:
    """Tests for row disposition, delta and new available."""

    def test_no_row_and_zero_is_skipped(self):
        result = _assign(None, 200, 0)
        assert result.should_skip
        assert not result.should_create
        assert not result.should_delete
        assert result.delta == 0
        assert result.new_available == 200

    def test_no_row_creates(self):
        result = _assign(None, 200, 500)
        assert result.should_create
        assert not result.should_skip
        assert result.delta == 500
        assert result.new_available == 700

    def test_existing_row_keeps_activity(self):
        """available 300 = carryforward 100 + assigned 500 + activity -300."""
        result = _assign((500, 300), 100, 800)
        assert result.delta == 300
        assert result.new_available == 600
        assert not (result.should_create or result.should_delete or result.should_skip)

    def test_row_without_state_is_deleted(self):
        result = _assign((500, 600), 100, 0)
        assert result.should_delete
        assert result.delta == -500
        assert result.new_available == 100

    def test_row_with_activity_is_kept_at_zero(self):
        result = _assign((500, 400), 100, 0)
        assert not result.should_delete
        assert result.new_available == -100

    def test_negative_assignment_is_allowed(self):
        result = _assign(None, 0, -250)
        assert result.should_create
        assert result.new_available == -250

    def test_same_value_twice_has_zero_delta(self):
        first = _assign(None, 50, 1_000)
        second = _assign((1_000, first.new_available), 50, 1_000)
        assert second.delta == 0
        assert second.new_available == first.new_available

    @pytest.mark.parametrize("existing,carryforward,new_assigned", [
        ((500, 300), 100, 0),
        ((500, 300), 100, 1_250),
        ((0, -40), 0, 10),
        ((2_000, 2_500), -300, 700),
        (None, 900, 15),
    ])
    def test_available_equals_carryforward_plus_assigned_plus_activity(self, existing, carryforward, new_assigned):
        activity = existing[1] - existing[0] - carryforward if existing else 0
        result = _assign(existing, carryforward, new_assigned)
        assert result.new_available == carryforward + new_assigned + activity


class TestValidateAssignment:
    """Tests for assigned value validation and clamping."""

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf, "100", None])
    def test_non_finite_is_invalid(self, value):
        validation = validate_assignment(value)
        assert validation.valid is False
        assert validation.clamped == 0

    def test_valid_value_passes_through(self):
        validation = validate_assignment(12_345)
        assert validation.valid
        assert validation.clamped == 12_345

    def test_fractional_milliunits_round(self):
        assert validate_assignment(1.6).clamped == 2

    def test_decimal_values_are_accepted(self):
        assert validate_assignment(Decimal("2500.6")).clamped == 2501
        assert validate_assignment(Decimal("NaN")).valid is False

    def test_out_of_range_is_clamped_with_sign(self):
        assert validate_assignment(MAX_ASSIGNED_VALUE * 2).clamped == MAX_ASSIGNED_VALUE
        low = validate_assignment(-MAX_ASSIGNED_VALUE - 1)
        assert low.valid
        assert low.clamped == -MAX_ASSIGNED_VALUE
