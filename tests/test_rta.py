"""
Unit tests for Ready to Assign, its breakdown, carryforward and available.
"""

import pytest

from budget_engine.activity import calculate_budget_available
from budget_engine.carryforward import compute_carryforward
from budget_engine.models import RTABreakdownInputs, RTAInputs
from budget_engine.rta import calculate_rta
from budget_engine.rta_breakdown import calculate_rta_breakdown


def _inputs(**overrides):
    values = dict(
        cash_balance=1_000_000,
        positive_cc_balances=0,
        total_available=400_000,
        future_assigned=0,
        cash_overspending=50_000,
        current_month="2024-06",
        viewed_month="2024-06",
    )
    values.update(overrides)
    return RTAInputs(**values)


class TestCalculateRTA:
    """Tests for the Ready to Assign formula."""

    def test_basic_scenario(self):
        assert calculate_rta(_inputs()) == 650_000

    def test_positive_card_balances_and_future_assignments(self):
        assert calculate_rta(_inputs(positive_cc_balances=20_000, future_assigned=30_000)) == 640_000

    def test_credit_overspending_is_subtracted(self):
        """30 000 overspent on a card: cash is untouched, the debt still needs covering."""
        inputs = _inputs(total_available=380_000, total_overspending=30_000, cash_overspending=0)
        assert calculate_rta(inputs) == 590_000

    def test_cash_overspending_nets_out(self):
        inputs = _inputs(cash_balance=970_000, total_available=380_000,
                         total_overspending=20_000, cash_overspending=20_000)
        assert calculate_rta(inputs) == 590_000

    def test_past_month_is_zero(self):
        assert calculate_rta(_inputs(viewed_month="2024-05")) == 0

    def test_future_month_is_calculated(self):
        assert calculate_rta(_inputs(viewed_month="2025-01")) == 650_000

    def test_can_be_negative(self):
        assert calculate_rta(_inputs(total_available=2_000_000, cash_overspending=0)) == -1_000_000


class TestRTABreakdown:
    """Tests for the back-solved left-over amount."""

    def test_left_over_from_previous_month(self):
        breakdown = calculate_rta_breakdown(RTABreakdownInputs(
            rta=600_000,
            inflow_this_month=1_000_000,
            positive_cc_balances=20_000,
            assigned_this_month=400_000,
            cash_overspending_previous_month=15_000,
            assigned_in_future=75_000,
        ))
        assert breakdown.left_over_from_previous_month == -5_000
        assert breakdown.ready_to_assign == 600_000
        assert breakdown.inflow_this_month == 1_000_000
        assert breakdown.positive_cc_balances == 20_000
        assert breakdown.assigned_this_month == 400_000
        assert breakdown.cash_overspending_previous_month == 15_000

    def test_assigned_in_future_is_informational(self):
        base = dict(rta=100, inflow_this_month=50, positive_cc_balances=0,
                    assigned_this_month=10, cash_overspending_previous_month=0)
        low = calculate_rta_breakdown(RTABreakdownInputs(assigned_in_future=0, **base))
        high = calculate_rta_breakdown(RTABreakdownInputs(assigned_in_future=99_999, **base))
        assert low.left_over_from_previous_month == high.left_over_from_previous_month == 60
        assert high.assigned_in_future == 99_999


class TestCarryforward:
    """Tests for month-to-month carryforward rules."""

    @pytest.mark.parametrize("prev_available,is_cc,expected", [
        (None, False, 0),
        (None, True, 0),
        (0, True, 0),
        (5_000, False, 5_000),
        (5_000, True, 5_000),
        (-5_000, False, 0),
        (-5_000, True, -5_000),
    ])
    def test_rules(self, prev_available, is_cc, expected):
        assert compute_carryforward(prev_available, is_cc) == expected


def test_budget_available():
    assert calculate_budget_available(100, 500, -300) == 300
