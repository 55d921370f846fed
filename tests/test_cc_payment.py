"""
Unit tests for the credit card payment calculator.
"""

from budget_engine.cc_payment import (
    calculate_cc_payment_available,
    calculate_funded_amount,
    calculate_total_funded_spending,
)
from budget_engine.models import CategorySpending, CCPaymentInput


class TestFundedAmount:
    """Tests for the per-category funded portion."""

    def test_partially_funded(self):
        assert calculate_funded_amount(1_000, -500) == 500

    def test_fully_funded(self):
        assert calculate_funded_amount(1_000, 1_000) == 1_000

    def test_unfunded(self):
        assert calculate_funded_amount(1_000, -1_000) == 0
        assert calculate_funded_amount(1_000, -5_000) == 0

    def test_refund_passes_through(self):
        assert calculate_funded_amount(-200, 12_345) == -200
        assert calculate_funded_amount(-200, -12_345) == -200

    def test_zero_spending(self):
        assert calculate_funded_amount(0, -300) == 0


class TestTotalFundedSpending:
    """Tests for summing funded amounts across categories."""

    def test_missing_category_counts_as_zero_available(self):
        spending = [CategorySpending(category_id=9, outflow=1_000, inflow=0)]
        assert calculate_total_funded_spending(spending, {}) == 1_000

    def test_mixed_spending_and_refunds(self):
        spending = [
            CategorySpending(category_id=1, outflow=1_000, inflow=0),
            CategorySpending(category_id=2, outflow=500, inflow=700),
        ]
        assert spending[1].net_spending == -200
        assert calculate_total_funded_spending(spending, {1: -500, 2: 0}) == 300


class TestPaymentAvailable:
    """Tests for the payment category's activity and available."""

    def test_activity_and_available(self):
        result = calculate_cc_payment_available(CCPaymentInput(
            spending=[
                CategorySpending(category_id=1, outflow=1_000, inflow=0),
                CategorySpending(category_id=2, outflow=500, inflow=700),
            ],
            category_availables={1: -500},
            carryforward=-50,
            assigned=20,
            payments=100,
        ))
        assert result.funded_spending == 300
        assert result.activity == 200
        assert result.available == 170

    def test_payment_only(self):
        result = calculate_cc_payment_available(CCPaymentInput(spending=[], carryforward=4_000, payments=1_500))
        assert result.funded_spending == 0
        assert result.activity == -1_500
        assert result.available == 2_500
