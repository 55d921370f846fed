"""
Budget calculation engine.

Stateless functions over plain data. All monetary values are Milliunit
integers (1/1000th of a currency unit). Nothing in this package touches the
database; ``budgeting.BudgetManager`` queries inputs and persists results.
"""

from budget_engine.activity import calculate_budget_available
from budget_engine.assignment import MAX_ASSIGNED_VALUE, calculate_assignment, validate_assignment
from budget_engine.carryforward import compute_carryforward
from budget_engine.cc_payment import (
    calculate_cc_payment_available,
    calculate_funded_amount,
    calculate_total_funded_spending,
)
from budget_engine.clock import (
    Clock,
    FixedClock,
    SystemClock,
    format_month,
    get_current_month,
    is_current_month,
    is_future_month,
    is_past_month,
    month_bounds,
    next_month,
    parse_month,
    previous_month,
    shift_month,
)
from budget_engine.models import (
    AssignmentInput,
    AssignmentResult,
    AssignmentValidation,
    CategoryBudget,
    CategorySpending,
    CCPaymentInput,
    CCPaymentResult,
    ExistingAssignment,
    MoveMoneyError,
    MoveMoneyInput,
    MoveMoneyResult,
    MoveMoneyWarning,
    OverspendingInput,
    OverspendingType,
    RTABreakdown,
    RTABreakdownInputs,
    RTAInputs,
)
from budget_engine.move_money import validate_move_money
from budget_engine.overspending import calculate_cash_overspending, classify_overspending
from budget_engine.primitives import (
    MAX_SAFE_MILLIUNIT,
    MILLIUNIT_FACTOR,
    ZERO,
    Milliunit,
    Number,
    divide_milliunits,
    from_milliunits,
    is_finite_amount,
    milliunit,
    multiply_milliunits,
    sum_milliunits,
    to_milliunits,
)
from budget_engine.rta import calculate_rta
from budget_engine.rta_breakdown import calculate_rta_breakdown

__all__ = [
    'Milliunit', 'Number', 'ZERO', 'MILLIUNIT_FACTOR', 'MAX_SAFE_MILLIUNIT',
    'to_milliunits', 'from_milliunits', 'milliunit',
    'sum_milliunits', 'multiply_milliunits', 'divide_milliunits', 'is_finite_amount',
    'Clock', 'SystemClock', 'FixedClock',
    'get_current_month', 'is_past_month', 'is_current_month', 'is_future_month',
    'parse_month', 'format_month', 'shift_month', 'previous_month', 'next_month', 'month_bounds',
    'CategoryBudget', 'CategorySpending', 'OverspendingInput', 'OverspendingType',
    'RTAInputs', 'RTABreakdownInputs', 'RTABreakdown',
    'ExistingAssignment', 'AssignmentInput', 'AssignmentResult', 'AssignmentValidation',
    'MoveMoneyInput', 'MoveMoneyResult', 'MoveMoneyError', 'MoveMoneyWarning',
    'CCPaymentInput', 'CCPaymentResult',
    'MAX_ASSIGNED_VALUE', 'validate_assignment', 'calculate_assignment',
    'validate_move_money',
    'classify_overspending', 'calculate_cash_overspending',
    'calculate_funded_amount', 'calculate_total_funded_spending', 'calculate_cc_payment_available',
    'calculate_rta', 'calculate_rta_breakdown',
    'compute_carryforward', 'calculate_budget_available',
]
