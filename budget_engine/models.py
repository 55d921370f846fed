"""
Plain-data types shared by the budget engine.

All monetary fields are Milliunit integers. Identifiers, flags and month
strings (``YYYY-MM``) stay plain Python types. Nothing here knows about the
database; the repository layer builds these from query results.
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from budget_engine.primitives import ZERO, Milliunit


class OverspendingType(str, enum.Enum):
    """Kind of overspending on a category with a negative available balance."""
    CASH = "cash"
    CREDIT = "credit"


class MoveMoneyError(str, enum.Enum):
    """Reasons a move-money request is rejected."""
    NON_FINITE_AMOUNT = "non_finite_amount"
    SAME_CATEGORY = "same_category"
    ZERO_AMOUNT = "zero_amount"
    NEGATIVE_AMOUNT = "negative_amount"


class MoveMoneyWarning(str, enum.Enum):
    """Non-blocking conditions reported on an accepted move."""
    EXCEEDS_AVAILABLE = "exceeds_available"


@dataclass(frozen=True)
class CategoryBudget:
    """
    One category's budget state for one month (a ``budget_months`` row).

    Attributes:
        category_id: Category primary key
        month: Month in YYYY-MM format
        assigned: Amount assigned this month
        activity: Net transaction activity this month
        available: carryforward + assigned + activity
        linked_account_id: Credit account id for CC payment categories, else None
    """
    category_id: int
    month: str
    assigned: Milliunit
    activity: Milliunit
    available: Milliunit
    linked_account_id: Optional[int] = None

    @property
    def is_cc_payment(self) -> bool:
        return self.linked_account_id is not None


@dataclass(frozen=True)
class CategorySpending:
    """Per-category spending on one credit account for one month."""
    category_id: int
    outflow: Milliunit
    inflow: Milliunit

    @property
    def net_spending(self) -> Milliunit:
        return Milliunit(self.outflow - self.inflow)


@dataclass(frozen=True)
class OverspendingInput:
    """
    Input for overspending classification.

    ``cash_spending`` is net outflow - inflow on non-credit accounts,
    clamped to be >= 0 by the caller.
    """
    category_id: int
    available: Milliunit
    linked_account_id: Optional[int]
    cash_spending: Milliunit


@dataclass(frozen=True)
class RTAInputs:
    """
    Pre-aggregated data needed to compute Ready to Assign for one month.

    Attributes:
        cash_balance: Net balance of all non-credit accounts (transactions <= today)
        positive_cc_balances: Sum of positive per-credit-account balances
        total_available: Sum of ``available`` over non-income categories in the
            latest complete month
        future_assigned: Sum of ``assigned`` in months after the latest complete
            month, up to and including the viewed month
        cash_overspending: Cash portion of overspending
        current_month: Current calendar month (YYYY-MM)
        viewed_month: Month being viewed (YYYY-MM)
        total_overspending: Sum of ``|available|`` over overspent regular categories
    """
    cash_balance: Milliunit
    positive_cc_balances: Milliunit
    total_available: Milliunit
    future_assigned: Milliunit
    cash_overspending: Milliunit
    current_month: str
    viewed_month: str
    total_overspending: Milliunit = ZERO


@dataclass(frozen=True)
class RTABreakdownInputs:
    """Components needed to explain an already computed RTA."""
    rta: Milliunit
    inflow_this_month: Milliunit
    positive_cc_balances: Milliunit
    assigned_this_month: Milliunit
    cash_overspending_previous_month: Milliunit
    assigned_in_future: Milliunit


@dataclass(frozen=True)
class RTABreakdown:
    """Waterfall explaining how Ready to Assign is made up."""
    ready_to_assign: Milliunit
    left_over_from_previous_month: Milliunit
    inflow_this_month: Milliunit
    positive_cc_balances: Milliunit
    cash_overspending_previous_month: Milliunit
    assigned_this_month: Milliunit
    assigned_in_future: Milliunit


@dataclass(frozen=True)
class ExistingAssignment:
    """The assigned/available pair of an existing ``budget_months`` row."""
    assigned: Milliunit
    available: Milliunit


@dataclass(frozen=True)
class AssignmentInput:
    """
    Request to set a category's assigned amount for one month.

    Attributes:
        existing: Current row, or None when no row exists
        carryforward: Carryforward from the previous month
        new_assigned: Assigned value the user wants to set
    """
    existing: Optional[ExistingAssignment]
    carryforward: Milliunit
    new_assigned: Milliunit


@dataclass(frozen=True)
class AssignmentResult:
    """
    Effect of an assignment change.

    At most one of ``should_create``, ``should_delete`` and ``should_skip`` is set.
    Neither set means: update the existing row in place.
    """
    delta: Milliunit
    new_available: Milliunit
    should_delete: bool = False
    should_create: bool = False
    should_skip: bool = False


@dataclass(frozen=True)
class AssignmentValidation:
    """Outcome of validating an assigned value."""
    valid: bool
    clamped: Milliunit


@dataclass(frozen=True)
class MoveMoneyInput:
    """Request to move ``amount`` from one category's assigned to another's."""
    amount: Milliunit
    source_available: Milliunit
    source_category_id: int
    target_category_id: int


@dataclass(frozen=True)
class MoveMoneyResult:
    """
    Validation outcome of a move-money request.

    ``error`` is set only when ``valid`` is False; ``warning`` only when the
    move is accepted but takes the source below zero.
    """
    valid: bool
    clamped_amount: Milliunit
    error: Optional[MoveMoneyError] = None
    warning: Optional[MoveMoneyWarning] = None


@dataclass(frozen=True)
class CCPaymentInput:
    """
    Inputs for a credit card payment category's monthly figures.

    Attributes:
        spending: Per-category spending on the card this month
        category_availables: category_id -> current (already updated) available
        carryforward: Previous month's payment-category available (debt rolls over)
        assigned: Amount assigned to the payment category this month
        payments: Payments made to the card this month
    """
    spending: List[CategorySpending]
    category_availables: Dict[int, Milliunit] = field(default_factory=dict)
    carryforward: Milliunit = ZERO
    assigned: Milliunit = ZERO
    payments: Milliunit = ZERO


@dataclass(frozen=True)
class CCPaymentResult:
    """Computed activity/available of a credit card payment category."""
    activity: Milliunit
    available: Milliunit
    funded_spending: Milliunit
