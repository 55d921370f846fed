"""
Credit card payment category calculation.

Card spending moves money from the spending category into the card's
payment category, but only the part that was funded (backed by money in
the category). Overspent spending stays unfunded debt. Given net spending
and the category availables after that spending, the funded part is
reconstructed per category.
"""

import logging
from typing import Dict, Iterable

from budget_engine.activity import calculate_budget_available
from budget_engine.models import CategorySpending, CCPaymentInput, CCPaymentResult
from budget_engine.primitives import ZERO, Milliunit

logger = logging.getLogger(__name__)


def calculate_funded_amount(net_spending: Milliunit, current_available: Milliunit) -> Milliunit:
    """
    Funded portion of one category's net spending on a card.

    Args:
        net_spending: outflow - inflow for the category on the card
        current_available: Category available, already reduced by this spending

    Returns:
        The refund itself for net refunds (<= 0), otherwise
        ``min(max(0, available_before), net_spending)``
    """
    if net_spending <= 0:
        return net_spending

    available_before = current_available + net_spending
    return Milliunit(min(max(0, available_before), net_spending))


def calculate_total_funded_spending(
    spending: Iterable[CategorySpending],
    category_availables: Dict[int, Milliunit]
) -> Milliunit:
    """Sum the funded amounts of all per-category spending on one card."""
    total = 0
    for item in spending:
        current_available = category_availables.get(item.category_id, ZERO)
        total += calculate_funded_amount(item.net_spending, current_available)
    return Milliunit(total)


def calculate_cc_payment_available(request: CCPaymentInput) -> CCPaymentResult:
    """
    Compute a CC payment category's activity and available for one month.

    activity = funded_spending - payments
    available = carryforward + assigned + activity
    """
    funded = calculate_total_funded_spending(request.spending, request.category_availables)
    activity = Milliunit(funded - request.payments)
    available = calculate_budget_available(request.carryforward, request.assigned, activity)
    logger.debug("CC payment: funded=%s payments=%s available=%s", funded, request.payments, available)
    return CCPaymentResult(activity=activity, available=available, funded_spending=funded)
