"""
Overspending detection and classification.

A category with a negative available balance is overspent. Overspending
paid from cash accounts ("cash", shown red) is urgent: the money is already
gone. Overspending on a credit card ("credit", shown yellow) becomes card
debt instead.
"""

from typing import Iterable, Optional

from budget_engine.models import OverspendingInput, OverspendingType
from budget_engine.primitives import Milliunit


def _cash_portion(item: OverspendingInput) -> int:
    return min(abs(item.available), item.cash_spending)


def calculate_cash_overspending(categories: Iterable[OverspendingInput]) -> Milliunit:
    """
    Sum the cash portion of overspending across categories.

    For every overspent regular category the cash portion is
    ``min(|available|, cash_spending)``. CC payment categories are skipped;
    their negative balance is unfunded card debt, not a cash leak.
    """
    total = 0
    for item in categories:
        if item.available >= 0:
            continue
        if item.linked_account_id is not None:
            continue
        total += _cash_portion(item)
    return Milliunit(total)


def classify_overspending(item: OverspendingInput) -> Optional[OverspendingType]:
    """
    Classify a single category's overspending.

    Returns:
        None when not overspent, CREDIT for CC payment categories and for
        overspending with no cash part, CASH otherwise (cash wins when mixed).
    """
    if item.available >= 0:
        return None
    if item.linked_account_id is not None:
        return OverspendingType.CREDIT
    if _cash_portion(item) > 0:
        return OverspendingType.CASH
    return OverspendingType.CREDIT
