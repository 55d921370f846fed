"""
Carryforward of a category's available balance into the next month.
"""

from typing import Optional

from budget_engine.primitives import ZERO, Milliunit


def compute_carryforward(prev_available: Optional[Milliunit], is_cc_payment_category: bool) -> Milliunit:
    """
    Compute how much of the previous month's available rolls into this month.

    Rules:
        - no previous row, or zero -> 0
        - positive -> carried as-is
        - negative on a CC payment category -> carried (card debt persists)
        - negative on a regular category -> 0 (overspending resets each month)

    Args:
        prev_available: Previous month's available, or None if there is no row
        is_cc_payment_category: True if the category is linked to a credit account

    Returns:
        Carryforward in milliunits
    """
    if not prev_available:
        return ZERO
    if prev_available > 0 or is_cc_payment_category:
        return prev_available
    return ZERO
