"""
Move-money validation.

Only validates and clamps; applying the move to both categories is done by
``BudgetManager.move_money`` inside a single database transaction.
"""

import logging

from budget_engine.assignment import MAX_ASSIGNED_VALUE
from budget_engine.models import MoveMoneyError, MoveMoneyInput, MoveMoneyResult, MoveMoneyWarning
from budget_engine.primitives import ZERO, Milliunit, is_finite_amount

logger = logging.getLogger(__name__)


def _reject(error: MoveMoneyError, request: MoveMoneyInput) -> MoveMoneyResult:
    logger.debug(
        "Rejected move of %r from category %s to %s: %s",
        request.amount, request.source_category_id, request.target_category_id, error.value
    )
    return MoveMoneyResult(valid=False, clamped_amount=ZERO, error=error)


def validate_move_money(request: MoveMoneyInput) -> MoveMoneyResult:
    """
    Validate moving ``amount`` from the source category to the target.

    Rules, in order:
        1. non-finite amount -> invalid (non_finite_amount)
        2. same source and target -> invalid (same_category)
        3. zero amount -> invalid (zero_amount)
        4. negative amount -> invalid (negative_amount)
        5. clamp to MAX_ASSIGNED_VALUE
        6. more than the source has available -> valid, warning exceeds_available
           (the source becomes overspent, which is allowed)

    Args:
        request: Amount, source available and both category ids

    Returns:
        MoveMoneyResult
    """
    amount = request.amount
    if not is_finite_amount(amount):
        return _reject(MoveMoneyError.NON_FINITE_AMOUNT, request)
    if request.source_category_id == request.target_category_id:
        return _reject(MoveMoneyError.SAME_CATEGORY, request)
    if amount == 0:
        return _reject(MoveMoneyError.ZERO_AMOUNT, request)
    if amount < 0:
        return _reject(MoveMoneyError.NEGATIVE_AMOUNT, request)

    clamped = Milliunit(min(int(round(amount)), MAX_ASSIGNED_VALUE))

    if clamped > request.source_available:
        return MoveMoneyResult(
            valid=True,
            clamped_amount=clamped,
            warning=MoveMoneyWarning.EXCEEDS_AVAILABLE,
        )

    return MoveMoneyResult(valid=True, clamped_amount=clamped)
