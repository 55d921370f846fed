"""
Budget assignment calculation.

Computes what happens when a user sets a category's assigned amount for a
month: the delta against the stored value, the new available balance, and
whether the ``budget_months`` row has to be created, updated, deleted or
left alone. Rows that would carry no state of their own (nothing assigned,
no activity) are never kept, which keeps the table sparse.
"""

import logging

from budget_engine.activity import calculate_budget_available
from budget_engine.models import AssignmentInput, AssignmentResult, AssignmentValidation
from budget_engine.primitives import ZERO, Milliunit, Number, is_finite_amount

logger = logging.getLogger(__name__)

# Safety cap: 100 billion currency units
MAX_ASSIGNED_VALUE = Milliunit(100_000_000_000_000)


def validate_assignment(value: Number) -> AssignmentValidation:
    """
    Validate an assigned value expressed in milliunits.

    Non-finite values are invalid and clamp to zero. Values beyond
    MAX_ASSIGNED_VALUE stay valid but are clamped to the cap, keeping
    their sign. Fractional milliunits are rounded.

    Args:
        value: Proposed assigned value

    Returns:
        AssignmentValidation with the value to use
    """
    if not is_finite_amount(value):
        logger.debug("Rejected non-finite assigned value %r", value)
        return AssignmentValidation(valid=False, clamped=ZERO)

    amount = int(round(value))
    if abs(amount) > MAX_ASSIGNED_VALUE:
        logger.debug("Clamped assigned value %s to +/-%s", amount, MAX_ASSIGNED_VALUE)
        capped = MAX_ASSIGNED_VALUE if amount > 0 else -MAX_ASSIGNED_VALUE
        return AssignmentValidation(valid=True, clamped=Milliunit(capped))

    return AssignmentValidation(valid=True, clamped=Milliunit(amount))


def calculate_assignment(request: AssignmentInput) -> AssignmentResult:
    """
    Compute the result of changing a budget assignment.

    The month's already recorded activity is preserved; only the assigned
    component of ``available`` changes.

    Args:
        request: Existing row (or None), carryforward and the new assigned value

    Returns:
        AssignmentResult with delta, new available and the row disposition
    """
    existing = request.existing
    carryforward = request.carryforward
    new_assigned = request.new_assigned

    if existing is not None:
        activity = Milliunit(existing.available - existing.assigned - carryforward)
        delta = Milliunit(new_assigned - existing.assigned)
        new_available = calculate_budget_available(carryforward, new_assigned, activity)
        # nothing assigned and no activity: the row only mirrors its carryforward
        should_delete = new_assigned == 0 and activity == 0
        return AssignmentResult(
            delta=delta,
            new_available=new_available,
            should_delete=should_delete,
        )

    if new_assigned == 0:
        return AssignmentResult(delta=ZERO, new_available=carryforward, should_skip=True)

    return AssignmentResult(
        delta=new_assigned,
        new_available=calculate_budget_available(carryforward, new_assigned, ZERO),
        should_create=True,
    )
