"""RTA breakdown: the waterfall shown next to Ready to Assign."""

from budget_engine.models import RTABreakdown, RTABreakdownInputs
from budget_engine.primitives import Milliunit


def calculate_rta_breakdown(inputs: RTABreakdownInputs) -> RTABreakdown:
    """
    Back-solve "left over from previous month" from an already computed RTA.

        left_over = rta - inflow_this_month - positive_cc_balances
                    + assigned_this_month + cash_overspending_previous_month

    ``assigned_in_future`` is informational and does not enter the equation.
    """
    left_over = Milliunit(
        inputs.rta
        - inputs.inflow_this_month
        - inputs.positive_cc_balances
        + inputs.assigned_this_month
        + inputs.cash_overspending_previous_month
    )
    return RTABreakdown(
        ready_to_assign=inputs.rta,
        left_over_from_previous_month=left_over,
        inflow_this_month=inputs.inflow_this_month,
        positive_cc_balances=inputs.positive_cc_balances,
        cash_overspending_previous_month=inputs.cash_overspending_previous_month,
        assigned_this_month=inputs.assigned_this_month,
        assigned_in_future=inputs.assigned_in_future,
    )
