"""
Ready to Assign (RTA) calculation.
"""

from budget_engine.models import RTAInputs
from budget_engine.primitives import ZERO, Milliunit


def calculate_rta(inputs: RTAInputs) -> Milliunit:
    """
    Calculate Ready to Assign for the viewed month.

    Formula:
        RTA = cash_balance + positive_cc_balances - total_available
              - future_assigned - credit_overspending

    where credit_overspending = total_overspending - cash_overspending.
    Cash overspending already lowered total_available but the money has
    left the cash accounts, so it is added back. Credit overspending is
    card debt that still needs covering, so it is subtracted.

    Past months (viewed_month < current_month) always report zero: RTA is
    cumulative and only meaningful for the current and future months.
    """
    if inputs.viewed_month < inputs.current_month:
        return ZERO

    credit_overspending = inputs.total_overspending - inputs.cash_overspending
    rta = (
        inputs.cash_balance
        + inputs.positive_cc_balances
        - inputs.total_available
        - inputs.future_assigned
        - credit_overspending
    )
    return Milliunit(rta)
