"""Available balance formula."""

from budget_engine.primitives import Milliunit


def calculate_budget_available(carryforward: Milliunit, assigned: Milliunit, activity: Milliunit) -> Milliunit:
    """available = carryforward + assigned + activity"""
    return Milliunit(carryforward + assigned + activity)
