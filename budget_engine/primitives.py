"""
Milliunit primitives for integer-based monetary arithmetic.

A milliunit is 1/1000th of a currency unit ($10.50 == 10_500 milliunits).
Every calculation in the engine works on milliunits. Conversion to and from
display amounts happens only at the system boundary (CLI input/output,
persistence adapters) through ``to_milliunits`` and ``from_milliunits``.
"""

import math
from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal
from typing import NewType, Union

from exceptions import MilliunitError

Milliunit = NewType("Milliunit", int)

# 1 currency unit = 1000 milliunits
MILLIUNIT_FACTOR = 1000

# Largest integer a float can represent exactly; values beyond it lose cents.
MAX_SAFE_MILLIUNIT = 2 ** 53 - 1

ZERO = Milliunit(0)

Number = Union[int, float, Decimal]


def is_finite_amount(value) -> bool:
    """True for ints and finite floats/Decimals; bools and other types are rejected."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, Decimal):
        return value.is_finite()
    return False


def _assert_financial_safe(value: Number, context: str) -> Decimal:
    """
    Validate a monetary value and return it as a Decimal.
    
    Args:
        value: Candidate value (int, float or Decimal)
        context: Name of the calling function, used in the error message
    
    Returns:
        The value as a Decimal
    
    Raises:
        MilliunitError: If the value is not a finite number
    """
    if not is_finite_amount(value):
        raise MilliunitError(
            f"Invalid monetary value in {context}, expected a finite number",
            details={"value": value, "type": type(value).__name__}
        )
    # str() keeps the shortest repr of a float, so 1500.75 stays 1500.75
    return Decimal(str(value)) if isinstance(value, float) else Decimal(value)


def _check_range(value: int, context: str) -> Milliunit:
    if abs(value) > MAX_SAFE_MILLIUNIT:
        raise MilliunitError(
            f"Value exceeds safe integer precision in {context}",
            details={"value": value, "max": MAX_SAFE_MILLIUNIT}
        )
    return Milliunit(value)


def to_milliunits(amount: Number) -> Milliunit:
    """
    Convert a display amount (e.g. 1500.75) to milliunits (1500750).
    
    Rounds half away from zero, so any whole-cent amount converts exactly.
    
    Raises:
        MilliunitError: If the amount is NaN, infinite or out of range
    """
    decimal_amount = _assert_financial_safe(amount, "to_milliunits")
    scaled = (decimal_amount * MILLIUNIT_FACTOR).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return _check_range(int(scaled), "to_milliunits")


def from_milliunits(value: Milliunit) -> float:
    """Convert milliunits back to a display amount. Boundary use only."""
    return value / MILLIUNIT_FACTOR


def milliunit(value: Number) -> Milliunit:
    """
    Wrap a value that is already expressed in milliunits (e.g. a DB column).
    
    Integral floats and Decimals are accepted; fractional values are rounded
    half away from zero.
    
    Raises:
        MilliunitError: If the value is NaN, infinite or out of range
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return _check_range(value, "milliunit")
    decimal_value = _assert_financial_safe(value, "milliunit")
    return _check_range(int(decimal_value.quantize(Decimal(1), rounding=ROUND_HALF_UP)), "milliunit")


def sum_milliunits(*values: Milliunit) -> Milliunit:
    """Sum any number of milliunit values."""
    return Milliunit(sum(values))


def multiply_milliunits(amount: Milliunit, scalar: Number) -> Milliunit:
    """
    Multiply a milliunit amount by a plain scalar (rate, percentage, quantity).
    
    The result is rounded half away from zero to a whole milliunit.
    """
    factor = _assert_financial_safe(scalar, "multiply_milliunits")
    product = (Decimal(amount) * factor).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return _check_range(int(product), "multiply_milliunits")


def divide_milliunits(amount: Milliunit, divisor: Number) -> Milliunit:
    """
    Divide a milliunit amount using banker's rounding (round half to even).
    
    Examples:
        divide_milliunits(10000, 3) == 3333
        divide_milliunits(1500, 2) == 750
        divide_milliunits(5, 2) == 2
    
    Raises:
        MilliunitError: If the divisor is zero or not a finite number
    """
    decimal_divisor = _assert_financial_safe(divisor, "divide_milliunits")
    if decimal_divisor == 0:
        raise MilliunitError("Division by zero in divide_milliunits", details={"amount": amount})
    quotient = (Decimal(amount) / decimal_divisor).quantize(Decimal(1), rounding=ROUND_HALF_EVEN)
    return _check_range(int(quotient), "divide_milliunits")
