"""
Clock and month-string helpers.

Months are ``YYYY-MM`` strings. Because the format is fixed-width and
zero-padded, plain string comparison orders them chronologically.

Anything that needs "now" takes a ``Clock`` so tests can pin today's date.
"""

import re
from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Optional, Tuple

_MONTH_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


class Clock(ABC):
    """Source of the current date."""

    @abstractmethod
    def today(self) -> date:
        """Return today's date."""

    def current_month(self) -> str:
        return format_month(self.today())


class SystemClock(Clock):
    """Clock backed by the local system date."""

    def today(self) -> date:
        return date.today()


class FixedClock(Clock):
    """Clock that always reports the same date."""

    def __init__(self, today: date):
        self._today = today

    def today(self) -> date:
        return self._today

    def __repr__(self) -> str:
        return f"<FixedClock({self._today.isoformat()})>"


_default_clock: Clock = SystemClock()


def _resolve(clock: Optional[Clock]) -> Clock:
    return clock if clock is not None else _default_clock


def format_month(value: date) -> str:
    """Format a date as YYYY-MM."""
    return f"{value.year:04d}-{value.month:02d}"


def parse_month(month: str) -> date:
    """
    Parse a YYYY-MM string into the first day of that month.

    Raises:
        ValueError: If the string is not a valid zero-padded month
    """
    match = _MONTH_PATTERN.match(month or "")
    if not match:
        raise ValueError(f"Invalid month '{month}', expected YYYY-MM")
    return date(int(match.group(1)), int(match.group(2)), 1)


def shift_month(month: str, offset: int) -> str:
    """Return the month ``offset`` months after (or before, if negative) ``month``."""
    first = parse_month(month)
    index = first.year * 12 + (first.month - 1) + offset
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def previous_month(month: str) -> str:
    return shift_month(month, -1)


def next_month(month: str) -> str:
    return shift_month(month, 1)


def month_bounds(month: str) -> Tuple[date, date]:
    """Return the first and last day of ``month``."""
    start = parse_month(month)
    end = parse_month(next_month(month)) - timedelta(days=1)
    return start, end


def get_current_month(clock: Optional[Clock] = None) -> str:
    """Current month in YYYY-MM format."""
    return _resolve(clock).current_month()


def is_past_month(month: str, clock: Optional[Clock] = None) -> bool:
    return month < get_current_month(clock)


def is_current_month(month: str, clock: Optional[Clock] = None) -> bool:
    return month == get_current_month(clock)


def is_future_month(month: str, clock: Optional[Clock] = None) -> bool:
    return month > get_current_month(clock)
