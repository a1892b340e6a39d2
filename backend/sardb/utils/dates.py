from __future__ import annotations

import calendar
from datetime import date, timedelta


def _shift_month(base: date, months: int):
    index = base.year * 12 + (base.month - 1) + months
    year, month_index = divmod(index, 12)
    return year, month_index + 1


def add_months(base: date, months: int) -> date:
    """
    Shift a date by a number of calendar months (negative moves back).

    The day is clamped to the last valid day of the target month, so
    31 Aug + 6 months is 28/29 Feb rather than spilling into March.
    Used for certification expiry.
    """
    if months == 0:
        return base

    year, month = _shift_month(base, months)
    day = min(base.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def subtract_months(base: date, months: int) -> date:
    """
    Move a date back by calendar months, keeping the day number.

    A day past the end of the target month rolls forward into the next
    month: 31 Aug - 6 months is 3 Mar (31 "Feb"). This is the lower bound
    of rolling activity windows.
    """
    if months == 0:
        return base

    year, month = _shift_month(base, -months)
    return date(year, month, 1) + timedelta(days=base.day - 1)
