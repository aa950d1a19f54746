# src/bcal/core/julian.py
from __future__ import annotations

import math
from datetime import date

from .types import CalculationError


def julian_day_number(d: date) -> int:
    """
    Fliegel & Van Flandern (1968): Gregorian date -> Julian Day Number
    (the JD at noon UT of that date).
    """
    a = (14 - d.month) // 12
    y = d.year + 4800 - a
    m = d.month + 12 * a - 3
    return d.day + (153 * m + 2) // 5 + 365 * y + y // 4 - y // 100 + y // 400 - 32045


def date_to_jd(d: date) -> float:
    """
    JD at the *end* of the civil day in UT (JDN + 0.5), so that any instant on
    that date compares strictly below it.
    """
    return float(julian_day_number(d)) + 0.5


def jd_to_date(jd: float) -> date:
    """
    Fliegel & Van Flandern inverse: JD -> UT calendar date.

    Raises
    ------
    CalculationError
        If jd is not finite or the integer algorithm yields an implausible date.
    """
    if not math.isfinite(jd):
        raise CalculationError(f"non-finite Julian Day: {jd!r}")

    j = int(math.floor(jd + 0.5))
    l = j + 68569
    n = (4 * l) // 146097
    l = l - (146097 * n + 3) // 4
    i = (4000 * (l + 1)) // 1461001
    l = l - (1461 * i) // 4 + 31
    jm = (80 * l) // 2447
    day = l - (2447 * jm) // 80
    l = jm // 11
    month = jm + 2 - 12 * l
    year = 100 * (n - 49) + i + l

    if not (1 <= year <= 9999 and 1 <= month <= 12 and 1 <= day <= 31):
        raise CalculationError(f"implausible date from JD={jd}: year={year} month={month} day={day}")
    try:
        return date(year, month, day)
    except ValueError as e:
        raise CalculationError(f"implausible date from JD={jd}: {e}") from e
