# src/bcal/features/feasts.py
from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List, Optional

from bcal.core.settings import FirstfruitsRule, WeeklyRestDay
from bcal.core.types import FeastDay, MonthDefinition
from bcal.features import config as fc

# days 15..22 of month 1 are searched for the weekly rest day
FIRSTFRUITS_WINDOW = (15, 22)
SHAVUOT_COUNT_DAYS = 49


def firstfruits_date(
    month1: MonthDefinition,
    *,
    rule: FirstfruitsRule = FirstfruitsRule.FIXED_DAY_16,
    weekly_rest_day: WeeklyRestDay = WeeklyRestDay.SATURDAY,
) -> date:
    """
    FIXED_DAY_16: day 16 of month 1.
    DAY_AFTER_WEEKLY_SABBATH: the day after the first weekly rest day within
    days 15..22; day 16 if none falls in the window.
    """
    day16 = month1.date_of_day(16)
    if rule is FirstfruitsRule.FIXED_DAY_16:
        return day16

    first, last = FIRSTFRUITS_WINDOW
    for dom in range(first, last + 1):
        d = month1.date_of_day(dom)
        if d.weekday() == weekly_rest_day.weekday:
            return d + timedelta(days=1)
    return day16


def _fixed(month: MonthDefinition, day: int, title: str) -> FeastDay:
    return FeastDay(
        title=title,
        date=month.date_of_day(day),
        year_number=month.year_number,
        month_number=month.month_number,
        day_of_month=day,
    )


def _hanukkah(month9: MonthDefinition) -> List[FeastDay]:
    out: List[FeastDay] = []
    start = month9.date_of_day(fc.HANUKKAH_FIRST_DAY)
    for i in range(fc.HANUKKAH_DAYS):
        dom = fc.HANUKKAH_FIRST_DAY + i
        month_no = month9.month_number
        # the eight days run past the end of month 9
        if dom > month9.length_days:
            dom -= month9.length_days
            month_no += 1
        out.append(
            FeastDay(
                title=fc.hanukkah_title(i),
                date=start + timedelta(days=i),
                year_number=month9.year_number,
                month_number=month_no,
                day_of_month=dom,
            )
        )
    return out


def feast_days_for_year(
    month1: Optional[MonthDefinition],
    month7: Optional[MonthDefinition],
    *,
    rule: FirstfruitsRule = FirstfruitsRule.FIXED_DAY_16,
    weekly_rest_day: WeeklyRestDay = WeeklyRestDay.SATURDAY,
    month9: Optional[MonthDefinition] = None,
    month12: Optional[MonthDefinition] = None,
    include_hanukkah: bool = False,
    include_purim: bool = False,
) -> List[FeastDay]:
    """
    Observances of one lunar year, sorted by date.

    Months that did not resolve are passed as None and contribute nothing.
    Firstfruits and Shavuot are offset-derived (day_of_month=0); Shavuot
    also carries month_number=0 since it may land in month 3 or 4.
    """
    feasts: List[FeastDay] = []

    if month1 is not None:
        year = month1.year_number
        feasts.append(_fixed(month1, 14, fc.PASSOVER))
        feasts.append(_fixed(month1, 15, fc.UNLEAVENED_BREAD_BEGINS))
        feasts.append(_fixed(month1, 21, fc.UNLEAVENED_BREAD_ENDS))

        ff = firstfruits_date(month1, rule=rule, weekly_rest_day=weekly_rest_day)
        feasts.append(FeastDay(fc.FIRSTFRUITS, ff, year, 1, 0))
        feasts.append(FeastDay(fc.SHAVUOT, ff + timedelta(days=SHAVUOT_COUNT_DAYS), year, 0, 0))

    if month7 is not None:
        feasts.append(_fixed(month7, 1, fc.TRUMPETS))
        feasts.append(_fixed(month7, 10, fc.ATONEMENT))
        feasts.append(_fixed(month7, 15, fc.TABERNACLES_BEGINS))
        feasts.append(_fixed(month7, 22, fc.TABERNACLES_ENDS))

    if include_hanukkah and month9 is not None:
        feasts.extend(_hanukkah(month9))

    # Purim stays on month 12 even when a 13th month follows
    if include_purim and month12 is not None:
        feasts.append(_fixed(month12, 14, fc.PURIM))

    feasts.sort(key=lambda f: f.date)
    return feasts


def feast_days_on(d: date, feasts: Iterable[FeastDay]) -> List[FeastDay]:
    return [f for f in feasts if f.date == d]
