# src/bcal/features/config.py
from __future__ import annotations

"""
Feature-level constants.

- month names: ordinal ("First" .. "Thirteenth") or numbered ("Month 7")
- feast titles: display strings shared by the feast calculator, API and tools
"""

from typing import Dict, List, Optional

from bcal.core.settings import MonthNamingMode

# ============================================================
# Month names
# ============================================================

MONTH_ORDINALS: List[str] = [
    "First",
    "Second",
    "Third",
    "Fourth",
    "Fifth",
    "Sixth",
    "Seventh",
    "Eighth",
    "Ninth",
    "Tenth",
    "Eleventh",
    "Twelfth",
    "Thirteenth",
]

MONTH_ORDINAL_BY_MONTH_NO: Dict[int, str] = {i + 1: name for i, name in enumerate(MONTH_ORDINALS)}


def month_display_name(month_no: int, mode: MonthNamingMode = MonthNamingMode.ORDINAL) -> str:
    m = int(month_no)
    if mode is MonthNamingMode.NUMBERED:
        return f"Month {m}"
    return MONTH_ORDINAL_BY_MONTH_NO.get(m, f"Month {m}")


def format_day_label(day: int, month: int, year: Optional[int] = None) -> str:
    """'15/1' or '15/1/6026' (day/month[/year])."""
    if year is None:
        return f"{int(day)}/{int(month)}"
    return f"{int(day)}/{int(month)}/{int(year)}"


# ============================================================
# Feast titles
# ============================================================

PASSOVER = "Passover (14/1)"
UNLEAVENED_BREAD_BEGINS = "Unleavened Bread begins (15/1)"
UNLEAVENED_BREAD_ENDS = "Unleavened Bread ends (21/1)"
FIRSTFRUITS = "Firstfruits"
SHAVUOT = "Shavuot (count +50)"
TRUMPETS = "Trumpets (1/7)"
ATONEMENT = "Atonement (10/7)"
TABERNACLES_BEGINS = "Tabernacles begins (15/7)"
TABERNACLES_ENDS = "Tabernacles ends (22/7)"
PURIM = "Purim (14/12)"

HANUKKAH_DAYS = 8
HANUKKAH_FIRST_DAY = 25


def hanukkah_title(i: int) -> str:
    """Title for the i-th (0-based) day of Hanukkah; the last days fall in month 10."""
    if i == 0:
        return "Hanukkah begins (25/9)"
    if i == HANUKKAH_DAYS - 1:
        return f"Hanukkah ends (day {HANUKKAH_DAYS})"
    return f"Hanukkah (day {i + 1})"
