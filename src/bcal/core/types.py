# src/bcal/core/types.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional

from .timeutil import require_date


# ============================================================
# Errors
# ============================================================

class CalculationError(ValueError):
    """An astronomical approximation produced no meaningful answer."""


class LedgerStorageError(OSError):
    """The backing store for anchors/settings could not be read or written."""


class MalformedLedgerError(ValueError):
    """Two adjacent anchors are closer than 1 day or further apart than 30 days."""

    def __init__(self, issue: "LedgerIssue") -> None:
        super().__init__(
            f"malformed ledger: {issue.anchor.key} starts {issue.anchor.start_date} "
            f"but next anchor {issue.next_anchor.key} starts {issue.next_anchor.start_date} "
            f"(delta={issue.delta_days} days, expected 1..30)"
        )
        self.issue = issue


# ============================================================
# Records
# ============================================================

def _check_month(month_number: int) -> None:
    if not (1 <= int(month_number) <= 13):
        raise ValueError(f"month_number out of range: {month_number}")


@dataclass(frozen=True)
class MonthAnchor:
    """
    A confirmed observation fixing the first civil day of one lunar month.
    Unique per (year_number, month_number).
    """
    year_number: int
    month_number: int
    start_date: date
    confirmed: bool = True

    def __post_init__(self) -> None:
        _check_month(self.month_number)
        require_date(self.start_date, "start_date")

    @property
    def key(self) -> tuple[int, int]:
        return (self.year_number, self.month_number)


@dataclass(frozen=True)
class YearLeapDecision:
    """
    is_aviv=False commits the year to a 13th month.
    True or None means a 12-month year (unless extra-month projection is on).
    """
    year_number: int
    is_aviv: Optional[bool] = None
    decided_on: Optional[date] = None


class MonthStatus(str, Enum):
    CONFIRMED = "confirmed"
    PROJECTED = "projected"


@dataclass(frozen=True)
class MonthDefinition:
    year_number: int
    month_number: int
    start_date: date
    length_days: int
    status: MonthStatus

    @property
    def end_date(self) -> date:
        """Exclusive end (the next month's first day)."""
        return self.start_date + timedelta(days=self.length_days)

    def contains(self, d: date) -> bool:
        return self.start_date <= d < self.end_date

    def date_of_day(self, day_of_month: int) -> date:
        return self.start_date + timedelta(days=int(day_of_month) - 1)


@dataclass(frozen=True)
class ResolvedDay:
    """
    status: CONFIRMED when the month's first day is an anchor (the day count is
    observed), PROJECTED when the month start itself was extrapolated.
    length_status: status of the month's length, as in MonthDefinition.
    """
    year_number: int
    month_number: int
    day_of_month: int
    status: MonthStatus
    month_start: date
    length_status: MonthStatus = MonthStatus.PROJECTED

    def __post_init__(self) -> None:
        _check_month(self.month_number)
        if not (1 <= int(self.day_of_month) <= 30):
            raise ValueError(f"day_of_month out of range: {self.day_of_month}")

    @property
    def label(self) -> str:
        return f"{self.day_of_month:02d}/{self.month_number:02d}/{self.year_number}"


@dataclass(frozen=True)
class FeastDay:
    """
    day_of_month=0 marks a feast placed by an offset rule (Firstfruits, Shavuot)
    rather than a fixed day; callers back-calculate the day in whichever month it lands.
    """
    title: str
    date: date
    year_number: int
    month_number: int
    day_of_month: int

    @property
    def is_offset_derived(self) -> bool:
        return self.day_of_month == 0


@dataclass(frozen=True)
class LedgerIssue:
    anchor: MonthAnchor
    next_anchor: MonthAnchor
    delta_days: int


@dataclass(frozen=True)
class MonthStartSummary:
    count: int
    earliest_start: Optional[date]
    latest_start: Optional[date]
