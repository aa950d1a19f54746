# src/bcal/core/ledger.py
from __future__ import annotations

import logging
from bisect import bisect_right
from datetime import date, timedelta
from typing import List, Optional, Protocol, runtime_checkable

from .timeutil import require_date
from .types import LedgerIssue, MonthAnchor, MonthStartSummary, YearLeapDecision

log = logging.getLogger(__name__)


@runtime_checkable
class LedgerStore(Protocol):
    def upsert_anchor(self, anchor: MonthAnchor) -> None: ...
    def delete_anchor(self, year: int, month: int) -> None: ...
    def list_anchors(self) -> List[MonthAnchor]: ...
    def upsert_leap_decision(self, decision: YearLeapDecision) -> None: ...
    def get_leap_decision(self, year: int) -> Optional[YearLeapDecision]: ...


def _is_malformed_delta(delta: int) -> bool:
    return not (1 <= abs(delta) <= 30)


class MonthStartLedger:
    """
    The authoritative set of confirmed month starts plus per-year leap decisions.

    Append/overwrite only. Anchors are keyed by (year, month); a second upsert
    for the same key replaces the first. Storage errors propagate.
    """

    def __init__(self, store: LedgerStore) -> None:
        self._store = store

    @property
    def store(self) -> LedgerStore:
        return self._store

    # ---- anchors ----
    def upsert_anchor(self, year: int, month: int, start_date: date) -> MonthAnchor:
        start_date = require_date(start_date, "start_date")
        anchor = MonthAnchor(year_number=int(year), month_number=int(month), start_date=start_date)

        for other in self._store.list_anchors():
            if other.start_date == start_date and other.key != anchor.key:
                log.warning(
                    "anchor %s replaces %s sharing start_date=%s",
                    anchor.key,
                    other.key,
                    start_date,
                )
                self._store.delete_anchor(other.year_number, other.month_number)

        self._store.upsert_anchor(anchor)
        log.debug("anchor upserted: year=%d month=%d start=%s", anchor.year_number, anchor.month_number, start_date)
        return anchor

    def list_anchors(self) -> List[MonthAnchor]:
        return sorted(self._store.list_anchors(), key=lambda a: a.start_date)

    def anchor_for(self, year: int, month: int) -> Optional[MonthAnchor]:
        for a in self._store.list_anchors():
            if a.year_number == year and a.month_number == month:
                return a
        return None

    def predecessor(self, anchor: MonthAnchor) -> Optional[MonthAnchor]:
        """Anchor right before `anchor` when the gap between them is a valid month length."""
        before = latest_at_or_before(self.list_anchors(), anchor.start_date - timedelta(days=1))
        if before is None or _is_malformed_delta((anchor.start_date - before.start_date).days):
            return None
        return before

    def has_any_anchor(self) -> bool:
        return bool(self._store.list_anchors())

    def has_anchor_on(self, d: date) -> bool:
        return any(a.start_date == d for a in self._store.list_anchors())

    def summary(self) -> MonthStartSummary:
        anchors = self.list_anchors()
        return MonthStartSummary(
            count=len(anchors),
            earliest_start=anchors[0].start_date if anchors else None,
            latest_start=anchors[-1].start_date if anchors else None,
        )

    # ---- leap decisions ----
    def set_leap_decision(self, year: int, is_aviv: Optional[bool], decided_on: Optional[date]) -> YearLeapDecision:
        decision = YearLeapDecision(year_number=int(year), is_aviv=is_aviv, decided_on=decided_on)
        self._store.upsert_leap_decision(decision)
        log.info("leap decision: year=%d is_aviv=%s decided_on=%s", decision.year_number, is_aviv, decided_on)
        return decision

    def get_leap_decision(self, year: int) -> Optional[bool]:
        d = self._store.get_leap_decision(int(year))
        return None if d is None else d.is_aviv

    # ---- validation ----
    def find_issues(self) -> List[LedgerIssue]:
        """
        Adjacent anchor pairs whose delta is outside [1, 30] days.
        """
        anchors = self.list_anchors()
        out: List[LedgerIssue] = []
        for a, b in zip(anchors, anchors[1:]):
            delta = (b.start_date - a.start_date).days
            if _is_malformed_delta(delta):
                out.append(LedgerIssue(anchor=a, next_anchor=b, delta_days=delta))
        return out


# ============================================================
# Sorted-snapshot helpers (one store read per resolver call)
# ============================================================

def latest_at_or_before(anchors: List[MonthAnchor], d: date) -> Optional[MonthAnchor]:
    starts = [a.start_date for a in anchors]
    i = bisect_right(starts, d) - 1
    if i < 0:
        return None
    return anchors[i]


def first_after(anchors: List[MonthAnchor], d: date) -> Optional[MonthAnchor]:
    starts = [a.start_date for a in anchors]
    i = bisect_right(starts, d)
    if i >= len(anchors):
        return None
    return anchors[i]
