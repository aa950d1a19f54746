# src/bcal/core/resolver.py
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, List, Optional, Tuple

from .config import ResolverConfig
from .ledger import MonthStartLedger, first_after, latest_at_or_before
from .predictor import MonthLengthPredictor
from .settings import Preferences
from .timeutil import require_date
from .types import (
    LedgerIssue,
    MalformedLedgerError,
    MonthAnchor,
    MonthDefinition,
    MonthStatus,
    ResolvedDay,
)

log = logging.getLogger(__name__)

MonthKey = Tuple[int, int]


def _confirmed_delta(anchor_start: date, next_anchor: Optional[MonthAnchor]) -> Optional[int]:
    if next_anchor is None:
        return None
    delta = abs((next_anchor.start_date - anchor_start).days)
    if 1 <= delta <= 30:
        return delta
    return None


class CalendarResolver:
    """
    Maps Gregorian dates to lunar (year, month, day) and (year, month) to month
    definitions by walking forward from the nearest confirmed anchor.

    Months with a confirming successor anchor get their real length; the rest
    are projected by the predictor. The walk is bounded by the ceilings in
    ResolverConfig, and exhausting a ceiling means "not found" (None).
    """

    def __init__(
        self,
        ledger: MonthStartLedger,
        predictor: MonthLengthPredictor,
        *,
        preferences: Callable[[], Preferences] = Preferences,
        config: ResolverConfig = ResolverConfig(),
    ) -> None:
        self.ledger = ledger
        self.predictor = predictor
        self._preferences = preferences
        self.config = config

    # ============================================================
    # Successor rule
    # ============================================================

    def next_month(self, year: int, month: int, *, project_extra_month: bool) -> MonthKey:
        """
        The calendar's only branch point.

        project_extra_month applies to month 12 of *this* year only; callers
        read the preference per operation and pass it in, it never carries
        over into the following year's decision.
        """
        if month == 12:
            decision = self.ledger.get_leap_decision(year)
            if decision is False or project_extra_month:
                return year, 13
            return year + 1, 1
        if month == 13:
            return year + 1, 1
        return year, month + 1

    def successor(self) -> Callable[[int, int], MonthKey]:
        """next_month bound to the current preference value (for cascades)."""
        extra = bool(self._preferences().project_extra_month)

        def _succ(y: int, m: int) -> MonthKey:
            return self.next_month(y, m, project_extra_month=extra)

        return _succ

    # ============================================================
    # Length / status
    # ============================================================

    def _confirmed_history(self, anchors: List[MonthAnchor], before: date) -> List[int]:
        earlier = [a for a in anchors if a.start_date < before]
        earlier = earlier[-self.config.history_window:]
        out: List[int] = []
        for a in earlier:
            n = _confirmed_delta(a.start_date, first_after(anchors, a.start_date))
            if n is not None:
                out.append(n)
        return out

    def length_and_status(
        self,
        year: int,
        month: int,
        start: date,
        next_anchor: Optional[MonthAnchor],
        *,
        anchors: Optional[List[MonthAnchor]] = None,
    ) -> Tuple[int, MonthStatus]:
        if anchors is None:
            anchors = self.ledger.list_anchors()

        if next_anchor is not None:
            delta = _confirmed_delta(start, next_anchor)
            if delta is not None:
                return delta, MonthStatus.CONFIRMED
            # a projected start short of a distant anchor is just a walk step
            if any(a.start_date == start for a in anchors):
                self._on_malformed(year, month, start, next_anchor)

        history = self._confirmed_history(anchors, start)
        return self.predictor.predict(year, month, history), MonthStatus.PROJECTED

    def _on_malformed(self, year: int, month: int, start: date, next_anchor: MonthAnchor) -> None:
        delta = (next_anchor.start_date - start).days
        issue = LedgerIssue(
            anchor=MonthAnchor(year_number=year, month_number=month, start_date=start),
            next_anchor=next_anchor,
            delta_days=delta,
        )
        if self.config.ledger_policy == "strict":
            raise MalformedLedgerError(issue)
        log.warning(
            "anchor gap outside 1..30 days, month projected instead: %d/%d start=%s next=%s/%s start=%s delta=%d",
            month,
            year,
            start,
            next_anchor.month_number,
            next_anchor.year_number,
            next_anchor.start_date,
            delta,
        )

    # ============================================================
    # Resolution
    # ============================================================

    def resolve_for(self, d: date) -> Optional[ResolvedDay]:
        d = require_date(d, "d")
        anchors = self.ledger.list_anchors()
        if not anchors:
            return None

        seed = latest_at_or_before(anchors, d)
        if seed is None:
            return None

        extra = bool(self._preferences().project_extra_month)
        anchored_starts = {a.start_date for a in anchors}
        year, month = seed.year_number, seed.month_number
        current = seed.start_date

        for i in range(self.config.resolve_ceiling):
            nxt = first_after(anchors, current)
            length, length_status = self.length_and_status(year, month, current, nxt, anchors=anchors)
            end = current + timedelta(days=length)

            if current <= d < end:
                log.debug("resolved %s from anchor %s in %d steps", d, seed.key, i + 1)
                # a day counted from an observed month start is confirmed,
                # even while the month's total length is still projected
                status = MonthStatus.CONFIRMED if current in anchored_starts else MonthStatus.PROJECTED
                return ResolvedDay(
                    year_number=year,
                    month_number=month,
                    day_of_month=(d - current).days + 1,
                    status=status,
                    month_start=current,
                    length_status=length_status,
                )

            current = end
            year, month = self.next_month(year, month, project_extra_month=extra)

        log.info("resolve ceiling (%d) exhausted for %s from anchor %s", self.config.resolve_ceiling, d, seed.key)
        return None

    def _seed_for_month(self, anchors: List[MonthAnchor], year: int, month: int) -> MonthAnchor:
        earlier = [a for a in anchors if (a.year_number, a.month_number) < (year, month)]
        if earlier:
            return max(earlier, key=lambda a: a.start_date)
        return anchors[-1]

    def get_month(self, year: int, month: int) -> Optional[MonthDefinition]:
        anchors = self.ledger.list_anchors()
        if not anchors:
            return None

        for a in anchors:
            if a.year_number == year and a.month_number == month:
                length, status = self.length_and_status(
                    year, month, a.start_date, first_after(anchors, a.start_date), anchors=anchors
                )
                return MonthDefinition(year, month, a.start_date, length, status)

        seed = self._seed_for_month(anchors, year, month)
        extra = bool(self._preferences().project_extra_month)
        cy, cm = seed.year_number, seed.month_number
        current = seed.start_date

        for _ in range(self.config.month_lookup_ceiling):
            length, status = self.length_and_status(cy, cm, current, first_after(anchors, current), anchors=anchors)
            if (cy, cm) == (year, month):
                return MonthDefinition(year, month, current, length, status)
            current = current + timedelta(days=length)
            cy, cm = self.next_month(cy, cm, project_extra_month=extra)

        log.info(
            "month lookup ceiling (%d) exhausted for %d/%d from anchor %s",
            self.config.month_lookup_ceiling,
            month,
            year,
            seed.key,
        )
        return None
