# src/bcal/features/calendar.py
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import List, Optional, Tuple, Union

from bcal.core.config import BCalConfig
from bcal.core.ledger import LedgerStore, MonthStartLedger
from bcal.core.predictor import MonthLengthPredictor
from bcal.core.resolver import CalendarResolver
from bcal.core.settings import CachedLocation, Preferences, ProjectedLengthCache, SettingsStore
from bcal.core.timeutil import require_aware, require_date
from bcal.core.types import (
    FeastDay,
    LedgerIssue,
    MonthAnchor,
    MonthDefinition,
    MonthStartSummary,
    MonthStatus,
    ResolvedDay,
    YearLeapDecision,
)
from bcal.features.day_boundary import DayBoundary, lunar_reference_date, resolve_location
from bcal.features.feasts import feast_days_for_year

log = logging.getLogger(__name__)

# Gregorian year + offset = lunar year number
YEAR_OFFSET = 4000


class BiblicalCalendar:
    """
    Entry points consumed by UI / notification / widget / export collaborators.

    Wires a ledger store and a settings store (often the same object) into the
    ledger, predictor and resolver. Collaborators call these methods and do no
    resolution of their own.
    """

    def __init__(
        self,
        ledger_store: LedgerStore,
        settings_store: SettingsStore,
        *,
        config: BCalConfig = BCalConfig(),
    ) -> None:
        self.config = config
        self.settings = settings_store
        self.ledger = MonthStartLedger(ledger_store)
        self.predictor = MonthLengthPredictor(ProjectedLengthCache(settings_store), config=config.predictor)
        self.resolver = CalendarResolver(
            self.ledger,
            self.predictor,
            preferences=settings_store.get_preferences,
            config=config.resolver,
        )

    @property
    def preferences(self) -> Preferences:
        return self.settings.get_preferences()

    # ============================================================
    # Resolution
    # ============================================================

    def resolve_for(self, d: date) -> Optional[ResolvedDay]:
        return self.resolver.resolve_for(d)

    def get_month(self, year: int, month: int) -> Optional[MonthDefinition]:
        return self.resolver.get_month(year, month)

    def day_boundary(
        self,
        now: datetime,
        tz: Union[str, tzinfo],
        *,
        location: Optional[Tuple[float, float]] = None,
        default_location: Optional[Tuple[float, float]] = None,
    ) -> DayBoundary:
        """An explicit location wins over the cached one, which wins over the default."""
        now = require_aware(now, "now")
        if location is None:
            location = resolve_location(self.settings.get_location(), now, default_location)
        return lunar_reference_date(now, location, tz, config=self.config.sunset)

    def today(
        self,
        now: datetime,
        tz: Union[str, tzinfo],
        *,
        location: Optional[Tuple[float, float]] = None,
        default_location: Optional[Tuple[float, float]] = None,
    ) -> Tuple[DayBoundary, Optional[ResolvedDay]]:
        """Current lunar day: sunset-aware reference date, then resolution."""
        boundary = self.day_boundary(now, tz, location=location, default_location=default_location)
        return boundary, self.resolve_for(boundary.reference_date)

    # ============================================================
    # Ledger mutations
    # ============================================================

    def set_anchor(self, year: int, month: int, start_date: date) -> MonthAnchor:
        """
        Record an observed month start. When the month before it is anchored
        too, its length is now confirmed and the projections after the new
        anchor are re-seeded from it.
        """
        anchor = self.ledger.upsert_anchor(year, month, start_date)
        self.predictor.clear(anchor.year_number, anchor.month_number)

        before = self.ledger.predecessor(anchor)
        if before is not None and self.resolver.successor()(*before.key) == anchor.key:
            self._reseed_after(before.key, before.start_date, anchor)
        return anchor

    def start_next_month_on(self, start_date: date) -> Optional[MonthDefinition]:
        """
        Confirm that the month after the one containing start_date - 1 begins
        on start_date. The just-ended month's length becomes confirmed, and
        projections after it are re-seeded from that length.
        """
        start_date = require_date(start_date, "start_date")
        prev = self.resolve_for(start_date - timedelta(days=1))
        if prev is None:
            log.info("start_next_month_on(%s): previous day does not resolve; set an anchor first", start_date)
            return None

        ny, nm = self.resolver.successor()(prev.year_number, prev.month_number)
        anchor = self.ledger.upsert_anchor(ny, nm, start_date)
        self.predictor.clear(ny, nm)
        self._reseed_after((prev.year_number, prev.month_number), prev.month_start, anchor)
        return self.get_month(ny, nm)

    def _reseed_after(self, prev_key: Tuple[int, int], prev_start: date, anchor: MonthAnchor) -> None:
        self.predictor.clear(*prev_key)
        self.predictor.cascade_from(
            anchor.year_number,
            anchor.month_number,
            (anchor.start_date - prev_start).days,
            successor=self.resolver.successor(),
            is_confirmed=lambda y, m: self.ledger.anchor_for(y, m) is not None,
        )

    def set_leap_decision(self, year: int, is_aviv: Optional[bool], decided_on: Optional[date]) -> YearLeapDecision:
        return self.ledger.set_leap_decision(year, is_aviv, decided_on)

    def get_leap_decision(self, year: int) -> Optional[bool]:
        return self.ledger.get_leap_decision(year)

    def set_projected_length(self, year: int, month: int, length: Optional[int]) -> Optional[int]:
        """User override for a projected month; None removes it."""
        if length is None:
            self.predictor.clear(year, month)
            return None
        return self.predictor.predict(year, month, [], user_override=length)

    def projected_length(self, year: int, month: int) -> Optional[int]:
        return self.predictor.cache.get(year, month)

    def cache_location(self, latitude: float, longitude: float, now: datetime) -> CachedLocation:
        loc = CachedLocation(latitude=float(latitude), longitude=float(longitude), cached_at=require_aware(now, "now"))
        self.settings.set_location(loc)
        return loc

    # ============================================================
    # Year views
    # ============================================================

    def feast_days_for_year(self, year: int) -> List[FeastDay]:
        prefs = self.preferences
        return feast_days_for_year(
            self.get_month(year, 1),
            self.get_month(year, 7),
            rule=prefs.firstfruits_rule,
            weekly_rest_day=prefs.weekly_rest_day,
            month9=self.get_month(year, 9) if prefs.include_hanukkah else None,
            month12=self.get_month(year, 12) if prefs.include_purim else None,
            include_hanukkah=prefs.include_hanukkah,
            include_purim=prefs.include_purim,
        )

    def months_for_year(self, year: int) -> List[MonthDefinition]:
        """Months 1..12 (and 13 when the year is leap or projected as such)."""
        month1 = self.get_month(year, 1)
        if month1 is None:
            return []
        months = [month1]
        for m in range(2, 13):
            md = self.get_month(year, m)
            if md is not None:
                months.append(md)
        if self.get_leap_decision(year) is False or self.preferences.project_extra_month:
            m13 = self.get_month(year, 13)
            if m13 is not None:
                months.append(m13)
        return months

    def projected_months_for_year(self, year: int) -> List[Tuple[int, int]]:
        return [
            (year, m.month_number)
            for m in self.months_for_year(year)
            if m.status is MonthStatus.PROJECTED
        ]

    # ============================================================
    # Ledger views
    # ============================================================

    def has_any_anchor(self) -> bool:
        return self.ledger.has_any_anchor()

    def has_month_start_on(self, d: date) -> bool:
        return self.ledger.has_anchor_on(d)

    def summary(self) -> MonthStartSummary:
        return self.ledger.summary()

    def ledger_issues(self) -> List[LedgerIssue]:
        return self.ledger.find_issues()


# ============================================================
# Default year numbers (pre-filling anchor forms)
# ============================================================

def default_year(base: date) -> int:
    """
    Lunar year for a Gregorian date, approximating the new year as March 20
    (it actually follows the first month after the barley decision).
    """
    base = require_date(base, "base")
    if base < date(base.year, 3, 20):
        return YEAR_OFFSET - 1 + base.year
    return YEAR_OFFSET + base.year


def default_year_for_month(month: int, base: date) -> int:
    """Months 7+ of the current Gregorian year belong to the previous lunar year's autumn."""
    base = require_date(base, "base")
    if int(month) >= 7:
        return YEAR_OFFSET - 1 + base.year
    return YEAR_OFFSET + base.year
