# src/bcal/features/day_boundary.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Tuple, Union

from bcal.core.config import SunsetConfig
from bcal.core.settings import CachedLocation
from bcal.core.sunset import sunset_or_fallback
from bcal.core.timeutil import as_zone, require_aware

# used when no device location is available
JERUSALEM = (31.7683, 35.2137)


@dataclass(frozen=True)
class DayBoundary:
    """
    reference_date: the Gregorian date whose daytime belongs to the current lunar day
    sunset: the sunset now was compared against (or the fallback hour), local zone
    after_sunset: now >= sunset, so the lunar day already rolled over
    used_fallback: sunset came from the fixed fallback hour
    """
    reference_date: date
    sunset: datetime
    after_sunset: bool
    used_fallback: bool

    @property
    def sunset_date(self) -> date:
        """Gregorian date on whose evening the current lunar day began."""
        return self.reference_date - timedelta(days=1)


def resolve_location(
    cached: Optional[CachedLocation],
    now: datetime,
    default: Optional[Tuple[float, float]] = None,
) -> Optional[Tuple[float, float]]:
    """Fresh cached location, else default, else None."""
    if cached is not None and cached.is_fresh(now):
        return cached.latitude, cached.longitude
    return default


def lunar_reference_date(
    now: datetime,
    location: Optional[Tuple[float, float]],
    tz: Union[str, tzinfo],
    *,
    config: SunsetConfig = SunsetConfig(),
) -> DayBoundary:
    """
    The lunar day starts at sunset. Before today's sunset the current lunar day
    is the one whose daytime is today; from sunset on it is tomorrow's.

    Where the sunset of a civil date falls after the following midnight, the
    small hours before it still belong to the previous date's lunar day.
    """
    zone = as_zone(tz)
    local_now = require_aware(now, "now").astimezone(zone)
    today = local_now.date()

    lat, lon = location if location is not None else (None, None)
    yesterday = today - timedelta(days=1)
    late, late_fallback = sunset_or_fallback(yesterday, lat, lon, zone, config=config)
    if local_now < late:
        return DayBoundary(
            reference_date=yesterday,
            sunset=late,
            after_sunset=False,
            used_fallback=late_fallback,
        )

    sunset, used_fallback = sunset_or_fallback(today, lat, lon, zone, config=config)

    after = local_now >= sunset
    return DayBoundary(
        reference_date=today + timedelta(days=1) if after else today,
        sunset=sunset,
        after_sunset=after,
        used_fallback=used_fallback,
    )
