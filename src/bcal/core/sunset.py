# src/bcal/core/sunset.py
from __future__ import annotations

"""
Approximate sunset time from day-of-year solar formulas.

Declination (Cooper), equation of time (Spencer-style 3-term fit) and a
longitude-to-standard-meridian shift. Typical error is a few minutes and grows
near the polar circles; refraction and elevation are ignored. Good enough to
decide which civil date a sunset-to-sunset day belongs to, nothing more.
"""

import logging
import math
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Tuple, Union

from .config import SunsetConfig
from .timeutil import as_zone, require_aware, require_date

log = logging.getLogger(__name__)


def solar_declination_deg(day_of_year: int) -> float:
    return 23.45 * math.sin(math.radians(360.0 * (284 + day_of_year) / 365.0))


def equation_of_time_minutes(day_of_year: int) -> float:
    b = math.radians((360.0 / 365.0) * (day_of_year - 81))
    return 9.87 * math.sin(2 * b) - 7.53 * math.cos(b) - 1.5 * math.sin(b)


def sunset_hour_angle(latitude: float, declination_deg: float) -> Optional[float]:
    """
    Hour angle (radians) at sunset, or None when the sun does not set or
    rise that day (|tan(lat) * tan(decl)| > 1).
    """
    x = -math.tan(math.radians(latitude)) * math.tan(math.radians(declination_deg))
    if abs(x) > 1.0:
        return None
    return math.acos(x)


def solar_sunset_hour(d: date, latitude: float) -> Optional[float]:
    """Sunset in local apparent solar time, hours after midnight."""
    n = d.timetuple().tm_yday
    h = sunset_hour_angle(latitude, solar_declination_deg(n))
    if h is None:
        return None
    return 12.0 + (h * 12.0 / math.pi) - (equation_of_time_minutes(n) / 60.0)


def _clock_hour(solar_hour: float, longitude: float, offset: timedelta) -> float:
    """
    Local clock hour after midnight of the civil date. Not wrapped: far west
    of the standard meridian a summer sunset can land past 24.0, i.e. on the
    next civil date.
    """
    offset_hours = offset.total_seconds() / 3600.0
    standard_meridian = float(math.floor(offset_hours * 15.0 + 0.5))
    return solar_hour - (longitude - standard_meridian) / 15.0


def _at_clock_hour(d: date, hour: float, zone: tzinfo) -> datetime:
    midnight = datetime.combine(d, time(0, 0), tzinfo=zone)
    # wall-clock arithmetic: zoneinfo keeps tzinfo and re-derives the offset
    return (midnight + timedelta(seconds=int(hour * 3600.0))).replace(microsecond=0)


def sunset_time(
    d: date,
    latitude: float,
    longitude: float,
    tz: Union[str, tzinfo] = "UTC",
    *,
    config: SunsetConfig = SunsetConfig(),
) -> Optional[datetime]:
    """
    Sunset on civil date d at (latitude, longitude), as an aware datetime in tz.
    Returns None for polar day/night.

    The standard meridian follows the zone's UTC offset, which depends on DST
    at the sunset instant itself. First pass uses the offset in effect at the
    probe hour (18:00 local); if the resulting instant sits under a different
    offset, recompute once with that offset and accept the second pass.
    """
    d = require_date(d, "d")
    zone = as_zone(tz)

    solar = solar_sunset_hour(d, latitude)
    if solar is None:
        log.warning("no sunset (polar day/night): date=%s lat=%.4f lon=%.4f", d, latitude, longitude)
        return None

    probe = datetime.combine(d, time(config.dst_probe_hour, 0), tzinfo=zone)
    probe_offset = probe.utcoffset() or timedelta(0)

    first = _at_clock_hour(d, _clock_hour(solar, longitude, probe_offset), zone)
    actual_offset = first.utcoffset() or timedelta(0)
    if actual_offset == probe_offset:
        return first

    log.debug("sunset DST correction: date=%s probe=%s actual=%s", d, probe_offset, actual_offset)
    return _at_clock_hour(d, _clock_hour(solar, longitude, actual_offset), zone)


def next_sunset(
    latitude: float,
    longitude: float,
    tz: Union[str, tzinfo] = "UTC",
    *,
    now: Optional[datetime] = None,
    config: SunsetConfig = SunsetConfig(),
) -> Optional[datetime]:
    """
    First sunset strictly after now. Yesterday's is checked too, since it can
    fall after local midnight.
    """
    zone = as_zone(tz)
    now = datetime.now(zone) if now is None else require_aware(now, "now").astimezone(zone)
    today = now.date()

    s: Optional[datetime] = None
    for offset in (-1, 0, 1):
        s = sunset_time(today + timedelta(days=offset), latitude, longitude, zone, config=config)
        if s is not None and s > now:
            return s
    return s


def fallback_sunset(d: date, tz: Union[str, tzinfo], *, config: SunsetConfig = SunsetConfig()) -> datetime:
    return datetime.combine(d, time(config.fallback_hour, 0), tzinfo=as_zone(tz))


def sunset_or_fallback(
    d: date,
    latitude: Optional[float],
    longitude: Optional[float],
    tz: Union[str, tzinfo],
    *,
    config: SunsetConfig = SunsetConfig(),
) -> Tuple[datetime, bool]:
    """
    (sunset, used_fallback). Falls back to fallback_hour local time when there
    is no location or the sun does not set.
    """
    if latitude is not None and longitude is not None:
        s = sunset_time(d, latitude, longitude, tz, config=config)
        if s is not None:
            return s, False
    return fallback_sunset(d, tz, config=config), True
