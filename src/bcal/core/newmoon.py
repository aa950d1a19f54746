# src/bcal/core/newmoon.py
from __future__ import annotations

"""
New moon (conjunction) estimates from a truncated Meeus series.

Astronomical Algorithms (2nd ed.), chapter 49: mean phase for lunation k plus
the leading periodic corrections. The result is JDE (TT); Delta T and the
planetary arguments are ignored, so expect errors of a few minutes, which is
far below the one-day resolution this calendar works at. Not an ephemeris.
"""

import logging
import math
from datetime import date, timedelta
from typing import List, Optional, Tuple

from .config import NewMoonConfig
from .julian import date_to_jd, jd_to_date
from .timeutil import require_date
from .types import CalculationError

log = logging.getLogger(__name__)


def norm360(deg: float) -> float:
    x = deg % 360.0
    return x + 360.0 if x < 0 else x


# (coefficient, power of E, multiples of (M', M, F, Omega))
# M' Moon mean anomaly, M Sun mean anomaly, F Moon argument of latitude,
# Omega longitude of the ascending node. Mean elongation D is 0 at a mean
# new moon by construction of k, so it drops out of the series.
_NEW_MOON_TERMS: List[Tuple[float, int, Tuple[int, int, int, int]]] = [
    (-0.40720, 0, (1, 0, 0, 0)),
    (+0.17241, 1, (0, 1, 0, 0)),
    (+0.01608, 0, (2, 0, 0, 0)),
    (+0.01039, 0, (0, 0, 2, 0)),
    (+0.00739, 1, (1, -1, 0, 0)),
    (-0.00514, 1, (1, 1, 0, 0)),
    (+0.00208, 2, (0, 2, 0, 0)),
    (-0.00111, 0, (1, 0, -2, 0)),
    (-0.00057, 0, (1, 0, 2, 0)),
    (+0.00056, 1, (2, 1, 0, 0)),
    (-0.00042, 0, (3, 0, 0, 0)),
    (+0.00042, 1, (0, 1, 2, 0)),
    (+0.00038, 1, (0, 1, -2, 0)),
    (-0.00024, 1, (2, -1, 0, 0)),
    (-0.00017, 0, (0, 0, 0, 1)),
]


def conjunction_jd(k: int, *, config: NewMoonConfig = NewMoonConfig()) -> float:
    """JDE of the new moon for integer lunation k (k=0 -> 2000-01-06)."""
    t = k / 1236.85
    t2, t3, t4 = t * t, t * t * t, t * t * t * t

    jde = (
        config.reference_jde
        + config.synodic_month * k
        + 0.00015437 * t2
        - 0.000000150 * t3
        + 0.00000000073 * t4
    )

    e = 1.0 - 0.002516 * t - 0.0000074 * t2
    m_sun = math.radians(norm360(2.5534 + 29.10535670 * k - 0.0000014 * t2 - 0.00000011 * t3))
    m_moon = math.radians(
        norm360(201.5643 + 385.81693528 * k + 0.0107582 * t2 + 0.00001238 * t3 - 0.000000058 * t4)
    )
    f = math.radians(
        norm360(160.7108 + 390.67050284 * k - 0.0016118 * t2 - 0.00000227 * t3 + 0.000000011 * t4)
    )
    omega = math.radians(norm360(124.7746 - 1.56375588 * k + 0.0020672 * t2 + 0.00000215 * t3))

    corr = 0.0
    for coef, e_pow, (a, b, c, d) in _NEW_MOON_TERMS:
        corr += coef * (e ** e_pow) * math.sin(a * m_moon + b * m_sun + c * f + d * omega)

    return jde + corr


def lunation_index(d: date, *, config: NewMoonConfig = NewMoonConfig()) -> int:
    """Estimated k of the last mean new moon at or before the end of d."""
    days = date_to_jd(d) - config.reference_jde
    return int(math.floor(days / config.synodic_month))


def conjunction_date(k: int, *, config: NewMoonConfig = NewMoonConfig()) -> date:
    """UT calendar date of lunation k. Raises CalculationError on implausible output."""
    return jd_to_date(conjunction_jd(k, config=config))


def most_recent_conjunction(
    target: date,
    *,
    config: NewMoonConfig = NewMoonConfig(),
) -> Optional[date]:
    """
    Latest conjunction whose UT date is <= target, or None if the Julian Day
    arithmetic fails (the date is then treated as not computable).

    Evaluates k_est+1 .. k_est-search_back so that a true conjunction pulled
    across the day boundary by the periodic terms is not missed.
    """
    target = require_date(target, "target")
    target_jd = date_to_jd(target)
    k_est = lunation_index(target, config=config)

    best_jd: Optional[float] = None
    for k in range(k_est + 1, k_est - config.search_back - 1, -1):
        jde = conjunction_jd(k, config=config)
        # jde < JDN + 0.5  <=>  UT date of jde <= target
        if jde < target_jd and (best_jd is None or jde > best_jd):
            best_jd = jde

    if best_jd is None:
        log.warning("no conjunction found within %d lunations before %s", config.search_back, target)
        return None

    try:
        return jd_to_date(best_jd)
    except CalculationError:
        log.warning("conjunction date conversion failed: target=%s jd=%.5f", target, best_jd, exc_info=True)
        return None


def next_conjunction(
    after: date,
    *,
    config: NewMoonConfig = NewMoonConfig(),
) -> Optional[date]:
    """First conjunction whose UT date is strictly after `after`."""
    after = require_date(after, "after")
    after_jd = date_to_jd(after)
    k_est = lunation_index(after, config=config)
    for k in range(k_est - 1, k_est + 3):
        jde = conjunction_jd(k, config=config)
        if jde >= after_jd:
            try:
                return jd_to_date(jde)
            except CalculationError:
                log.warning("conjunction date conversion failed: after=%s k=%d", after, k, exc_info=True)
                return None
    return None


# ============================================================
# First visible crescent (coarse heuristic)
# ============================================================

def first_sliver_visibility(conjunction: date, latitude: float) -> date:
    """
    conjunction + 1 day, nudged by 0.1 day beyond |30| deg latitude and by
    0.2 day beyond |40| deg, rounded to the nearest whole day.

    This is a rule of thumb for pre-filling a sighting date, not a crescent
    visibility model (no moon age, elongation, altitude or weather).
    """
    conjunction = require_date(conjunction, "conjunction")
    days_after = 1.0
    lat = abs(float(latitude))
    if lat > 40:
        days_after = 1.2
    elif lat > 30:
        days_after = 1.1
    return conjunction + timedelta(days=int(round(days_after)))


def most_recent_sliver(
    target: date,
    latitude: float,
    *,
    config: NewMoonConfig = NewMoonConfig(),
) -> Optional[date]:
    """
    Estimated first-crescent date at or before target.
    If the crescent after the latest conjunction is still ahead of target,
    step back one lunation.
    """
    target = require_date(target, "target")
    conj = most_recent_conjunction(target, config=config)
    if conj is None:
        return None

    sliver = first_sliver_visibility(conj, latitude)
    if sliver <= target:
        return sliver

    prev = most_recent_conjunction(conj - timedelta(days=1), config=config)
    if prev is None:
        return None
    return first_sliver_visibility(prev, latitude)


# ============================================================
# Month number of a sighting (pre-fill)
# ============================================================

def spring_equinox(year: int, *, config: NewMoonConfig = NewMoonConfig()) -> date:
    """Fixed-date equinox approximation (March 20 by default)."""
    month, day = config.equinox
    return date(int(year), month, day)


def estimate_month_number(
    latitude: float,
    current: date,
    sliver: date,
    *,
    config: NewMoonConfig = NewMoonConfig(),
) -> int:
    """
    Rough month number (1..13) of the month opened by `sliver`.

    Month 1 opens with the first crescent after the first conjunction on or
    after equinox - equinox_lead_days, using this year's equinox or last
    year's when `current` is still before it. Months since then are counted
    at 29.5 days each. Falls back to the equinox itself when no conjunction
    can be computed.
    """
    current = require_date(current, "current")
    sliver = require_date(sliver, "sliver")

    equinox = spring_equinox(current.year, config=config)
    if current < equinox:
        equinox = spring_equinox(current.year - 1, config=config)

    earliest = equinox - timedelta(days=config.equinox_lead_days)
    conj = next_conjunction(earliest - timedelta(days=1), config=config)
    month1 = first_sliver_visibility(conj, latitude) if conj is not None else equinox

    # int() truncates toward zero, so a sliver just before month 1 still counts as 1
    n = int((sliver - month1).days / 29.5) + 1
    n = max(1, min(13, n))
    log.debug("estimated month %d: sliver=%s month1=%s equinox=%s", n, sliver, month1, equinox)
    return n
