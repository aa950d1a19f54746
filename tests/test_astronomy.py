from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from bcal.core.config import SunsetConfig
from bcal.core.julian import date_to_jd, jd_to_date, julian_day_number
from bcal.core.newmoon import (
    conjunction_date,
    estimate_month_number,
    first_sliver_visibility,
    most_recent_conjunction,
    most_recent_sliver,
    next_conjunction,
    spring_equinox,
)
from bcal.core.sunset import next_sunset, sunset_hour_angle, sunset_or_fallback, sunset_time
from bcal.core.types import CalculationError

UTC = timezone.utc


def _sample_dates(start: date, step_days: int, count: int):
    return [start + timedelta(days=i * step_days) for i in range(count)]


# ============================================================
# Julian Day
# ============================================================
def test_julian_day_number_epoch():
    assert julian_day_number(date(2000, 1, 1)) == 2451545
    assert date_to_jd(date(2000, 1, 1)) == 2451545.5


@pytest.mark.parametrize("d", [date(1900, 3, 1), date(2000, 2, 29), date(2024, 12, 31), date(2100, 1, 1)])
def test_jd_roundtrip(d: date):
    assert jd_to_date(float(julian_day_number(d))) == d


@pytest.mark.parametrize("jd", [float("nan"), float("inf"), 0.0, 1.0e9])
def test_jd_to_date_implausible(jd: float):
    with pytest.raises(CalculationError):
        jd_to_date(jd)


# ============================================================
# Conjunctions
# ============================================================
@pytest.mark.parametrize(
    "k_date",
    [date(2000, 1, 6), date(2024, 1, 11), date(2024, 4, 8), date(2025, 1, 29)],
)
def test_known_new_moons(k_date: date):
    assert most_recent_conjunction(k_date) == k_date
    assert most_recent_conjunction(k_date - timedelta(days=1)) != k_date


def test_lunation_zero():
    assert conjunction_date(0) == date(2000, 1, 6)


def test_conjunction_brackets_target():
    for d in _sample_dates(date(2023, 1, 1), 3, 250):
        conj = most_recent_conjunction(d)
        after = next_conjunction(conj)
        assert conj <= d
        assert after > d
        assert 29 <= (after - conj).days <= 30


def test_next_conjunction():
    assert next_conjunction(date(2024, 1, 15)) == date(2024, 2, 9)
    assert next_conjunction(date(2024, 1, 10)) == date(2024, 1, 11)


def test_sliver_heuristic_by_latitude():
    conj = date(2024, 1, 11)
    assert first_sliver_visibility(conj, 0.0) == date(2024, 1, 12)
    assert first_sliver_visibility(conj, 35.0) == date(2024, 1, 12)
    assert first_sliver_visibility(conj, -45.0) == date(2024, 1, 12)


def test_most_recent_sliver_steps_back():
    # on the conjunction day itself the crescent is not up yet
    assert most_recent_sliver(date(2024, 1, 11), 31.77) == date(2023, 12, 13)
    assert most_recent_sliver(date(2024, 1, 20), 31.77) == date(2024, 1, 12)


def test_spring_equinox_fixed_date():
    assert spring_equinox(2024) == date(2024, 3, 20)


@pytest.mark.parametrize(
    "current,expected",
    [
        # first conjunction from 03-15 is 2024-04-08, crescent 04-09
        (date(2024, 4, 15), 1),
        (date(2024, 6, 10), 3),
        # before the equinox the count runs from 2023 (crescent 2023-03-22)
        (date(2024, 1, 15), 11),
    ],
)
def test_estimate_month_number(current: date, expected: int):
    sliver = most_recent_sliver(current, 31.77)
    assert estimate_month_number(31.77, current, sliver) == expected


def test_estimate_month_number_clamped():
    current = date(2024, 4, 15)
    assert estimate_month_number(31.77, current, date(2024, 3, 1)) == 1
    assert estimate_month_number(31.77, current, date(2025, 9, 1)) == 13


# ============================================================
# Sunset
# ============================================================
def test_equator_never_polar():
    for d in _sample_dates(date(2024, 1, 1), 7, 53):
        s = sunset_time(d, 0.0, 0.0, "UTC")
        assert s is not None
        noon = datetime.combine(d, time(12, 0), tzinfo=UTC)
        assert noon < s < noon + timedelta(hours=12)


def test_equator_june_sunset_near_six():
    s = sunset_time(date(2024, 6, 21), 0.0, 0.0, "UTC")
    assert s.date() == date(2024, 6, 21)
    assert s.hour == 18
    assert s.minute < 10


def test_polar_day_and_night_have_no_sunset():
    assert sunset_time(date(2024, 6, 21), 80.0, 15.0, "UTC") is None
    assert sunset_time(date(2024, 12, 21), 80.0, 15.0, "UTC") is None
    assert sunset_hour_angle(80.0, 23.44) is None
    assert math.isclose(sunset_hour_angle(0.0, 23.44), math.pi / 2)


def test_sunset_uses_local_offset_in_summer():
    s = sunset_time(date(2024, 7, 1), 40.71, -74.0, "America/New_York")
    assert s.utcoffset() == timedelta(hours=-4)
    assert 19 <= s.hour <= 21


def test_dst_second_pass_matches_post_transition_offset():
    # probing at 01:00 sees EST; the sunset instant is already in EDT
    d = date(2024, 3, 10)
    early_probe = sunset_time(d, 40.71, -74.0, "America/New_York", config=SunsetConfig(dst_probe_hour=1))
    default = sunset_time(d, 40.71, -74.0, "America/New_York")
    assert early_probe == default
    assert default.utcoffset() == timedelta(hours=-4)


def test_fallback_when_no_location_or_polar():
    s, used = sunset_or_fallback(date(2024, 6, 21), None, None, "Asia/Jerusalem")
    assert used is True
    assert (s.hour, s.minute) == (18, 0)

    s, used = sunset_or_fallback(date(2024, 6, 21), 80.0, 15.0, "UTC")
    assert used is True

    s, used = sunset_or_fallback(date(2024, 6, 21), 31.77, 35.21, "Asia/Jerusalem")
    assert used is False


def test_next_sunset_rolls_to_tomorrow():
    before = datetime(2024, 3, 20, 12, 0, tzinfo=UTC)
    after = datetime(2024, 3, 20, 22, 0, tzinfo=UTC)
    assert next_sunset(0.0, 0.0, "UTC", now=before).date() == date(2024, 3, 20)
    assert next_sunset(0.0, 0.0, "UTC", now=after).date() == date(2024, 3, 21)


def test_sunset_past_local_midnight_rolls_to_next_date():
    # Fairbanks runs on a -8 h zone, ~28 deg west of its standard meridian
    d = date(2024, 6, 21)
    zone = ZoneInfo("America/Anchorage")
    s = sunset_time(d, 64.84, -147.72, zone)
    noon = datetime.combine(d, time(12, 0), tzinfo=zone)
    assert noon < s < noon + timedelta(hours=14)
    assert s.date() == date(2024, 6, 22)

    before_late_sunset = datetime(2024, 6, 22, 0, 5, tzinfo=zone)
    assert next_sunset(64.84, -147.72, zone, now=before_late_sunset) == s
