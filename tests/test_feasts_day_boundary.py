from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from bcal.core.settings import CachedLocation, FirstfruitsRule, MonthNamingMode, WeeklyRestDay
from bcal.core.types import MonthDefinition, MonthStatus
from bcal.features import config as fc
from bcal.features.day_boundary import lunar_reference_date, resolve_location
from bcal.features.feasts import feast_days_for_year, feast_days_on, firstfruits_date

UTC = timezone.utc

# 2025-03-30 is a Sunday; days 15..22 of this month run Sunday 04-13 .. Sunday 04-20
MONTH1 = MonthDefinition(6025, 1, date(2025, 3, 30), 30, MonthStatus.CONFIRMED)
MONTH7 = MonthDefinition(6025, 7, date(2025, 9, 23), 29, MonthStatus.PROJECTED)
MONTH9 = MonthDefinition(6025, 9, date(2025, 11, 21), 29, MonthStatus.PROJECTED)
MONTH12 = MonthDefinition(6025, 12, date(2026, 2, 18), 30, MonthStatus.PROJECTED)


def _by_title(feasts):
    return {f.title: f for f in feasts}


def test_firstfruits_fixed_day_16():
    assert firstfruits_date(MONTH1) == date(2025, 4, 14)


def test_firstfruits_after_saturday():
    d = firstfruits_date(MONTH1, rule=FirstfruitsRule.DAY_AFTER_WEEKLY_SABBATH)
    assert d == date(2025, 4, 20)
    assert d.weekday() == 6


def test_firstfruits_after_sunday():
    d = firstfruits_date(
        MONTH1,
        rule=FirstfruitsRule.DAY_AFTER_WEEKLY_SABBATH,
        weekly_rest_day=WeeklyRestDay.SUNDAY,
    )
    assert d == date(2025, 4, 14)


def test_feast_days_core_set():
    feasts = feast_days_for_year(MONTH1, MONTH7, rule=FirstfruitsRule.DAY_AFTER_WEEKLY_SABBATH)
    by = _by_title(feasts)
    assert len(feasts) == 9
    assert by[fc.PASSOVER].date == date(2025, 4, 12)
    assert by[fc.UNLEAVENED_BREAD_BEGINS].date == date(2025, 4, 13)
    assert by[fc.UNLEAVENED_BREAD_ENDS].date == date(2025, 4, 19)
    assert by[fc.FIRSTFRUITS].date == date(2025, 4, 20)
    assert by[fc.SHAVUOT].date == date(2025, 6, 8)
    assert by[fc.SHAVUOT].is_offset_derived
    assert by[fc.TRUMPETS].date == date(2025, 9, 23)
    assert by[fc.ATONEMENT].date == date(2025, 10, 2)
    assert by[fc.TABERNACLES_BEGINS].date == date(2025, 10, 7)
    assert by[fc.TABERNACLES_ENDS].date == date(2025, 10, 14)
    assert [f.date for f in feasts] == sorted(f.date for f in feasts)


def test_missing_months_contribute_nothing():
    assert feast_days_for_year(None, None) == []
    assert len(feast_days_for_year(MONTH1, None)) == 5
    assert len(feast_days_for_year(None, MONTH7)) == 4


def test_hanukkah_rolls_into_month_10():
    feasts = feast_days_for_year(None, None, month9=MONTH9, include_hanukkah=True)
    assert len(feasts) == fc.HANUKKAH_DAYS
    assert feasts[0].date == date(2025, 12, 15)
    assert (feasts[0].month_number, feasts[0].day_of_month) == (9, 25)
    # 29-day month 9: day 30 does not exist, the sixth day is 1/10
    assert (feasts[5].month_number, feasts[5].day_of_month) == (10, 1)
    assert (feasts[-1].month_number, feasts[-1].day_of_month) == (10, 3)
    assert feasts[-1].date == date(2025, 12, 22)


def test_hanukkah_and_purim_only_when_enabled():
    assert feast_days_for_year(None, None, month9=MONTH9, month12=MONTH12) == []
    feasts = feast_days_for_year(None, None, month12=MONTH12, include_purim=True)
    assert [(f.title, f.date) for f in feasts] == [(fc.PURIM, date(2026, 3, 3))]


def test_feast_days_on():
    feasts = feast_days_for_year(MONTH1, MONTH7)
    assert [f.title for f in feast_days_on(date(2025, 4, 12), feasts)] == [fc.PASSOVER]
    assert feast_days_on(date(2025, 4, 11), feasts) == []


def test_month_display_name():
    assert fc.month_display_name(1) == "First"
    assert fc.month_display_name(13) == "Thirteenth"
    assert fc.month_display_name(7, MonthNamingMode.NUMBERED) == "Month 7"
    assert fc.format_day_label(15, 1, 6025) == "15/1/6025"


# ============================================================
# Day boundary
# ============================================================
@pytest.mark.parametrize(
    "hour,expected_ref,after",
    [
        (12, date(2024, 3, 20), False),
        (20, date(2024, 3, 21), True),
    ],
)
def test_reference_date_flips_at_sunset(hour, expected_ref, after):
    now = datetime(2024, 3, 20, hour, 0, tzinfo=UTC)
    b = lunar_reference_date(now, (0.0, 0.0), "UTC")
    assert b.reference_date == expected_ref
    assert b.after_sunset is after
    assert b.used_fallback is False
    assert b.sunset_date == expected_ref - timedelta(days=1)


def test_reference_date_uses_local_calendar_day():
    # 23:30 UTC is already the next civil day in Jerusalem, and after sunset there
    now = datetime(2024, 3, 20, 23, 30, tzinfo=UTC)
    b = lunar_reference_date(now, (31.77, 35.21), "Asia/Jerusalem")
    assert b.sunset.date() == date(2024, 3, 21)
    assert b.reference_date == date(2024, 3, 21)
    assert b.after_sunset is False


def test_fallback_hour_without_location():
    tz = "Asia/Jerusalem"
    before = lunar_reference_date(datetime(2024, 3, 20, 15, 59, tzinfo=UTC), None, tz)
    after = lunar_reference_date(datetime(2024, 3, 20, 16, 0, tzinfo=UTC), None, tz)
    assert before.used_fallback and after.used_fallback
    assert before.reference_date == date(2024, 3, 20)
    assert after.reference_date == date(2024, 3, 21)


def test_naive_now_rejected():
    with pytest.raises(ValueError):
        lunar_reference_date(datetime(2024, 3, 20, 12, 0), None, "UTC")


def test_resolve_location_freshness():
    now = datetime(2024, 3, 20, 12, 0, tzinfo=UTC)
    fresh = CachedLocation(1.0, 2.0, now - timedelta(hours=1))
    stale = CachedLocation(1.0, 2.0, now - timedelta(hours=25))
    assert resolve_location(fresh, now) == (1.0, 2.0)
    assert resolve_location(stale, now, (3.0, 4.0)) == (3.0, 4.0)
    assert resolve_location(None, now) is None


@pytest.mark.parametrize(
    "local,expected_ref",
    [
        (datetime(2024, 6, 21, 10, 0), date(2024, 6, 21)),
        # the 2024-06-21 sunset is at about 00:22 on the 22nd
        (datetime(2024, 6, 22, 0, 5), date(2024, 6, 21)),
        (datetime(2024, 6, 22, 0, 40), date(2024, 6, 22)),
    ],
)
def test_reference_date_with_sunset_after_midnight(local, expected_ref):
    zone = ZoneInfo("America/Anchorage")
    b = lunar_reference_date(local.replace(tzinfo=zone), (64.84, -147.72), zone)
    assert b.reference_date == expected_ref
    assert b.after_sunset is False
    assert b.sunset > local.replace(tzinfo=zone)
