from __future__ import annotations

import logging
import os
from datetime import date, datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, HTTPException, Path as PathParam, Query
from pydantic import BaseModel, Field

from bcal.core.config import BCalConfig, ResolverConfig
from bcal.core.newmoon import (
    estimate_month_number,
    most_recent_conjunction,
    most_recent_sliver,
    next_conjunction,
)
from bcal.core.stores.json_store import JsonFileStore
from bcal.core.sunset import sunset_time
from bcal.core.types import CalculationError, FeastDay, MonthDefinition, ResolvedDay
from bcal.features.calendar import BiblicalCalendar, default_year
from bcal.features.config import month_display_name
from bcal.features.day_boundary import JERUSALEM
from bcal.features.feasts import feast_days_on

router = APIRouter(prefix="/api/v1", tags=["public"])

log = logging.getLogger("bcal.api.public")

BCAL_LEDGER_PATH_ENV = "BCAL_LEDGER_PATH"
BCAL_LEDGER_POLICY_ENV = "BCAL_LEDGER_POLICY"
BCAL_TZ_ENV = "BCAL_TZ"
DEFAULT_LEDGER_PATH = "data/ledger.json"
DEFAULT_TZ = "Asia/Jerusalem"

NOT_FOUND_HINT = "no month start on record reaches this date; set an anchor first"


# ============================================================
# Response / request models
# ============================================================
class LunarDay(BaseModel):
    year: int
    month: int
    day: int
    label: str
    month_name: str
    status: str = Field(description="confirmed when the month start is on record")
    length_status: str
    month_start: date


class Month(BaseModel):
    year: int
    month: int
    month_name: str
    start: date
    end: date = Field(description="exclusive: first day of the following month")
    length: int
    status: str


class Feast(BaseModel):
    title: str
    date: date
    year: int
    month: int = Field(description="0 when the date is derived by counting (Shavuot)")
    day: int = Field(description="0 when the date is derived by counting")


class DayResponse(BaseModel):
    date: date
    lunar: LunarDay
    feasts: List[Feast] = Field(default_factory=list)


class TodayResponse(BaseModel):
    now: datetime
    tz: str
    reference_date: date
    sunset: datetime
    after_sunset: bool
    used_fallback: bool
    lunar: Optional[LunarDay] = None


class AnchorIn(BaseModel):
    year: int
    month: int = Field(ge=1, le=13)
    start_date: date


class NextAnchorIn(BaseModel):
    start_date: date


class LeapIn(BaseModel):
    is_aviv: Optional[bool] = None
    decided_on: Optional[date] = None


class LocationIn(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class LedgerIssueOut(BaseModel):
    year: int
    month: int
    start: date
    next_year: int
    next_month: int
    next_start: date
    delta_days: int


# ============================================================
# Calendar wiring (env driven, cached)
# ============================================================
def _ledger_path() -> Path:
    raw = os.environ.get(BCAL_LEDGER_PATH_ENV, "").strip() or DEFAULT_LEDGER_PATH
    return Path(raw).expanduser()


def _ledger_policy() -> str:
    raw = os.environ.get(BCAL_LEDGER_POLICY_ENV, "").strip().lower() or "lenient"
    if raw not in ("lenient", "strict"):
        log.warning("unknown %s=%r, using lenient", BCAL_LEDGER_POLICY_ENV, raw)
        return "lenient"
    return raw


def _default_tz() -> str:
    return os.environ.get(BCAL_TZ_ENV, "").strip() or DEFAULT_TZ


@lru_cache(maxsize=1)
def _calendar() -> BiblicalCalendar:
    store = JsonFileStore(_ledger_path())
    config = BCalConfig(resolver=ResolverConfig(ledger_policy=_ledger_policy()))
    log.info("calendar ledger=%s policy=%s", store.path, config.resolver.ledger_policy)
    return BiblicalCalendar(store, store, config=config)


def _cal(calendar: Optional[BiblicalCalendar]) -> BiblicalCalendar:
    return calendar if calendar is not None else _calendar()


# ============================================================
# Helpers
# ============================================================
def _parse_iso_date(s: str) -> date:
    try:
        return date.fromisoformat(s)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid date format: {s} (expected YYYY-MM-DD)") from e


def _parse_date_any(x: str | date) -> date:
    if isinstance(x, date):
        return x
    return _parse_iso_date(str(x))


def _parse_iso_datetime(s: str) -> datetime:
    try:
        dt = datetime.fromisoformat(s)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid datetime format: {s} (expected ISO 8601)") from e
    if dt.tzinfo is None:
        raise HTTPException(status_code=422, detail=f"datetime must carry a UTC offset: {s}")
    return dt


def _get_tzinfo(tz: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Unknown timezone: {tz}") from e


def _resolve_observer(lat: Optional[float], lon: Optional[float]) -> Optional[Tuple[float, float]]:
    if lat is None and lon is None:
        return None
    if lat is None or lon is None:
        raise HTTPException(status_code=422, detail="lat and lon must be provided together")
    return float(lat), float(lon)


def _lunar_day(r: Optional[ResolvedDay], cal: BiblicalCalendar) -> Optional[LunarDay]:
    if r is None:
        return None
    return LunarDay(
        year=r.year_number,
        month=r.month_number,
        day=r.day_of_month,
        label=r.label,
        month_name=month_display_name(r.month_number, cal.preferences.month_naming_mode),
        status=r.status.value,
        length_status=r.length_status.value,
        month_start=r.month_start,
    )


def _month(m: MonthDefinition, cal: BiblicalCalendar) -> Month:
    return Month(
        year=m.year_number,
        month=m.month_number,
        month_name=month_display_name(m.month_number, cal.preferences.month_naming_mode),
        start=m.start_date,
        end=m.end_date,
        length=m.length_days,
        status=m.status.value,
    )


def _feast(f: FeastDay) -> Feast:
    return Feast(title=f.title, date=f.date, year=f.year_number, month=f.month_number, day=f.day_of_month)


# =========================================================
# Public JSON API (function-style, HTTP-ready)
# =========================================================
def get_day(date_: str | date, *, calendar: Optional[BiblicalCalendar] = None) -> dict:
    cal = _cal(calendar)
    d = _parse_date_any(date_)
    r = cal.resolve_for(d)
    if r is None:
        raise HTTPException(status_code=404, detail=f"{d} not found: {NOT_FOUND_HINT}")

    feasts = [_feast(f) for f in feast_days_on(d, cal.feast_days_for_year(r.year_number))]

    return DayResponse(date=d, lunar=_lunar_day(r, cal), feasts=feasts).model_dump(mode="json")


def get_today(
    *,
    tz: Optional[str] = None,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    now: Optional[str | datetime] = None,
    calendar: Optional[BiblicalCalendar] = None,
) -> dict:
    cal = _cal(calendar)
    tz_name = tz or _default_tz()
    zone = _get_tzinfo(tz_name)
    observer = _resolve_observer(lat, lon)

    if now is None:
        now_dt = datetime.now(zone)
    elif isinstance(now, datetime):
        if now.tzinfo is None:
            raise HTTPException(status_code=422, detail="now must carry a UTC offset")
        now_dt = now
    else:
        now_dt = _parse_iso_datetime(now)

    boundary, r = cal.today(now_dt, zone, location=observer, default_location=JERUSALEM)
    return TodayResponse(
        now=now_dt,
        tz=tz_name,
        reference_date=boundary.reference_date,
        sunset=boundary.sunset,
        after_sunset=boundary.after_sunset,
        used_fallback=boundary.used_fallback,
        lunar=_lunar_day(r, cal),
    ).model_dump(mode="json")


def get_month(year: int, month: int, *, calendar: Optional[BiblicalCalendar] = None) -> dict:
    cal = _cal(calendar)
    m = cal.get_month(year, month)
    if m is None:
        raise HTTPException(status_code=404, detail=f"month {month}/{year} not found: {NOT_FOUND_HINT}")
    return _month(m, cal).model_dump(mode="json")


def get_year_feasts(year: int, *, calendar: Optional[BiblicalCalendar] = None) -> dict:
    cal = _cal(calendar)
    feasts = cal.feast_days_for_year(year)
    return {"year": year, "feasts": [_feast(f).model_dump(mode="json") for f in feasts]}


def get_year_months(year: int, *, calendar: Optional[BiblicalCalendar] = None) -> dict:
    cal = _cal(calendar)
    months = cal.months_for_year(year)
    return {
        "year": year,
        "leap_decision": cal.get_leap_decision(year),
        "months": [_month(m, cal).model_dump(mode="json") for m in months],
    }


def get_sunset(
    date_: str | date,
    *,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    tz: Optional[str] = None,
    calendar: Optional[BiblicalCalendar] = None,
) -> dict:
    cal = _cal(calendar)
    d = _parse_date_any(date_)
    tz_name = tz or _default_tz()
    zone = _get_tzinfo(tz_name)
    obs_lat, obs_lon = _resolve_observer(lat, lon) or JERUSALEM

    s = sunset_time(d, obs_lat, obs_lon, zone, config=cal.config.sunset)
    return {
        "date": d.isoformat(),
        "tz": tz_name,
        "lat": obs_lat,
        "lon": obs_lon,
        "sunset": s.isoformat() if s is not None else None,
    }


def get_new_moon(
    date_: str | date,
    *,
    lat: Optional[float] = None,
    calendar: Optional[BiblicalCalendar] = None,
) -> dict:
    config = _cal(calendar).config.newmoon
    d = _parse_date_any(date_)
    latitude = JERUSALEM[0] if lat is None else float(lat)

    month: Optional[int] = None
    try:
        conj = most_recent_conjunction(d, config=config)
        after = next_conjunction(d, config=config)
        sliver = most_recent_sliver(d, latitude, config=config)
        if sliver is not None:
            month = estimate_month_number(latitude, d, sliver, config=config)
    except CalculationError:
        log.exception("new moon calculation failed: date=%s lat=%.4f", d, latitude)
        conj = after = sliver = month = None

    return {
        "date": d.isoformat(),
        "lat": latitude,
        "conjunction": conj.isoformat() if conj else None,
        "next_conjunction": after.isoformat() if after else None,
        "suggested_month_start": sliver.isoformat() if sliver else None,
        "suggested_year": default_year(d),
        "suggested_month": month,
    }


def put_anchor(year: int, month: int, start_date: date, *, calendar: Optional[BiblicalCalendar] = None) -> dict:
    cal = _cal(calendar)
    cal.set_anchor(year, month, start_date)
    m = cal.get_month(year, month)
    return _month(m, cal).model_dump(mode="json")


def put_next_month_start(start_date: date, *, calendar: Optional[BiblicalCalendar] = None) -> dict:
    cal = _cal(calendar)
    m = cal.start_next_month_on(start_date)
    if m is None:
        raise HTTPException(status_code=404, detail=f"{start_date} - 1 does not resolve: {NOT_FOUND_HINT}")
    return _month(m, cal).model_dump(mode="json")


def put_leap_decision(
    year: int,
    is_aviv: Optional[bool],
    decided_on: Optional[date],
    *,
    calendar: Optional[BiblicalCalendar] = None,
) -> dict:
    cal = _cal(calendar)
    dec = cal.set_leap_decision(year, is_aviv, decided_on)
    return {
        "year": dec.year_number,
        "is_aviv": dec.is_aviv,
        "decided_on": dec.decided_on.isoformat() if dec.decided_on else None,
    }


def put_location(
    lat: float,
    lon: float,
    *,
    now: Optional[datetime] = None,
    calendar: Optional[BiblicalCalendar] = None,
) -> dict:
    cal = _cal(calendar)
    loc = cal.cache_location(lat, lon, now or datetime.now(timezone.utc))
    return {"lat": loc.latitude, "lon": loc.longitude, "cached_at": loc.cached_at.isoformat()}


def get_ledger_issues(*, calendar: Optional[BiblicalCalendar] = None) -> dict:
    cal = _cal(calendar)
    issues = [
        LedgerIssueOut(
            year=i.anchor.year_number,
            month=i.anchor.month_number,
            start=i.anchor.start_date,
            next_year=i.next_anchor.year_number,
            next_month=i.next_anchor.month_number,
            next_start=i.next_anchor.start_date,
            delta_days=i.delta_days,
        ).model_dump(mode="json")
        for i in cal.ledger_issues()
    ]
    summary = cal.summary()
    return {
        "anchors": summary.count,
        "earliest_start": summary.earliest_start.isoformat() if summary.earliest_start else None,
        "latest_start": summary.latest_start.isoformat() if summary.latest_start else None,
        "issues": issues,
    }


# ============================================================
# Endpoints
# ============================================================
@router.get("/day")
def get_day_endpoint(
    date_str: str = Query(..., alias="date", description="YYYY-MM-DD"),
) -> Dict[str, Any]:
    return get_day(date_str)


@router.get("/today")
def get_today_endpoint(
    tz: str = Query("", description="IANA zone (default: BCAL_TZ)"),
    lat: Optional[float] = Query(None, ge=-90, le=90, description="observer latitude (deg)"),
    lon: Optional[float] = Query(None, ge=-180, le=180, description="observer longitude (deg)"),
    now: str = Query("", description="ISO datetime with offset (default: current time)"),
) -> Dict[str, Any]:
    return get_today(tz=tz.strip() or None, lat=lat, lon=lon, now=now.strip() or None)


@router.get("/month/{year}/{month}")
def get_month_endpoint(
    year: int,
    month: int = PathParam(..., ge=1, le=13),
) -> Dict[str, Any]:
    return get_month(year, month)


@router.get("/year/{year}/feasts")
def get_year_feasts_endpoint(year: int) -> Dict[str, Any]:
    return get_year_feasts(year)


@router.get("/year/{year}/months")
def get_year_months_endpoint(year: int) -> Dict[str, Any]:
    return get_year_months(year)


@router.post("/anchors")
def post_anchor_endpoint(body: AnchorIn) -> Dict[str, Any]:
    return put_anchor(body.year, body.month, body.start_date)


@router.post("/anchors/next")
def post_next_anchor_endpoint(body: NextAnchorIn) -> Dict[str, Any]:
    return put_next_month_start(body.start_date)


@router.put("/years/{year}/leap")
def put_leap_endpoint(year: int, body: LeapIn) -> Dict[str, Any]:
    return put_leap_decision(year, body.is_aviv, body.decided_on)


@router.put("/location")
def put_location_endpoint(body: LocationIn) -> Dict[str, Any]:
    return put_location(body.lat, body.lon)


@router.get("/astro/sunset")
def get_sunset_endpoint(
    date_str: str = Query(..., alias="date", description="YYYY-MM-DD"),
    lat: Optional[float] = Query(None, ge=-90, le=90, description="observer latitude (deg)"),
    lon: Optional[float] = Query(None, ge=-180, le=180, description="observer longitude (deg)"),
    tz: str = Query("", description="IANA zone (default: BCAL_TZ)"),
) -> Dict[str, Any]:
    return get_sunset(date_str, lat=lat, lon=lon, tz=tz.strip() or None)


@router.get("/astro/new-moon")
def get_new_moon_endpoint(
    date_str: str = Query(..., alias="date", description="YYYY-MM-DD"),
    lat: Optional[float] = Query(None, ge=-90, le=90, description="observer latitude (deg)"),
) -> Dict[str, Any]:
    return get_new_moon(date_str, lat=lat)


@router.get("/ledger/issues")
def get_ledger_issues_endpoint() -> Dict[str, Any]:
    return get_ledger_issues()
