# src/bcal/core/settings.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Protocol, runtime_checkable

from .timeutil import require_aware


# ============================================================
# Preference enums (stored as strings)
# ============================================================

class MonthNamingMode(str, Enum):
    ORDINAL = "ordinal"
    NUMBERED = "numbered"

    @classmethod
    def from_stored(cls, stored: Optional[str]) -> "MonthNamingMode":
        for m in cls:
            if m.value == stored:
                return m
        return cls.ORDINAL


class FirstfruitsRule(str, Enum):
    FIXED_DAY_16 = "fixed_day_16"
    DAY_AFTER_WEEKLY_SABBATH = "day_after_weekly_sabbath"

    @classmethod
    def from_stored(cls, stored: Optional[str]) -> "FirstfruitsRule":
        # older stores used the name of the Saturday-sabbath variant
        if stored == "sunday_during_unleavened_bread":
            return cls.DAY_AFTER_WEEKLY_SABBATH
        for r in cls:
            if r.value == stored:
                return r
        return cls.FIXED_DAY_16


class WeeklyRestDay(str, Enum):
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def weekday(self) -> int:
        """datetime.weekday() value (Monday=0)."""
        return 5 if self is WeeklyRestDay.SATURDAY else 6

    @classmethod
    def from_stored(cls, stored: Optional[str]) -> "WeeklyRestDay":
        for r in cls:
            if r.value == stored:
                return r
        return cls.SATURDAY


@dataclass(frozen=True)
class Preferences:
    month_naming_mode: MonthNamingMode = MonthNamingMode.ORDINAL
    firstfruits_rule: FirstfruitsRule = FirstfruitsRule.FIXED_DAY_16
    weekly_rest_day: WeeklyRestDay = WeeklyRestDay.SATURDAY
    include_hanukkah: bool = False
    include_purim: bool = False
    # project a 13th month for the year currently being advanced
    project_extra_month: bool = False

    def to_stored(self) -> Dict[str, object]:
        return {
            "month_naming_mode": self.month_naming_mode.value,
            "firstfruits_rule": self.firstfruits_rule.value,
            "weekly_rest_day": self.weekly_rest_day.value,
            "include_hanukkah": bool(self.include_hanukkah),
            "include_purim": bool(self.include_purim),
            "project_extra_month": bool(self.project_extra_month),
        }

    @classmethod
    def from_stored(cls, raw: Optional[Dict[str, object]]) -> "Preferences":
        if not raw:
            return cls()
        return cls(
            month_naming_mode=MonthNamingMode.from_stored(raw.get("month_naming_mode")),  # type: ignore[arg-type]
            firstfruits_rule=FirstfruitsRule.from_stored(raw.get("firstfruits_rule")),  # type: ignore[arg-type]
            weekly_rest_day=WeeklyRestDay.from_stored(raw.get("weekly_rest_day")),  # type: ignore[arg-type]
            include_hanukkah=bool(raw.get("include_hanukkah", False)),
            include_purim=bool(raw.get("include_purim", False)),
            project_extra_month=bool(raw.get("project_extra_month", False)),
        )


LOCATION_MAX_AGE = timedelta(hours=24)


@dataclass(frozen=True)
class CachedLocation:
    latitude: float
    longitude: float
    cached_at: datetime

    def is_fresh(self, now: datetime, max_age: timedelta = LOCATION_MAX_AGE) -> bool:
        now = require_aware(now, "now")
        cached = require_aware(self.cached_at, "cached_at")
        return (now - cached) <= max_age


# ============================================================
# Store protocol
# ============================================================

@runtime_checkable
class SettingsStore(Protocol):
    def get_preferences(self) -> Preferences: ...
    def set_preferences(self, prefs: Preferences) -> None: ...

    def get_projected_length(self, year: int, month: int) -> Optional[int]: ...
    def set_projected_length(self, year: int, month: int, length: Optional[int]) -> None: ...
    def projected_lengths_for_year(self, year: int) -> Dict[int, int]: ...

    def get_location(self) -> Optional[CachedLocation]: ...
    def set_location(self, location: Optional[CachedLocation]) -> None: ...


def projected_key(year: int, month: int) -> str:
    return f"{int(year)}-{int(month)}"


def parse_projected_key(key: str) -> Optional[tuple[int, int]]:
    y, sep, m = key.rpartition("-")
    if not sep:
        return None
    try:
        return int(y), int(m)
    except ValueError:
        return None


class ProjectedLengthCache:
    """
    (year, month) -> projected length in days (29 or 30).

    Keeps a projected month visually stable across queries until a real
    confirmation supersedes it. It is an optimization, not a source of truth.
    """

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    def get(self, year: int, month: int) -> Optional[int]:
        return self._store.get_projected_length(year, month)

    def put(self, year: int, month: int, length: int) -> None:
        if int(length) not in (29, 30):
            raise ValueError(f"projected length must be 29 or 30 (got {length})")
        self._store.set_projected_length(year, month, int(length))

    def clear(self, year: int, month: int) -> None:
        self._store.set_projected_length(year, month, None)

    def for_year(self, year: int) -> Dict[int, int]:
        return self._store.projected_lengths_for_year(year)
