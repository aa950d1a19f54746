# src/bcal/core/timeutil.py
from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Union
from zoneinfo import ZoneInfo


def require_aware(dt: datetime, name: str = "dt") -> datetime:
    """
    Ensure a datetime is timezone-aware.

    Parameters
    ----------
    dt:
        datetime to validate.
    name:
        Parameter name for error messages.

    Returns
    -------
    datetime
        The same datetime if valid.

    Raises
    ------
    ValueError
        If dt is naive or its tzinfo cannot produce an offset.
    """
    if dt.tzinfo is None:
        raise ValueError(f"{name} must be timezone-aware datetime (got naive datetime)")
    if dt.utcoffset() is None:
        raise ValueError(f"{name} has invalid tzinfo (utcoffset is None): {dt.tzinfo!r}")
    return dt


def require_date(d: date, name: str = "d") -> date:
    """
    Reject datetimes passed where a calendar date is expected.
    (datetime is a subclass of date, so comparisons would silently misbehave.)
    """
    if isinstance(d, datetime):
        raise ValueError(f"{name} must be a date, not a datetime: {d!r}")
    if not isinstance(d, date):
        raise TypeError(f"{name} must be a date (got {type(d).__name__})")
    return d


def as_zone(tz: Union[str, tzinfo]) -> tzinfo:
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz
