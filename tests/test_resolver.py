from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Tuple

import pytest

from bcal.core.config import ResolverConfig
from bcal.core.ledger import MonthStartLedger
from bcal.core.predictor import MonthLengthPredictor
from bcal.core.resolver import CalendarResolver
from bcal.core.settings import Preferences, ProjectedLengthCache
from bcal.core.stores.memory_store import InMemoryStore
from bcal.core.types import MalformedLedgerError, MonthAnchor, MonthStatus

DAY0 = date(2024, 4, 9)


def _day(n: int) -> date:
    return DAY0 + timedelta(days=n)


def _resolver(
    anchors: Iterable[Tuple[int, int, int]],
    *,
    prefs: Preferences = Preferences(),
    config: ResolverConfig = ResolverConfig(),
) -> CalendarResolver:
    store = InMemoryStore(
        [MonthAnchor(year_number=y, month_number=m, start_date=_day(n)) for y, m, n in anchors],
        preferences=prefs,
    )
    return CalendarResolver(
        MonthStartLedger(store),
        MonthLengthPredictor(ProjectedLengthCache(store)),
        preferences=store.get_preferences,
        config=config,
    )


def test_resolve_last_day_of_confirmed_month():
    r = _resolver([(1, 1, 0), (1, 2, 30)])
    got = r.resolve_for(_day(29))
    assert (got.year_number, got.month_number, got.day_of_month) == (1, 1, 30)
    assert got.status is MonthStatus.CONFIRMED
    assert got.length_status is MonthStatus.CONFIRMED


def test_resolve_first_day_of_anchored_month_without_successor():
    r = _resolver([(1, 1, 0), (1, 2, 30)])
    got = r.resolve_for(_day(30))
    assert (got.year_number, got.month_number, got.day_of_month) == (1, 2, 1)
    assert got.status is MonthStatus.CONFIRMED
    # month 2 has no successor anchor, so its length is still a projection
    assert got.length_status is MonthStatus.PROJECTED


def test_single_anchor_month_is_projected_with_parity_length():
    r = _resolver([(1, 1, 0)])
    m = r.get_month(1, 1)
    assert m.status is MonthStatus.PROJECTED
    assert m.length_days == 30
    assert m.start_date == DAY0


@pytest.mark.parametrize("length", [29, 30])
def test_every_day_between_adjacent_anchors_is_confirmed(length: int):
    r = _resolver([(1, 1, 0), (1, 2, length)])
    for n in range(length):
        got = r.resolve_for(_day(n))
        assert got.status is MonthStatus.CONFIRMED
        assert got.month_start == DAY0
        assert got.day_of_month == n + 1


def test_get_month_agrees_with_resolve_for():
    r = _resolver([(1, 1, 0), (1, 2, 29), (1, 3, 59)])
    for n in range(-3, 300):
        got = r.resolve_for(_day(n))
        if n < 0:
            assert got is None
            continue
        assert got is not None
        m = r.get_month(got.year_number, got.month_number)
        assert m is not None
        assert m.start_date == got.month_start
        assert m.contains(_day(n))


def test_projected_months_chain_after_last_anchor():
    r = _resolver([(1, 1, 0), (1, 2, 30)])
    m2 = r.get_month(1, 2)
    m3 = r.get_month(1, 3)
    assert m3.start_date == m2.end_date
    assert m3.status is MonthStatus.PROJECTED


def test_no_anchor_is_not_found():
    r = _resolver([])
    assert r.resolve_for(DAY0) is None
    assert r.get_month(1, 1) is None


def test_date_before_first_anchor_is_not_found():
    r = _resolver([(1, 1, 0)])
    assert r.resolve_for(_day(-1)) is None


def test_resolve_ceiling_exhaustion_is_not_found():
    r = _resolver([(1, 1, 0)], config=ResolverConfig(resolve_ceiling=3))
    assert r.resolve_for(_day(60)) is not None
    assert r.resolve_for(_day(200)) is None


def test_month_lookup_ceiling_exhaustion_is_not_found():
    r = _resolver([(1, 1, 0)], config=ResolverConfig(month_lookup_ceiling=5))
    assert r.get_month(1, 5) is not None
    assert r.get_month(2, 1) is None


def test_get_month_seeds_from_earlier_key():
    # month 3 is reached by walking from (1, 2), not from the later (1, 4)
    r = _resolver([(1, 1, 0), (1, 2, 30), (1, 4, 89)])
    m3 = r.get_month(1, 3)
    assert m3.start_date == _day(59)
    assert m3.length_days == 30
    assert m3.status is MonthStatus.CONFIRMED


# ============================================================
# Successor rule
# ============================================================
def test_leap_decision_not_aviv_inserts_thirteenth_month():
    r = _resolver([(1, 1, 0)])
    r.ledger.set_leap_decision(1, False, date(2025, 3, 1))
    assert r.next_month(1, 12, project_extra_month=False) == (1, 13)
    assert r.next_month(1, 13, project_extra_month=False) == (2, 1)


def test_leap_decision_aviv_rolls_over():
    r = _resolver([(1, 1, 0)])
    r.ledger.set_leap_decision(1, True, None)
    assert r.next_month(1, 12, project_extra_month=False) == (2, 1)
    assert r.next_month(1, 12, project_extra_month=True) == (1, 13)


def test_unknown_decision_follows_projection_flag():
    r = _resolver([(1, 1, 0)])
    assert r.next_month(1, 12, project_extra_month=False) == (2, 1)
    assert r.next_month(1, 12, project_extra_month=True) == (1, 13)
    assert r.next_month(1, 5, project_extra_month=True) == (1, 6)


def test_projected_extra_month_in_resolution():
    r = _resolver([(1, 12, 0)], prefs=Preferences(project_extra_month=True))
    m12 = r.get_month(1, 12)
    got = r.resolve_for(m12.end_date)
    assert (got.year_number, got.month_number, got.day_of_month) == (1, 13, 1)
    assert got.status is MonthStatus.PROJECTED


# ============================================================
# Malformed anchor gaps
# ============================================================
def test_lenient_policy_projects_over_gap():
    r = _resolver([(1, 1, 0), (1, 2, 45)])
    got = r.resolve_for(_day(3))
    assert got.day_of_month == 4
    assert got.status is MonthStatus.CONFIRMED
    assert got.length_status is MonthStatus.PROJECTED

    issues = r.ledger.find_issues()
    assert len(issues) == 1
    assert issues[0].delta_days == 45
    assert issues[0].anchor.key == (1, 1)


def test_strict_policy_raises_on_gap():
    r = _resolver([(1, 1, 0), (1, 2, 45)], config=ResolverConfig(ledger_policy="strict"))
    with pytest.raises(MalformedLedgerError) as e:
        r.resolve_for(_day(3))
    assert e.value.issue.delta_days == 45


def test_resolve_rejects_datetime():
    from datetime import datetime

    r = _resolver([(1, 1, 0)])
    with pytest.raises(ValueError):
        r.resolve_for(datetime(2024, 4, 10, 12, 0))


def test_gap_reported_once_for_anchored_start_only(caplog: pytest.LogCaptureFixture):
    r = _resolver([(1, 1, 0), (2, 1, 200)])
    with caplog.at_level(logging.WARNING, logger="bcal.core.resolver"):
        got = r.resolve_for(_day(150))
    assert (got.month_number, got.status) == (6, MonthStatus.PROJECTED)
    gaps = [rec for rec in caplog.records if "anchor gap" in rec.getMessage()]
    assert len(gaps) == 1
