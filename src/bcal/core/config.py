# src/bcal/core/config.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal, Tuple

LedgerPolicy = Literal["lenient", "strict"]


@dataclass(frozen=True)
class ResolverConfig:
    """
    Forward-projection bounds for the calendar resolver.

    The ceilings are not bug guards: they express how many months past the
    last confirmed anchor we are willing to extrapolate. Running out of
    iterations is a normal "not found" outcome.
    """
    # single date resolution (resolve_for)
    resolve_ceiling: int = 48

    # month lookup seeded from a possibly distant anchor (get_month)
    month_lookup_ceiling: int = 120

    # how many confirmed months before the target feed the predictor
    history_window: int = 12

    # anchor deltas outside [1, 30]:
    #   lenient -> log a warning and treat the month as projected
    #   strict  -> raise MalformedLedgerError
    ledger_policy: LedgerPolicy = "lenient"


@dataclass(frozen=True)
class PredictorConfig:
    # only the tail of the confirmed history is inspected for patterns
    history_tail: int = 6

    # mean thresholds (days); a synodic month averages ~29.53
    low_mean: float = 29.4
    high_mean: float = 29.6

    # months written forward by cascade_from()
    cascade_cap: int = 24


@dataclass(frozen=True)
class SunsetConfig:
    # local clock hour used when the sunset cannot be computed
    fallback_hour: int = 18

    # local clock hour used to probe the UTC offset on the first pass
    dst_probe_hour: int = 18


@dataclass(frozen=True)
class NewMoonConfig:
    synodic_month: float = 29.530588861

    # Meeus k=0 mean new moon (2000-01-06 18:14 TT)
    reference_jde: float = 2451550.09766

    # lunations evaluated behind the estimated index
    search_back: int = 10

    # fixed spring equinox used to count months of the year (month, day)
    equinox: Tuple[int, int] = (3, 20)

    # a conjunction up to this many days before the equinox can open month 1
    equinox_lead_days: int = 5


@dataclass(frozen=True)
class BCalConfig:
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    predictor: PredictorConfig = field(default_factory=PredictorConfig)
    sunset: SunsetConfig = field(default_factory=SunsetConfig)
    newmoon: NewMoonConfig = field(default_factory=NewMoonConfig)
