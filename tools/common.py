from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Iterable, Optional, Tuple

from bcal.core.config import BCalConfig, ResolverConfig
from bcal.core.stores.json_store import JsonFileStore
from bcal.features.calendar import BiblicalCalendar

DEFAULT_TZ = "Asia/Jerusalem"
DEFAULT_LEDGER = "data/ledger.json"

ENV_LEDGER_PATH = "BCAL_LEDGER_PATH"
ENV_LEDGER_POLICY = "BCAL_LEDGER_POLICY"
ENV_TZ = "BCAL_TZ"


@dataclass(frozen=True)
class LedgerConfig:
    path: Optional[Path]
    policy: str
    skip_reason: Optional[str]


def add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--date", help="YYYY-MM-DD")
    parser.add_argument("--start", help="YYYY-MM-DD")
    parser.add_argument("--end", help="YYYY-MM-DD")
    parser.add_argument("--tz", default=os.environ.get(ENV_TZ, "").strip() or DEFAULT_TZ)
    parser.add_argument("--ledger", default="", help=f"JSON ledger (default: ${ENV_LEDGER_PATH} or {DEFAULT_LEDGER})")
    parser.add_argument("--strict", action="store_true", help="raise on anchor gaps outside 1..30 days")
    parser.add_argument("--json", action="store_true")
    parser.add_argument("--verbose", action="store_true")


def parse_date(s: str) -> date:
    return date.fromisoformat(s)


def iter_dates(start: date, end: date) -> Iterable[date]:
    cur = start
    while cur <= end:
        yield cur
        cur = cur + timedelta(days=1)


def resolve_ledger(path_arg: str, strict: bool = False) -> LedgerConfig:
    policy = "strict" if strict else (os.environ.get(ENV_LEDGER_POLICY, "").strip().lower() or "lenient")
    if policy not in ("lenient", "strict"):
        policy = "lenient"

    path_raw = (path_arg or "").strip() or os.environ.get(ENV_LEDGER_PATH, "").strip() or DEFAULT_LEDGER
    p = Path(path_raw).expanduser()
    if p.exists():
        return LedgerConfig(path=p, policy=policy, skip_reason=None)

    return LedgerConfig(
        path=None,
        policy=policy,
        skip_reason=f"ledger not found: {p}. set {ENV_LEDGER_PATH} or provide --ledger.",
    )


def open_calendar(cfg: LedgerConfig) -> BiblicalCalendar:
    store = JsonFileStore(cfg.path)
    return BiblicalCalendar(store, store, config=BCalConfig(resolver=ResolverConfig(ledger_policy=cfg.policy)))


def resolve_date_range(args: argparse.Namespace) -> Tuple[Optional[date], Optional[date]]:
    if args.start and args.end:
        return parse_date(args.start), parse_date(args.end)
    if args.date:
        d = parse_date(args.date)
        return d, d
    return None, None


def dump_json(obj: object) -> None:
    print(json.dumps(obj, ensure_ascii=False, indent=2))


def skip(msg: str) -> None:
    print(f"SKIP: {msg}")
    sys.exit(0)
