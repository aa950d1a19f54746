from __future__ import annotations

"""
New moon check script (no ledger needed).

Uses:
- bcal.core.newmoon.most_recent_conjunction / next_conjunction / most_recent_sliver
"""

import argparse

from bcal.core.newmoon import most_recent_conjunction, most_recent_sliver, next_conjunction
from bcal.features.day_boundary import JERUSALEM

from tools.common import add_common_args, dump_json, iter_dates, resolve_date_range


def main() -> None:
    parser = argparse.ArgumentParser(description="Mean-phase conjunction check")
    add_common_args(parser)
    parser.add_argument("--lat", type=float, default=JERUSALEM[0])
    args = parser.parse_args()

    start, end = resolve_date_range(args)
    if start is None or end is None:
        parser.error("--date or --start/--end required")

    rows = []
    for cur in iter_dates(start, end):
        conj = most_recent_conjunction(cur)
        after = next_conjunction(cur)
        sliver = most_recent_sliver(cur, args.lat)

        if args.json:
            rows.append(
                {
                    "date": cur.isoformat(),
                    "conjunction": conj.isoformat() if conj else None,
                    "next_conjunction": after.isoformat() if after else None,
                    "sliver": sliver.isoformat() if sliver else None,
                }
            )
        elif args.verbose:
            print(f"{cur.isoformat()}  conj={conj}  next={after}  sliver={sliver}")
        else:
            print(f"{cur.isoformat()}  {conj}")

    if args.json:
        dump_json({"lat": args.lat, "rows": rows})


if __name__ == "__main__":
    main()
