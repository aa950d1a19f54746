from __future__ import annotations

"""
Sunset check script (no ledger needed).

Uses:
- bcal.core.sunset.sunset_time
"""

import argparse

from bcal.core.sunset import sunset_time
from bcal.features.day_boundary import JERUSALEM

from tools.common import add_common_args, dump_json, iter_dates, resolve_date_range


def main() -> None:
    parser = argparse.ArgumentParser(description="Approximate sunset check")
    add_common_args(parser)
    parser.add_argument("--lat", type=float, default=JERUSALEM[0])
    parser.add_argument("--lon", type=float, default=JERUSALEM[1])
    args = parser.parse_args()

    start, end = resolve_date_range(args)
    if start is None or end is None:
        parser.error("--date or --start/--end required")

    rows = []
    for cur in iter_dates(start, end):
        s = sunset_time(cur, args.lat, args.lon, args.tz)
        if args.json:
            rows.append({"date": cur.isoformat(), "sunset": s.isoformat() if s else None})
        else:
            print(f"{cur.isoformat()}  {s.strftime('%H:%M:%S %z') if s else 'no sunset'}")

    if args.json:
        dump_json({"lat": args.lat, "lon": args.lon, "tz": args.tz, "rows": rows})


if __name__ == "__main__":
    main()
