from __future__ import annotations

"""
Resolve check script.

Uses:
- bcal.features.calendar.BiblicalCalendar.resolve_for
- bcal.features.config.format_day_label
"""

import argparse

from bcal.features.config import format_day_label, month_display_name

from tools.common import add_common_args, dump_json, iter_dates, open_calendar, resolve_date_range, resolve_ledger, skip


def main() -> None:
    parser = argparse.ArgumentParser(description="Gregorian date -> lunar day check")
    add_common_args(parser)
    args = parser.parse_args()

    start, end = resolve_date_range(args)
    if start is None or end is None:
        parser.error("--date or --start/--end required")

    ledger = resolve_ledger(args.ledger, args.strict)
    if ledger.skip_reason:
        skip(ledger.skip_reason)

    cal = open_calendar(ledger)
    mode = cal.preferences.month_naming_mode

    rows = []
    for cur in iter_dates(start, end):
        r = cal.resolve_for(cur)

        if args.json:
            rows.append(
                {
                    "date": cur.isoformat(),
                    "lunar": None
                    if r is None
                    else {
                        "year": r.year_number,
                        "month": r.month_number,
                        "day": r.day_of_month,
                        "status": r.status.value,
                        "length_status": r.length_status.value,
                    },
                }
            )
        elif r is None:
            print(f"{cur.isoformat()}  -")
        elif args.verbose:
            print(
                f"{cur.isoformat()}  {format_day_label(r.day_of_month, r.month_number, r.year_number)}  "
                f"{month_display_name(r.month_number, mode)}  status={r.status.value} "
                f"length={r.length_status.value} month_start={r.month_start.isoformat()}"
            )
        else:
            print(f"{cur.isoformat()}  {format_day_label(r.day_of_month, r.month_number, r.year_number)}")

    if args.json:
        dump_json({"rows": rows})


if __name__ == "__main__":
    main()
