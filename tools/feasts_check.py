from __future__ import annotations

"""
Feast days check script.

Uses:
- bcal.features.calendar.BiblicalCalendar.feast_days_for_year
"""

import argparse

from tools.common import dump_json, open_calendar, resolve_ledger, skip


def main() -> None:
    parser = argparse.ArgumentParser(description="Feast days of one lunar year")
    parser.add_argument("--year", type=int, required=True, help="lunar year number (e.g. 6025)")
    parser.add_argument("--ledger", default="")
    parser.add_argument("--strict", action="store_true")
    parser.add_argument("--json", action="store_true")
    args = parser.parse_args()

    ledger = resolve_ledger(args.ledger, args.strict)
    if ledger.skip_reason:
        skip(ledger.skip_reason)

    cal = open_calendar(ledger)
    feasts = cal.feast_days_for_year(args.year)

    if args.json:
        dump_json(
            {
                "year": args.year,
                "feasts": [
                    {
                        "title": f.title,
                        "date": f.date.isoformat(),
                        "month": f.month_number,
                        "day": f.day_of_month,
                    }
                    for f in feasts
                ],
            }
        )
        return

    if not feasts:
        print(f"{args.year}: month 1 / month 7 do not resolve")
        return

    for f in feasts:
        print(f"{f.date.isoformat()}  {f.title}")


if __name__ == "__main__":
    main()
