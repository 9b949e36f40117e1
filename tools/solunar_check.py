from __future__ import annotations

"""
Solunar check script.

Uses:
- solunar.core.solunar.solunar_range with a SkyfieldFeed
- solunar.api.public.day_result_dict for --json output
"""

import argparse
import logging

from solunar.api.public import day_result_dict
from solunar.core.errors import SolunarError
from solunar.core.providers.skyfield_provider import SkyfieldFeed
from solunar.core.solunar import GeoPoint, solunar_range
from solunar.core.timeutil import get_tzinfo, iter_dates

from tools.common import add_common_args, resolve_date_range, resolve_ephemeris, dump_json, skip


def _hhmm(dt, tzinfo) -> str:
    if dt is None:
        return "--:--"
    return dt.astimezone(tzinfo).strftime("%H:%M")


def _fmt_periods(periods, tzinfo) -> str:
    return " ".join(f"{_hhmm(p.start, tzinfo)}-{_hhmm(p.end, tzinfo)}(w{p.weight})" for p in periods)


def main() -> None:
    parser = argparse.ArgumentParser(description="Solunar periods / day score check")
    add_common_args(parser)
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        start, end = resolve_date_range(args)
        tzinfo = get_tzinfo(args.tz)
        point = GeoPoint(lat=args.lat, lon=args.lon)
    except SolunarError as e:
        parser.error(str(e))
    if start is None or end is None:
        parser.error("--date or --start/--end required")

    eph = resolve_ephemeris(args.ephemeris, args.ephemeris_path)
    if eph.skip_reason:
        skip(eph.skip_reason)

    feed = SkyfieldFeed(ephemeris=eph.name, ephemeris_path=eph.path)
    results = solunar_range(start, end, args.tz, point, feed)

    if args.json:
        dump_json([day_result_dict(d, args.tz, point, r) for d, r in zip(iter_dates(start, end), results)])
        return

    for d, r in zip(iter_dates(start, end), results):
        print(
            f"{d.isoformat()} score={r.day_score} {r.moon.phase_name} {r.moon.illumination}% "
            f"sun={_hhmm(r.sun.rise, tzinfo)}/{_hhmm(r.sun.set, tzinfo)} "
            f"moon={_hhmm(r.moon.rise, tzinfo)}/{_hhmm(r.moon.set, tzinfo)} "
            f"major=[{_fmt_periods(r.major_periods, tzinfo)}] "
            f"minor=[{_fmt_periods(r.minor_periods, tzinfo)}]"
        )


if __name__ == "__main__":
    main()
