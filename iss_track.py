"""
ISS Track - geodetic ground track over a time range, written as JSON

For each day the time scales and Earth orientation values are resolved once
at the day's start and then stepped forward with the sample offset. Every
sample selects the TLE in effect at its UT1, propagates it with SGP4 and
converts the TEME state to latitude / longitude / height and speed.

Usage:
    iss-track [YYYYMMDDhhmmss[fffffffff]] [--days 2] [--step 10] [--out iss.json]

Without a timestamp the current local civil time is used.
"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from coordinate_transforms import GeodeticState, convert
from eop_fetcher import EopTable, LeapSecondTable
from orbit_propagator import OrbitPropagator
from time_scales import TimeScales, resolve_time_scales
from time_utils import Instant, add, format_instant, now_local, parse_timestamp_digits
from tle_fetcher import TleRecord, load_tle_file, select_tle
from track_config import (
    EOP_FILE,
    LEAP_SECOND_FILE,
    LOCAL_UTC_OFFSET_HOURS,
    LOG_LEVEL,
    SECONDS_PER_DAY,
    TLE_FILE,
    TRACK_DAYS,
    TRACK_OUTPUT_FILE,
    TRACK_STEP_S,
)
from track_errors import TrackError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackPoint:
    local: Instant
    utc: Instant
    latitude: float
    longitude: float
    height: float     # km
    velocity: float   # km/s

    def to_dict(self) -> Dict:
        return {
            "jst": format_instant(self.local),
            "utc": format_instant(self.utc),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "height": self.height,
            "velocity": self.velocity,
        }


class PropagatorCache:
    """One OrbitPropagator per TLE set."""

    def __init__(self):
        self._propagators: Dict[tuple, OrbitPropagator] = {}

    def get(self, tle: TleRecord) -> OrbitPropagator:
        key = (tle.line1, tle.line2)
        if key not in self._propagators:
            logger.info("Using TLE %s (epoch %s)", tle.name, format_instant(tle.epoch))
            self._propagators[key] = OrbitPropagator(tle)
        return self._propagators[key]


def compute_point(scales: TimeScales, tle_records: Sequence[TleRecord],
                  cache: Optional[PropagatorCache] = None) -> TrackPoint:
    """Geodetic position and speed for one resolved sample."""
    cache = cache or PropagatorCache()
    tle = select_tle(tle_records, scales.ut1)
    state = cache.get(tle).propagate(scales.ut1)

    eop = scales.eop
    geo: GeodeticState = convert(scales.ut1, scales.tai, eop.pm_x, eop.pm_y, eop.lod, state)

    return TrackPoint(
        local=scales.local,
        utc=scales.utc,
        latitude=geo.position.latitude,
        longitude=geo.position.longitude,
        height=geo.position.height,
        velocity=geo.speed,
    )


def generate_track(start_local: Instant, tle_records: Sequence[TleRecord],
                   eop_table, leap_table, days: int = TRACK_DAYS,
                   step_s: int = TRACK_STEP_S,
                   offset_s: float = LOCAL_UTC_OFFSET_HOURS * 3600.0) -> Iterator[TrackPoint]:
    """
    Yield track points from start_local for `days` days every `step_s` seconds.

    Any lookup or propagation failure stops the track.
    """
    if step_s <= 0:
        raise ValueError(f"step must be positive: {step_s}")

    cache = PropagatorCache()
    for day in range(days):
        day_start = add(start_local, day * SECONDS_PER_DAY)
        base = resolve_time_scales(day_start, eop_table, leap_table, offset_s)
        logger.info("Day %d: UTC %s, DUT1 %.7f s, DAT %d s",
                    day + 1, format_instant(base.utc), base.eop.dut1, base.dat)

        for j in range(0, int(SECONDS_PER_DAY), step_s):
            yield compute_point(base.shifted(j), tle_records, cache)


def track_document(points: Iterable[TrackPoint]) -> Dict:
    data = [p.to_dict() for p in points]
    return {"counts": len(data), "data": data}


def write_track_json(path: Path, points: Iterable[TrackPoint]) -> int:
    doc = track_document(points)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
    return doc["counts"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compute the ISS geodetic ground track and write it as JSON."
    )
    parser.add_argument("timestamp", nargs="?",
                        help="Local civil start time, YYYYMMDDhhmmss plus up to 9 fraction digits")
    parser.add_argument("--days", type=int, default=TRACK_DAYS, help="Number of days")
    parser.add_argument("--step", type=int, default=TRACK_STEP_S, help="Seconds between samples")
    parser.add_argument("--offset-hours", type=float, default=LOCAL_UTC_OFFSET_HOURS,
                        help="Local civil time minus UTC, hours")
    parser.add_argument("--out", type=Path, default=TRACK_OUTPUT_FILE, help="Output JSON path")
    parser.add_argument("--eop", type=Path, default=EOP_FILE, help="EOP file")
    parser.add_argument("--leap-seconds", type=Path, default=LEAP_SECOND_FILE,
                        help="Leap_Second.dat file")
    parser.add_argument("--tle", type=Path, default=TLE_FILE, help="TLE history file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    offset_s = args.offset_hours * 3600.0
    try:
        if args.timestamp:
            start = parse_timestamp_digits(args.timestamp)
        else:
            start = now_local(offset_s)

        eop_table = EopTable.from_file(args.eop)
        leap_table = LeapSecondTable.from_file(args.leap_seconds)
        tle_records = load_tle_file(args.tle)

        points = generate_track(start, tle_records, eop_table, leap_table,
                                days=args.days, step_s=args.step, offset_s=offset_s)
        count = write_track_json(args.out, points)
    except (TrackError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    print(f"Wrote {count} positions to {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
