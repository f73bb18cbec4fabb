"""
TLE Fetcher - Downloads, parses and selects Two-Line Element sets

A TLE history file holds any number of 2-line or 3-line (name + 2 lines)
blocks. For each sample time the most recent set whose epoch is not after
the sample's UT1 is used.
"""

import bisect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Union

import requests

from time_utils import Instant, TimeScale, add, days_to_calendar, elapsed_seconds
from track_config import CELESTRAK_BASE, HTTP_TIMEOUT_S, ISS_NORAD_ID, TLE_FILE
from track_errors import LookupNotFound, MalformedRecord, SourceUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TleRecord:
    name: str
    line1: str
    line2: str
    epoch: Instant

    @property
    def norad_id(self) -> int:
        return int(self.line1[2:7])


def parse_tle_epoch(line1: str) -> Instant:
    """
    Parse epoch from TLE line 1.

    Format: columns 18-32 contain YYDDD.DDDDDDDD
    YY = 2-digit year (00-56 = 2000s, 57-99 = 1900s)
    DDD.DDDDDDDD = fractional day of year (Jan 1 = day 1)
    """
    epoch_str = line1[18:32].strip()
    try:
        year_2digit = int(epoch_str[:2])
        day_fraction = float(epoch_str[2:])
    except ValueError as e:
        raise MalformedRecord(f"Bad TLE epoch field: {epoch_str!r}", field="epoch") from e

    # Y2K handling (per NORAD convention)
    year = 2000 + year_2digit if year_2digit < 57 else 1900 + year_2digit

    cal = days_to_calendar(year, day_fraction)
    start = Instant.from_calendar(cal.year, cal.month, cal.day, cal.hour, cal.minute,
                                  scale=TimeScale.UTC)
    return add(start, cal.second)


def parse_tle_lines(lines: Sequence[str]) -> List[TleRecord]:
    """Split text lines into TLE records (name line optional per block)."""
    cleaned = [line.rstrip() for line in lines if line.strip()]
    records = []
    name = ""
    i = 0
    while i < len(cleaned):
        line = cleaned[i]
        if line.startswith("1 ") and i + 1 < len(cleaned) and cleaned[i + 1].startswith("2 "):
            line1, line2 = line, cleaned[i + 1]
            records.append(TleRecord(name or f"NORAD {line1[2:7].strip()}",
                                     line1, line2, parse_tle_epoch(line1)))
            name = ""
            i += 2
        elif line.startswith("1 ") or line.startswith("2 "):
            raise MalformedRecord(f"Unpaired TLE line {i + 1}: {line!r}", line_no=i + 1)
        else:
            name = line.strip()
            i += 1
    return records


def load_tle_file(path: Union[str, Path] = TLE_FILE) -> List[TleRecord]:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise SourceUnavailable(f"Cannot read TLE file {p}: {e}") from e

    records = parse_tle_lines(text.splitlines())
    logger.info("Loaded %d TLE sets from %s", len(records), p)
    return records


def select_tle(records: Sequence[TleRecord], ut1: Instant) -> TleRecord:
    """Latest TLE whose epoch is at or before ut1."""
    ordered = sorted(records, key=lambda r: (r.epoch.seconds, r.epoch.nanos))
    keys = [(r.epoch.seconds, r.epoch.nanos) for r in ordered]
    idx = bisect.bisect_right(keys, (ut1.seconds, ut1.nanos))
    if idx == 0:
        raise LookupNotFound(f"No TLE with epoch at or before {ut1.to_datetime().isoformat()}")
    return ordered[idx - 1]


def tle_age_hours(record: TleRecord, ut1: Instant) -> float:
    return elapsed_seconds(record.epoch, ut1) / 3600.0


def fetch_tle(norad_id: int = ISS_NORAD_ID) -> TleRecord:
    """
    Fetch current TLE from CelesTrak for given NORAD ID.

    Raises SourceUnavailable if the request fails or the reply is not a TLE.
    """
    url = f"{CELESTRAK_BASE}?CATNR={norad_id}&FORMAT=TLE"
    try:
        response = requests.get(url, timeout=HTTP_TIMEOUT_S)
        response.raise_for_status()
    except requests.RequestException as e:
        raise SourceUnavailable(f"Failed to fetch TLE for {norad_id}: {e}") from e

    records = parse_tle_lines(response.text.strip().split("\n"))
    if not records:
        raise SourceUnavailable(f"Invalid TLE response: {response.text!r}")
    return records[0]


def append_tle(record: TleRecord, path: Union[str, Path] = TLE_FILE) -> None:
    """Append a TLE block to a history file."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("a", encoding="utf-8") as f:
        f.write(f"{record.name}\n{record.line1}\n{record.line2}\n")


def get_orbital_params(line2: str) -> dict:
    """
    Extract orbital parameters from TLE line 2.

    Returns dict with inclination, RAAN, eccentricity, argument of perigee,
    mean anomaly, mean motion (rev/day) and revolution number.
    """
    return {
        "inclination_deg": float(line2[8:16]),
        "raan_deg": float(line2[17:25]),
        "eccentricity": float("0." + line2[26:33].strip()),
        "arg_perigee_deg": float(line2[34:42]),
        "mean_anomaly_deg": float(line2[43:51]),
        "mean_motion": float(line2[52:63]),
        "orbit_number": int(line2[63:68])
    }


if __name__ == "__main__":
    tle = fetch_tle()
    append_tle(tle)
    print(f"Satellite: {tle.name}")
    print(f"TLE Line 1: {tle.line1}")
    print(f"TLE Line 2: {tle.line2}")
    print(f"Epoch: {tle.epoch.to_datetime().isoformat()} UTC")
    print(f"Appended to {TLE_FILE}")
