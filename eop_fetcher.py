"""
EOP Fetcher - Earth orientation parameters and leap-second history

Two point-lookup tables keyed by calendar date:
  - EopTable:        polar motion, DUT1 and LOD for an exact date
  - LeapSecondTable: cumulative TAI - UTC for the most recent effective date

Both are parsed once from fixed-column text files into records, so callers
never touch raw lines.
"""

import bisect
import logging
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union

import requests

from time_utils import Instant
from track_config import EOP_FILE, HTTP_TIMEOUT_S, LEAP_SECOND_FILE, LEAP_SECOND_URL
from track_errors import LookupNotFound, MalformedRecord, SourceUnavailable

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, Instant, str]

# eop.txt columns (0-based, end-exclusive)
EOP_COLUMNS = {
    "date": (0, 10),    # YYYY-MM-DD
    "pm_x": (22, 31),   # milliarcseconds
    "pm_y": (41, 50),   # milliarcseconds
    "dut1": (62, 72),   # seconds
    "lod": (83, 90),    # seconds, may be blank
}

# Leap_Second.dat columns
LEAP_SECOND_COLUMNS = {
    "day": (14, 16),
    "month": (17, 19),
    "year": (20, 24),
    "dat": (31, 33),
}


@dataclass(frozen=True)
class EarthOrientationSample:
    """Earth orientation values for one day."""
    date: date
    pm_x: float   # mas
    pm_y: float   # mas
    dut1: float   # s
    lod: float    # s


def to_date(key: DateLike) -> date:
    """Normalise a lookup key to a calendar date."""
    if isinstance(key, Instant):
        cal = key.calendar()
        return date(cal.year, cal.month, cal.day)
    if isinstance(key, datetime):
        return key.date()
    if isinstance(key, date):
        return key
    return date.fromisoformat(str(key)[:10])


def _field(line: str, name: str, columns: Dict[str, Tuple[int, int]]) -> str:
    start, end = columns[name]
    return line[start:end]


def _read_lines(path: Union[str, Path]) -> List[str]:
    p = Path(path)
    try:
        return p.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise SourceUnavailable(f"Cannot read {p}: {e}") from e


def parse_eop_line(line: str, line_no: int = 0) -> EarthOrientationSample:
    """
    Parse one eop.txt record.

    A blank LOD field means 0.0; any other unparsable number is an error.
    """
    raw_date = _field(line, "date", EOP_COLUMNS)
    try:
        day = date.fromisoformat(raw_date)
    except ValueError as e:
        raise MalformedRecord(f"line {line_no}: bad date {raw_date!r}", line_no, "date") from e

    values = {}
    for name in ("pm_x", "pm_y", "dut1"):
        raw = _field(line, name, EOP_COLUMNS)
        try:
            values[name] = float(raw)
        except ValueError as e:
            raise MalformedRecord(f"line {line_no}: bad {name} {raw!r}", line_no, name) from e

    raw_lod = _field(line, "lod", EOP_COLUMNS)
    if raw_lod.strip():
        try:
            lod = float(raw_lod)
        except ValueError as e:
            raise MalformedRecord(f"line {line_no}: bad lod {raw_lod!r}", line_no, "lod") from e
    else:
        lod = 0.0

    return EarthOrientationSample(day, values["pm_x"], values["pm_y"], values["dut1"], lod)


class EopTable:
    """Exact-date lookup of Earth orientation parameters."""

    def __init__(self, samples: Iterable[EarthOrientationSample]):
        self._samples: Dict[date, EarthOrientationSample] = {}
        for s in samples:
            self._samples.setdefault(s.date, s)

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "EopTable":
        samples = []
        for line_no, line in enumerate(lines, start=1):
            if not line.strip() or not line[:1].isdigit():
                continue
            samples.append(parse_eop_line(line, line_no))
        return cls(samples)

    @classmethod
    def from_file(cls, path: Union[str, Path] = EOP_FILE) -> "EopTable":
        table = cls.from_lines(_read_lines(path))
        logger.info("Loaded %d EOP records from %s", len(table), path)
        return table

    def __len__(self) -> int:
        return len(self._samples)

    def lookup(self, key: DateLike) -> EarthOrientationSample:
        day = to_date(key)
        try:
            return self._samples[day]
        except KeyError:
            logger.warning("No EOP record for %s", day)
            raise LookupNotFound(f"No EOP record for {day.isoformat()}") from None


class LeapSecondTable:
    """Cumulative leap seconds (TAI - UTC) by effective date."""

    def __init__(self, entries: Iterable[Tuple[date, int]]):
        self._entries = sorted(entries)
        self._dates = [d for d, _ in self._entries]

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "LeapSecondTable":
        entries = []
        for line_no, line in enumerate(lines, start=1):
            if not line.strip() or line.startswith("#"):
                continue
            try:
                effective = date(
                    int(_field(line, "year", LEAP_SECOND_COLUMNS)),
                    int(_field(line, "month", LEAP_SECOND_COLUMNS)),
                    int(_field(line, "day", LEAP_SECOND_COLUMNS)),
                )
                dat = int(_field(line, "dat", LEAP_SECOND_COLUMNS))
            except ValueError as e:
                raise MalformedRecord(f"line {line_no}: bad leap-second row {line!r}", line_no) from e
            entries.append((effective, dat))
        return cls(entries)

    @classmethod
    def from_file(cls, path: Union[str, Path] = LEAP_SECOND_FILE) -> "LeapSecondTable":
        table = cls.from_lines(_read_lines(path))
        logger.info("Loaded %d leap-second entries from %s", len(table), path)
        return table

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[Tuple[date, int]]:
        return list(self._entries)

    def lookup(self, key: DateLike) -> int:
        """TAI - UTC in effect on the given date."""
        day = to_date(key)
        idx = bisect.bisect_right(self._dates, day)
        if idx == 0:
            raise LookupNotFound(f"No leap-second entry on or before {day.isoformat()}")
        return self._entries[idx - 1][1]


def fetch_leap_second_file(dest: Union[str, Path] = LEAP_SECOND_FILE,
                           url: str = LEAP_SECOND_URL) -> Path:
    """
    Download the IERS leap-second history to dest.

    Raises SourceUnavailable on any network or HTTP error.
    """
    dest = Path(dest)
    try:
        response = requests.get(url, timeout=HTTP_TIMEOUT_S)
        response.raise_for_status()
    except requests.RequestException as e:
        raise SourceUnavailable(f"Failed to fetch leap seconds from {url}: {e}") from e

    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(response.text, encoding="utf-8")
    logger.info("Saved leap-second history to %s", dest)
    return dest


if __name__ == "__main__":
    path = fetch_leap_second_file()
    table = LeapSecondTable.from_file(path)
    last_date, last_dat = table.entries[-1]
    print(f"Leap-second entries: {len(table)}")
    print(f"Latest: TAI - UTC = {last_dat} s since {last_date.isoformat()}")
