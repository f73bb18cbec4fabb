"""
Time Utilities - timestamps, Julian Date and Julian Century

An Instant is a (seconds, nanoseconds) pair counted from 1970-01-01 00:00:00
on the calendar of its own time scale. Calendar fields are always read on the
proleptic Gregorian calendar without any host time zone, so a JST instant
shows JST wall-clock digits and a UTC instant shows UTC digits.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import NamedTuple

from track_config import DAYS_PER_JULIAN_CENTURY, JD_J2000, NANOS_PER_SECOND
from track_errors import DomainError

EPOCH = datetime(1970, 1, 1)

# Days per month, February patched for leap years
MONTH_LENGTHS = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


class TimeScale(Enum):
    """Time scales handled by the pipeline."""
    LOCAL = "LOCAL"
    UTC = "UTC"
    UT1 = "UT1"
    TAI = "TAI"
    TT = "TT"


class CalendarDate(NamedTuple):
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: float


@dataclass(frozen=True)
class Instant:
    """Epoch-relative timestamp tagged with its time scale."""
    seconds: int
    nanos: int = 0
    scale: TimeScale = TimeScale.UTC

    def __post_init__(self):
        if not 0 <= self.nanos < NANOS_PER_SECOND:
            raise ValueError(f"nanos out of range: {self.nanos}")

    @classmethod
    def from_datetime(cls, dt: datetime, scale: TimeScale = TimeScale.UTC) -> "Instant":
        """
        Build an Instant from a datetime.

        Aware datetimes are converted to UTC first unless the target scale is
        LOCAL, in which case their wall-clock fields are kept as they are.
        """
        if dt.tzinfo is not None and scale is not TimeScale.LOCAL:
            dt = dt.astimezone(timezone.utc)
        delta = dt.replace(tzinfo=None) - EPOCH
        seconds = delta.days * 86400 + delta.seconds
        return cls(seconds, delta.microseconds * 1000, scale)

    @classmethod
    def from_calendar(cls, year: int, month: int, day: int, hour: int = 0,
                      minute: int = 0, second: int = 0, nanos: int = 0,
                      scale: TimeScale = TimeScale.UTC) -> "Instant":
        dt = datetime(year, month, day, hour, minute, second)
        return cls.from_datetime(dt, scale)._replace_nanos(nanos)

    def _replace_nanos(self, nanos: int) -> "Instant":
        return Instant(self.seconds, nanos, self.scale)

    def to_datetime(self) -> datetime:
        """Naive datetime with the instant's wall-clock fields (microsecond resolution)."""
        return EPOCH + timedelta(seconds=self.seconds, microseconds=self.nanos // 1000)

    def calendar(self) -> CalendarDate:
        dt = EPOCH + timedelta(seconds=self.seconds)
        return CalendarDate(dt.year, dt.month, dt.day, dt.hour, dt.minute,
                            dt.second + self.nanos / NANOS_PER_SECOND)

    def with_scale(self, scale: TimeScale) -> "Instant":
        return Instant(self.seconds, self.nanos, scale)


def add(instant: Instant, seconds: float) -> Instant:
    """
    Add a (possibly fractional, possibly negative) number of seconds.

    The nanosecond field is renormalised into [0, 1e9) by carrying into or
    borrowing from the seconds field.
    """
    if not math.isfinite(seconds):
        raise DomainError(f"Cannot add non-finite duration: {seconds}")

    whole = int(seconds)
    frac_ns = int(round((seconds - whole) * NANOS_PER_SECOND))
    carry, nanos = divmod(instant.nanos + frac_ns, NANOS_PER_SECOND)

    return Instant(instant.seconds + whole + carry, nanos, instant.scale)


def elapsed_seconds(start: Instant, end: Instant) -> float:
    """Seconds from start to end, ignoring scale tags."""
    return (end.seconds - start.seconds) + (end.nanos - start.nanos) / NANOS_PER_SECOND


def format_instant(instant: Instant) -> str:
    """Format as 'YYYY-MM-DD hh:mm:ss.mmm' (milliseconds truncated)."""
    dt = EPOCH + timedelta(seconds=instant.seconds)
    return f"{dt:%Y-%m-%d %H:%M:%S}.{instant.nanos // 1_000_000:03d}"


def date_key(instant: Instant) -> str:
    """Calendar date of the instant as 'YYYY-MM-DD'."""
    return format_instant(instant)[:10]


def parse_timestamp_digits(text: str, scale: TimeScale = TimeScale.LOCAL) -> Instant:
    """
    Parse a digit string 'YYYYMMDDhhmmss' followed by up to 9 fraction digits.

    The fraction is right-padded to nanoseconds, so '...0012' after the
    seconds means 1.2 ms.
    """
    text = text.strip()
    if not text.isdigit():
        raise ValueError(f"Timestamp must contain digits only: {text!r}")
    if len(text) > 23:
        raise ValueError(f"Timestamp longer than 23 digits: {text!r}")
    if len(text) < 14:
        raise ValueError(f"Timestamp needs at least 14 digits (YYYYMMDDhhmmss): {text!r}")

    dt = datetime.strptime(text[:14], "%Y%m%d%H%M%S")
    fraction = text[14:]
    nanos = int(fraction.ljust(9, "0")) if fraction else 0

    return Instant.from_datetime(dt, scale)._replace_nanos(nanos)


def to_julian_date(instant: Instant) -> float:
    """
    Convert an Instant to Julian Date using its own calendar fields.

    January and February count as months 13 and 14 of the previous year.
    2000-01-01 12:00:00 gives 2451545.0.
    """
    dt = EPOCH + timedelta(seconds=instant.seconds)
    year = dt.year
    month = dt.month

    if month < 3:
        year -= 1
        month += 12

    jd = (int(365.25 * year)
          + int(year / 400.0)
          - int(year / 100.0)
          + int(30.59 * (month - 2))
          + dt.day
          + 1721088.5)

    jd += (dt.second / 3600.0 + dt.minute / 60.0 + dt.hour) / 24.0
    jd += instant.nanos / 1.0e9 / 3600.0 / 24.0

    return jd


def to_julian_century(jd: float) -> float:
    """Julian centuries since J2000.0."""
    return (jd - JD_J2000) / DAYS_PER_JULIAN_CENTURY


def days_to_calendar(year: int, days: float) -> CalendarDate:
    """
    Convert a fractional day-of-year to month, day, hour, minute, second.

    Uses the plain year % 4 leap rule, which matches every year from 1901
    to 2099 (the range TLE epochs cover).
    """
    lengths = list(MONTH_LENGTHS)
    if year % 4 == 0:
        lengths[1] = 29

    day_of_year = int(days)
    month_index = 0
    elapsed = 0
    while month_index < 12 and day_of_year > elapsed + lengths[month_index]:
        elapsed += lengths[month_index]
        month_index += 1

    temp = (days - day_of_year) * 24.0
    hour = int(temp)
    temp = (temp - hour) * 60.0
    minute = int(temp)
    second = (temp - minute) * 60.0

    return CalendarDate(year, month_index + 1, day_of_year - elapsed, hour, minute, second)


def calendar_to_julian_date(year: int, month: int, day: int, hour: int = 0,
                            minute: int = 0, second: float = 0.0) -> float:
    """Julian Date from calendar fields, closed form (valid 1900-2100)."""
    return (367.0 * year
            - int(7.0 * (year + int((month + 9.0) / 12.0)) * 0.25)
            + int(275.0 * month / 9.0)
            + day
            + 1721013.5
            + ((second / 60.0 + minute) / 60.0 + hour) / 24.0)


def now_local(offset_s: float) -> Instant:
    """Current local civil time for a fixed UTC offset."""
    utc = Instant.from_datetime(datetime.now(timezone.utc), TimeScale.UTC)
    return add(utc, offset_s).with_scale(TimeScale.LOCAL)
