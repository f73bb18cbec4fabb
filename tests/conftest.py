from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from eop_fetcher import EOP_COLUMNS, EopTable, LeapSecondTable

ISS_NAME = "ISS (ZARYA)"
ISS_LINE1 = "1 25544U 98067A   21160.50000000  .00001264  00000-0  31189-4 0  9990"
ISS_LINE2 = "2 25544  51.6446  60.3414 0003542  76.9318  33.0263 15.48975935287707"
ISS_LINE1_NEXT = "1 25544U 98067A   21161.50000000  .00001264  00000-0  31189-4 0  9991"

LEAP_SECOND_ROWS = [
    (41317.0, date(1972, 1, 1), 10),
    (54832.0, date(2009, 1, 1), 34),
    (56109.0, date(2012, 7, 1), 35),
    (57204.0, date(2015, 7, 1), 36),
    (57754.0, date(2017, 1, 1), 37),
]


def _put(buf: list, name: str, text: str) -> None:
    start, end = EOP_COLUMNS[name]
    assert len(text) == end - start, (name, text)
    buf[start:end] = list(text)


def eop_line(day: date, pm_x: float, pm_y: float, dut1: float, lod: float | None = None) -> str:
    buf = [" "] * 90
    _put(buf, "date", day.isoformat())
    _put(buf, "pm_x", f"{pm_x:9.6f}")
    _put(buf, "pm_y", f"{pm_y:9.6f}")
    _put(buf, "dut1", f"{dut1:10.7f}")
    if lod is not None:
        _put(buf, "lod", f"{lod:7.4f}")
    return "".join(buf).rstrip()


def leap_second_line(mjd: float, day: date, dat: int) -> str:
    return f"    {mjd:7.1f}  {day.day:3d}{day.month:3d} {day.year:4d}       {dat:2d}"


def leap_second_text() -> str:
    header = [
        "#  Value of TAI-UTC in second valid beetween the initial value until",
        "#  the epoch given on the next line.",
        "#",
        "#    MJD        Date        TAI-UTC (s)",
        "#           day month year",
        "#    ---    --------------   ------",
        "#",
    ]
    rows = [leap_second_line(mjd, d, dat) for mjd, d, dat in LEAP_SECOND_ROWS]
    return "\n".join(header + rows) + "\n"


def eop_text() -> str:
    return "\n".join([
        eop_line(date(2021, 6, 9), 0.1, 0.2, -0.1600000, 0.0012),
        eop_line(date(2021, 6, 10), 0.1, 0.2, -0.1605170, 0.0015),
        eop_line(date(2021, 6, 11), 0.1, 0.2, -0.1610000),
    ]) + "\n"


def tle_text() -> str:
    return "\n".join([ISS_NAME, ISS_LINE1, ISS_LINE2, ISS_LINE1_NEXT, ISS_LINE2]) + "\n"


@pytest.fixture
def eop_table() -> EopTable:
    return EopTable.from_lines(eop_text().splitlines())


@pytest.fixture
def leap_table() -> LeapSecondTable:
    return LeapSecondTable.from_lines(leap_second_text().splitlines())


@pytest.fixture
def data_files(tmp_path: Path) -> dict:
    eop = tmp_path / "eop.txt"
    leap = tmp_path / "Leap_Second.dat"
    tle = tmp_path / "tle.txt"
    eop.write_text(eop_text(), encoding="utf-8")
    leap.write_text(leap_second_text(), encoding="utf-8")
    tle.write_text(tle_text(), encoding="utf-8")
    return {"eop": eop, "leap": leap, "tle": tle}
