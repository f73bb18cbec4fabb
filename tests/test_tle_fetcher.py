from __future__ import annotations

from pathlib import Path

import pytest
import requests

import tle_fetcher
from conftest import ISS_LINE1, ISS_LINE1_NEXT, ISS_LINE2, ISS_NAME, tle_text
from time_utils import Instant, TimeScale, format_instant
from tle_fetcher import (
    fetch_tle,
    get_orbital_params,
    load_tle_file,
    parse_tle_epoch,
    parse_tle_lines,
    select_tle,
    tle_age_hours,
)
from track_errors import LookupNotFound, MalformedRecord, SourceUnavailable


def _ut1(*args) -> Instant:
    return Instant.from_calendar(*args, scale=TimeScale.UT1)


def test_parse_tle_epoch() -> None:
    epoch = parse_tle_epoch(ISS_LINE1)
    assert epoch.scale is TimeScale.UTC
    assert format_instant(epoch) == "2021-06-09 12:00:00.000"


def test_parse_tle_epoch_fractional_day_and_century() -> None:
    line1 = ISS_LINE1[:18] + "99001.75000000" + ISS_LINE1[32:]
    assert format_instant(parse_tle_epoch(line1)) == "1999-01-01 18:00:00.000"


def test_parse_tle_epoch_rejects_garbage() -> None:
    with pytest.raises(MalformedRecord):
        parse_tle_epoch(ISS_LINE1[:18] + "2x160.5000000x" + ISS_LINE1[32:])


def test_parse_tle_lines_with_and_without_names() -> None:
    records = parse_tle_lines(tle_text().splitlines())

    assert len(records) == 2
    assert records[0].name == ISS_NAME
    assert records[1].name == "NORAD 25544"
    assert records[1].line1 == ISS_LINE1_NEXT
    assert records[0].norad_id == 25544


def test_unpaired_line_is_malformed() -> None:
    with pytest.raises(MalformedRecord):
        parse_tle_lines([ISS_NAME, ISS_LINE1])


def test_select_tle_picks_latest_epoch_not_after_ut1(data_files) -> None:
    records = load_tle_file(data_files["tle"])

    assert select_tle(records, _ut1(2021, 6, 10)).line1 == ISS_LINE1
    assert select_tle(records, _ut1(2021, 6, 10, 12)).line1 == ISS_LINE1_NEXT
    assert select_tle(list(reversed(records)), _ut1(2021, 6, 11)).line1 == ISS_LINE1_NEXT


def test_select_tle_before_first_epoch() -> None:
    records = parse_tle_lines([ISS_LINE1, ISS_LINE2])
    with pytest.raises(LookupNotFound):
        select_tle(records, _ut1(2021, 6, 9, 11, 59, 59))


def test_tle_age_hours() -> None:
    record = parse_tle_lines([ISS_LINE1, ISS_LINE2])[0]
    assert tle_age_hours(record, _ut1(2021, 6, 10)) == pytest.approx(12.0)


def test_load_tle_file_missing(tmp_path: Path) -> None:
    with pytest.raises(SourceUnavailable):
        load_tle_file(tmp_path / "none.txt")


def test_get_orbital_params() -> None:
    params = get_orbital_params(ISS_LINE2)
    assert params["inclination_deg"] == pytest.approx(51.6446)
    assert params["eccentricity"] == pytest.approx(0.0003542)
    assert params["mean_motion"] == pytest.approx(15.48975935)
    assert params["orbit_number"] == 28770


class _FakeResponse:
    def __init__(self, text: str):
        self.text = text

    def raise_for_status(self) -> None:
        pass


def test_fetch_tle(monkeypatch) -> None:
    body = f"{ISS_NAME}\r\n{ISS_LINE1}\r\n{ISS_LINE2}\r\n"
    monkeypatch.setattr(tle_fetcher.requests, "get", lambda url, timeout: _FakeResponse(body))

    record = fetch_tle(25544)
    assert record.name == ISS_NAME
    assert record.line2 == ISS_LINE2


def test_fetch_tle_failure_is_not_masked(monkeypatch) -> None:
    def boom(url, timeout):
        raise requests.Timeout("slow")

    monkeypatch.setattr(tle_fetcher.requests, "get", boom)
    with pytest.raises(SourceUnavailable):
        fetch_tle(25544)


def test_fetch_tle_rejects_non_tle_body(monkeypatch) -> None:
    monkeypatch.setattr(tle_fetcher.requests, "get", lambda url, timeout: _FakeResponse("No GP data found"))
    with pytest.raises(SourceUnavailable):
        fetch_tle(25544)
