from __future__ import annotations

import pytest

from time_scales import (
    local_to_utc,
    resolve_time_scales,
    tai_to_tt,
    utc_to_local,
    utc_to_tai,
    utc_to_ut1,
)
from time_utils import Instant, TimeScale, format_instant
from track_errors import LookupNotFound


def _local(*args) -> Instant:
    return Instant.from_calendar(*args, scale=TimeScale.LOCAL)


def test_local_to_utc_applies_jst_offset() -> None:
    utc = local_to_utc(_local(2021, 6, 10, 9, 0, 0), offset_s=32400.0)
    assert utc.scale is TimeScale.UTC
    assert format_instant(utc) == "2021-06-10 00:00:00.000"


def test_local_to_utc_crosses_date_boundary() -> None:
    utc = local_to_utc(_local(2021, 6, 10, 3, 0, 0), offset_s=32400.0)
    assert format_instant(utc) == "2021-06-09 18:00:00.000"


def test_utc_to_local_inverts_local_to_utc() -> None:
    local = _local(2021, 6, 10, 9, 30, 0)
    assert utc_to_local(local_to_utc(local, 32400.0), 32400.0) == local


def test_utc_to_ut1_adds_negative_dut1() -> None:
    utc = Instant.from_calendar(2021, 6, 10)
    ut1 = utc_to_ut1(utc, -0.1605170)
    assert ut1.scale is TimeScale.UT1
    assert format_instant(ut1) == "2021-06-09 23:59:59.839"
    assert ut1.nanos == 839_483_000


def test_utc_to_tai_and_tt() -> None:
    utc = Instant.from_calendar(2021, 6, 10)
    tai = utc_to_tai(utc, 37)
    tt = tai_to_tt(tai)

    assert tai.scale is TimeScale.TAI
    assert format_instant(tai) == "2021-06-10 00:00:37.000"
    assert tt.scale is TimeScale.TT
    assert format_instant(tt) == "2021-06-10 00:01:09.184"


@pytest.mark.parametrize(
    "func,args",
    [
        (local_to_utc, ()),
        (utc_to_ut1, (0.1,)),
        (utc_to_tai, (37,)),
        (tai_to_tt, ()),
    ],
)
def test_conversions_reject_wrong_source_scale(func, args) -> None:
    wrong = Instant(0, 0, TimeScale.TT)
    with pytest.raises(ValueError):
        func(wrong, *args)


def test_resolve_time_scales(eop_table, leap_table) -> None:
    scales = resolve_time_scales(_local(2021, 6, 10, 9, 0, 0), eop_table, leap_table, 32400.0)

    assert format_instant(scales.utc) == "2021-06-10 00:00:00.000"
    assert format_instant(scales.ut1) == "2021-06-09 23:59:59.839"
    assert format_instant(scales.tai) == "2021-06-10 00:00:37.000"
    assert format_instant(scales.tt) == "2021-06-10 00:01:09.184"
    assert scales.dat == 37
    assert scales.eop.dut1 == pytest.approx(-0.1605170)
    assert scales.eop.lod == pytest.approx(0.0015)


def test_resolve_time_scales_keys_lookups_by_utc_date(eop_table, leap_table) -> None:
    # 08:00 JST on the 10th is still the 9th in UTC
    scales = resolve_time_scales(_local(2021, 6, 10, 8, 0, 0), eop_table, leap_table, 32400.0)
    assert scales.eop.dut1 == pytest.approx(-0.16)


def test_resolve_time_scales_propagates_lookup_miss(eop_table, leap_table) -> None:
    with pytest.raises(LookupNotFound):
        resolve_time_scales(_local(2021, 7, 1, 9, 0, 0), eop_table, leap_table, 32400.0)


def test_shifted_moves_every_scale(eop_table, leap_table) -> None:
    scales = resolve_time_scales(_local(2021, 6, 10, 9, 0, 0), eop_table, leap_table, 32400.0)
    later = scales.shifted(10)

    assert format_instant(later.local) == "2021-06-10 09:00:10.000"
    assert format_instant(later.utc) == "2021-06-10 00:00:10.000"
    assert format_instant(later.tai) == "2021-06-10 00:00:47.000"
    assert later.eop == scales.eop
    assert later.tt.scale is TimeScale.TT
