"""
Time-scale conversions: local civil -> UTC -> UT1 / TAI -> TT

Each step adds one externally supplied correction. Lookups of DUT1 and
TAI - UTC happen in resolve_time_scales(); the single-step functions only
apply deltas.
"""

import logging
from dataclasses import dataclass

from eop_fetcher import EarthOrientationSample
from time_utils import Instant, TimeScale, add
from track_config import LOCAL_UTC_OFFSET_S, TT_MINUS_TAI

logger = logging.getLogger(__name__)


def _check_scale(instant: Instant, expected: TimeScale) -> None:
    if instant.scale is not expected:
        raise ValueError(f"Expected a {expected.value} instant, got {instant.scale.value}")


def local_to_utc(local: Instant, offset_s: float = LOCAL_UTC_OFFSET_S) -> Instant:
    """Local civil time to UTC; offset_s is local minus UTC (JST: +32400)."""
    _check_scale(local, TimeScale.LOCAL)
    return add(local, -offset_s).with_scale(TimeScale.UTC)


def utc_to_local(utc: Instant, offset_s: float = LOCAL_UTC_OFFSET_S) -> Instant:
    _check_scale(utc, TimeScale.UTC)
    return add(utc, offset_s).with_scale(TimeScale.LOCAL)


def utc_to_ut1(utc: Instant, dut1: float) -> Instant:
    """UT1 = UTC + DUT1."""
    _check_scale(utc, TimeScale.UTC)
    return add(utc, dut1).with_scale(TimeScale.UT1)


def utc_to_tai(utc: Instant, dat: int) -> Instant:
    """TAI = UTC + cumulative leap seconds."""
    _check_scale(utc, TimeScale.UTC)
    return add(utc, dat).with_scale(TimeScale.TAI)


def tai_to_tt(tai: Instant) -> Instant:
    """TT = TAI + 32.184 s."""
    _check_scale(tai, TimeScale.TAI)
    return add(tai, TT_MINUS_TAI).with_scale(TimeScale.TT)


@dataclass(frozen=True)
class TimeScales:
    """One sample's instant on every scale, plus the corrections used."""
    local: Instant
    utc: Instant
    ut1: Instant
    tai: Instant
    tt: Instant
    eop: EarthOrientationSample
    dat: int

    def shifted(self, seconds: float) -> "TimeScales":
        """The same corrections applied at an instant `seconds` later."""
        return TimeScales(
            local=add(self.local, seconds),
            utc=add(self.utc, seconds),
            ut1=add(self.ut1, seconds),
            tai=add(self.tai, seconds),
            tt=add(self.tt, seconds),
            eop=self.eop,
            dat=self.dat,
        )


def resolve_time_scales(local: Instant, eop_table, leap_table,
                        offset_s: float = LOCAL_UTC_OFFSET_S) -> TimeScales:
    """
    Convert a local civil instant to all scales.

    eop_table and leap_table are any objects with lookup(date); both are
    keyed by the UTC date. LookupNotFound and SourceUnavailable propagate.
    """
    utc = local_to_utc(local, offset_s)
    eop = eop_table.lookup(utc)
    dat = leap_table.lookup(utc)
    logger.debug("UTC %s: DUT1=%s s, DAT=%s s", utc, eop.dut1, dat)

    ut1 = utc_to_ut1(utc, eop.dut1)
    tai = utc_to_tai(utc, dat)
    tt = tai_to_tt(tai)

    return TimeScales(local=local, utc=utc, ut1=ut1, tai=tai, tt=tt, eop=eop, dat=dat)
