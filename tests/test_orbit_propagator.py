from __future__ import annotations

import pytest

from conftest import ISS_LINE1, ISS_LINE2
from coordinate_transforms import convert, norm
from orbit_propagator import OrbitPropagator
from time_utils import Instant, TimeScale, add
from tle_fetcher import parse_tle_lines
from track_errors import PropagationError


@pytest.fixture
def propagator() -> OrbitPropagator:
    return OrbitPropagator(parse_tle_lines([ISS_LINE1, ISS_LINE2])[0])


def test_propagate_returns_leo_state(propagator: OrbitPropagator) -> None:
    ut1 = Instant.from_calendar(2021, 6, 10, scale=TimeScale.UT1)
    state = propagator.propagate(ut1)

    assert 6700.0 < norm(state.position) < 6850.0
    assert norm(state.velocity) == pytest.approx(7.66, abs=0.05)


def test_propagated_iss_lands_in_orbital_envelope(propagator: OrbitPropagator) -> None:
    ut1 = Instant.from_calendar(2021, 6, 10, scale=TimeScale.UT1)
    tai = add(ut1, 37.0 + 0.160517).with_scale(TimeScale.TAI)

    for minutes in range(0, 95, 5):
        t_ut1 = add(ut1, minutes * 60.0)
        t_tai = add(tai, minutes * 60.0)
        geo = convert(t_ut1, t_tai, 0.1, 0.2, 0.0015, propagator.propagate(t_ut1))

        assert 380.0 < geo.position.height < 460.0
        assert abs(geo.position.latitude) <= 52.0
        assert geo.speed == pytest.approx(7.66, abs=0.05)


def test_orbit_info(propagator: OrbitPropagator) -> None:
    info = propagator.get_orbit_info()
    assert info["norad_id"] == 25544
    assert info["inclination_deg"] == pytest.approx(51.6446)
    assert info["period_minutes"] == pytest.approx(92.96, abs=0.05)


class _FailingSatrec:
    def sgp4(self, jd, fr):
        return 6, (float("nan"),) * 3, (float("nan"),) * 3


def test_sgp4_error_code_raises(propagator: OrbitPropagator) -> None:
    propagator.satellite = _FailingSatrec()

    with pytest.raises(PropagationError) as excinfo:
        propagator.propagate(Instant.from_calendar(2021, 6, 10, scale=TimeScale.UT1))
    assert excinfo.value.code == 6
