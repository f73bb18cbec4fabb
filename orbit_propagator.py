"""
Orbit Propagator - SGP4-based satellite state in the TEME frame

Uses the official SGP4 library (Vallado's implementation) to propagate
satellite orbits from TLE data.
"""

import math
from typing import Dict

from sgp4.api import SGP4_ERRORS, Satrec, jday

from coordinate_transforms import Cartesian3, InertialState
from time_utils import Instant
from tle_fetcher import TleRecord
from track_errors import PropagationError


class OrbitPropagator:
    """
    Propagate satellite orbit using SGP4 algorithm.

    Attributes:
        tle: TLE record the propagator was built from
        satellite: sgp4 Satrec object
    """

    def __init__(self, tle: TleRecord):
        self.tle = tle
        self.satellite = Satrec.twoline2rv(tle.line1, tle.line2)

        # Orbital parameters
        self.mean_motion = self.satellite.no_kozai * 1440.0 / (2 * math.pi)  # rev/day
        self.period_minutes = 1440.0 / self.mean_motion
        self.inclination = math.degrees(self.satellite.inclo)
        self.eccentricity = self.satellite.ecco

    def propagate(self, ut1: Instant) -> InertialState:
        """
        Propagate satellite to the given UT1 instant.

        Returns:
            InertialState: TEME position (km) and velocity (km/s)

        Raises:
            PropagationError: SGP4 reported a non-zero error code
        """
        cal = ut1.calendar()
        jd, fr = jday(cal.year, cal.month, cal.day, cal.hour, cal.minute, cal.second)

        error, r_teme, v_teme = self.satellite.sgp4(jd, fr)

        if error != 0:
            message = SGP4_ERRORS.get(error, "unknown error")
            raise PropagationError(f"SGP4 error {error} for {self.tle.name}: {message}", error)

        return InertialState(Cartesian3(*r_teme), Cartesian3(*v_teme))

    def get_orbit_info(self) -> Dict:
        """Get orbital parameters and metadata."""
        return {
            "name": self.tle.name,
            "norad_id": self.tle.norad_id,
            "inclination_deg": round(self.inclination, 4),
            "eccentricity": round(self.eccentricity, 7),
            "mean_motion_rev_day": round(self.mean_motion, 8),
            "period_minutes": round(self.period_minutes, 2),
            "tle_epoch": self.tle.epoch.to_datetime().isoformat(),
        }
