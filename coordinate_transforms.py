"""
Coordinate Transforms - TEME to PEF to ECEF to Geodetic

Pipeline: SGP4 -> TEME (inertial) -> Rz(GMST) -> PEF -> polar motion -> ECEF -> BLH

Reference frames:
- TEME: True Equator Mean Equinox (SGP4 output frame)
- PEF:  Pseudo Earth Fixed (after sidereal rotation)
- ECEF: Earth-Centered Earth-Fixed (after polar motion)
- BLH:  geodetic latitude, longitude, height on the WGS84 ellipsoid
"""

import math
from dataclasses import dataclass
from typing import NamedTuple, Tuple

from time_scales import tai_to_tt
from time_utils import Instant, to_julian_century, to_julian_date
from track_config import (
    ARCSEC_TO_RAD,
    DAYS_PER_JULIAN_CENTURY,
    EARTH_ROTATION_RATE,
    JD_J2000,
    JD_KINEMATIC_START,
    MAS_TO_RAD,
    POLE_EPSILON_M,
    SECONDS_PER_DAY,
    TWO_PI,
    WGS84_A,
    WGS84_B,
    WGS84_E2,
    WGS84_ED2,
)
from track_errors import DomainError


class Cartesian3(NamedTuple):
    x: float
    y: float
    z: float


class GeodeticCoord(NamedTuple):
    latitude: float   # degrees
    longitude: float  # degrees
    height: float     # same length unit as the Cartesian input


class InertialState(NamedTuple):
    """TEME position (km) and velocity (km/s)."""
    position: Cartesian3
    velocity: Cartesian3


class GeodeticState(NamedTuple):
    """Geodetic position (height in km) and scalar speed (km/s)."""
    position: GeodeticCoord
    speed: float


Matrix3 = Tuple[Tuple[float, float, float], Tuple[float, float, float], Tuple[float, float, float]]


def _require_finite(vector, what: str) -> None:
    if not all(math.isfinite(c) for c in vector):
        raise DomainError(f"{what} has non-finite components: {tuple(vector)}")


def reduce_angle(angle: float) -> float:
    """Reduce an angle in radians into [0, 2*pi)."""
    angle = math.fmod(angle, TWO_PI)
    while angle < 0.0:
        angle += TWO_PI
    while angle >= TWO_PI:
        angle -= TWO_PI
    return angle


def gmst_iau82(jd_ut1: float) -> float:
    """
    Greenwich Mean Sidereal Time (IAU 1982, Vallado) in radians.

    GMST = 67310.54841s + (876600h + 8640184.812866s) T + 0.093104s T^2 - 6.2e-6s T^3
    with T in Julian centuries of UT1 since J2000.0.
    """
    t_ut1 = (jd_ut1 - JD_J2000) / DAYS_PER_JULIAN_CENTURY
    gmst_sec = (67310.54841
                + (876600.0 * 3600.0 + 8640184.812866
                   + (0.093104 - 6.2e-6 * t_ut1) * t_ut1) * t_ut1)
    # 240 seconds of time per degree
    return reduce_angle(math.radians(gmst_sec) / 240.0)


def moon_node_longitude(jcn_tt: float) -> float:
    """
    Mean longitude of the Moon's ascending node (IAU 1980 nutation), radians.

    om = 125d02m40.280s - (5 * 360 + 134d08m10.539s) T + 7.455" T^2 + 0.008" T^3
    """
    om = 125.04452222 + ((-6962890.5390 + (7.455 + 0.008 * jcn_tt) * jcn_tt) * jcn_tt) / 3600.0
    om = math.fmod(om, 360.0)
    while om < 0.0:
        om += 360.0
    while om >= 360.0:
        om -= 360.0
    return math.radians(om)


def apply_kinematic(gmst: float, om: float, jd_ut1: float) -> float:
    """Add the equation-of-equinox kinematic terms for dates after 1997-01-01."""
    if jd_ut1 > JD_KINEMATIC_START:
        gmst = (gmst
                + 0.00264 * ARCSEC_TO_RAD * math.sin(om)
                + 0.000063 * ARCSEC_TO_RAD * math.sin(2.0 * om))
    return reduce_angle(gmst)


def rotation_z(angle: float) -> Matrix3:
    """Coordinate-axis rotation about z (frame rotation, not vector rotation)."""
    c = math.cos(angle)
    s = math.sin(angle)
    return (
        (c, s, 0.0),
        (-s, c, 0.0),
        (0.0, 0.0, 1.0),
    )


def polar_motion_matrix(pm_x: float, pm_y: float, jcn_tt: float) -> Matrix3:
    """
    PEF -> ECEF polar motion rotation.

    pm_x, pm_y in milliarcseconds; s' approximated as -47 microarcseconds per
    Julian century of TT.
    """
    xp = pm_x * MAS_TO_RAD
    yp = pm_y * MAS_TO_RAD
    sp = -47.0e-6 * jcn_tt * ARCSEC_TO_RAD

    c_xp, s_xp = math.cos(xp), math.sin(xp)
    c_yp, s_yp = math.cos(yp), math.sin(yp)
    c_sp, s_sp = math.cos(sp), math.sin(sp)

    return (
        (c_xp * c_sp,
         c_xp * s_sp,
         s_xp),
        (-c_yp * s_sp + s_yp * s_xp * c_sp,
         c_yp * c_sp + s_yp * s_xp * s_sp,
         -s_yp * c_xp),
        (-s_yp * s_sp - c_yp * s_xp * c_sp,
         s_yp * c_sp - c_yp * s_xp * s_sp,
         c_yp * c_xp),
    )


def apply_matrix(matrix: Matrix3, vector) -> Cartesian3:
    """Matrix-vector product."""
    x, y, z = vector
    return Cartesian3(*(row[0] * x + row[1] * y + row[2] * z for row in matrix))


def cross(a, b) -> Cartesian3:
    return Cartesian3(
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def norm(vector) -> float:
    return math.sqrt(sum(c * c for c in vector))


def earth_rotation_vector(lod: float) -> Cartesian3:
    """Earth angular velocity (rad/s) about the polar axis, corrected by LOD."""
    return Cartesian3(0.0, 0.0, EARTH_ROTATION_RATE * (1.0 - lod / SECONDS_PER_DAY))


def teme_to_pef_velocity(v_teme, r_pef, rz: Matrix3, lod: float) -> Cartesian3:
    """
    PEF velocity: v_pef = Rz * v_teme - omega_earth x r_pef.

    Not used for the geodetic output, which reports the inertial speed.
    """
    v_rot = apply_matrix(rz, v_teme)
    w = cross(earth_rotation_vector(lod), r_pef)
    return Cartesian3(v_rot.x - w.x, v_rot.y - w.y, v_rot.z - w.z)


@dataclass(frozen=True)
class EarthOrientation:
    """Sidereal angle and rotation matrices for one instant."""
    jd_ut1: float
    jcn_tt: float
    gmst: float       # corrected, radians
    rz: Matrix3       # TEME -> PEF
    pm: Matrix3       # PEF -> ECEF
    lod: float

    def teme_to_pef(self, r_teme) -> Cartesian3:
        return apply_matrix(self.rz, r_teme)

    def pef_to_ecef(self, r_pef) -> Cartesian3:
        return apply_matrix(self.pm, r_pef)

    def teme_to_ecef(self, r_teme) -> Cartesian3:
        return self.pef_to_ecef(self.teme_to_pef(r_teme))


def earth_orientation(ut1: Instant, tai: Instant, pm_x: float, pm_y: float,
                      lod: float) -> EarthOrientation:
    """Build GMST and both rotation matrices from UT1, TAI and EOP values."""
    tt = tai_to_tt(tai)
    jd_ut1 = to_julian_date(ut1)
    jcn_tt = to_julian_century(to_julian_date(tt))

    gmst = apply_kinematic(gmst_iau82(jd_ut1), moon_node_longitude(jcn_tt), jd_ut1)

    return EarthOrientation(
        jd_ut1=jd_ut1,
        jcn_tt=jcn_tt,
        gmst=gmst,
        rz=rotation_z(gmst),
        pm=polar_motion_matrix(pm_x, pm_y, jcn_tt),
        lod=lod,
    )


def prime_vertical_radius(lat_rad: float) -> float:
    """N(lat) on WGS84, metres."""
    return WGS84_A / math.sqrt(1.0 - WGS84_E2 * math.sin(lat_rad) ** 2)


def ecef_to_geodetic(r_ecef) -> GeodeticCoord:
    """
    Convert ECEF position (metres) to geodetic coordinates.

    Closed-form Bowring approximation, no iteration. On the polar axis the
    longitude is reported as 0.0 and latitude as +/-90.

    Returns:
        GeodeticCoord: latitude/longitude in degrees, height in metres
    """
    _require_finite(r_ecef, "ECEF position")
    x, y, z = r_ecef

    p = math.sqrt(x * x + y * y)

    if p < POLE_EPSILON_M:
        if z == 0.0:
            raise DomainError("Geodetic coordinates undefined at the Earth's centre")
        lat = math.copysign(90.0, z)
        return GeodeticCoord(lat, 0.0, abs(z) - WGS84_B)

    theta = math.atan2(z * WGS84_A, p * WGS84_B)
    lat_rad = math.atan2(
        z + WGS84_ED2 * WGS84_B * math.sin(theta) ** 3,
        p - WGS84_E2 * WGS84_A * math.cos(theta) ** 3,
    )
    lon_rad = math.atan2(y, x)

    n = prime_vertical_radius(lat_rad)
    cos_lat = math.cos(lat_rad)
    if abs(cos_lat) > 1e-10:
        height = p / cos_lat - n
    else:
        # Near poles, use z component
        height = abs(z) / abs(math.sin(lat_rad)) - n * (1.0 - WGS84_E2)

    return GeodeticCoord(math.degrees(lat_rad), math.degrees(lon_rad), height)


def convert(ut1: Instant, tai: Instant, pm_x: float, pm_y: float, lod: float,
            state: InertialState) -> GeodeticState:
    """
    Full transform: TEME state vector to geodetic position and speed.

    Args:
        ut1: Sample time on UT1
        tai: Same sample on TAI
        pm_x, pm_y: Polar motion (mas)
        lod: Length-of-day excess (s)
        state: TEME position (km) / velocity (km/s)

    Returns:
        GeodeticState with height in km. The speed is |v_teme|; the velocity
        is not carried into the Earth-fixed frame.
    """
    r_teme, v_teme = state
    _require_finite(r_teme, "TEME position")
    _require_finite(v_teme, "TEME velocity")

    eo = earth_orientation(ut1, tai, pm_x, pm_y, lod)
    r_ecef = eo.teme_to_ecef(r_teme)

    lat, lon, height_m = ecef_to_geodetic(Cartesian3(*(c * 1.0e3 for c in r_ecef)))

    return GeodeticState(GeodeticCoord(lat, lon, height_m / 1.0e3), norm(v_teme))
