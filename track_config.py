"""
Process-wide constants and data-source settings.

Physical constants are fixed at import time. Data file locations and the
local civil offset can be overridden through environment variables.
"""

import math
import os
from pathlib import Path

# Time
SECONDS_PER_DAY = 86400.0
NANOS_PER_SECOND = 1_000_000_000
JD_J2000 = 2451545.0          # 2000-01-01 12:00:00
DAYS_PER_JULIAN_CENTURY = 36525.0
TT_MINUS_TAI = 32.184         # seconds
JD_KINEMATIC_START = 2450449.5  # 1997-01-01, equation-of-equinox terms apply after this

# Angles
TWO_PI = 2.0 * math.pi
ARCSEC_TO_RAD = math.pi / (180.0 * 3600.0)
MAS_TO_RAD = ARCSEC_TO_RAD / 1000.0

# Earth rotation rate (rad/s), scaled by LOD at use
EARTH_ROTATION_RATE = 7.29211514670698e-05

# WGS84 ellipsoid (metres)
WGS84_A = 6378137.0
WGS84_INV_F = 298.257223563
WGS84_F = 1.0 / WGS84_INV_F
WGS84_B = WGS84_A * (1.0 - WGS84_F)
WGS84_E2 = WGS84_F * (2.0 - WGS84_F)                     # (a^2 - b^2) / a^2
WGS84_ED2 = WGS84_E2 * WGS84_A * WGS84_A / (WGS84_B * WGS84_B)  # (a^2 - b^2) / b^2

# Below this distance from the polar axis longitude is undefined
POLE_EPSILON_M = 1.0e-6

# Local civil time (JST by default)
LOCAL_UTC_OFFSET_HOURS = float(os.environ.get("ISS_TRACK_UTC_OFFSET_HOURS", "9"))
LOCAL_UTC_OFFSET_S = LOCAL_UTC_OFFSET_HOURS * 3600.0

# Data sources
DATA_DIR = Path(os.environ.get("ISS_TRACK_DATA_DIR", "."))
EOP_FILE = Path(os.environ.get("ISS_TRACK_EOP_FILE", DATA_DIR / "eop.txt"))
LEAP_SECOND_FILE = Path(os.environ.get("ISS_TRACK_LEAP_SECOND_FILE", DATA_DIR / "Leap_Second.dat"))
TLE_FILE = Path(os.environ.get("ISS_TRACK_TLE_FILE", DATA_DIR / "tle.txt"))

LEAP_SECOND_URL = "https://hpiers.obspm.fr/iers/bul/bulc/Leap_Second.dat"
CELESTRAK_BASE = "https://celestrak.org/NORAD/elements/gp.php"
ISS_NORAD_ID = 25544
HTTP_TIMEOUT_S = 10

# Track generation
TRACK_DAYS = 2
TRACK_STEP_S = 10
TRACK_OUTPUT_FILE = Path(os.environ.get("ISS_TRACK_OUTPUT", "iss.json"))

LOG_LEVEL = os.environ.get("ISS_TRACK_LOG_LEVEL", "INFO")
