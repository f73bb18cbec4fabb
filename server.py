"""
Flask API Server for the ISS ground track

Endpoints:
    GET /              - Service info
    GET /api/tle       - TLE in effect at a time
    GET /api/position  - Geodetic position and speed at a time
    GET /api/track     - Ground track (same document as iss.json)

Times are local civil time, either as YYYYMMDDhhmmss[fraction] digits or an
ISO datetime; ISO values with a zone are converted first.
"""

import logging
from datetime import timezone
from pathlib import Path
from typing import Dict, Tuple

from dateutil.parser import parse as parse_datetime
from flask import Flask, jsonify, request
from flask_cors import CORS

from eop_fetcher import EopTable, LeapSecondTable
from iss_track import compute_point, generate_track, track_document
from time_scales import resolve_time_scales, utc_to_local
from time_utils import Instant, TimeScale, format_instant, now_local, parse_timestamp_digits
from tle_fetcher import get_orbital_params, load_tle_file, select_tle, tle_age_hours
from track_config import (
    EOP_FILE,
    LEAP_SECOND_FILE,
    LOCAL_UTC_OFFSET_S,
    LOG_LEVEL,
    TLE_FILE,
    TRACK_DAYS,
    TRACK_STEP_S,
)
from track_errors import DomainError, LookupNotFound, MalformedRecord, PropagationError, SourceUnavailable

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

app.config.update(
    EOP_FILE=EOP_FILE,
    LEAP_SECOND_FILE=LEAP_SECOND_FILE,
    TLE_FILE=TLE_FILE,
    UTC_OFFSET_S=LOCAL_UTC_OFFSET_S,
)

# Loaded tables, reloaded when the file changes on disk
_cache: Dict[Tuple[str, str], Tuple[float, object]] = {}

_LOADERS = {
    "eop": EopTable.from_file,
    "leap": LeapSecondTable.from_file,
    "tle": load_tle_file,
}


def _load(kind: str, path) -> object:
    path = Path(path)
    try:
        mtime = path.stat().st_mtime
    except OSError:
        mtime = -1.0

    key = (kind, str(path))
    cached = _cache.get(key)
    if cached is None or cached[0] != mtime:
        _cache[key] = (mtime, _LOADERS[kind](path))
        logger.info("Loaded %s data from %s", kind, path)
    return _cache[key][1]


def get_sources():
    """EOP table, leap-second table and TLE records for the current config."""
    return (
        _load("eop", app.config["EOP_FILE"]),
        _load("leap", app.config["LEAP_SECOND_FILE"]),
        _load("tle", app.config["TLE_FILE"]),
    )


def parse_local_time(value) -> Instant:
    """Query parameter to a local civil Instant (default: now)."""
    offset_s = app.config["UTC_OFFSET_S"]
    if not value:
        return now_local(offset_s)
    if value.isdigit():
        return parse_timestamp_digits(value)

    dt = parse_datetime(value)
    if dt.tzinfo is not None:
        utc = Instant.from_datetime(dt.astimezone(timezone.utc), TimeScale.UTC)
        return utc_to_local(utc, offset_s)
    return Instant.from_datetime(dt, TimeScale.LOCAL)


@app.errorhandler(LookupNotFound)
def handle_not_found(e):
    return jsonify({"error": str(e)}), 404


@app.errorhandler(SourceUnavailable)
def handle_unavailable(e):
    return jsonify({"error": str(e)}), 503


@app.errorhandler(MalformedRecord)
@app.errorhandler(DomainError)
@app.errorhandler(PropagationError)
def handle_computation_error(e):
    logger.error("Computation failed: %s", e)
    return jsonify({"error": str(e)}), 500


@app.route("/")
def index():
    """Health check endpoint."""
    return jsonify({
        "service": "ISS Ground Track API",
        "status": "running",
        "endpoints": [
            "/api/tle",
            "/api/position",
            "/api/track"
        ]
    })


@app.route("/api/tle")
def api_tle():
    """Return the TLE in effect at a time.

    Query params:
        time: local civil time (default: now)
    """
    try:
        local = parse_local_time(request.args.get("time"))
    except (ValueError, OverflowError):
        return jsonify({"error": "Invalid time"}), 400

    eop, leap, tles = get_sources()
    scales = resolve_time_scales(local, eop, leap, app.config["UTC_OFFSET_S"])
    tle = select_tle(tles, scales.ut1)

    return jsonify({
        "name": tle.name,
        "norad_id": tle.norad_id,
        "tle_line1": tle.line1,
        "tle_line2": tle.line2,
        "epoch": format_instant(tle.epoch),
        "age_hours": round(tle_age_hours(tle, scales.ut1), 2),
        "orbital_params": get_orbital_params(tle.line2)
    })


@app.route("/api/position")
def api_position():
    """Return geodetic position and speed.

    Query params:
        time: local civil time (default: now)
    """
    try:
        local = parse_local_time(request.args.get("time"))
    except (ValueError, OverflowError):
        return jsonify({"error": "Invalid time"}), 400

    eop, leap, tles = get_sources()
    scales = resolve_time_scales(local, eop, leap, app.config["UTC_OFFSET_S"])
    point = compute_point(scales, tles)

    return jsonify({
        **point.to_dict(),
        "ut1": format_instant(scales.ut1),
        "tai": format_instant(scales.tai),
        "dut1": scales.eop.dut1,
        "dat": scales.dat
    })


@app.route("/api/track")
def api_track():
    """
    Return ground track positions.

    Query params:
        start: local civil time (default: now)
        days: number of days (default: 2, max: 2)
        step: seconds between positions (default: 10, 10 to 300)
    """
    try:
        start = parse_local_time(request.args.get("start"))
    except (ValueError, OverflowError):
        return jsonify({"error": "Invalid start datetime"}), 400

    days = request.args.get("days", default=TRACK_DAYS, type=int)
    step = request.args.get("step", default=TRACK_STEP_S, type=int)

    days = max(1, min(2, days))
    step = max(10, min(300, step))

    eop, leap, tles = get_sources()
    points = generate_track(start, tles, eop, leap, days=days, step_s=step,
                            offset_s=app.config["UTC_OFFSET_S"])

    doc = track_document(points)
    doc["step_seconds"] = step
    return jsonify(doc)


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL)
    print("Starting ISS Ground Track API server...")
    print(f"  EOP:          {app.config['EOP_FILE']}")
    print(f"  Leap seconds: {app.config['LEAP_SECOND_FILE']}")
    print(f"  TLE:          {app.config['TLE_FILE']}")
    app.run(host="0.0.0.0", port=5050, debug=True)
