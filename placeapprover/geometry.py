"""
Location decoding and geodesic distance.

Submission locations arrive either as text ("POINT(lng lat)") or as the
hex-encoded little-endian EWKB a geography column returns
("0101000020E6100000" + lng double + lat double).
"""

import math
import re
import struct

from .constants import EARTH_RADIUS_METERS
from .models import Coordinate


class GeometryParseError(ValueError):
    """Raised when a raw location cannot be decoded into a coordinate."""
    pass


_POINT_RE = re.compile(
    r"^\s*(?:SRID=\d+;)?\s*POINT\s*\(\s*([-+0-9.eE]+)\s+([-+0-9.eE]+)\s*\)\s*$",
    re.IGNORECASE,
)

# byte order 01 (little-endian), type 0x20000001 (point + SRID flag), SRID 4326
EWKB_POINT_HEADER = "0101000020E6100000"
# byte order 01, type 0x00000001, no SRID
WKB_POINT_HEADER = "0101000000"


def _parse_text(raw: str):
    m = _POINT_RE.match(raw)
    if not m:
        return None
    try:
        lng, lat = float(m.group(1)), float(m.group(2))
    except ValueError:
        return None
    return lng, lat


def _parse_hex(raw: str):
    s = raw.strip().upper()
    for header in (EWKB_POINT_HEADER, WKB_POINT_HEADER):
        if s.startswith(header):
            body = s[len(header):]
            break
    else:
        return None
    if len(body) < 32:
        return None
    try:
        lng, lat = struct.unpack("<dd", bytes.fromhex(body[:32]))
    except ValueError:
        return None
    return lng, lat


def parse_location(raw: str) -> Coordinate:
    """
    Decode a raw submission location.

    Tries the textual form first, then the binary form.

    Raises:
        GeometryParseError: If neither form yields finite coordinates
    """
    if not isinstance(raw, str) or not raw.strip():
        raise GeometryParseError(f"Empty or non-string location: {raw!r}")

    parsed = _parse_text(raw) or _parse_hex(raw)
    if parsed is None:
        raise GeometryParseError(f"Unrecognized location format: {raw[:60]!r}")

    lng, lat = parsed
    if not (math.isfinite(lng) and math.isfinite(lat)):
        raise GeometryParseError(f"Non-finite coordinates in location: {raw[:60]!r}")
    return Coordinate(lat=lat, lng=lng)


def format_point(coord: Coordinate) -> str:
    return f"POINT({coord.lng} {coord.lat})"


def haversine_meters(c1: Coordinate, c2: Coordinate) -> int:
    """Great-circle distance in whole meters."""
    lat1, lat2 = math.radians(c1.lat), math.radians(c2.lat)
    d_lat = math.radians(c2.lat - c1.lat)
    d_lng = math.radians(c2.lng - c1.lng)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return int(math.floor(EARTH_RADIUS_METERS * c + 0.5))
