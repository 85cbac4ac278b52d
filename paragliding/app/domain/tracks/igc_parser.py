"""
IGC flight-log parsing.

Fetches a track file over HTTP and turns its H-records (header) and
B-records (fixes) into a ParsedTrack. Only the fields the service stores
are read; other record types are ignored.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import List, Optional

import httpx

from paragliding.app.core.exceptions import ParseFailureError

# Radius of Earth in kilometers
EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2)**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


@dataclass(frozen=True)
class GeoPoint:
    """A timestamped fix."""
    lat: float
    lon: float
    time: Optional[datetime] = None
    valid: bool = True

    def distance(self, other: "GeoPoint") -> float:
        """Great-circle distance to other, in kilometers."""
        return haversine_distance(self.lat, self.lon, other.lat, other.lon)


@dataclass
class ParsedTrack:
    points: List[GeoPoint] = field(default_factory=list)
    pilot: str = ""
    glider: str = ""
    glider_id: str = ""
    flight_date: Optional[date] = None

    @property
    def date_text(self) -> str:
        return self.flight_date.isoformat() if self.flight_date else ""


class TrackParser(ABC):
    """Turns a source URL into a ParsedTrack."""

    @abstractmethod
    async def parse(self, source_url: str) -> ParsedTrack:
        """Raises ParseFailureError when the source cannot be fetched or decoded."""


def _decode_lat(dms: str, hemi: str) -> float:
    # dms 'DDMMmmm'
    deg = int(dms[0:2])
    minutes = int(dms[2:]) / 1000.0
    value = deg + minutes / 60.0
    return -value if hemi.upper() == "S" else value


def _decode_lon(dms: str, hemi: str) -> float:
    # dms 'DDDMMmmm'
    deg = int(dms[0:3])
    minutes = int(dms[3:]) / 1000.0
    value = deg + minutes / 60.0
    return -value if hemi.upper() == "W" else value


def _parse_header_date(value: str) -> date:
    # Both 'HFDTE190216' and 'HFDTEDATE:190216,01'
    if value.upper().startswith("DATE:"):
        value = value[5:]
    digits = value[:6]
    if len(digits) != 6 or not digits.isdigit():
        raise ValueError(f"bad header date {value!r}")
    day, month, year = int(digits[0:2]), int(digits[2:4]), int(digits[4:6])
    year += 2000 if year < 80 else 1900
    return date(year, month, day)


def _header_text(line: str) -> str:
    if ":" in line:
        return line.split(":", 1)[1].strip()
    return line[5:].strip()


def _parse_fix(line: str, flight_date: Optional[date]) -> GeoPoint:
    if len(line) < 25:
        raise ValueError(f"short B-record {line!r}")
    fix_time = time(int(line[1:3]), int(line[3:5]), int(line[5:7]))
    lat = _decode_lat(line[7:14], line[14])
    lon = _decode_lon(line[15:23], line[23])
    moment = None
    if flight_date is not None:
        moment = datetime.combine(flight_date, fix_time, tzinfo=timezone.utc)
    return GeoPoint(lat=lat, lon=lon, time=moment, valid=line[24] == "A")


def parse_igc(content: str) -> ParsedTrack:
    """
    Parse the text of an IGC file.

    Raises:
        ValueError: If a header or fix record is malformed, or the text
            holds neither a flight date nor any fixes.
    """
    track = ParsedTrack()

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if line[0] == "H" and len(line) >= 5:
            code = line[2:5].upper()
            if code == "DTE":
                track.flight_date = _parse_header_date(line[5:])
            elif code == "PLT":
                track.pilot = _header_text(line)
            elif code == "GTY":
                track.glider = _header_text(line)
            elif code == "GID":
                track.glider_id = _header_text(line)
        elif line[0] == "B":
            track.points.append(_parse_fix(line, track.flight_date))

    if track.flight_date is None and not track.points:
        raise ValueError("no IGC header date or fixes found")

    return track


class IgcParser(TrackParser):
    """Fetches IGC files with httpx and parses them."""

    def __init__(self, timeout: float = 10.0, transport: httpx.AsyncBaseTransport = None):
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, source_url: str) -> str:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport, follow_redirects=True
        ) as client:
            response = await client.get(source_url)
            response.raise_for_status()
            return response.text

    async def parse(self, source_url: str) -> ParsedTrack:
        try:
            content = await self.fetch(source_url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ParseFailureError(source_url, f"fetch failed: {exc}") from exc

        try:
            return parse_igc(content)
        except ValueError as exc:
            raise ParseFailureError(source_url, str(exc)) from exc
