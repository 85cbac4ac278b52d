"""
Track record types shared by the ingestion pipeline, ticker and stores.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


@dataclass(frozen=True)
class NewTrack:
    """Parsed track data waiting for an id and insertion timestamp."""
    source_url: str
    pilot: str
    glider: str
    glider_id: str
    flight_date: str
    total_distance: float


@dataclass(frozen=True)
class TrackRecord:
    """A stored track. Never mutated after insertion."""
    id: int
    source_url: str
    pilot: str
    glider: str
    glider_id: str
    flight_date: str
    total_distance: float
    inserted_at: str

    @classmethod
    def from_new(cls, track_id: int, new_track: NewTrack, inserted_at: str) -> "TrackRecord":
        return cls(
            id=track_id,
            source_url=new_track.source_url,
            pilot=new_track.pilot,
            glider=new_track.glider,
            glider_id=new_track.glider_id,
            flight_date=new_track.flight_date,
            total_distance=new_track.total_distance,
            inserted_at=inserted_at,
        )

    def get_field(self, field_name: str) -> Optional[str]:
        """
        Project a single field by its API name.
        
        Returns:
            Field value as text, or None for an unknown field name.
            track_length is rendered with six decimals.
        """
        if field_name == "pilot":
            return self.pilot
        if field_name == "glider":
            return self.glider
        if field_name == "glider_id":
            return self.glider_id
        if field_name == "H_date":
            return self.flight_date
        if field_name == "track_length":
            return f"{self.total_distance:.6f}"
        if field_name == "track_src_url":
            return self.source_url
        return None


def format_timestamp(moment: datetime) -> str:
    """Render a UTC instant as a cursor timestamp, e.g. 2026-10-18T05:03:01.123456Z."""
    return moment.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
