"""
Track Ingestion Service (Domain Logic).

Turns a source URL into a stored track. Idempotent per URL.
"""

import logging
import posixpath
from typing import Iterable
from urllib.parse import urlsplit

from paragliding.app.core.exceptions import InvalidInputError
from paragliding.app.domain.tracks.igc_parser import GeoPoint, TrackParser
from paragliding.app.domain.tracks.records import NewTrack
from paragliding.app.domain.tracks.store import TrackStore

logger = logging.getLogger("paragliding")


def total_distance(points: Iterable[GeoPoint]) -> float:
    """Sum of distances between consecutive points; 0.0 for fewer than two."""
    distance = 0.0
    previous = None
    for point in points:
        if previous is not None:
            distance += previous.distance(point)
        previous = point
    return distance


class IngestionService:

    def __init__(self, store: TrackStore, parser: TrackParser, file_extension: str = ".igc"):
        self.store = store
        self.parser = parser
        self.file_extension = file_extension

    def validate_source_url(self, source_url: str) -> None:
        """
        Lexical check of a track URL.
        
        Raises:
            InvalidInputError: If the URL is missing or its path does not
                end with the expected file extension
        """
        if not source_url:
            raise InvalidInputError("missing key 'url'")

        extension = posixpath.splitext(urlsplit(source_url).path)[1]
        if extension != self.file_extension:
            raise InvalidInputError(
                f"not a {self.file_extension} file",
                details={"url": source_url, "extension": extension}
            )

    async def ingest(self, source_url: str) -> int:
        """
        Ingest a track file.
        
        Flow:
        1. Validate the URL
        2. Return the existing id if the URL was ingested before
        3. Parse the file (ParseFailureError on failure)
        4. Accumulate the track distance
        5. Insert-if-absent; a concurrent ingest of the same URL
           resolves to the id that was stored first
        
        Returns:
            Track id
        """
        self.validate_source_url(source_url)

        existing = await self.store.get_by_source_url(source_url)
        if existing is not None:
            logger.info("Track %s already ingested as %s", source_url, existing.id)
            return existing.id

        parsed = await self.parser.parse(source_url)

        new_track = NewTrack(
            source_url=source_url,
            pilot=parsed.pilot,
            glider=parsed.glider,
            glider_id=parsed.glider_id,
            flight_date=parsed.date_text,
            total_distance=total_distance(parsed.points),
        )

        track_id, existed = await self.store.insert_if_absent(new_track)
        if existed:
            logger.info("Track %s stored concurrently as %s", source_url, track_id)
        else:
            logger.info(
                "Ingested track %s from %s (%d points, %.3f km)",
                track_id, source_url, len(parsed.points), new_track.total_distance
            )
        return track_id
