"""
Track store contract and the in-memory implementation.

A store owns the id sequence and the insertion timestamps. Both are
assigned inside insert_if_absent under the store's insertion lock, which
makes the existence check, id assignment and insert a single step.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from paragliding.app.core.exceptions import ResourceNotFoundError
from paragliding.app.domain.tracks.records import (
    NewTrack,
    TrackRecord,
    format_timestamp,
    parse_timestamp,
)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TrackStore(ABC):
    """Persistent collection of tracks ordered by insertion."""

    def __init__(self, clock: Clock = utc_now):
        self._clock = clock
        self._insert_lock = asyncio.Lock()

    def _next_timestamp(self, previous: Optional[str]) -> str:
        """
        Stamp a new record with the current time.
        
        Timestamps are kept strictly increasing with id: when the clock has
        not moved past the previous record, the previous value plus one
        microsecond is used instead.
        """
        now = self._clock()
        if previous is not None:
            floor = parse_timestamp(previous) + timedelta(microseconds=1)
            if now < floor:
                now = floor
        return format_timestamp(now)

    @abstractmethod
    async def count(self) -> int:
        ...

    @abstractmethod
    async def insert_if_absent(self, new_track: NewTrack) -> Tuple[int, bool]:
        """
        Insert a track unless one with the same source URL exists.
        
        Returns:
            (id, existed) - the id of the stored track and whether it was
            already present before this call
        """

    @abstractmethod
    async def get_by_id(self, track_id: int) -> TrackRecord:
        """Raises ResourceNotFoundError for an unknown id."""

    @abstractmethod
    async def get_by_source_url(self, source_url: str) -> Optional[TrackRecord]:
        ...

    @abstractmethod
    async def get_by_inserted_at(self, inserted_at: str) -> TrackRecord:
        """Exact timestamp match. Raises ResourceNotFoundError if none matches."""

    @abstractmethod
    async def get_all(self) -> List[TrackRecord]:
        """All tracks in insertion (id) order."""

    @abstractmethod
    async def get_range(self, start_id: int, limit: int) -> List[TrackRecord]:
        """Up to limit tracks with id >= start_id, in id order."""

    @abstractmethod
    async def get_latest(self) -> TrackRecord:
        """Highest-id track. Raises ResourceNotFoundError when empty."""

    @abstractmethod
    async def clear(self) -> int:
        """Delete every track and restart ids at zero. Returns the number deleted."""


class MemoryTrackStore(TrackStore):
    """Track store kept in process memory; contents are lost on restart."""

    def __init__(self, clock: Clock = utc_now):
        super().__init__(clock)
        self._records: List[TrackRecord] = []
        self._by_url: Dict[str, TrackRecord] = {}

    async def count(self) -> int:
        return len(self._records)

    async def insert_if_absent(self, new_track: NewTrack) -> Tuple[int, bool]:
        async with self._insert_lock:
            existing = self._by_url.get(new_track.source_url)
            if existing is not None:
                return existing.id, True

            previous = self._records[-1].inserted_at if self._records else None
            record = TrackRecord.from_new(
                len(self._records), new_track, self._next_timestamp(previous)
            )
            self._records.append(record)
            self._by_url[record.source_url] = record
            return record.id, False

    async def get_by_id(self, track_id: int) -> TrackRecord:
        if 0 <= track_id < len(self._records):
            return self._records[track_id]
        raise ResourceNotFoundError("Track", track_id)

    async def get_by_source_url(self, source_url: str) -> Optional[TrackRecord]:
        return self._by_url.get(source_url)

    async def get_by_inserted_at(self, inserted_at: str) -> TrackRecord:
        for record in self._records:
            if record.inserted_at == inserted_at:
                return record
        raise ResourceNotFoundError("Track", inserted_at)

    async def get_all(self) -> List[TrackRecord]:
        return list(self._records)

    async def get_range(self, start_id: int, limit: int) -> List[TrackRecord]:
        start = max(start_id, 0)
        return self._records[start:start + limit]

    async def get_latest(self) -> TrackRecord:
        if not self._records:
            raise ResourceNotFoundError("Track")
        return self._records[-1]

    async def clear(self) -> int:
        async with self._insert_lock:
            deleted = len(self._records)
            self._records = []
            self._by_url = {}
            return deleted
