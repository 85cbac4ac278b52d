"""
SQLAlchemy-backed track store.

Ids are assigned as the table's row count inside the store's insertion
lock. The unique index on tracks.source_url catches inserts racing in from
other processes; those resolve to the row that won.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paragliding.app.core.exceptions import ResourceNotFoundError, StorageError
from paragliding.app.domain.tracks.records import NewTrack, TrackRecord
from paragliding.app.domain.tracks.store import Clock, TrackStore, utc_now
from paragliding.app.models.track import Track

logger = logging.getLogger("paragliding")


def _to_record(row: Track) -> TrackRecord:
    return TrackRecord(
        id=row.id,
        source_url=row.source_url,
        pilot=row.pilot,
        glider=row.glider,
        glider_id=row.glider_id,
        flight_date=row.flight_date,
        total_distance=row.total_distance,
        inserted_at=row.inserted_at,
    )


class SqlTrackStore(TrackStore):
    """Track store persisted in the tracks table."""

    def __init__(self, session_factory: async_sessionmaker, clock: Clock = utc_now):
        super().__init__(clock)
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self):
        """Open a session, reporting driver failures as StorageError."""
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Track store failure: %s", exc)
            raise StorageError() from exc

    async def _find_by_url(self, session: AsyncSession, source_url: str) -> Optional[Track]:
        result = await session.execute(
            select(Track).where(Track.source_url == source_url)
        )
        return result.scalar_one_or_none()

    async def count(self) -> int:
        async with self._session() as session:
            result = await session.execute(select(func.count(Track.id)))
            return result.scalar()

    async def insert_if_absent(self, new_track: NewTrack) -> Tuple[int, bool]:
        async with self._insert_lock:
            async with self._session() as session:
                existing = await self._find_by_url(session, new_track.source_url)
                if existing is not None:
                    return existing.id, True

                count_result = await session.execute(select(func.count(Track.id)))
                track_id = count_result.scalar()

                latest_result = await session.execute(
                    select(Track.inserted_at).order_by(Track.id.desc()).limit(1)
                )
                previous = latest_result.scalar_one_or_none()

                record = TrackRecord.from_new(
                    track_id, new_track, self._next_timestamp(previous)
                )
                session.add(Track(
                    id=record.id,
                    source_url=record.source_url,
                    pilot=record.pilot,
                    glider=record.glider,
                    glider_id=record.glider_id,
                    flight_date=record.flight_date,
                    total_distance=record.total_distance,
                    inserted_at=record.inserted_at,
                ))

                try:
                    await session.commit()
                    return track_id, False
                except IntegrityError:
                    # Another writer stored this URL (or took this id) first
                    await session.rollback()

            async with self._session() as session:
                winner = await self._find_by_url(session, new_track.source_url)

            if winner is None:
                raise StorageError(f"Track id {track_id} was claimed by a concurrent insert")

            logger.info("Concurrent insert of %s resolved to track %s", new_track.source_url, winner.id)
            return winner.id, True

    async def get_by_id(self, track_id: int) -> TrackRecord:
        async with self._session() as session:
            row = await session.get(Track, track_id)
        if row is None:
            raise ResourceNotFoundError("Track", track_id)
        return _to_record(row)

    async def get_by_source_url(self, source_url: str) -> Optional[TrackRecord]:
        async with self._session() as session:
            row = await self._find_by_url(session, source_url)
        return _to_record(row) if row is not None else None

    async def get_by_inserted_at(self, inserted_at: str) -> TrackRecord:
        async with self._session() as session:
            result = await session.execute(
                select(Track).where(Track.inserted_at == inserted_at)
            )
            row = result.scalar_one_or_none()
        if row is None:
            raise ResourceNotFoundError("Track", inserted_at)
        return _to_record(row)

    async def get_all(self) -> List[TrackRecord]:
        async with self._session() as session:
            result = await session.execute(select(Track).order_by(Track.id))
            return [_to_record(row) for row in result.scalars().all()]

    async def get_range(self, start_id: int, limit: int) -> List[TrackRecord]:
        async with self._session() as session:
            result = await session.execute(
                select(Track)
                .where(Track.id >= start_id)
                .order_by(Track.id)
                .limit(limit)
            )
            return [_to_record(row) for row in result.scalars().all()]

    async def get_latest(self) -> TrackRecord:
        async with self._session() as session:
            result = await session.execute(
                select(Track).order_by(Track.id.desc()).limit(1)
            )
            row = result.scalar_one_or_none()
        if row is None:
            raise ResourceNotFoundError("Track")
        return _to_record(row)

    async def clear(self) -> int:
        async with self._insert_lock:
            async with self._session() as session:
                result = await session.execute(delete(Track))
                deleted = result.rowcount
                await session.commit()
                return deleted
