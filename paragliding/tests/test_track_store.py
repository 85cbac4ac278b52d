"""
Tests for the track store implementations.

Every test runs against both the in-memory and the SQL store.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from conftest import TestingSessionLocal, failing_session_factory
from paragliding.app.core.exceptions import ResourceNotFoundError, StorageError
from paragliding.app.db.session import Base
from paragliding.app.domain.tracks.sql_store import SqlTrackStore
from paragliding.app.models.track import Track
from paragliding.app.domain.tracks.records import NewTrack, parse_timestamp
from paragliding.app.domain.tracks.store import MemoryTrackStore


def new_track(n: int, distance: float = 12.5) -> NewTrack:
    return NewTrack(
        source_url=f"http://tracks.test/flight_{n}.igc",
        pilot=f"Pilot {n}",
        glider="RV8",
        glider_id="EC-XLL",
        flight_date="2016-02-19",
        total_distance=distance,
    )


@pytest.mark.asyncio
async def test_ids_are_dense_and_ordered(track_store):
    for n in range(4):
        track_id, existed = await track_store.insert_if_absent(new_track(n))
        assert (track_id, existed) == (n, False)
    
    records = await track_store.get_all()
    assert [record.id for record in records] == [0, 1, 2, 3]
    assert await track_store.count() == 4


@pytest.mark.asyncio
async def test_insert_if_absent_keeps_first_record(track_store):
    await track_store.insert_if_absent(new_track(0))
    
    track_id, existed = await track_store.insert_if_absent(new_track(0, distance=99.0))
    
    assert (track_id, existed) == (0, True)
    assert await track_store.count() == 1
    assert (await track_store.get_by_id(0)).total_distance == 12.5


@pytest.mark.asyncio
async def test_concurrent_inserts_of_same_url(track_store):
    results = await asyncio.gather(
        *[track_store.insert_if_absent(new_track(7)) for _ in range(5)]
    )
    
    assert {track_id for track_id, _ in results} == {0}
    assert sum(1 for _, existed in results if not existed) == 1
    assert await track_store.count() == 1


@pytest.mark.asyncio
async def test_timestamps_strictly_increase_with_id(track_store):
    for n in range(6):
        await track_store.insert_if_absent(new_track(n))
    
    stamps = [record.inserted_at for record in await track_store.get_all()]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)


@pytest.mark.asyncio
async def test_frozen_clock_still_gives_unique_timestamps():
    frozen = datetime(2026, 10, 18, 5, 0, 0, tzinfo=timezone.utc)
    store = MemoryTrackStore(clock=lambda: frozen)
    
    for n in range(3):
        await store.insert_if_absent(new_track(n))
    
    stamps = [parse_timestamp(record.inserted_at) for record in await store.get_all()]
    assert stamps[0] == frozen
    assert (stamps[2] - stamps[0]).microseconds == 2


@pytest.mark.asyncio
async def test_lookups(track_store):
    for n in range(3):
        await track_store.insert_if_absent(new_track(n))
    
    second = await track_store.get_by_id(1)
    assert second.pilot == "Pilot 1"
    assert (await track_store.get_by_source_url(second.source_url)).id == 1
    assert (await track_store.get_by_inserted_at(second.inserted_at)).id == 1
    assert (await track_store.get_latest()).id == 2
    assert await track_store.get_by_source_url("http://tracks.test/none.igc") is None


@pytest.mark.asyncio
async def test_missing_records_raise_not_found(track_store):
    with pytest.raises(ResourceNotFoundError):
        await track_store.get_by_id(0)
    with pytest.raises(ResourceNotFoundError):
        await track_store.get_latest()
    with pytest.raises(ResourceNotFoundError):
        await track_store.get_by_inserted_at("2026-10-18T05:00:00.000000Z")


@pytest.mark.asyncio
async def test_get_range_clips_at_end(track_store):
    for n in range(7):
        await track_store.insert_if_absent(new_track(n))
    
    assert [r.id for r in await track_store.get_range(2, 3)] == [2, 3, 4]
    assert [r.id for r in await track_store.get_range(5, 5)] == [5, 6]
    assert await track_store.get_range(9, 5) == []


@pytest.mark.asyncio
async def test_clear_resets_id_sequence(track_store):
    for n in range(3):
        await track_store.insert_if_absent(new_track(n))
    
    assert await track_store.clear() == 3
    assert await track_store.count() == 0
    
    track_id, existed = await track_store.insert_if_absent(new_track(1))
    assert (track_id, existed) == (0, False)


# SQL store: writers that do not share an insertion lock

@pytest.fixture
async def file_session_factory(tmp_path):
    """Sessions on a file-backed database several stores can share."""
    file_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tracks.db'}")
    async with file_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)
    
    await file_engine.dispose()


class StaleLookupStore(SqlTrackStore):
    """Misses the first URL lookup, as if another writer inserted right after it."""

    def __init__(self, session_factory):
        super().__init__(session_factory)
        self.stale_lookups = 1

    async def _find_by_url(self, session, source_url):
        if self.stale_lookups:
            self.stale_lookups -= 1
            return None
        return await super()._find_by_url(session, source_url)


@pytest.mark.asyncio
async def test_separate_sql_stores_racing_on_same_url(file_session_factory):
    first = SqlTrackStore(file_session_factory)
    second = SqlTrackStore(file_session_factory)
    
    results = await asyncio.gather(
        *[store.insert_if_absent(new_track(3)) for store in (first, second, first, second)]
    )
    
    assert [track_id for track_id, _ in results] == [0, 0, 0, 0]
    assert sum(1 for _, existed in results if not existed) == 1
    assert await first.count() == 1
    assert await second.count() == 1


@pytest.mark.asyncio
async def test_unique_url_conflict_resolves_to_stored_track(sql_store):
    await sql_store.insert_if_absent(new_track(0))
    late_writer = StaleLookupStore(TestingSessionLocal)
    
    track_id, existed = await late_writer.insert_if_absent(new_track(0, distance=99.0))
    
    assert (track_id, existed) == (0, True)
    assert await sql_store.count() == 1
    assert (await sql_store.get_by_id(0)).total_distance == 12.5


@pytest.mark.asyncio
async def test_id_taken_by_other_url_is_storage_error(sql_store):
    # Row written outside the store with an id the count does not predict
    async with TestingSessionLocal() as session:
        session.add(Track(
            id=1,
            source_url="http://tracks.test/elsewhere.igc",
            inserted_at="2026-01-01T00:00:00.000000Z",
        ))
        await session.commit()
    
    with pytest.raises(StorageError):
        await sql_store.insert_if_absent(new_track(5))
    
    assert await sql_store.get_by_source_url(new_track(5).source_url) is None
    assert await sql_store.count() == 1


@pytest.mark.asyncio
async def test_unreachable_database_is_storage_error():
    store = SqlTrackStore(failing_session_factory)
    
    with pytest.raises(StorageError) as exc_info:
        await store.count()
    assert exc_info.value.error_code == "ERR_STORAGE"
    assert exc_info.value.status_code == 500
    
    with pytest.raises(StorageError):
        await store.insert_if_absent(new_track(0))
