"""
Centralized Test Configuration.
"""

import asyncio
from datetime import date
from typing import Dict, List, Union

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from paragliding.app.main import app
from paragliding.app.db.session import Base
from paragliding.app.core.dependencies import get_track_parser, get_track_store
from paragliding.app.core.exceptions import ParseFailureError
from paragliding.app.domain.tracks.igc_parser import GeoPoint, ParsedTrack, TrackParser
from paragliding.app.domain.tracks.sql_store import SqlTrackStore
from paragliding.app.domain.tracks.store import MemoryTrackStore
import paragliding.app.models.track  # noqa: F401

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


def sample_track(pilot: str = "Miguel Angel Gordillo", points: List[GeoPoint] = None) -> ParsedTrack:
    """Parsed track along the equator: 1 degree, then 2 more degrees east."""
    if points is None:
        points = [GeoPoint(0.0, 0.0), GeoPoint(0.0, 1.0), GeoPoint(0.0, 3.0)]
    return ParsedTrack(
        points=points,
        pilot=pilot,
        glider="RV8",
        glider_id="EC-XLL",
        flight_date=date(2016, 2, 19),
    )


def failing_session_factory():
    """Session factory for a database that cannot be reached."""
    raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))


class FakeParser(TrackParser):
    """Parser serving canned tracks; any other URL fails to parse."""

    def __init__(self):
        self.tracks: Dict[str, Union[ParsedTrack, Exception]] = {}
        self.calls: List[str] = []

    def add(self, url: str, track: ParsedTrack = None) -> str:
        self.tracks[url] = track or sample_track()
        return url

    async def parse(self, source_url: str) -> ParsedTrack:
        self.calls.append(source_url)
        # Yield so concurrent ingests interleave
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        track = self.tracks.get(source_url)
        if track is None:
            raise ParseFailureError(source_url, "fetch failed: 404 Not Found")
        return track


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def sql_store():
    return SqlTrackStore(TestingSessionLocal)


@pytest.fixture
def memory_store():
    return MemoryTrackStore()


@pytest.fixture(params=["memory", "sql"])
def track_store(request):
    """Each store implementation in turn."""
    if request.param == "memory":
        return MemoryTrackStore()
    return SqlTrackStore(TestingSessionLocal)


@pytest.fixture
def fake_parser():
    return FakeParser()


@pytest.fixture
def api_store(sql_store, fake_parser):
    """Point the app's dependencies at the test store and parser."""
    app.dependency_overrides[get_track_store] = lambda: sql_store
    app.dependency_overrides[get_track_parser] = lambda: fake_parser
    yield sql_store
    app.dependency_overrides = {}


@pytest.fixture
async def client(api_store):
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
