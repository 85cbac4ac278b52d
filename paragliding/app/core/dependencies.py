"""
Service dependencies for FastAPI.

The track store is built once per process from settings; tests override
get_track_store and get_track_parser through app.dependency_overrides.
"""

from functools import lru_cache
from fastapi import Depends
from paragliding.app.core.config import settings
from paragliding.app.domain.tracks.igc_parser import IgcParser, TrackParser
from paragliding.app.domain.tracks.ingestion import IngestionService
from paragliding.app.domain.tracks.store import MemoryTrackStore, TrackStore
from paragliding.app.domain.tracks.ticker import TickerService


@lru_cache
def get_track_store() -> TrackStore:
    """Track store selected by settings.store_backend."""
    if settings.store_backend == "memory":
        return MemoryTrackStore()

    from paragliding.app.db.session import AsyncSessionLocal
    from paragliding.app.domain.tracks.sql_store import SqlTrackStore
    return SqlTrackStore(AsyncSessionLocal)


def get_track_parser() -> TrackParser:
    return IgcParser(timeout=settings.fetch_timeout_seconds)


def get_ingestion_service(
    store: TrackStore = Depends(get_track_store),
    parser: TrackParser = Depends(get_track_parser),
) -> IngestionService:
    return IngestionService(store, parser, file_extension=settings.track_file_extension)


def get_ticker_service(store: TrackStore = Depends(get_track_store)) -> TickerService:
    return TickerService(store, page_size=settings.ticker_page_size)
