"""
Track API Endpoints.

Register track files by URL and read back the stored tracks.
"""

from typing import List
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from paragliding.app.core.dependencies import get_ingestion_service, get_track_store
from paragliding.app.core.exceptions import ResourceNotFoundError
from paragliding.app.domain.tracks.ingestion import IngestionService
from paragliding.app.domain.tracks.records import TrackRecord
from paragliding.app.domain.tracks.store import TrackStore
from paragliding.app.schemas.track import TrackCreate, TrackCreateResponse, TrackResponse

router = APIRouter(prefix="/track", tags=["Tracks"])


async def _load_track(track_id: str, store: TrackStore) -> TrackRecord:
    """Resolve a path id; malformed ids are reported as not found."""
    try:
        parsed_id = int(track_id)
    except ValueError:
        raise ResourceNotFoundError("Track", track_id)
    return await store.get_by_id(parsed_id)


@router.post("", response_model=TrackCreateResponse)
async def register_track(
    track_data: TrackCreate,
    service: IngestionService = Depends(get_ingestion_service)
):
    """
    Register a track file by URL.
    
    Registering the same URL again returns the id assigned the first time.
    """
    track_id = await service.ingest(track_data.url)
    return TrackCreateResponse(id=track_id)


@router.get("", response_model=List[int])
async def list_track_ids(store: TrackStore = Depends(get_track_store)):
    """List the ids of all stored tracks in insertion order."""
    return [record.id for record in await store.get_all()]


@router.get("/{track_id}", response_model=TrackResponse)
async def get_track(track_id: str, store: TrackStore = Depends(get_track_store)):
    """Get the details of a single track."""
    record = await _load_track(track_id, store)
    
    return TrackResponse(
        H_date=record.flight_date,
        pilot=record.pilot,
        glider=record.glider,
        glider_id=record.glider_id,
        track_length=record.total_distance,
        track_src_url=record.source_url,
    )


@router.get("/{track_id}/{field}", response_class=PlainTextResponse)
async def get_track_field(
    track_id: str,
    field: str,
    store: TrackStore = Depends(get_track_store)
):
    """Get a single track field as plain text."""
    record = await _load_track(track_id, store)
    
    value = record.get_field(field)
    if value is None:
        raise ResourceNotFoundError("Track field", field)
    
    return PlainTextResponse(value)
