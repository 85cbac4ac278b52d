"""
Admin API Endpoints.

Store maintenance: track count and bulk removal.
"""

import logging
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from paragliding.app.core.dependencies import get_track_store
from paragliding.app.domain.tracks.store import TrackStore

logger = logging.getLogger("paragliding")

router = APIRouter(tags=["Admin"])


@router.get("/tracks_count", response_class=PlainTextResponse)
async def count_tracks(store: TrackStore = Depends(get_track_store)):
    """Number of stored tracks."""
    return PlainTextResponse(str(await store.count()))


@router.delete("/tracks", response_class=PlainTextResponse)
async def delete_all_tracks(store: TrackStore = Depends(get_track_store)):
    """
    Delete every track.
    
    Ids restart at zero for the next ingested track.
    """
    deleted = await store.clear()
    logger.warning("Deleted %d tracks", deleted)
    return PlainTextResponse(str(deleted))
