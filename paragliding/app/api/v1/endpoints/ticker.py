"""
Ticker API Endpoints.

Pages through track ids in insertion order using timestamp cursors.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from paragliding.app.core.dependencies import get_ticker_service
from paragliding.app.domain.tracks.ticker import PageResult, TickerService
from paragliding.app.schemas.ticker import TickerResponse

router = APIRouter(prefix="/ticker", tags=["Ticker"])


def _to_response(page: PageResult) -> TickerResponse:
    return TickerResponse(
        t_latest=page.latest_timestamp,
        t_start=page.window_start_timestamp,
        t_stop=page.window_stop_timestamp,
        tracks=page.ids,
        processing=page.processing_millis,
    )


@router.get("", response_model=TickerResponse)
async def get_first_page(service: TickerService = Depends(get_ticker_service)):
    """Oldest window of track ids."""
    return _to_response(await service.page())


@router.get("/latest", response_class=PlainTextResponse)
async def get_latest_timestamp(service: TickerService = Depends(get_ticker_service)):
    """Timestamp of the most recently added track."""
    return PlainTextResponse(await service.latest())


@router.get("/{timestamp}", response_model=TickerResponse)
async def get_page_from(
    timestamp: str,
    service: TickerService = Depends(get_ticker_service)
):
    """
    Window of track ids starting at the track stamped with timestamp.
    
    The track matching the cursor is included as the first id.
    """
    return _to_response(await service.page(cursor=timestamp))
