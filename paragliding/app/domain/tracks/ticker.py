"""
Ticker: cursor-paginated view over tracks in insertion order.

Cursors are insertion timestamps. A page requested from a cursor starts
at the track stamped with that timestamp, inclusive, so a client paging
forward passes the last timestamp it saw and receives that track again
as the first id of the next window.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional

from paragliding.app.core.exceptions import NoContentError, ResourceNotFoundError
from paragliding.app.domain.tracks.store import TrackStore


@dataclass
class PageResult:
    latest_timestamp: str
    window_start_timestamp: str
    window_stop_timestamp: str
    ids: List[int] = field(default_factory=list)
    processing_millis: float = 0.0


class TickerService:

    def __init__(self, store: TrackStore, page_size: int = 5):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.store = store
        self.page_size = page_size

    async def latest(self) -> str:
        """Insertion timestamp of the most recent track."""
        try:
            record = await self.store.get_latest()
        except ResourceNotFoundError:
            raise NoContentError()
        return record.inserted_at

    async def page(self, cursor: Optional[str] = None) -> PageResult:
        """
        Return a window of up to page_size track ids.
        
        Args:
            cursor: Insertion timestamp the window starts at, or None for
                the oldest tracks
        
        Raises:
            NoContentError: If no tracks are stored
            ResourceNotFoundError: If no track carries the cursor timestamp
        """
        started = time.perf_counter()

        latest = await self.latest()

        start_id = 0
        if cursor is not None:
            start_id = (await self.store.get_by_inserted_at(cursor)).id

        window = await self.store.get_range(start_id, self.page_size)
        if not window:
            # Cleared between reads
            raise NoContentError()

        # Tracks inserted after the first read can land in the window;
        # timestamps are fixed-width so string order is time order
        latest = max(latest, window[-1].inserted_at)

        return PageResult(
            latest_timestamp=latest,
            window_start_timestamp=window[0].inserted_at,
            window_stop_timestamp=window[-1].inserted_at,
            ids=[record.id for record in window],
            processing_millis=(time.perf_counter() - started) * 1000,
        )
