"""
Ticker Pydantic schemas.
"""

from pydantic import BaseModel, Field
from typing import List


class TickerResponse(BaseModel):
    """Schema for a window of track ids."""
    t_latest: str = Field(..., description="Timestamp of the most recent track")
    t_start: str = Field(..., description="Timestamp of the first track in the window")
    t_stop: str = Field(..., description="Timestamp of the last track in the window")
    tracks: List[int]
    processing: float = Field(..., description="Time spent building the window, in ms")
