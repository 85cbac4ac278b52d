"""
Track Pydantic schemas.

Defines request and response models for track ingestion and lookup.
"""

from pydantic import BaseModel, Field
from typing import Optional


class TrackCreate(BaseModel):
    """Schema for registering a track file by URL."""
    url: Optional[str] = Field(None, description="URL of an .igc track file")


class TrackCreateResponse(BaseModel):
    """Schema for the id assigned to an ingested track."""
    id: int


class TrackResponse(BaseModel):
    """Schema for track details."""
    H_date: str = Field(..., description="Flight date from the file header")
    pilot: str
    glider: str
    glider_id: str
    track_length: float = Field(..., description="Total track distance in km")
    track_src_url: str
