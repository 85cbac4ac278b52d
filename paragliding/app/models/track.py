"""
Track database model.

One row per ingested track file, keyed by its source URL.
"""

from sqlalchemy import Column, Integer, String, Float
from paragliding.app.db.session import Base


class Track(Base):
    """
    Track model.
    
    The primary key is assigned by the track store as the row count at
    insertion time, so ids are dense and double as insertion rank.
    A unique index on source_url keeps ingestion at-most-once per URL.
    """
    __tablename__ = "tracks"
    
    id = Column(Integer, primary_key=True, autoincrement=False)
    
    # De-duplication key
    source_url = Column(String(2048), nullable=False, unique=True, index=True)
    
    # Parsed header metadata
    pilot = Column(String(200), nullable=False, default="")
    glider = Column(String(200), nullable=False, default="")
    glider_id = Column(String(100), nullable=False, default="")
    flight_date = Column(String(32), nullable=False, default="")
    
    # Derived metrics (km)
    total_distance = Column(Float, nullable=False, default=0.0)
    
    # Insertion timestamp, also the ticker cursor value
    inserted_at = Column(String(32), nullable=False, unique=True, index=True)
    
    def __repr__(self):
        return f"<Track(id={self.id}, source_url='{self.source_url}', inserted_at='{self.inserted_at}')>"
