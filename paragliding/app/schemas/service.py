"""
Service metadata schemas.
"""

from pydantic import BaseModel


class ApiInfoResponse(BaseModel):
    """Schema for service metadata."""
    uptime: str
    info: str
    version: str
