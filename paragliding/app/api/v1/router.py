"""
API v1 Router.

Aggregates the public and admin endpoints.
"""

from fastapi import APIRouter
from paragliding.app.api.v1.endpoints import admin, ticker, tracks

router = APIRouter()

# Track registration and lookup
router.include_router(tracks.router)

# Ticker paging
router.include_router(ticker.router)

admin_router = APIRouter()

# Store maintenance
admin_router.include_router(admin.router)
