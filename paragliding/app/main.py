"""
FastAPI Application Entry Point.

This is the main application file for the Paragliding Track Service.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from paragliding.app.core.config import settings
from paragliding.app.api.v1.router import router as api_v1_router, admin_router
from paragliding.app.core.observability import ObservabilityMiddleware, configure_logging
from paragliding.app.core.uptime import get_uptime
from paragliding.app.schemas.service import ApiInfoResponse
from paragliding.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from starlette.exceptions import HTTPException as StarletteHTTPException

API_PREFIX = "/paragliding/api"
ADMIN_API_PREFIX = "/paragliding/admin/api"

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.
    
    1. Creates the tracks table on startup (SQL backend only).
    2. Disposes the engine on shutdown.
    """
    if settings.store_backend == "sql":
        from paragliding.app.db.session import engine, Base
        import paragliding.app.models.track  # noqa: F401 registers the table
        
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield
        await engine.dispose()
    else:
        yield

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Service for IGC paragliding tracks",
    lifespan=lifespan,
)
app.state.started_at = datetime.now(timezone.utc)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    
    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "store_backend": settings.store_backend,
    }


@app.get("/paragliding", include_in_schema=False)
async def root():
    """Redirect to the API info endpoint."""
    return RedirectResponse(url=API_PREFIX)


@app.get(API_PREFIX, response_model=ApiInfoResponse, tags=["Service"])
async def api_info(request: Request):
    """
    Service metadata.
    
    Returns:
        Uptime as an ISO-8601 duration, description and API version
    """
    return ApiInfoResponse(
        uptime=get_uptime(request.app.state.started_at),
        info="Service for Paragliding tracks.",
        version=settings.api_version,
    )


# Include API routers
app.include_router(api_v1_router, prefix=API_PREFIX)
app.include_router(admin_router, prefix=ADMIN_API_PREFIX)
