"""FastAPI application factory."""

import uvicorn
from fastapi import FastAPI

from echometa.api.exception_handlers import register_exception_handlers
from echometa.api.routers import api_router
from echometa.config import Settings, get_settings
from echometa.infrastructure.lifecycle import lifespan

API_PREFIX = "/api/metadata"


# Hey future me, pass `settings` in tests (temp SQLite file, temp image dir). The
# lifespan picks them up from app.state; without them it falls back to get_settings().
def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="echometa",
        version=settings.musicbrainz.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    register_exception_handlers(app)
    app.include_router(api_router, prefix=API_PREFIX)
    return app


def run() -> None:
    """Console entry point: `echometa` serves on 0.0.0.0:8765."""
    uvicorn.run("echometa.main:create_app", factory=True, host="0.0.0.0", port=8765)
