"""API router initialization."""

# Hey future me, this is the MAIN API router aggregator! main.py mounts it under
# /api/metadata, so enrichment.router ("/enrichment") becomes /api/metadata/enrichment/...
# Each sub-router carries its own prefix and tags.

from fastapi import APIRouter

from echometa.api.routers import conflicts, enrichment, settings

api_router = APIRouter()

api_router.include_router(enrichment.router)
api_router.include_router(conflicts.router)
api_router.include_router(settings.router)

__all__ = ["api_router"]
