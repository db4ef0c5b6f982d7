"""Dependency injection for API endpoints."""

from typing import cast

from fastapi import Request

from echometa.application.services.conflict_service import ConflictService
from echometa.application.services.enrichment_orchestrator import EnrichmentOrchestrator
from echometa.application.services.enrichment_stats_service import EnrichmentStatsService
from echometa.application.services.metadata_settings_service import (
    MetadataSettingsService,
)
from echometa.infrastructure.notifications import EnrichmentEventBus


# Hey future me, everything below is built ONCE in the lifespan (see
# infrastructure/lifecycle.py) and parked on app.state. These getters only hand it
# out, they never construct anything. Tests override them via app.dependency_overrides
# or simply build the app with their own pieces on app.state.
def get_orchestrator(request: Request) -> EnrichmentOrchestrator:
    return cast(EnrichmentOrchestrator, request.app.state.orchestrator)


def get_conflict_service(request: Request) -> ConflictService:
    return cast(ConflictService, request.app.state.conflict_service)


def get_stats_service(request: Request) -> EnrichmentStatsService:
    return cast(EnrichmentStatsService, request.app.state.stats_service)


def get_settings_service(request: Request) -> MetadataSettingsService:
    return cast(MetadataSettingsService, request.app.state.settings_service)


def get_event_bus(request: Request) -> EnrichmentEventBus:
    return cast(EnrichmentEventBus, request.app.state.event_bus)
