"""Application lifecycle: builds the enrichment pipeline on startup, tears it down on shutdown.

Startup order:
1. Logging
2. Database (+ create_all when auto_create_tables is on)
3. Shared httpx client -> ExternalApiClient -> provider adapters
4. Event bus, image validator/downloader/store
5. Persisted metadata.* settings -> EnrichmentConfig -> Orchestrator and services

Shutdown runs in reverse: cancel running enrichments first (they still want to write
their log rows), then close the HTTP pool, then the database.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI

from echometa.application.services.conflict_service import ConflictService
from echometa.application.services.enrichment_orchestrator import EnrichmentOrchestrator
from echometa.application.services.enrichment_stats_service import EnrichmentStatsService
from echometa.application.services.image_validator import ImageValidator
from echometa.application.services.metadata_settings_service import (
    MetadataSettingsService,
)
from echometa.application.services.progress_notifier import ProgressNotifier
from echometa.config import Settings, get_settings
from echometa.infrastructure.integrations import (
    ApiImageDownloader,
    ExternalApiClient,
    HttpClientPool,
)
from echometa.infrastructure.notifications import EnrichmentEventBus
from echometa.infrastructure.observability import configure_logging
from echometa.infrastructure.persistence import Database, unit_of_work_factory
from echometa.infrastructure.providers import build_default_registry
from echometa.infrastructure.storage import LocalImageStore

logger = logging.getLogger(__name__)


@dataclass
class EnrichmentServices:
    """Everything the API layer pulls from app.state."""

    db: Database
    event_bus: EnrichmentEventBus
    orchestrator: EnrichmentOrchestrator
    conflict_service: ConflictService
    stats_service: EnrichmentStatsService
    settings_service: MetadataSettingsService

    def attach(self, app: FastAPI) -> None:
        app.state.db = self.db
        app.state.event_bus = self.event_bus
        app.state.orchestrator = self.orchestrator
        app.state.conflict_service = self.conflict_service
        app.state.stats_service = self.stats_service
        app.state.settings_service = self.settings_service


async def build_services(settings: Settings) -> EnrichmentServices:
    """Wire the whole pipeline from settings."""
    db = Database(settings)
    if settings.database.auto_create_tables:
        await db.create_tables()

    mb = settings.musicbrainz
    http_client = await HttpClientPool.get_client(
        timeout=settings.http.default_timeout * 3,
        user_agent=f"{mb.app_name}/{mb.app_version} ( {mb.contact} )",
    )
    api = ExternalApiClient(
        http_client,
        default_timeout=settings.http.default_timeout,
        max_concurrent_per_provider=settings.http.max_concurrent_per_provider,
    )
    providers = build_default_registry(api, settings.musicbrainz).ordered()

    event_bus = EnrichmentEventBus()
    validator = ImageValidator(
        max_image_bytes=settings.images.max_image_bytes,
        max_avatar_bytes=settings.images.max_avatar_bytes,
    )
    downloader = ApiImageDownloader(api)
    store = LocalImageStore(settings.images.storage_path)
    uow_factory = unit_of_work_factory(db)

    settings_service = MetadataSettingsService(uow_factory, settings)
    config = await settings_service.load_config()

    orchestrator = EnrichmentOrchestrator(
        uow_factory,
        providers,
        config,
        image_downloader=downloader,
        image_store=store,
        image_validator=validator,
        notifier=ProgressNotifier(event_bus),
    )
    logger.info(
        "Enrichment pipeline ready (providers=%s, auto_enrich=%s)",
        [p.value for p in config.enabled_providers()],
        config.auto_enrich_enabled,
    )
    return EnrichmentServices(
        db=db,
        event_bus=event_bus,
        orchestrator=orchestrator,
        conflict_service=ConflictService(uow_factory, downloader, store, validator),
        stats_service=EnrichmentStatsService(uow_factory),
        settings_service=settings_service,
    )


async def shutdown_services(services: EnrichmentServices) -> None:
    try:
        await services.orchestrator.shutdown()
    except Exception as e:
        logger.exception("Error stopping running enrichments: %s", e)

    try:
        await HttpClientPool.close()
    except Exception as e:
        logger.exception("Error closing HTTP client pool: %s", e)

    try:
        await services.db.close()
        logger.info("Database connection closed")
    except Exception as e:
        logger.exception("Error closing database: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    configure_logging(
        settings.observability.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.musicbrainz.app_name,
    )
    logger.info("Starting echometa")

    services = await build_services(settings)
    services.attach(app)
    try:
        yield
    finally:
        logger.info("Shutting down echometa")
        await shutdown_services(services)
