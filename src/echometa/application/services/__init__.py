"""Application services."""

from echometa.application.services.confidence_scorer import ConfidenceScorer
from echometa.application.services.conflict_service import ConflictService
from echometa.application.services.enrichment_orchestrator import (
    EnrichmentOrchestrator,
    EnrichmentReport,
)
from echometa.application.services.enrichment_stats_service import (
    EnrichmentStats,
    EnrichmentStatsService,
)
from echometa.application.services.image_validator import (
    ImageValidationResult,
    ImageValidator,
)
from echometa.application.services.metadata_settings_service import (
    MetadataSettingsService,
)
from echometa.application.services.progress_notifier import ProgressNotifier

__all__ = [
    "ConfidenceScorer",
    "ConflictService",
    "EnrichmentOrchestrator",
    "EnrichmentReport",
    "EnrichmentStats",
    "EnrichmentStatsService",
    "ImageValidationResult",
    "ImageValidator",
    "MetadataSettingsService",
    "ProgressNotifier",
]
