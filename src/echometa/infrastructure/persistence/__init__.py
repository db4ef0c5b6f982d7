"""Persistence layer: database, models and repositories."""

from echometa.infrastructure.persistence.database import Database
from echometa.infrastructure.persistence.repositories import (
    AppSettingsRepository,
    EnrichmentLogRepository,
    LibraryEntityRepository,
    MetadataConflictRepository,
)
from echometa.infrastructure.persistence.unit_of_work import (
    EnrichmentUnitOfWork,
    unit_of_work_factory,
)

__all__ = [
    "AppSettingsRepository",
    "Database",
    "EnrichmentLogRepository",
    "EnrichmentUnitOfWork",
    "LibraryEntityRepository",
    "MetadataConflictRepository",
    "unit_of_work_factory",
]
