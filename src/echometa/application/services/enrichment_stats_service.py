"""Enrichment history and statistics."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from echometa.domain.entities import (
    EnrichmentLog,
    EnrichmentLogStatus,
    EntityType,
    HistoryFilters,
    utc_now,
)
from echometa.domain.exceptions import ValidationError
from echometa.domain.ports import UnitOfWorkFactory

PERIODS = ("today", "week", "month", "all")
MAX_PAGE_SIZE = 200
RECENT_ACTIVITY_DAYS = 30


def period_start(period: str, now: datetime | None = None) -> datetime | None:
    """Lower bound for a stats period (None means no bound)."""
    now = now or utc_now()
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return now - timedelta(days=30)
    if period == "all":
        return None
    raise ValidationError(f"Unknown stats period '{period}', expected one of {PERIODS}")


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total else 0.0


@dataclass
class ProviderStats:
    provider: str
    total: int = 0
    success: int = 0
    partial: int = 0
    error: int = 0

    @property
    def success_rate(self) -> float:
        return _rate(self.success, self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "total": self.total,
            "success": self.success,
            "partial": self.partial,
            "error": self.error,
            "successRate": self.success_rate,
        }


@dataclass
class EnrichmentStats:
    total_enrichments: int = 0
    success_count: int = 0
    partial_count: int = 0
    error_count: int = 0
    by_provider: list[ProviderStats] = field(default_factory=list)
    by_entity_type: dict[str, int] = field(default_factory=dict)
    average_processing_time: int = 0
    recent_activity: list[dict[str, Any]] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        return _rate(self.success_count, self.total_enrichments)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalEnrichments": self.total_enrichments,
            "successCount": self.success_count,
            "partialCount": self.partial_count,
            "errorCount": self.error_count,
            "successRate": self.success_rate,
            "byProvider": [stats.to_dict() for stats in self.by_provider],
            "byEntityType": self.by_entity_type,
            "averageProcessingTime": self.average_processing_time,
            "recentActivity": self.recent_activity,
        }


def aggregate(logs: list[EnrichmentLog]) -> EnrichmentStats:
    """Fold log rows into the stats shape the dashboard shows."""
    stats = EnrichmentStats(
        by_entity_type={entity_type.value: 0 for entity_type in EntityType}
    )
    providers: dict[str, ProviderStats] = {}
    per_day: Counter[str] = Counter()
    total_time = 0

    for log in logs:
        stats.total_enrichments += 1
        stats.by_entity_type[log.entity_type.value] += 1
        total_time += log.processing_time_ms
        per_day[log.created_at.date().isoformat()] += 1

        provider_stats = providers.setdefault(
            log.provider.value, ProviderStats(provider=log.provider.value)
        )
        provider_stats.total += 1
        if log.status is EnrichmentLogStatus.SUCCESS:
            stats.success_count += 1
            provider_stats.success += 1
        elif log.status is EnrichmentLogStatus.PARTIAL:
            stats.partial_count += 1
            provider_stats.partial += 1
        else:
            stats.error_count += 1
            provider_stats.error += 1

    stats.by_provider = sorted(providers.values(), key=lambda p: (-p.total, p.provider))
    if stats.total_enrichments:
        stats.average_processing_time = round(total_time / stats.total_enrichments)
    stats.recent_activity = [
        {"date": day, "count": per_day[day]}
        for day in sorted(per_day)[-RECENT_ACTIVITY_DAYS:]
    ]
    return stats


class EnrichmentStatsService:
    """Read side of the enrichment log."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow = uow_factory

    async def get_stats(self, period: str = "all") -> EnrichmentStats:
        since = period_start(period)
        async with self._uow() as uow:
            logs = await uow.logs.list_since(since)
        return aggregate(logs)

    async def list_history(
        self, filters: HistoryFilters
    ) -> tuple[list[EnrichmentLog], int]:
        if filters.skip < 0 or filters.take < 1 or filters.take > MAX_PAGE_SIZE:
            raise ValidationError(
                f"skip must be >= 0 and take between 1 and {MAX_PAGE_SIZE}"
            )
        if (
            filters.start_date is not None
            and filters.end_date is not None
            and filters.start_date > filters.end_date
        ):
            raise ValidationError("start_date must not be after end_date")
        async with self._uow() as uow:
            return await uow.logs.list_history(filters)

