"""Tests for enrichment history and statistics."""

from datetime import UTC, datetime, timedelta

import pytest

from echometa.application.services.enrichment_stats_service import (
    EnrichmentStatsService,
    aggregate,
    period_start,
)
from echometa.domain.entities import (
    EnrichmentLog,
    EnrichmentLogStatus,
    EntityType,
    HistoryFilters,
    ProviderName,
)
from echometa.domain.exceptions import ValidationError


def _log(
    provider: ProviderName,
    status: EnrichmentLogStatus,
    entity_type: EntityType = EntityType.ARTIST,
    processing_time_ms: int = 100,
    created_at: datetime | None = None,
) -> EnrichmentLog:
    log = EnrichmentLog(
        entity_id="a-1",
        entity_type=entity_type,
        entity_name="Radiohead",
        provider=provider,
        metadata_type="bio",
        status=status,
        processing_time_ms=processing_time_ms,
    )
    if created_at is not None:
        log.created_at = created_at
    return log


class TestPeriodStart:
    NOW = datetime(2024, 5, 17, 15, 30, tzinfo=UTC)

    def test_today_is_midnight(self) -> None:
        assert period_start("today", self.NOW) == datetime(2024, 5, 17, tzinfo=UTC)

    def test_week_and_month(self) -> None:
        assert period_start("week", self.NOW) == self.NOW - timedelta(days=7)
        assert period_start("month", self.NOW) == self.NOW - timedelta(days=30)

    def test_all_has_no_bound(self) -> None:
        assert period_start("all", self.NOW) is None

    def test_unknown_period(self) -> None:
        with pytest.raises(ValidationError, match="Unknown stats period"):
            period_start("year", self.NOW)


class TestAggregate:
    def test_empty(self) -> None:
        stats = aggregate([])

        assert stats.total_enrichments == 0
        assert stats.success_rate == 0.0
        assert stats.by_entity_type == {"artist": 0, "album": 0}
        assert stats.average_processing_time == 0

    def test_counts_and_rates(self) -> None:
        stats = aggregate(
            [
                _log(ProviderName.MUSICBRAINZ, EnrichmentLogStatus.SUCCESS, processing_time_ms=100),
                _log(ProviderName.MUSICBRAINZ, EnrichmentLogStatus.SUCCESS, processing_time_ms=200),
                _log(ProviderName.LASTFM, EnrichmentLogStatus.ERROR, processing_time_ms=300),
                _log(
                    ProviderName.COVERARTARCHIVE,
                    EnrichmentLogStatus.PARTIAL,
                    entity_type=EntityType.ALBUM,
                    processing_time_ms=400,
                ),
            ]
        )

        assert stats.total_enrichments == 4
        assert (stats.success_count, stats.partial_count, stats.error_count) == (2, 1, 1)
        assert stats.success_rate == 50.0
        assert stats.average_processing_time == 250
        assert stats.by_entity_type == {"artist": 3, "album": 1}
        assert [p.provider for p in stats.by_provider] == [
            "musicbrainz",
            "coverartarchive",
            "lastfm",
        ]
        assert stats.by_provider[0].success_rate == 100.0

    def test_recent_activity_groups_by_day(self) -> None:
        day_one = datetime(2024, 5, 1, 10, tzinfo=UTC)
        day_two = datetime(2024, 5, 2, 10, tzinfo=UTC)

        stats = aggregate(
            [
                _log(ProviderName.MUSICBRAINZ, EnrichmentLogStatus.SUCCESS, created_at=day_one),
                _log(ProviderName.LASTFM, EnrichmentLogStatus.SUCCESS, created_at=day_one),
                _log(ProviderName.FANART, EnrichmentLogStatus.ERROR, created_at=day_two),
            ]
        )

        assert stats.recent_activity == [
            {"date": "2024-05-01", "count": 2},
            {"date": "2024-05-02", "count": 1},
        ]

    def test_to_dict_is_camel_case(self) -> None:
        payload = aggregate(
            [_log(ProviderName.MUSICBRAINZ, EnrichmentLogStatus.SUCCESS)]
        ).to_dict()

        assert payload["totalEnrichments"] == 1
        assert payload["byProvider"][0]["successRate"] == 100.0
        assert "averageProcessingTime" in payload


class TestService:
    @pytest.fixture
    def service(self, uow_factory) -> EnrichmentStatsService:
        return EnrichmentStatsService(uow_factory)

    async def test_stats_respect_period(self, service: EnrichmentStatsService, uow_factory) -> None:
        old = datetime.now(UTC) - timedelta(days=60)
        async with uow_factory() as uow:
            await uow.logs.add(_log(ProviderName.LASTFM, EnrichmentLogStatus.ERROR, created_at=old))
            await uow.logs.add(_log(ProviderName.MUSICBRAINZ, EnrichmentLogStatus.SUCCESS))

        everything = await service.get_stats("all")
        this_week = await service.get_stats("week")

        assert everything.total_enrichments == 2
        assert this_week.total_enrichments == 1
        assert this_week.success_rate == 100.0

    async def test_history_filters_and_paging(
        self, service: EnrichmentStatsService, uow_factory
    ) -> None:
        base = datetime.now(UTC) - timedelta(hours=1)
        async with uow_factory() as uow:
            for minute in range(5):
                await uow.logs.add(
                    _log(
                        ProviderName.MUSICBRAINZ,
                        EnrichmentLogStatus.SUCCESS,
                        created_at=base + timedelta(minutes=minute),
                    )
                )
            await uow.logs.add(_log(ProviderName.LASTFM, EnrichmentLogStatus.ERROR))

        page, total = await service.list_history(
            HistoryFilters(provider=ProviderName.MUSICBRAINZ, skip=1, take=2)
        )

        assert total == 5
        assert len(page) == 2
        # Newest first
        assert page[0].created_at > page[1].created_at

    async def test_history_rejects_inverted_range(self, service: EnrichmentStatsService) -> None:
        now = datetime.now(UTC)

        with pytest.raises(ValidationError):
            await service.list_history(
                HistoryFilters(start_date=now, end_date=now - timedelta(days=1))
            )

    @pytest.mark.parametrize(("skip", "take"), [(-1, 10), (0, 0), (0, 500)])
    async def test_history_rejects_bad_paging(
        self, service: EnrichmentStatsService, skip: int, take: int
    ) -> None:
        with pytest.raises(ValidationError):
            await service.list_history(HistoryFilters(skip=skip, take=take))
