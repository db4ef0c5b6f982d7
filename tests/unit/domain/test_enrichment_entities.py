"""Unit tests for the enrichment domain entities.

Covers the run state machine, provider gating in EnrichmentConfig and the small
helpers the orchestrator uses to label conflicts and log rows.
"""

import pytest

from echometa.domain.entities import (
    AutoSearchSettings,
    ConflictAction,
    ConflictStatus,
    EnrichmentConfig,
    EnrichmentRun,
    EntityType,
    MetadataConflict,
    MetadataField,
    ProviderConfig,
    ProviderName,
    ProviderResult,
    RunPhase,
    RunStatus,
    conflict_priority,
    fields_for,
    metadata_type_for,
)
from echometa.domain.exceptions import (
    ExternalApiError,
    ImageErrorReason,
    ImageProcessingError,
    OperationTimeoutError,
)


class TestEnrichmentRun:
    """Tests for the run phase machine."""

    def test_full_path_with_search(self) -> None:
        run = EnrichmentRun(EntityType.ARTIST, "a-1")

        run.advance(RunPhase.SEARCHING)
        run.advance(RunPhase.FETCHING)
        run.advance(RunPhase.MERGING)
        run.complete()

        assert run.phase is RunPhase.COMPLETED
        assert run.status is RunStatus.COMPLETED
        assert run.finished_at is not None

    def test_search_phase_is_optional(self) -> None:
        run = EnrichmentRun(EntityType.ALBUM, "b-1")

        run.advance(RunPhase.FETCHING)

        assert run.phase is RunPhase.FETCHING

    @pytest.mark.parametrize(
        ("start", "target"),
        [
            (RunPhase.IDLE, RunPhase.MERGING),
            (RunPhase.SEARCHING, RunPhase.MERGING),
            (RunPhase.FETCHING, RunPhase.COMPLETED),
        ],
    )
    def test_illegal_jumps_are_refused(self, start: RunPhase, target: RunPhase) -> None:
        run = EnrichmentRun(EntityType.ARTIST, "a-1", phase=start)

        with pytest.raises(ValueError, match="Illegal run transition"):
            run.advance(target)

    def test_terminal_phases_have_no_exit(self) -> None:
        run = EnrichmentRun(EntityType.ARTIST, "a-1")
        run.advance(RunPhase.FETCHING)
        run.advance(RunPhase.MERGING)
        run.complete()

        with pytest.raises(ValueError):
            run.advance(RunPhase.ERROR)

    def test_fail_keeps_completed_phase(self) -> None:
        """fail() from a cleanup path must not rewrite a finished run's phase."""
        run = EnrichmentRun(EntityType.ARTIST, "a-1")
        run.advance(RunPhase.FETCHING)
        run.advance(RunPhase.MERGING)
        run.complete()
        finished_at = run.finished_at

        run.fail()

        assert run.phase is RunPhase.COMPLETED
        assert run.status is RunStatus.ERROR
        assert run.finished_at == finished_at

    def test_key_is_type_and_id(self) -> None:
        run = EnrichmentRun(EntityType.ALBUM, "b-9")
        assert run.key == (EntityType.ALBUM, "b-9")


class TestEnrichmentConfig:
    def test_keyless_providers_enabled_by_default(self) -> None:
        config = EnrichmentConfig()

        assert config.enabled_providers() == [
            ProviderName.MUSICBRAINZ,
            ProviderName.COVERARTARCHIVE,
        ]

    def test_key_providers_need_a_key(self) -> None:
        config = EnrichmentConfig(
            providers={
                ProviderName.LASTFM: ProviderConfig(enabled=True, api_key=None),
                ProviderName.FANART: ProviderConfig(enabled=True, api_key="abc"),
            }
        )

        assert not config.is_enabled(ProviderName.LASTFM)
        assert config.is_enabled(ProviderName.FANART)

    def test_disabled_provider_stays_off_with_key(self) -> None:
        config = EnrichmentConfig(
            providers={ProviderName.FANART: ProviderConfig(enabled=False, api_key="abc")}
        )
        assert not config.is_enabled(ProviderName.FANART)

    def test_enabled_providers_follow_priority_order(self) -> None:
        config = EnrichmentConfig(
            providers={
                ProviderName.FANART: ProviderConfig(api_key="f"),
                ProviderName.LASTFM: ProviderConfig(api_key="l"),
            }
        )

        assert config.enabled_providers() == [
            ProviderName.MUSICBRAINZ,
            ProviderName.COVERARTARCHIVE,
            ProviderName.LASTFM,
            ProviderName.FANART,
        ]

    def test_config_is_frozen(self) -> None:
        config = EnrichmentConfig(auto_search=AutoSearchSettings(confidence_threshold=0.9))

        with pytest.raises(AttributeError):
            config.auto_enrich_enabled = True  # type: ignore[misc]


class TestProviderTrust:
    @pytest.mark.parametrize(
        ("provider", "trusted"),
        [
            (ProviderName.MUSICBRAINZ, True),
            (ProviderName.COVERARTARCHIVE, True),
            (ProviderName.LASTFM, False),
            (ProviderName.FANART, False),
        ],
    )
    def test_trust_tiers(self, provider: ProviderName, trusted: bool) -> None:
        assert provider.is_trusted is trusted

    def test_provider_labels_are_stable(self) -> None:
        # These strings are persisted and filtered on by the UI
        assert [p.value for p in ProviderName] == [
            "musicbrainz",
            "coverartarchive",
            "lastfm",
            "fanart",
        ]


class TestFieldHelpers:
    def test_artist_and_album_field_sets(self) -> None:
        assert MetadataField.COVER_IMAGE not in fields_for(EntityType.ARTIST)
        assert MetadataField.PROFILE_IMAGE not in fields_for(EntityType.ALBUM)
        assert MetadataField.MBID in fields_for(EntityType.ALBUM)

    @pytest.mark.parametrize(
        ("metadata_field", "priority"),
        [
            (MetadataField.MBID, 1),
            (MetadataField.PROFILE_IMAGE, 2),
            (MetadataField.COVER_IMAGE, 2),
            (MetadataField.BIO, 3),
            (MetadataField.TAGS, 4),
        ],
    )
    def test_conflict_priority(self, metadata_field: MetadataField, priority: int) -> None:
        assert conflict_priority(metadata_field) == priority

    def test_metadata_type_is_sorted_and_deduplicated(self) -> None:
        label = metadata_type_for(
            [
                MetadataField.TAGS,
                MetadataField.PROFILE_IMAGE,
                MetadataField.BACKGROUND_IMAGE,
                MetadataField.BIO,
            ]
        )
        assert label == "bio,images,tags"

    def test_metadata_type_for_nothing(self) -> None:
        assert metadata_type_for([]) == "none"


class TestMetadataConflict:
    def test_propose_derives_priority(self) -> None:
        conflict = MetadataConflict.propose(
            EntityType.ARTIST,
            "a-1",
            "Radiohead",
            ProviderName.LASTFM,
            MetadataField.BIO,
            "New bio",
        )

        assert conflict.priority == 3
        assert conflict.is_pending
        assert conflict.preview_url is None

    def test_preview_url_only_for_images(self) -> None:
        conflict = MetadataConflict.propose(
            EntityType.ARTIST,
            "a-1",
            "Radiohead",
            ProviderName.FANART,
            MetadataField.BACKGROUND_IMAGE,
            "https://assets.fanart.tv/bg.jpg",
        )
        assert conflict.preview_url == "https://assets.fanart.tv/bg.jpg"

    def test_actions_map_to_terminal_statuses(self) -> None:
        for action in ConflictAction:
            assert action.target_status.is_terminal
        assert not ConflictStatus.PENDING.is_terminal


class TestTaggedResults:
    def test_ok_skip_and_failure(self) -> None:
        ok = ProviderResult.ok(ProviderName.MUSICBRAINZ, {MetadataField.BIO: "x"})
        skipped = ProviderResult.skip(ProviderName.FANART)
        failed = ProviderResult.failure(
            ProviderName.LASTFM, ExternalApiError("lastfm", "HTTP 500", http_status=500)
        )

        assert ok.is_ok
        assert not skipped.is_ok
        assert not failed.is_ok


class TestErrorSerialization:
    """Hey future me - these dicts are what the API and the log rows carry."""

    def test_external_api_error(self) -> None:
        error = ExternalApiError(
            "lastfm",
            "HTTP 503",
            http_status=503,
            http_status_text="Service Unavailable",
            url="https://ws.audioscrobbler.com/2.0/",
        )

        assert error.is_retryable
        assert error.to_dict() == {
            "code": "EXTERNAL_API_ERROR",
            "message": "HTTP 503",
            "provider": "lastfm",
            "httpStatus": 503,
            "httpStatusText": "Service Unavailable",
            "url": "https://ws.audioscrobbler.com/2.0/",
        }

    @pytest.mark.parametrize("status", [400, 401, 404, 500, None])
    def test_only_429_and_503_retry(self, status: int | None) -> None:
        assert not ExternalApiError("x", "boom", http_status=status).is_retryable

    def test_timeout_error(self) -> None:
        error = OperationTimeoutError("fetch", 10000, provider="musicbrainz")

        assert error.message == "fetch timed out after 10000ms"
        assert error.to_dict()["code"] == "TIMEOUT"
        assert error.to_dict()["timeoutMs"] == 10000

    def test_image_error_defaults_message_to_reason(self) -> None:
        error = ImageProcessingError(ImageErrorReason.FILE_TOO_LARGE)
        assert error.message == "FILE_TOO_LARGE"
        assert error.to_dict()["reason"] == "FILE_TOO_LARGE"
