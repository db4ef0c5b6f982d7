"""Tests for ConflictService against the real SQLite conflict store."""

from typing import Any

import pytest

from echometa.application.services.conflict_service import ConflictService
from echometa.domain.entities import (
    ConflictFilters,
    ConflictStatus,
    EntityType,
    MetadataConflict,
    MetadataField,
    ProviderName,
)
from echometa.domain.exceptions import (
    ConflictAlreadyResolvedError,
    EntityNotFoundError,
    ExternalApiError,
    ImageErrorReason,
    ImageProcessingError,
    ValidationError,
)
from echometa.domain.ports import DownloadedImage
from echometa.infrastructure.persistence.repositories import MetadataConflictRepository
from tests.fakes import FakeImageDownloader, FakeImageStore


@pytest.fixture
def service(
    uow_factory, image_downloader: FakeImageDownloader, image_store: FakeImageStore
) -> ConflictService:
    return ConflictService(uow_factory, image_downloader, image_store)


async def _queue(
    uow_factory,
    entity_id: str,
    metadata_field: MetadataField,
    value: Any,
    provider: ProviderName = ProviderName.LASTFM,
    entity_type: EntityType = EntityType.ARTIST,
) -> MetadataConflict:
    conflict = MetadataConflict.propose(
        entity_type,
        entity_id,
        "The Beatles",
        provider,
        metadata_field,
        value,
    )
    async with uow_factory() as uow:
        return await uow.conflicts.upsert_pending(conflict)


class TestAccept:
    async def test_accept_bio_updates_entity(
        self, service: ConflictService, uow_factory, artist_id: str
    ) -> None:
        conflict = await _queue(uow_factory, artist_id, MetadataField.BIO, "Liverpool band.")

        resolved = await service.accept(conflict.id, resolved_by="admin")

        assert resolved.status is ConflictStatus.ACCEPTED
        assert resolved.resolved_by == "admin"
        assert resolved.resolved_at is not None
        async with uow_factory() as uow:
            target = await uow.entities.get_target(EntityType.ARTIST, artist_id)
        assert target.current(MetadataField.BIO) == "Liverpool band."

    async def test_accept_tags_keeps_list_shape(
        self, service: ConflictService, uow_factory, artist_id: str
    ) -> None:
        conflict = await _queue(uow_factory, artist_id, MetadataField.TAGS, ["rock", "pop"])

        await service.accept(conflict.id)

        async with uow_factory() as uow:
            target = await uow.entities.get_target(EntityType.ARTIST, artist_id)
        assert target.current(MetadataField.TAGS) == ["rock", "pop"]

    async def test_second_accept_is_refused(
        self, service: ConflictService, uow_factory, artist_id: str
    ) -> None:
        conflict = await _queue(uow_factory, artist_id, MetadataField.BIO, "Bio")
        await service.accept(conflict.id)

        with pytest.raises(ConflictAlreadyResolvedError) as exc_info:
            await service.accept(conflict.id)

        assert exc_info.value.status == "accepted"

    async def test_accept_image_stores_bytes(
        self,
        service: ConflictService,
        uow_factory,
        artist_id: str,
        image_store: FakeImageStore,
    ) -> None:
        conflict = await _queue(
            uow_factory,
            artist_id,
            MetadataField.BACKGROUND_IMAGE,
            "https://assets.fanart.tv/bg.png",
            provider=ProviderName.FANART,
        )

        await service.accept(conflict.id)

        assert f"artists/{artist_id}/background_image.png" in image_store.saved
        async with uow_factory() as uow:
            target = await uow.entities.get_target(EntityType.ARTIST, artist_id)
        assert target.current(MetadataField.BACKGROUND_IMAGE) == "https://assets.fanart.tv/bg.png"

    async def test_invalid_image_stays_pending(
        self,
        service: ConflictService,
        uow_factory,
        artist_id: str,
        image_downloader: FakeImageDownloader,
        image_store: FakeImageStore,
    ) -> None:
        """Hey future me - the bytes can change between queueing and accepting."""
        url = "https://assets.fanart.tv/now-a-gif.gif"
        image_downloader.responses[url] = DownloadedImage(
            url=url, content=b"GIF89a", content_type="image/gif"
        )
        conflict = await _queue(
            uow_factory,
            artist_id,
            MetadataField.PROFILE_IMAGE,
            url,
            provider=ProviderName.FANART,
        )

        with pytest.raises(ImageProcessingError) as exc_info:
            await service.accept(conflict.id)

        assert exc_info.value.reason is ImageErrorReason.INVALID_CONTENT_TYPE
        assert image_store.saved == {}
        assert (await service.get(conflict.id)).status is ConflictStatus.PENDING

    async def test_failed_download_stays_pending(
        self,
        service: ConflictService,
        uow_factory,
        artist_id: str,
        image_downloader: FakeImageDownloader,
    ) -> None:
        url = "https://assets.fanart.tv/gone.png"
        image_downloader.responses[url] = DownloadedImage(
            url=url, error=ExternalApiError("fanart", "HTTP 404", http_status=404)
        )
        conflict = await _queue(
            uow_factory,
            artist_id,
            MetadataField.PROFILE_IMAGE,
            url,
            provider=ProviderName.FANART,
        )

        with pytest.raises(ImageProcessingError) as exc_info:
            await service.accept(conflict.id)

        assert exc_info.value.reason is ImageErrorReason.DOWNLOAD_FAILED
        assert (await service.get(conflict.id)).is_pending


class TestRejectAndIgnore:
    @pytest.mark.parametrize(
        ("action", "status"),
        [("reject", ConflictStatus.REJECTED), ("ignore", ConflictStatus.IGNORED)],
    )
    async def test_entity_untouched(
        self,
        service: ConflictService,
        uow_factory,
        artist_id: str,
        action: str,
        status: ConflictStatus,
    ) -> None:
        conflict = await _queue(uow_factory, artist_id, MetadataField.BIO, "Spam")

        resolved = await service.resolve(conflict.id, action)

        assert resolved.status is status
        async with uow_factory() as uow:
            target = await uow.entities.get_target(EntityType.ARTIST, artist_id)
            dismissed = await uow.conflicts.is_dismissed(
                artist_id, MetadataField.BIO, ProviderName.LASTFM, "Spam"
            )
        assert target.current(MetadataField.BIO) is None
        assert dismissed

    async def test_reject_after_accept_is_refused(
        self, service: ConflictService, uow_factory, artist_id: str
    ) -> None:
        conflict = await _queue(uow_factory, artist_id, MetadataField.BIO, "Bio")
        await service.accept(conflict.id)

        with pytest.raises(ConflictAlreadyResolvedError):
            await service.reject(conflict.id)


class TestErrors:
    async def test_unknown_action(
        self, service: ConflictService, uow_factory, artist_id: str
    ) -> None:
        conflict = await _queue(uow_factory, artist_id, MetadataField.BIO, "Bio")

        with pytest.raises(ValidationError, match="Unknown conflict action"):
            await service.resolve(conflict.id, "approve")

    async def test_missing_conflict(self, service: ConflictService) -> None:
        with pytest.raises(EntityNotFoundError):
            await service.accept("does-not-exist")

    async def test_conflict_deleted_mid_resolve(
        self, service: ConflictService, uow_factory, artist_id: str, mocker
    ) -> None:
        conflict = await _queue(uow_factory, artist_id, MetadataField.BIO, "Bio")
        mocker.patch.object(
            MetadataConflictRepository, "get", side_effect=[conflict, None]
        )

        with pytest.raises(EntityNotFoundError, match=conflict.id):
            await service.reject(conflict.id)

    @pytest.mark.parametrize(("skip", "take"), [(-1, 10), (0, 0), (0, 201)])
    async def test_bad_paging(self, service: ConflictService, skip: int, take: int) -> None:
        with pytest.raises(ValidationError):
            await service.list_conflicts(ConflictFilters(skip=skip, take=take))


class TestListing:
    async def test_pending_list_is_priority_ordered(
        self, service: ConflictService, uow_factory, artist_id: str
    ) -> None:
        await _queue(uow_factory, artist_id, MetadataField.TAGS, ["rock"])
        await _queue(uow_factory, artist_id, MetadataField.BIO, "Bio")
        await _queue(
            uow_factory,
            artist_id,
            MetadataField.MBID,
            "mb-1",
            provider=ProviderName.MUSICBRAINZ,
        )

        conflicts, total = await service.list_conflicts(ConflictFilters())

        assert total == 3
        assert [c.field for c in conflicts] == [
            MetadataField.MBID,
            MetadataField.BIO,
            MetadataField.TAGS,
        ]

    async def test_resolved_conflicts_leave_the_pending_list(
        self, service: ConflictService, uow_factory, artist_id: str
    ) -> None:
        conflict = await _queue(uow_factory, artist_id, MetadataField.BIO, "Bio")
        await service.ignore(conflict.id)

        pending, total = await service.list_conflicts(ConflictFilters())
        ignored, _ = await service.list_conflicts(
            ConflictFilters(status=ConflictStatus.IGNORED)
        )

        assert (pending, total) == ([], 0)
        assert [c.id for c in ignored] == [conflict.id]

    async def test_entity_conflicts(
        self, service: ConflictService, uow_factory, artist_id: str, album_id: str
    ) -> None:
        await _queue(uow_factory, artist_id, MetadataField.BIO, "Artist bio")
        await _queue(
            uow_factory,
            album_id,
            MetadataField.BIO,
            "Album bio",
            entity_type=EntityType.ALBUM,
        )

        conflicts = await service.get_entity_conflicts(EntityType.ALBUM, album_id)

        assert [c.proposed_value for c in conflicts] == ["Album bio"]
