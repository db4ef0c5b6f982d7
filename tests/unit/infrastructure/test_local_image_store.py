"""Tests for LocalImageStore."""

from pathlib import Path

from echometa.domain.entities import EntityType, MetadataField
from echometa.infrastructure.storage import LocalImageStore


class TestLocalImageStore:
    async def test_writes_under_entity_folder(self, tmp_path: Path, png_bytes: bytes) -> None:
        store = LocalImageStore(tmp_path)

        path = await store.save(
            EntityType.ARTIST, "a-1", MetadataField.PROFILE_IMAGE, png_bytes, "image/png"
        )

        assert path == "artists/a-1/profile_image.png"
        assert (tmp_path / path).read_bytes() == png_bytes

    async def test_extension_follows_mime_type(self, tmp_path: Path) -> None:
        store = LocalImageStore(tmp_path)

        jpeg = await store.save(
            EntityType.ALBUM, "b-1", MetadataField.COVER_IMAGE, b"jpeg", "image/jpeg; q=1"
        )
        unknown = await store.save(
            EntityType.ALBUM, "b-1", MetadataField.BIO, b"??", "application/octet-stream"
        )

        assert jpeg == "albums/b-1/cover_image.jpg"
        assert unknown.endswith(".img")

    async def test_overwrites_previous_image(self, tmp_path: Path) -> None:
        store = LocalImageStore(str(tmp_path))

        await store.save(EntityType.ALBUM, "b-1", MetadataField.COVER_IMAGE, b"old", "image/png")
        path = await store.save(
            EntityType.ALBUM, "b-1", MetadataField.COVER_IMAGE, b"new", "image/png"
        )

        assert (tmp_path / path).read_bytes() == b"new"
