"""Local filesystem store for validated images."""

import asyncio
import logging
from pathlib import Path

from echometa.domain.entities import EntityType, MetadataField
from echometa.domain.ports import IImageStore

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class LocalImageStore(IImageStore):
    """Writes images to <base>/<entityType>s/<entityId>/<field>.<ext>.

    Returns the path relative to the base directory, which is what the
    library rows keep in their *_path columns.
    """

    def __init__(self, base_path: Path | str) -> None:
        self.base_path = Path(base_path)

    async def save(
        self,
        entity_type: EntityType,
        entity_id: str,
        metadata_field: MetadataField,
        content: bytes,
        mime_type: str,
    ) -> str:
        extension = _EXTENSIONS.get(mime_type.split(";")[0].strip().lower(), "img")
        relative_path = f"{entity_type.value}s/{entity_id}/{metadata_field.value}.{extension}"
        full_path = self.base_path / relative_path

        def _write() -> None:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_bytes(content)

        await asyncio.to_thread(_write)

        logger.debug("Saved image to store: %s (%d bytes)", relative_path, len(content))
        return relative_path
