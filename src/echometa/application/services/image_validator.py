"""Image validation gate.

Hey future me - NOTHING image-shaped reaches an entity or a conflict without passing
through here. Checks run cheapest first: content type (free), size (free), then
Pillow decode (CPU, runs in a thread). The first failing check wins, so a 15MB JPEG
is FILE_TOO_LARGE without ever being decoded.
"""

import asyncio
import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from echometa.domain.entities import MetadataField
from echometa.domain.exceptions import ImageErrorReason, ImageProcessingError
from echometa.domain.ports import DownloadedImage

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})

# Some CDNs still send the non-standard alias
_MIME_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}

DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_AVATAR_BYTES = 5 * 1024 * 1024


def normalize_mime_type(declared: str | None) -> str:
    """'image/JPEG; charset=binary' -> 'image/jpeg'."""
    if not declared:
        return ""
    mime = declared.split(";", 1)[0].strip().lower()
    return _MIME_ALIASES.get(mime, mime)


@dataclass
class ImageValidationResult:
    """Tagged validation outcome: either the accepted image or the refusal."""

    content: bytes = b""
    mime_type: str = ""
    width: int = 0
    height: int = 0
    error: ImageProcessingError | None = None

    @classmethod
    def failure(
        cls, reason: ImageErrorReason, message: str | None = None
    ) -> "ImageValidationResult":
        return cls(error=ImageProcessingError(reason, message))

    @property
    def is_ok(self) -> bool:
        return self.error is None


def _read_dimensions(content: bytes) -> tuple[int, int]:
    """Decode header and verify the stream (runs in a worker thread)."""
    with Image.open(BytesIO(content)) as img:
        width, height = img.size
        img.verify()
    return width, height


class ImageValidator:
    """Content-type, size and decodability checks for fetched images."""

    def __init__(
        self,
        max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
        max_avatar_bytes: int = DEFAULT_MAX_AVATAR_BYTES,
    ) -> None:
        self.max_image_bytes = max_image_bytes
        self.max_avatar_bytes = max_avatar_bytes

    def max_bytes_for(self, metadata_field: MetadataField | None) -> int:
        # Profile pictures are avatars, everything else is a general image
        if metadata_field is MetadataField.PROFILE_IMAGE:
            return self.max_avatar_bytes
        return self.max_image_bytes

    async def validate(
        self,
        content: bytes,
        declared_mime_type: str | None,
        metadata_field: MetadataField | None = None,
    ) -> ImageValidationResult:
        mime_type = normalize_mime_type(declared_mime_type)
        if mime_type not in ALLOWED_MIME_TYPES:
            return ImageValidationResult.failure(
                ImageErrorReason.INVALID_CONTENT_TYPE,
                f"Content type '{declared_mime_type}' is not an allowed image type",
            )

        max_bytes = self.max_bytes_for(metadata_field)
        if len(content) > max_bytes:
            return ImageValidationResult.failure(
                ImageErrorReason.FILE_TOO_LARGE,
                f"Image is {len(content)} bytes, limit is {max_bytes}",
            )

        try:
            width, height = await asyncio.to_thread(_read_dimensions, content)
        except Image.DecompressionBombError as e:
            return ImageValidationResult.failure(ImageErrorReason.INVALID_DIMENSIONS, str(e))
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
            # Pillow raises SyntaxError for some corrupt headers (PNG chunks)
            return ImageValidationResult.failure(
                ImageErrorReason.INVALID_IMAGE, f"Not a decodable image: {e}"
            )

        if width <= 0 or height <= 0:
            return ImageValidationResult.failure(
                ImageErrorReason.INVALID_DIMENSIONS,
                f"Could not determine image dimensions ({width}x{height})",
            )

        return ImageValidationResult(
            content=content, mime_type=mime_type, width=width, height=height
        )

    async def validate_download(
        self, download: DownloadedImage, metadata_field: MetadataField | None = None
    ) -> ImageValidationResult:
        """Validate a fetch result; a failed fetch becomes DOWNLOAD_FAILED."""
        if download.error is not None:
            return ImageValidationResult.failure(
                ImageErrorReason.DOWNLOAD_FAILED,
                f"Download of {download.url} failed: {download.error.message}",
            )
        return await self.validate(download.content, download.content_type, metadata_field)
