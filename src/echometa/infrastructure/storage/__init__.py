"""Image storage backends."""

from echometa.infrastructure.storage.local_image_store import LocalImageStore

__all__ = ["LocalImageStore"]
