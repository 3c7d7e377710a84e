"""Signed upload slots for intake photos."""

from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

from ngx_transform.domain.errors import ValidationError
from ngx_transform.services.storage import BlobStore, UploadSlot

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def _new_seed() -> str:
    return uuid4().hex


@dataclass
class UploadService:
    """Hands out blob-store paths for original photos."""

    blob_store: BlobStore
    seed_factory: Callable[[], str] = _new_seed

    def create_photo_slot(self, content_type: str) -> UploadSlot:
        """Reserve uploads/{seed}/original.{ext} and sign it for upload."""
        extension = _EXTENSIONS.get(content_type)
        if extension is None:
            raise ValidationError(f"Unsupported content type: {content_type}")
        path = f"uploads/{self.seed_factory()}/original.{extension}"
        return self.blob_store.create_upload_slot(path)
