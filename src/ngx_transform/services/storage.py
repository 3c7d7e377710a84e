"""Blob store interface and media helpers."""

from dataclasses import dataclass
from typing import Protocol

IMAGE_URL_TTL_SECONDS = 3600
VIDEO_URL_TTL_SECONDS = 7200
SOCIAL_PREVIEW_URL_TTL_SECONDS = 7 * 24 * 3600


@dataclass(frozen=True)
class UploadSlot:
    """Signed destination for a direct client upload."""

    path: str
    url: str
    token: str


class BlobStore(Protocol):
    """Interface for binary object storage."""

    def signed_url(self, path: str, expires_in: int) -> str:
        """Return a time-limited read URL for an object."""

    def create_upload_slot(self, path: str) -> UploadSlot:
        """Return a signed URL a client can upload an object to."""

    def download(self, path: str) -> bytes:
        """Return the bytes of an object."""

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Store bytes at a path, replacing any existing object."""

    def delete(self, paths: list[str]) -> None:
        """Delete objects; missing paths are ignored."""


def detect_mime_type(data: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
