"""Read and delete operations exposed to clients."""

import logging
from dataclasses import dataclass

from ngx_transform.domain.errors import NotFound
from ngx_transform.domain.sessions import SessionRecord
from ngx_transform.services.images import IMAGE_STEPS, image_storage_path
from ngx_transform.services.sessions import SessionRepository
from ngx_transform.services.storage import (
    IMAGE_URL_TTL_SECONDS,
    SOCIAL_PREVIEW_URL_TTL_SECONDS,
    VIDEO_URL_TTL_SECONDS,
    BlobStore,
)
from ngx_transform.services.video import video_storage_path

logger = logging.getLogger(__name__)

_PREVIEW_PREFERENCE = ("m12", "m8", "m4")


@dataclass
class SessionGateway:
    """Public projections, signed asset URLs and cascading delete."""

    session_repository: SessionRepository
    blob_store: BlobStore

    def get_public_session(self, share_id: str) -> dict[str, object]:
        """Return the display-safe view of a session."""
        return public_view(self._require(share_id))

    def get_asset_urls(self, share_id: str) -> dict[str, object]:
        """Mint fresh signed URLs for the original photo and image variants."""
        session = self._require(share_id)
        result: dict[str, object] = {}
        if session.photo_path:
            result["originalUrl"] = self.blob_store.signed_url(
                session.photo_path, IMAGE_URL_TTL_SECONDS
            )
        if session.images:
            result["images"] = {
                step: self.blob_store.signed_url(path, IMAGE_URL_TTL_SECONDS)
                for step, path in session.images.items()
            }
        return result

    def get_video_url(self, share_id: str) -> dict[str, object]:
        """Mint a signed URL for the generated video."""
        session = self._require(share_id)
        if session.video is None:
            raise NotFound("Video not yet generated")
        return {
            "videoUrl": self.blob_store.signed_url(
                session.video.storage_path, VIDEO_URL_TTL_SECONDS
            ),
            "durationSeconds": session.video.duration_seconds,
            "resolution": session.video.resolution,
            "status": session.status,
        }

    def get_social_preview_url(self, share_id: str) -> str:
        """Return a long-lived URL of the best image for link previews."""
        session = self._require(share_id)
        path = next(
            (session.images[step] for step in _PREVIEW_PREFERENCE if step in session.images),
            session.photo_path,
        )
        if not path:
            raise NotFound("No image available")
        return self.blob_store.signed_url(path, SOCIAL_PREVIEW_URL_TTL_SECONDS)

    def delete_session(self, share_id: str) -> None:
        """Delete the session and every blob it references; missing is a no-op."""
        session = self.session_repository.get_session(share_id)
        if session is None:
            return
        paths = list(session.images.values())
        paths += [image_storage_path(share_id, step) for step in IMAGE_STEPS]
        paths.append(video_storage_path(share_id))
        if session.video:
            paths.append(session.video.storage_path)
        if session.photo_path:
            paths.append(session.photo_path)
        self.blob_store.delete(sorted(set(paths)))
        self.session_repository.delete_session(share_id)
        logger.info("Session deleted", extra={"share_id": share_id})

    def _require(self, share_id: str) -> SessionRecord:
        session = self.session_repository.get_session(share_id)
        if session is None:
            raise NotFound("Session not found")
        return session


def public_view(session: SessionRecord) -> dict[str, object]:
    """Serialize a session without contact details or internal timestamps."""
    return {
        "shareId": session.share_id,
        "status": session.status,
        "input": session.input.to_document(),
        "analysis": session.analysis.to_document() if session.analysis else None,
        "assets": {"images": dict(session.images)},
        "video": session.video.to_document() if session.video else None,
        "photo": {"originalStoragePath": session.photo_path},
        "errorMessage": session.error_message,
        "createdAt": session.created_at.isoformat() if session.created_at else None,
    }
