"""Stage image variants rendered from the analysis prompts."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from ngx_transform.domain.errors import (
    ConfigurationError,
    MissingInput,
    NotFound,
    PreconditionFailed,
    SessionConflict,
    TransformError,
    UpstreamFailure,
)
from ngx_transform.domain.models import utcnow
from ngx_transform.domain.sessions import (
    STATUS_ANALYZED,
    STATUS_ERROR,
    STATUS_GENERATING,
    STATUS_READY,
)
from ngx_transform.services.sessions import SessionRepository, mark_session_error
from ngx_transform.services.storage import BlobStore, detect_mime_type

logger = logging.getLogger(__name__)

IMAGE_STEPS = ("m4", "m8", "m12")
IMAGE_SOURCE_STATUSES = {STATUS_ANALYZED, STATUS_ERROR}


def image_storage_path(share_id: str, step: str) -> str:
    return f"sessions/{share_id}/images/{step}.png"


class ImageClient(Protocol):
    """Interface for the image model."""

    async def generate(
        self, *, model: str, prompt: str, reference_image: bytes, mime_type: str
    ) -> bytes:
        """Return PNG bytes for the prompt, conditioned on the reference."""


@dataclass
class ImageService:
    """Renders m4/m8/m12 variants of the original photo."""

    client: ImageClient | None
    session_repository: SessionRepository
    blob_store: BlobStore
    model: str
    clock: Callable[[], datetime] = utcnow

    async def generate(
        self, share_id: str, steps: list[str] | None = None
    ) -> dict[str, str]:
        """Generate the requested stage images and return step -> path."""
        requested = [step for step in IMAGE_STEPS if not steps or step in steps]
        if self.client is None:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        session = self.session_repository.get_session(share_id)
        if session is None:
            raise NotFound("Session not found")
        if session.status == STATUS_READY and all(
            step in session.images for step in requested
        ):
            return dict(session.images)
        if session.analysis is None:
            raise PreconditionFailed("Session not analyzed. Run /analyze first.")
        if not session.photo_path:
            raise MissingInput("Missing photo")
        if session.status not in IMAGE_SOURCE_STATUSES:
            raise SessionConflict(f"Session is {session.status}")
        if not self.session_repository.transition(
            share_id,
            IMAGE_SOURCE_STATUSES,
            {"status": STATUS_GENERATING, "error_message": None},
        ):
            raise SessionConflict("Generation already started for this session")

        images = dict(session.images)
        try:
            reference = self.blob_store.download(session.photo_path)
            mime_type = detect_mime_type(reference)
            for step in requested:
                entry = getattr(session.analysis.timeline, step)
                data = await self.client.generate(
                    model=self.model,
                    prompt=entry.image_prompt,
                    reference_image=reference,
                    mime_type=mime_type,
                )
                path = image_storage_path(share_id, step)
                self.blob_store.upload(path, data, "image/png")
                images[step] = path
            if not self.session_repository.transition(
                share_id,
                {STATUS_GENERATING},
                {
                    "images": images,
                    "status": STATUS_READY,
                    "images_generated_at": self.clock(),
                },
            ):
                raise SessionConflict("Session moved on while generation was running")
        except Exception as exc:
            logger.exception("Image generation failed", extra={"share_id": share_id})
            error = (
                exc
                if isinstance(exc, TransformError)
                else UpstreamFailure(f"Image generation failed: {exc}")
            )
            mark_session_error(
                self.session_repository,
                share_id,
                error.message,
                from_statuses={STATUS_GENERATING},
            )
            if error is exc:
                raise
            raise error from exc

        return images
