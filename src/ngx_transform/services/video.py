"""Cinematic video generation for analyzed sessions."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
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
    ValidationError,
)
from ngx_transform.domain.models import utcnow
from ngx_transform.domain.sessions import (
    STATUS_ANALYZED,
    STATUS_ERROR,
    STATUS_GENERATING,
    STATUS_READY,
    VideoAsset,
)
from ngx_transform.services.sessions import SessionRepository, mark_session_error
from ngx_transform.services.storage import BlobStore, detect_mime_type

logger = logging.getLogger(__name__)

VIDEO_SOURCE_STATUSES = {STATUS_ANALYZED, STATUS_ERROR}


def video_storage_path(share_id: str) -> str:
    return f"sessions/{share_id}/video/transformation.mp4"


@dataclass(frozen=True)
class VideoJobState:
    """Snapshot of a remote video job."""

    done: bool
    error: str | None = None


@dataclass(frozen=True)
class VideoOptions:
    """Rendering options for a video job."""

    duration_seconds: int = 8
    resolution: str = "720p"
    aspect_ratio: str = "9:16"


@dataclass(frozen=True)
class VideoResult:
    """Outcome of a generate call."""

    video: VideoAsset
    reused: bool


class VideoJobClient(Protocol):
    """Submit, poll and fetch long-running video jobs."""

    def supports(self, model: str, options: VideoOptions) -> bool:
        """Return whether the model can render the requested format."""

    async def submit(  # noqa: PLR0913
        self,
        *,
        model: str,
        prompt: str,
        reference_image: bytes,
        mime_type: str,
        options: VideoOptions,
    ) -> str:
        """Start a job and return its id."""

    async def poll(self, job_id: str) -> VideoJobState:
        """Return the current job state."""

    async def fetch(self, job_id: str) -> bytes:
        """Download the finished video."""


@dataclass
class VideoService:
    """Runs the video job and reconciles it into the session."""

    client: VideoJobClient | None
    session_repository: SessionRepository
    blob_store: BlobStore
    model: str
    poll_interval_seconds: float = 10
    max_poll_attempts: int = 36
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], datetime] = utcnow

    async def generate(
        self, share_id: str, options: VideoOptions | None = None
    ) -> VideoResult:
        """Generate the session video, or return the existing one."""
        resolved = options or VideoOptions()
        if self.client is None:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        if not self.client.supports(self.model, resolved):
            raise ValidationError(
                f"{resolved.resolution} {resolved.aspect_ratio} video is not "
                f"available with {self.model}"
            )
        session = self.session_repository.get_session(share_id)
        if session is None:
            raise NotFound("Session not found")
        if session.video and session.status == STATUS_READY:
            logger.info("Video already exists", extra={"share_id": share_id})
            return VideoResult(video=session.video, reused=True)
        if session.analysis is None or not session.analysis.video_prompt:
            raise PreconditionFailed("Session not analyzed. Run /analyze first.")
        if not session.photo_path:
            raise MissingInput("Missing photo")
        if session.status not in VIDEO_SOURCE_STATUSES:
            raise SessionConflict(f"Session is {session.status}")
        if not self.session_repository.transition(
            share_id,
            VIDEO_SOURCE_STATUSES,
            {"status": STATUS_GENERATING, "error_message": None},
        ):
            raise SessionConflict("Generation already started for this session")

        logger.info("Starting video generation", extra={"share_id": share_id})
        storage_path = video_storage_path(share_id)
        try:
            reference = self.blob_store.download(session.photo_path)
            job_id = await self.client.submit(
                model=self.model,
                prompt=session.analysis.video_prompt,
                reference_image=reference,
                mime_type=detect_mime_type(reference),
                options=resolved,
            )
            await self._wait_for_job(job_id)
            video_bytes = await self.client.fetch(job_id)
            self.blob_store.upload(storage_path, video_bytes, "video/mp4")
            video = VideoAsset(
                storage_path=storage_path,
                duration_seconds=resolved.duration_seconds,
                resolution=resolved.resolution,
            )
            if not self.session_repository.transition(
                share_id,
                {STATUS_GENERATING},
                {
                    "video": video,
                    "status": STATUS_READY,
                    "video_generated_at": self.clock(),
                },
            ):
                raise SessionConflict("Session moved on while generation was running")
        except Exception as exc:
            logger.exception("Video generation failed", extra={"share_id": share_id})
            error = (
                exc
                if isinstance(exc, TransformError)
                else UpstreamFailure(f"Video generation failed: {exc}")
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

        logger.info("Video ready", extra={"share_id": share_id})
        return VideoResult(video=video, reused=False)

    async def _wait_for_job(self, job_id: str) -> None:
        state = await self.client.poll(job_id)
        attempts = 0
        while not state.done and attempts < self.max_poll_attempts:
            await self.sleep(self.poll_interval_seconds)
            state = await self.client.poll(job_id)
            attempts += 1
        if not state.done:
            waited = int(self.poll_interval_seconds * self.max_poll_attempts)
            raise UpstreamFailure(f"Video generation timed out after {waited}s")
        if state.error:
            raise UpstreamFailure(f"Video generation failed: {state.error}")
        logger.info("Video job finished", extra={"job_id": job_id, "polls": attempts})
