"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from ngx_transform.api.models import (
    AnalyzeRequest,
    CreateSessionRequest,
    EmailRequest,
    GenerateImagesRequest,
    GenerateVideoRequest,
    LeadRequest,
    UploadRequest,
)
from ngx_transform.app_logging import configure_logging
from ngx_transform.config import parse_client_ip
from ngx_transform.containers import AppContainer
from ngx_transform.domain.errors import TransformError
from ngx_transform.services.video import VideoOptions


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(TransformError)
    async def transform_error_handler(
        request: Request, exc: TransformError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc.message, extra={"path": request.url.path})
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400, content={"error": jsonable_encoder(exc.errors())}
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(
            status_code=500,
            content={"error": _format_unexpected_error(container, exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/uploads")
    async def create_upload(body: UploadRequest, request: Request) -> dict[str, str]:
        """Reserve a signed upload URL for the original photo."""
        state_container: AppContainer = request.app.state.container
        slot = state_container.upload_service.create_photo_slot(body.content_type)
        return {"photoPath": slot.path, "uploadUrl": slot.url, "token": slot.token}

    @app.post("/sessions")
    async def create_session(
        body: CreateSessionRequest, request: Request, background_tasks: BackgroundTasks
    ) -> dict[str, str]:
        """Create a session behind the daily rate limits."""
        state_container: AppContainer = request.app.state.container
        session = state_container.intake_service.create_session(
            profile=body.input,
            photo_path=body.photo_path,
            email=body.email,
            client_ip=parse_client_ip(request.headers.get("x-forwarded-for")),
        )
        background_tasks.add_task(
            state_container.notification_service.notify_session_created, session
        )
        return {"sessionId": session.share_id}

    @app.post("/analyze")
    async def analyze(body: AnalyzeRequest, request: Request) -> dict[str, object]:
        """Run the analysis model for a session."""
        state_container: AppContainer = request.app.state.container
        analysis = await state_container.analysis_service.analyze(body.session_id)
        return {"ok": True, "analysis": analysis.to_document()}

    @app.post("/generate-images")
    async def generate_images(
        body: GenerateImagesRequest, request: Request
    ) -> dict[str, object]:
        """Render stage image variants for an analyzed session."""
        state_container: AppContainer = request.app.state.container
        images = await state_container.image_service.generate(
            body.session_id, list(body.steps)
        )
        return {"ok": True, "images": images}

    @app.post("/generate-video")
    async def generate_video(
        body: GenerateVideoRequest, request: Request
    ) -> dict[str, object]:
        """Generate the transformation video for an analyzed session."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.video_service.generate(
            body.session_id,
            VideoOptions(
                duration_seconds=body.duration_seconds,
                resolution=body.resolution,
                aspect_ratio=body.aspect_ratio,
            ),
        )
        payload: dict[str, object] = {"ok": True, "video": result.video.to_document()}
        if result.reused:
            payload["message"] = "Video already generated"
        return payload

    @app.get("/sessions/{share_id}")
    async def get_session(share_id: str, request: Request) -> dict[str, object]:
        """Return the public projection of a session."""
        state_container: AppContainer = request.app.state.container
        return state_container.session_gateway.get_public_session(share_id)

    @app.delete("/sessions/{share_id}")
    async def delete_session(share_id: str, request: Request) -> dict[str, bool]:
        """Delete a session and its stored assets."""
        state_container: AppContainer = request.app.state.container
        state_container.session_gateway.delete_session(share_id)
        return {"ok": True}

    @app.get("/sessions/{share_id}/urls")
    async def get_asset_urls(share_id: str, request: Request) -> dict[str, object]:
        """Mint signed URLs for the photo and image variants."""
        state_container: AppContainer = request.app.state.container
        return state_container.session_gateway.get_asset_urls(share_id)

    @app.get("/sessions/{share_id}/video-url")
    async def get_video_url(share_id: str, request: Request) -> dict[str, object]:
        """Mint a signed URL for the generated video."""
        state_container: AppContainer = request.app.state.container
        return state_container.session_gateway.get_video_url(share_id)

    @app.get("/sessions/{share_id}/og-image")
    async def get_og_image(share_id: str, request: Request) -> RedirectResponse:
        """Redirect link-preview crawlers to the best session image."""
        state_container: AppContainer = request.app.state.container
        url = state_container.session_gateway.get_social_preview_url(share_id)
        return RedirectResponse(url, status_code=307)

    @app.post("/leads")
    async def capture_lead(body: LeadRequest, request: Request) -> dict[str, bool]:
        """Store a contact lead."""
        state_container: AppContainer = request.app.state.container
        state_container.lead_service.capture(body.email, body.source, body.consent)
        return {"ok": True}

    @app.post("/email")
    async def send_results_email(body: EmailRequest, request: Request) -> dict[str, bool]:
        """Email the share link for a session."""
        state_container: AppContainer = request.app.state.container
        await state_container.notification_service.send_results_email(
            body.to, body.share_id
        )
        return {"ok": True}

    return app


def _format_unexpected_error(container: AppContainer, exc: Exception) -> str:
    """Return a user-facing error message with local debug info."""
    if container.settings.environment == "local":
        detail = f"{type(exc).__name__}: {exc}".strip()
        if detail:
            return f"Unexpected error (debug: {detail})"
    return "Unexpected error"
