"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from ngx_transform.adapters.openai_analysis_client import OpenAIAnalysisClient
from ngx_transform.adapters.openai_image_client import OpenAIImageClient
from ngx_transform.adapters.openai_video_client import OpenAIVideoClient
from ngx_transform.adapters.resend_email_client import ResendEmailClient
from ngx_transform.adapters.supabase_blob_store import SupabaseBlobStore
from ngx_transform.adapters.supabase_lead_repository import SupabaseLeadRepository
from ngx_transform.adapters.supabase_rate_limit_repository import (
    SupabaseRateLimitRepository,
)
from ngx_transform.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from ngx_transform.adapters.webhook_client import HttpxWebhookClient
from ngx_transform.config import Settings
from ngx_transform.services.analysis import AnalysisService
from ngx_transform.services.gateway import SessionGateway
from ngx_transform.services.images import ImageService
from ngx_transform.services.leads import LeadService
from ngx_transform.services.notifications import NotificationService
from ngx_transform.services.rate_limits import RateLimiter
from ngx_transform.services.sessions import IntakeService
from ngx_transform.services.uploads import UploadService
from ngx_transform.services.video import VideoService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    upload_service: UploadService
    intake_service: IntakeService
    analysis_service: AnalysisService
    image_service: ImageService
    video_service: VideoService
    session_gateway: SessionGateway
    lead_service: LeadService
    notification_service: NotificationService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    blob_store = SupabaseBlobStore(
        supabase_client, bucket=resolved_settings.supabase_storage_bucket
    )
    ip_rate_limiter = RateLimiter(
        SupabaseRateLimitRepository(
            supabase_client, table="rate_limits", identifier_column="ip"
        ),
        limit=resolved_settings.max_sessions_per_ip_per_day,
        message="Rate limit exceeded. Vuelve mañana.",
    )
    email_rate_limiter = RateLimiter(
        SupabaseRateLimitRepository(
            supabase_client, table="rate_limits_email", identifier_column="email"
        ),
        limit=resolved_settings.max_sessions_per_email_per_day,
        message="Demasiados intentos para este correo hoy.",
    )

    api_key = resolved_settings.openai_api_key
    analysis_client = OpenAIAnalysisClient.create(api_key) if api_key else None
    image_client = OpenAIImageClient.create(api_key) if api_key else None
    video_client = OpenAIVideoClient.create(api_key) if api_key else None

    webhook_client = HttpxWebhookClient.create()
    email_client = (
        ResendEmailClient.create(resolved_settings.resend_api_key)
        if resolved_settings.resend_api_key
        else None
    )

    async def close_resources() -> None:
        await webhook_client.close()
        if email_client is not None:
            await email_client.close()

    return AppContainer(
        settings=resolved_settings,
        upload_service=UploadService(blob_store),
        intake_service=IntakeService(
            session_repository=session_repository,
            ip_rate_limiter=ip_rate_limiter,
            email_rate_limiter=email_rate_limiter,
        ),
        analysis_service=AnalysisService(
            client=analysis_client,
            session_repository=session_repository,
            blob_store=blob_store,
            model=resolved_settings.openai_model,
            reasoning_effort=resolved_settings.openai_reasoning_effort,
            store=resolved_settings.openai_store,
        ),
        image_service=ImageService(
            client=image_client,
            session_repository=session_repository,
            blob_store=blob_store,
            model=resolved_settings.openai_image_model,
        ),
        video_service=VideoService(
            client=video_client,
            session_repository=session_repository,
            blob_store=blob_store,
            model=resolved_settings.openai_video_model,
            poll_interval_seconds=resolved_settings.video_poll_interval_seconds,
            max_poll_attempts=resolved_settings.video_poll_max_attempts,
        ),
        session_gateway=SessionGateway(session_repository, blob_store),
        lead_service=LeadService(SupabaseLeadRepository(supabase_client)),
        notification_service=NotificationService(
            webhook_client=webhook_client,
            email_client=email_client,
            webhook_url=resolved_settings.session_webhook_url,
            base_url=resolved_settings.public_base_url,
            sender=resolved_settings.email_from,
        ),
        close_resources=close_resources,
    )
