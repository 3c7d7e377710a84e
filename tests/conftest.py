"""Shared test fixtures."""

import copy
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

import pytest

from ngx_transform.config import Settings
from ngx_transform.containers import AppContainer
from ngx_transform.domain.profiles import Profile
from ngx_transform.domain.sessions import SessionRecord
from ngx_transform.services.analysis import AnalysisClient, AnalysisService
from ngx_transform.services.gateway import SessionGateway
from ngx_transform.services.images import ImageClient, ImageService
from ngx_transform.services.leads import Lead, LeadRepository, LeadService
from ngx_transform.services.notifications import (
    EmailClient,
    NotificationService,
    WebhookClient,
)
from ngx_transform.services.rate_limits import RateLimiter, RateLimitRepository
from ngx_transform.services.sessions import IntakeService, SessionRepository
from ngx_transform.services.storage import BlobStore, UploadSlot
from ngx_transform.services.uploads import UploadService
from ngx_transform.services.video import (
    VideoJobClient,
    VideoJobState,
    VideoOptions,
    VideoService,
)

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=UTC)
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"fake-png"

PROFILE_PAYLOAD: dict[str, object] = {
    "age": 28,
    "sex": "male",
    "heightCm": 178,
    "weightKg": 78,
    "level": "intermedio",
    "goal": "definicion",
    "weeklyTime": 4,
}


def fixed_clock() -> datetime:
    return FIXED_NOW


def stage_payload(month: int) -> dict[str, object]:
    return {
        "month": month,
        "title": f"Stage {month}",
        "description": f"Month {month} projection",
        "mental": "Stay consistent",
        "stats": {"strength": 40 + month, "aesthetics": 50, "endurance": 45, "mental": 60},
        "imagePrompt": f"Photorealistic portrait at month {month}",
        "expectations": ["Better posture"] if month == 0 else [],
        "risks": ["Poor sleep"] if month == 0 else [],
    }


def analysis_payload() -> dict[str, object]:
    return {
        "insightsText": "Solid base with room to cut body fat.",
        "timeline": {f"m{month}": stage_payload(month) for month in (0, 4, 8, 12)},
        "overlays": {
            "m0": [{"x": 0.4, "y": 0.55, "label": "Core"}],
            "m4": [],
            "m8": [],
            "m12": [],
        },
        "userVisualAnchor": "Short dark hair, brown eyes, light stubble.",
        "heroNarrative": "You show up every day. The mirror notices.",
        "videoPrompt": "8-second vertical cinematic training montage.",
    }


def make_profile() -> Profile:
    return Profile.model_validate(PROFILE_PAYLOAD)


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository for tests."""

    sessions: dict[str, SessionRecord] = field(default_factory=dict)
    fail_create: bool = False
    fail_ready: bool = False

    def create_session(self, record: SessionRecord) -> None:
        if self.fail_create:
            raise RuntimeError("Failed to create session")
        if record.share_id in self.sessions:
            raise RuntimeError("Duplicate share id")
        self.sessions[record.share_id] = record

    def get_session(self, share_id: str) -> SessionRecord | None:
        return self.sessions.get(share_id)

    def update_session(self, share_id: str, changes: dict[str, object]) -> None:
        if self.fail_ready and changes.get("status") == "ready":
            raise RuntimeError("Failed to update session")
        session = self.sessions[share_id]
        self.sessions[share_id] = replace(session, updated_at=FIXED_NOW, **changes)

    def transition(
        self, share_id: str, from_statuses: set[str], changes: dict[str, object]
    ) -> bool:
        session = self.sessions.get(share_id)
        if session is None or session.status not in from_statuses:
            return False
        self.update_session(share_id, changes)
        return True

    def delete_session(self, share_id: str) -> None:
        self.sessions.pop(share_id, None)


@dataclass
class InMemoryRateLimitRepository(RateLimitRepository):
    """In-memory counters for tests."""

    counts: dict[str, int] = field(default_factory=dict)

    def get_count(self, key: str) -> int | None:
        return self.counts.get(key)

    def save_count(self, key: str, count: int, identifier: str, day: str) -> None:
        self.counts[key] = count

    def compare_and_set_count(self, key: str, expected: int, count: int) -> bool:
        if self.counts.get(key) != expected:
            return False
        self.counts[key] = count
        return True


@dataclass
class InMemoryLeadRepository(LeadRepository):
    """In-memory lead repository for tests."""

    leads: dict[str, Lead] = field(default_factory=dict)

    def upsert_lead(self, lead: Lead) -> None:
        self.leads[lead.email] = lead


@dataclass
class InMemoryBlobStore(BlobStore):
    """In-memory blob store that signs URLs with their TTL."""

    objects: dict[str, bytes] = field(default_factory=dict)
    signed: list[tuple[str, int]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    def signed_url(self, path: str, expires_in: int) -> str:
        self.signed.append((path, expires_in))
        return f"https://storage.test/{path}?expires={expires_in}"

    def create_upload_slot(self, path: str) -> UploadSlot:
        return UploadSlot(
            path=path, url=f"https://storage.test/upload/{path}", token="upload-token"
        )

    def download(self, path: str) -> bytes:
        if path not in self.objects:
            raise FileNotFoundError(path)
        return self.objects[path]

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        self.objects[path] = data

    def delete(self, paths: list[str]) -> None:
        for path in paths:
            self.deleted.append(path)
            self.objects.pop(path, None)


@dataclass
class FakeAnalysisClient(AnalysisClient):
    """Fake analysis client returning a fixed payload."""

    payload: dict[str, object] = field(default_factory=analysis_payload)
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def analyze(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.calls.append({"model": model, "image_url": image_url, "prompt": prompt})
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.payload)


@dataclass
class FakeImageClient(ImageClient):
    """Fake image client returning PNG bytes."""

    prompts: list[str] = field(default_factory=list)

    async def generate(
        self, *, model: str, prompt: str, reference_image: bytes, mime_type: str
    ) -> bytes:
        self.prompts.append(prompt)
        return PNG_BYTES


@dataclass
class FakeVideoJobClient(VideoJobClient):
    """Fake video job that completes after a number of polls."""

    polls_until_done: int = 2
    error: str | None = None
    content: bytes = b"fake-mp4"
    submitted: list[dict[str, object]] = field(default_factory=list)
    poll_count: int = 0
    supported: bool = True

    def supports(self, model: str, options: VideoOptions) -> bool:
        return self.supported

    async def submit(  # noqa: PLR0913
        self,
        *,
        model: str,
        prompt: str,
        reference_image: bytes,
        mime_type: str,
        options: VideoOptions,
    ) -> str:
        self.submitted.append(
            {"model": model, "prompt": prompt, "mime_type": mime_type, "options": options}
        )
        return "job-1"

    async def poll(self, job_id: str) -> VideoJobState:
        self.poll_count += 1
        if self.poll_count < self.polls_until_done:
            return VideoJobState(done=False)
        return VideoJobState(done=True, error=self.error)

    async def fetch(self, job_id: str) -> bytes:
        return self.content


@dataclass
class FakeWebhookClient(WebhookClient):
    """Records webhook events."""

    events: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    fail: bool = False

    async def post_event(self, url: str, payload: dict[str, object]) -> None:
        if self.fail:
            raise RuntimeError("webhook down")
        self.events.append((url, payload))


@dataclass
class FakeEmailClient(EmailClient):
    """Records sent emails."""

    sent: list[dict[str, str]] = field(default_factory=list)
    fail: bool = False

    async def send_email(self, *, sender: str, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise RuntimeError("email down")
        self.sent.append({"sender": sender, "to": to, "subject": subject, "html": html})


async def no_sleep(_seconds: float) -> None:
    return None


def make_session(
    repository: InMemorySessionRepository,
    blob_store: InMemoryBlobStore,
    share_id: str = "abc123def456",
    **changes: object,
) -> SessionRecord:
    photo_path = "uploads/seed/original.png"
    blob_store.objects.setdefault(photo_path, PNG_BYTES)
    record = SessionRecord(
        share_id=share_id,
        email=None,
        input=make_profile(),
        photo_path=photo_path,
        status="pending",
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )
    record = replace(record, **changes)
    repository.sessions[share_id] = record
    return record


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        openai_api_key="openai-key",
        resend_api_key="resend-key",
        session_webhook_url="https://hooks.test/ngx",
        public_base_url="https://ngx.test",
    )


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def ip_limits() -> InMemoryRateLimitRepository:
    return InMemoryRateLimitRepository()


@pytest.fixture
def email_limits() -> InMemoryRateLimitRepository:
    return InMemoryRateLimitRepository()


@pytest.fixture
def analysis_client() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture
def video_client() -> FakeVideoJobClient:
    return FakeVideoJobClient()


@pytest.fixture
def webhook_client() -> FakeWebhookClient:
    return FakeWebhookClient()


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    session_repository: InMemorySessionRepository,
    blob_store: InMemoryBlobStore,
    ip_limits: InMemoryRateLimitRepository,
    email_limits: InMemoryRateLimitRepository,
    analysis_client: FakeAnalysisClient,
    video_client: FakeVideoJobClient,
    webhook_client: FakeWebhookClient,
    email_client: FakeEmailClient,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        upload_service=UploadService(blob_store, seed_factory=lambda: "seed42"),
        intake_service=IntakeService(
            session_repository=session_repository,
            ip_rate_limiter=RateLimiter(
                ip_limits,
                limit=settings.max_sessions_per_ip_per_day,
                message="Rate limit exceeded. Vuelve mañana.",
                clock=fixed_clock,
            ),
            email_rate_limiter=RateLimiter(
                email_limits,
                limit=settings.max_sessions_per_email_per_day,
                message="Demasiados intentos para este correo hoy.",
                clock=fixed_clock,
            ),
            clock=fixed_clock,
        ),
        analysis_service=AnalysisService(
            client=analysis_client,
            session_repository=session_repository,
            blob_store=blob_store,
            model=settings.openai_model,
            reasoning_effort=settings.openai_reasoning_effort,
            store=settings.openai_store,
            clock=fixed_clock,
        ),
        image_service=ImageService(
            client=FakeImageClient(),
            session_repository=session_repository,
            blob_store=blob_store,
            model=settings.openai_image_model,
            clock=fixed_clock,
        ),
        video_service=VideoService(
            client=video_client,
            session_repository=session_repository,
            blob_store=blob_store,
            model=settings.openai_video_model,
            sleep=no_sleep,
            clock=fixed_clock,
        ),
        session_gateway=SessionGateway(session_repository, blob_store),
        lead_service=LeadService(InMemoryLeadRepository()),
        notification_service=NotificationService(
            webhook_client=webhook_client,
            email_client=email_client,
            webhook_url=settings.session_webhook_url,
            base_url=settings.public_base_url,
            sender=settings.email_from,
        ),
        close_resources=close_resources,
    )
