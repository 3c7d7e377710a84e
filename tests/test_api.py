"""Tests for the HTTP API."""

import httpx
from fastapi.testclient import TestClient

from ngx_transform.api.app import create_app
from ngx_transform.domain.sessions import VideoAsset
from tests.conftest import (
    PROFILE_PAYLOAD,
    FakeEmailClient,
    FakeWebhookClient,
    InMemoryBlobStore,
    InMemoryRateLimitRepository,
    InMemorySessionRepository,
    make_session,
)


def _create_session(
    client: TestClient, ip: str = "10.0.0.1", **extra: str
) -> httpx.Response:
    body = {"input": PROFILE_PAYLOAD, "photoPath": "uploads/seed42/original.png"}
    body.update(extra)
    return client.post("/sessions", json=body, headers={"x-forwarded-for": ip})


def test_health(container) -> None:
    client = TestClient(create_app(container))
    assert client.get("/health").json() == {"status": "ok"}


def test_upload_slot(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/uploads", json={"contentType": "image/png"})

    assert response.status_code == 200
    assert response.json() == {
        "photoPath": "uploads/seed42/original.png",
        "uploadUrl": "https://storage.test/upload/uploads/seed42/original.png",
        "token": "upload-token",
    }


def test_upload_rejects_unknown_type(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/uploads", json={"contentType": "image/gif"})

    assert response.status_code == 400
    assert "error" in response.json()


def test_full_transformation_flow(
    container,
    session_repository: InMemorySessionRepository,
    blob_store: InMemoryBlobStore,
    webhook_client: FakeWebhookClient,
) -> None:
    client = TestClient(create_app(container))
    blob_store.objects["uploads/seed42/original.png"] = b"\x89PNG\r\n\x1a\nphoto"

    created = _create_session(client, email="runner@example.com")
    assert created.status_code == 200
    share_id = created.json()["sessionId"]
    assert session_repository.sessions[share_id].status == "pending"
    fresh = client.get(f"/sessions/{share_id}").json()
    assert fresh["status"] == "pending"
    assert fresh["analysis"] is None
    assert webhook_client.events[0][1]["shareId"] == share_id

    analyzed = client.post("/analyze", json={"sessionId": share_id})
    assert analyzed.status_code == 200
    assert set(analyzed.json()["analysis"]["timeline"]) == {"m0", "m4", "m8", "m12"}
    assert session_repository.sessions[share_id].status == "analyzed"

    video = client.post("/generate-video", json={"sessionId": share_id})
    assert video.status_code == 200
    assert video.json()["video"]["storagePath"] == (
        f"sessions/{share_id}/video/transformation.mp4"
    )
    assert session_repository.sessions[share_id].status == "ready"

    again = client.post("/generate-video", json={"sessionId": share_id})
    assert again.json()["message"] == "Video already generated"

    public = client.get(f"/sessions/{share_id}").json()
    assert public["status"] == "ready"
    assert "email" not in public

    video_url = client.get(f"/sessions/{share_id}/video-url").json()
    assert video_url["videoUrl"].endswith("?expires=7200")


def test_generate_video_before_analysis_is_rejected(
    container, session_repository, blob_store
) -> None:
    make_session(session_repository, blob_store)
    client = TestClient(create_app(container))

    response = client.post("/generate-video", json={"sessionId": "abc123def456"})

    assert response.status_code == 400
    assert response.json() == {"error": "Session not analyzed. Run /analyze first."}


def test_generate_video_rejects_invalid_duration(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/generate-video", json={"sessionId": "abc123def456", "durationSeconds": 5}
    )

    assert response.status_code == 400


def test_generate_images_endpoint(container, session_repository, blob_store) -> None:
    client = TestClient(create_app(container))
    blob_store.objects["uploads/seed42/original.png"] = b"\x89PNG\r\n\x1a\nphoto"
    share_id = _create_session(client).json()["sessionId"]
    client.post("/analyze", json={"sessionId": share_id})

    response = client.post(
        "/generate-images", json={"sessionId": share_id, "steps": ["m12"]}
    )

    assert response.status_code == 200
    assert response.json()["images"] == {"m12": f"sessions/{share_id}/images/m12.png"}
    urls = client.get(f"/sessions/{share_id}/urls").json()
    assert set(urls["images"]) == {"m12"}


def test_ip_rate_limit_returns_429(container, session_repository) -> None:
    client = TestClient(create_app(container))
    for _ in range(3):
        assert _create_session(client).status_code == 200

    response = _create_session(client)

    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded. Vuelve mañana."}
    assert len(session_repository.sessions) == 3


def test_email_rate_limit_rolls_back_ip_counter(
    container, ip_limits: InMemoryRateLimitRepository
) -> None:
    client = TestClient(create_app(container))
    assert _create_session(client, ip="10.0.0.1", email="a@example.com").status_code == 200
    assert _create_session(client, ip="10.0.0.2", email="A@example.com").status_code == 200

    response = _create_session(client, ip="10.0.0.3", email="a@example.com")

    assert response.status_code == 429
    assert ip_limits.counts["10.0.0.3-2026-03-14"] == 0


def test_missing_forwarded_for_skips_ip_limit(
    container, ip_limits: InMemoryRateLimitRepository
) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/sessions",
        json={"input": PROFILE_PAYLOAD, "photoPath": "uploads/seed42/original.png"},
    )

    assert response.status_code == 200
    assert ip_limits.counts == {}


def test_create_session_validates_profile(container) -> None:
    client = TestClient(create_app(container))
    profile = dict(PROFILE_PAYLOAD, age=7)

    response = client.post(
        "/sessions", json={"input": profile, "photoPath": "uploads/x/original.png"}
    )

    assert response.status_code == 400
    assert "error" in response.json()


def test_unknown_session_returns_404(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/sessions/missing").status_code == 404
    assert client.post("/analyze", json={"sessionId": "missing"}).status_code == 404


def test_analyze_while_generating_returns_400(
    container, session_repository, blob_store
) -> None:
    make_session(session_repository, blob_store, status="generating")
    client = TestClient(create_app(container))

    response = client.post("/analyze", json={"sessionId": "abc123def456"})

    assert response.status_code == 400


def test_delete_session_twice(container, session_repository, blob_store) -> None:
    make_session(session_repository, blob_store)
    client = TestClient(create_app(container))

    first = client.delete("/sessions/abc123def456")
    second = client.delete("/sessions/abc123def456")

    assert first.json() == {"ok": True}
    assert second.json() == {"ok": True}
    assert client.get("/sessions/abc123def456").status_code == 404


def test_og_image_redirects(container, session_repository, blob_store) -> None:
    make_session(
        session_repository,
        blob_store,
        status="ready",
        images={"m12": "sessions/abc123def456/images/m12.png"},
        video=VideoAsset("sessions/abc123def456/video/transformation.mp4", 8, "720p"),
    )
    client = TestClient(create_app(container))

    response = client.get("/sessions/abc123def456/og-image", follow_redirects=False)

    assert response.status_code == 307
    assert "images/m12.png" in response.headers["location"]


def test_capture_lead(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/leads", json={"email": "Lead@Example.com", "source": "landing"}
    )

    assert response.status_code == 200
    repository = container.lead_service.repository
    assert repository.leads["lead@example.com"].source == "landing"


def test_results_email(container, email_client: FakeEmailClient) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/email", json={"to": "runner@example.com", "shareId": "abc123def456"}
    )

    assert response.status_code == 200
    assert "https://ngx.test/s/abc123def456" in email_client.sent[0]["html"]
