"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from ngx_transform.domain.analysis import TransformationAnalysis
from ngx_transform.domain.profiles import Profile
from ngx_transform.domain.sessions import SessionRecord, VideoAsset
from ngx_transform.services.sessions import SessionRepository

_TABLE = "sessions"
_COLUMNS = (
    "share_id, email, input, photo, analysis, assets, video, status, "
    "error_message, created_at, updated_at, analyzed_at, images_generated_at, "
    "video_generated_at"
)


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for transformation sessions."""

    client: Client

    def create_session(self, record: SessionRecord) -> None:
        """Insert a session row."""
        response = self.client.table(_TABLE).insert(_to_row(record)).execute()
        if not response.data:
            raise RuntimeError("Failed to create session")

    def get_session(self, share_id: str) -> SessionRecord | None:
        """Return a session by share id, if present."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("share_id", share_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _from_row(response.data[0])

    def transition(
        self, share_id: str, from_statuses: set[str], changes: dict[str, object]
    ) -> bool:
        """Conditionally update; true when a row matched the expected status."""
        response = (
            self.client.table(_TABLE)
            .update(_serialize_changes(changes))
            .eq("share_id", share_id)
            .in_("status", sorted(from_statuses))
            .execute()
        )
        return bool(response.data)

    def delete_session(self, share_id: str) -> None:
        """Delete a session row."""
        self.client.table(_TABLE).delete().eq("share_id", share_id).execute()


def _to_row(record: SessionRecord) -> dict[str, object]:
    row = _serialize_changes(
        {
            "analysis": record.analysis,
            "images": record.images,
            "video": record.video,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }
    )
    row.update(
        {
            "share_id": record.share_id,
            "email": record.email,
            "input": record.input.to_document(),
            "photo": {"originalStoragePath": record.photo_path},
            "status": record.status,
            "error_message": record.error_message,
        }
    )
    return row


def _serialize_changes(changes: dict[str, object]) -> dict[str, object]:
    payload: dict[str, object] = {"updated_at": datetime.now(tz=UTC).isoformat()}
    for name, value in changes.items():
        if name == "images":
            payload["assets"] = {"images": dict(value)}
        elif isinstance(value, TransformationAnalysis | VideoAsset):
            payload[name] = value.to_document()
        elif isinstance(value, datetime):
            payload[name] = value.isoformat()
        else:
            payload[name] = value
    return payload


def _from_row(row: dict[str, object]) -> SessionRecord:
    photo = row.get("photo") or {}
    assets = row.get("assets") or {}
    analysis = row.get("analysis")
    video = row.get("video")
    return SessionRecord(
        share_id=row["share_id"],
        email=row.get("email"),
        input=Profile.model_validate(row["input"]),
        photo_path=photo.get("originalStoragePath"),
        status=row["status"],
        analysis=TransformationAnalysis.model_validate(analysis) if analysis else None,
        images=dict(assets.get("images") or {}),
        video=VideoAsset.from_document(video) if video else None,
        error_message=row.get("error_message"),
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
        analyzed_at=_parse_timestamp(row.get("analyzed_at")),
        images_generated_at=_parse_timestamp(row.get("images_generated_at")),
        video_generated_at=_parse_timestamp(row.get("video_generated_at")),
    )


def _parse_timestamp(value: object) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(str(value))
