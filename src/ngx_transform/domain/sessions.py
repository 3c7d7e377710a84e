"""Domain models for transformation sessions."""

from dataclasses import dataclass, field
from datetime import datetime

from ngx_transform.domain.analysis import TransformationAnalysis
from ngx_transform.domain.profiles import Profile

STATUS_PENDING = "pending"
STATUS_ANALYZED = "analyzed"
STATUS_GENERATING = "generating"
STATUS_READY = "ready"
STATUS_ERROR = "error"

TERMINAL_STATUSES = frozenset({STATUS_READY, STATUS_ERROR})


@dataclass(frozen=True)
class VideoAsset:
    """Generated video stored in the blob store."""

    storage_path: str
    duration_seconds: int
    resolution: str

    def to_document(self) -> dict[str, object]:
        """Serialize with camelCase keys."""
        return {
            "storagePath": self.storage_path,
            "durationSeconds": self.duration_seconds,
            "resolution": self.resolution,
        }

    @classmethod
    def from_document(cls, data: dict[str, object]) -> "VideoAsset":
        """Build from a stored camelCase document."""
        return cls(
            storage_path=str(data["storagePath"]),
            duration_seconds=int(data.get("durationSeconds", 0)),
            resolution=str(data.get("resolution", "")),
        )


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted transformation session."""

    share_id: str
    email: str | None
    input: Profile
    photo_path: str | None
    status: str
    analysis: TransformationAnalysis | None = None
    images: dict[str, str] = field(default_factory=dict)
    video: VideoAsset | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    analyzed_at: datetime | None = None
    images_generated_at: datetime | None = None
    video_generated_at: datetime | None = None
