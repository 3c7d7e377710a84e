"""Request models for the HTTP API."""

from typing import Literal

from pydantic import Field

from ngx_transform.domain.models import EMAIL_PATTERN, CamelModel
from ngx_transform.domain.profiles import Profile


class UploadRequest(CamelModel):
    """Reserve an upload slot for the original photo."""

    content_type: Literal["image/jpeg", "image/png", "image/webp"] = "image/jpeg"


class CreateSessionRequest(CamelModel):
    """Intake payload from the wizard."""

    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    input: Profile
    photo_path: str = Field(min_length=1)


class AnalyzeRequest(CamelModel):
    session_id: str = Field(min_length=1)


class GenerateImagesRequest(CamelModel):
    session_id: str = Field(min_length=1)
    steps: list[Literal["m4", "m8", "m12"]] = Field(
        default_factory=lambda: ["m4", "m8", "m12"], min_length=1
    )


class GenerateVideoRequest(CamelModel):
    session_id: str = Field(min_length=1)
    duration_seconds: Literal[4, 8, 12] = 8
    resolution: Literal["720p", "1080p"] = "720p"
    aspect_ratio: Literal["16:9", "9:16"] = "9:16"


class LeadRequest(CamelModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    source: str | None = None
    consent: bool = True


class EmailRequest(CamelModel):
    to: str = Field(pattern=EMAIL_PATTERN)
    share_id: str = Field(min_length=1)
