"""Structured projection produced by the analysis model."""

from typing import Literal

from pydantic import Field, model_validator

from ngx_transform.domain.models import CamelModel

STAGE_KEYS = ("m0", "m4", "m8", "m12")


class StageStats(CamelModel):
    """Numeric attributes for a timeline stage."""

    strength: int = Field(ge=0, le=100)
    aesthetics: int = Field(ge=0, le=100)
    endurance: int = Field(ge=0, le=100)
    mental: int = Field(ge=0, le=100)


class TimelineEntry(CamelModel):
    """Projection for one stage of the 12-month timeline."""

    month: Literal[0, 4, 8, 12]
    title: str
    description: str
    mental: str
    stats: StageStats | None = None
    image_prompt: str = Field(min_length=1)
    expectations: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)


class Timeline(CamelModel):
    """Four-stage timeline keyed by month."""

    m0: TimelineEntry
    m4: TimelineEntry
    m8: TimelineEntry
    m12: TimelineEntry

    @model_validator(mode="after")
    def _months_match_keys(self) -> "Timeline":
        for key in STAGE_KEYS:
            entry: TimelineEntry = getattr(self, key)
            if f"m{entry.month}" != key:
                raise ValueError(f"timeline.{key} has month {entry.month}")
        return self


class OverlayPoint(CamelModel):
    """Annotation anchored to relative image coordinates."""

    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)
    label: str = Field(max_length=120)


class StageOverlays(CamelModel):
    """Overlay annotations per stage."""

    m0: list[OverlayPoint] = Field(default_factory=list)
    m4: list[OverlayPoint] = Field(default_factory=list)
    m8: list[OverlayPoint] = Field(default_factory=list)
    m12: list[OverlayPoint] = Field(default_factory=list)


class TransformationAnalysis(CamelModel):
    """Full analysis result attached to a session."""

    insights_text: str = Field(min_length=1)
    timeline: Timeline
    overlays: StageOverlays = Field(default_factory=StageOverlays)
    user_visual_anchor: str = Field(min_length=1)
    hero_narrative: str = Field(min_length=1)
    video_prompt: str = Field(min_length=1)

    def to_document(self) -> dict[str, object]:
        """Serialize for storage and API responses."""
        return self.model_dump(mode="json", by_alias=True)
