"""Photo + profile analysis using a vision LLM."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from pydantic import ValidationError as PydanticValidationError

from ngx_transform.domain.analysis import STAGE_KEYS, TransformationAnalysis
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
from ngx_transform.domain.profiles import Profile
from ngx_transform.domain.sessions import (
    STATUS_ANALYZED,
    STATUS_ERROR,
    STATUS_PENDING,
)
from ngx_transform.services.sessions import SessionRepository, mark_session_error
from ngx_transform.services.storage import IMAGE_URL_TTL_SECONDS, BlobStore

logger = logging.getLogger(__name__)

ANALYZABLE_STATUSES = {STATUS_PENDING, STATUS_ANALYZED, STATUS_ERROR}

_STATS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        name: {"type": "integer", "minimum": 0, "maximum": 100}
        for name in ("strength", "aesthetics", "endurance", "mental")
    },
    "required": ["strength", "aesthetics", "endurance", "mental"],
    "additionalProperties": False,
}

_OVERLAY_LIST_SCHEMA: dict[str, object] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "x": {"type": "number", "minimum": 0.0, "maximum": 1.0},
            "y": {"type": "number", "minimum": 0.0, "maximum": 1.0},
            "label": {"type": "string"},
        },
        "required": ["x", "y", "label"],
        "additionalProperties": False,
    },
}


def _stage_schema(month: int) -> dict[str, object]:
    string_list = {"type": "array", "items": {"type": "string"}}
    return {
        "type": "object",
        "properties": {
            "month": {"type": "integer", "enum": [month]},
            "title": {"type": "string"},
            "description": {"type": "string"},
            "mental": {"type": "string"},
            "stats": {"anyOf": [_STATS_SCHEMA, {"type": "null"}]},
            "imagePrompt": {"type": "string"},
            "expectations": string_list,
            "risks": string_list,
        },
        "required": [
            "month",
            "title",
            "description",
            "mental",
            "stats",
            "imagePrompt",
            "expectations",
            "risks",
        ],
        "additionalProperties": False,
    }


ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "insightsText": {"type": "string"},
        "timeline": {
            "type": "object",
            "properties": {key: _stage_schema(int(key[1:])) for key in STAGE_KEYS},
            "required": list(STAGE_KEYS),
            "additionalProperties": False,
        },
        "overlays": {
            "type": "object",
            "properties": {key: _OVERLAY_LIST_SCHEMA for key in STAGE_KEYS},
            "required": list(STAGE_KEYS),
            "additionalProperties": False,
        },
        "userVisualAnchor": {"type": "string"},
        "heroNarrative": {"type": "string"},
        "videoPrompt": {"type": "string"},
    },
    "required": [
        "insightsText",
        "timeline",
        "overlays",
        "userVisualAnchor",
        "heroNarrative",
        "videoPrompt",
    ],
    "additionalProperties": False,
}


class AnalysisClient(Protocol):
    """Interface for the vision/text model."""

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
        """Return structured analysis data for the image and prompt."""


@dataclass
class AnalysisService:
    """Runs the analysis model and reconciles its result into the session."""

    client: AnalysisClient | None
    session_repository: SessionRepository
    blob_store: BlobStore
    model: str
    reasoning_effort: str | None
    store: bool
    clock: Callable[[], datetime] = utcnow

    async def analyze(self, share_id: str) -> TransformationAnalysis:
        """Analyze the session photo and mark the session analyzed."""
        if self.client is None:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        session = self.session_repository.get_session(share_id)
        if session is None:
            raise NotFound("Session not found")
        if not session.photo_path:
            raise MissingInput("Missing photo")
        if session.status not in ANALYZABLE_STATUSES:
            raise PreconditionFailed(
                f"Session is already {session.status}; analysis cannot run again"
            )

        try:
            image_url = self.blob_store.signed_url(
                session.photo_path, IMAGE_URL_TTL_SECONDS
            )
            raw = await self.client.analyze(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                image_url=image_url,
                schema=ANALYSIS_SCHEMA,
                prompt=build_analysis_prompt(session.input),
            )
            analysis = parse_analysis(raw)
        except Exception as exc:
            logger.exception("Analysis failed", extra={"share_id": share_id})
            error = _as_transform_error(exc)
            mark_session_error(
                self.session_repository,
                share_id,
                error.message,
                from_statuses=ANALYZABLE_STATUSES,
            )
            if error is exc:
                raise
            raise error from exc

        applied = self.session_repository.transition(
            share_id,
            ANALYZABLE_STATUSES,
            {
                "analysis": analysis,
                "status": STATUS_ANALYZED,
                "analyzed_at": self.clock(),
                "error_message": None,
            },
        )
        if not applied:
            raise SessionConflict("Session moved on while analysis was running")
        logger.info("Session analyzed", extra={"share_id": share_id})
        return analysis


def parse_analysis(raw: dict[str, object]) -> TransformationAnalysis:
    """Validate model output strictly; nothing is coerced into range."""
    try:
        return TransformationAnalysis.model_validate(raw)
    except PydanticValidationError as exc:
        raise ValidationError(f"Model output validation failed: {exc}") from exc


def build_analysis_prompt(profile: Profile) -> str:
    """Build the coaching prompt for the profile."""
    focus = (profile.focus_zone or "full").upper()
    wellness = ", ".join(
        f"{label}: {value}/10"
        for label, value in (
            ("Stress", profile.stress_level),
            ("Sleep", profile.sleep_quality),
            ("Discipline", profile.discipline_rating),
        )
        if value is not None
    )
    lines = [
        "You are an elite high-performance coach and futurist.",
        "Analyze the person in the photo together with their data and project "
        "their physical and mental evolution over 12 months.",
        "",
        "USER DATA:",
        f"- Age: {profile.age}, Sex: {profile.sex}",
        f"- Height: {profile.height_cm:g} cm, Weight: {profile.weight_kg:g} kg",
        f"- Body type: {profile.body_type or 'unspecified'}",
        f"- Level: {profile.level}",
        f"- Goal: {profile.goal}",
        f"- Weekly training time: {profile.weekly_time:g} hours",
    ]
    if wellness:
        lines.append(f"- {wellness}")
    if profile.specific_goals:
        lines.append(f"- Specific goals: {', '.join(profile.specific_goals)}")
    if profile.notes:
        lines.append(f"- Notes: {profile.notes}")
    lines += [
        f"FOCUS ZONE (PRIORITY): {focus}",
        "",
        "Produce a timeline of four stages: m0 (current starting point), "
        "m4 (foundation), m8 (expansion) and m12 (peak).",
        "For each stage give a 1-2 word title, a clinical but motivating "
        "description, a short stoic mindset shift, stats (integers 0-100 for "
        "strength, aesthetics, endurance and mental) and a detailed English "
        "photorealistic image prompt that keeps the face identical while the "
        "body evolves. Only m0 lists risks and expectations.",
        "Overlay coordinates x and y are relative (0.0-1.0); labels stay under "
        "120 characters.",
        "Also return userVisualAnchor (an immutable description of facial "
        "features, skin tone, hair and distinguishing marks), heroNarrative "
        "(2-3 inspiring sentences in second person) and videoPrompt (a complete "
        "prompt for an 8-second vertical cinematic video of this same person "
        "training toward the goal and ending transformed, photorealistic, "
        "single subject, no text overlays).",
        "If stress is high emphasize recovery; if discipline is low emphasize "
        "consistency.",
    ]
    return "\n".join(lines)


def _as_transform_error(exc: Exception) -> TransformError:
    if isinstance(exc, TransformError):
        return exc
    return UpstreamFailure(f"Analysis failed: {exc}")
