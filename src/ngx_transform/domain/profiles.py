"""Biometric profile submitted with a session."""

from typing import Literal

from pydantic import Field

from ngx_transform.domain.models import CamelModel


class Profile(CamelModel):
    """Immutable profile snapshot captured at intake."""

    age: int = Field(ge=13, le=100)
    sex: Literal["male", "female", "other"]
    height_cm: float = Field(ge=100, le=250)
    weight_kg: float = Field(ge=30, le=300)
    level: Literal["novato", "intermedio", "avanzado"]
    goal: Literal["definicion", "masa", "mixto"]
    weekly_time: float = Field(ge=1, le=14)
    stress_level: int | None = Field(default=None, ge=1, le=10)
    sleep_quality: int | None = Field(default=None, ge=1, le=10)
    discipline_rating: int | None = Field(default=None, ge=1, le=10)
    body_type: Literal["ectomorph", "mesomorph", "endomorph"] | None = None
    focus_zone: Literal["upper", "lower", "abs", "full"] | None = None
    specific_goals: list[str] = Field(default_factory=list)
    notes: str | None = Field(default=None, max_length=2000)

    def to_document(self) -> dict[str, object]:
        """Serialize for storage and API responses."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
