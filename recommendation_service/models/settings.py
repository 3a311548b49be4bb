"""
Recommendation settings models.

Settings are validated Pydantic models. Updates go through ``apply_updates``
so that an invalid value is rejected as a ``ValidationError`` before the
active settings change.
"""

from enum import Enum
from typing import Any, Dict

import pydantic
from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..errors import ValidationError


class ColdStartStrategy(Enum):
    """Fallback orderings for users without history or declared preferences."""

    POPULAR = "popular"
    DIVERSE = "diverse"
    RANDOM = "random"
    CATEGORY_BASED = "category_based"


class ScoringWeights(BaseModel):
    """Weight profile used to blend the four score components into ``overall``."""
    model_config = ConfigDict(frozen=True)

    relevance: float = Field(default=0.35, ge=0.0, le=1.0)
    personalization: float = Field(default=0.30, ge=0.0, le=1.0)
    popularity: float = Field(default=0.20, ge=0.0, le=1.0)
    timeliness: float = Field(default=0.15, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_sum(self) -> "ScoringWeights":
        total = self.relevance + self.personalization + self.popularity + self.timeliness
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"scoring weights must sum to 1.0, got {total:.6f}")
        return self

    def as_dict(self) -> Dict[str, float]:
        return {
            "relevance": self.relevance,
            "personalization": self.personalization,
            "popularity": self.popularity,
            "timeliness": self.timeliness,
        }


class RecommendationSettings(BaseModel):
    """Per-deployment or per-user recommendation configuration."""
    model_config = ConfigDict(frozen=True)

    max_recommendations: int = Field(default=10, ge=1)
    refresh_interval_minutes: float = Field(default=30, ge=0, description="0 means manual refresh only")
    enable_explanations: bool = True
    diversity_factor: float = Field(default=0.7, ge=0.0, le=1.0)
    exploration_rate: float = Field(default=0.3, ge=0.0, le=1.0)
    cold_start_strategy: ColdStartStrategy = ColdStartStrategy.POPULAR
    weights: ScoringWeights = Field(default_factory=ScoringWeights)

    computation_timeout_seconds: float = Field(default=2.0, gt=0)
    max_candidates: int = Field(default=500, ge=1)
    dedup_window_seconds: float = Field(default=1.0, ge=0)
    half_life_days: float = Field(default=14.0, gt=0)
    reason_threshold: float = Field(default=15.0, ge=0, le=100)

    @classmethod
    def create(cls, **values: Any) -> "RecommendationSettings":
        """Build settings, reporting invalid values as ``ValidationError``."""
        try:
            return cls(**values)
        except pydantic.ValidationError as exc:
            raise ValidationError(str(exc)) from exc

    def apply_updates(self, **changes: Any) -> "RecommendationSettings":
        """Return a validated copy with ``changes`` applied."""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValidationError(f"Unknown settings: {sorted(unknown)}")
        merged = self.model_dump()
        if isinstance(changes.get("weights"), ScoringWeights):
            changes = {**changes, "weights": changes["weights"].model_dump()}
        merged.update(changes)
        return type(self).create(**merged)
