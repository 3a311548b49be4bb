"""
Score and result models returned to consumers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .items import Item


class ReasonType(Enum):
    """Kinds of explanation attached to a recommendation.

    ``SIMILAR_USERS`` is part of the published reason vocabulary but the
    scorer never emits it; there is no cross-user signal.
    """

    USER_HISTORY = "user_history"
    SIMILAR_USERS = "similar_users"
    TRENDING = "trending"
    CATEGORY_MATCH = "category_match"
    SKILL_LEVEL = "skill_level"
    TIME_MATCH = "time_match"
    DIVERSITY = "diversity"


@dataclass(frozen=True, slots=True)
class RecommendationScore:
    """Score components, each in [0, 100]. ``overall`` is derived from the other four."""

    overall: int
    relevance: float
    popularity: float
    personalization: float
    timeliness: float

    def components(self) -> Dict[str, float]:
        return {
            "relevance": self.relevance,
            "personalization": self.personalization,
            "popularity": self.popularity,
            "timeliness": self.timeliness,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"overall": self.overall, **{k: round(v, 2) for k, v in self.components().items()}}


@dataclass(frozen=True, slots=True)
class RecommendationReason:
    """Human-readable explanation derived from the same signals as the score."""

    type: ReasonType
    description: str
    confidence: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "description": self.description, "confidence": self.confidence}


@dataclass(frozen=True, slots=True)
class RecommendationItem:
    """One ranked entry of a recommendation list."""

    item: Item
    score: RecommendationScore
    reasons: List[RecommendationReason] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.item.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item": self.item.to_dict(),
            "score": self.score.to_dict(),
            "reasons": [reason.to_dict() for reason in self.reasons],
        }


@dataclass(slots=True)
class RecommendationResult:
    """Ordered recommendations for one user.

    An empty result always carries a ``reason`` so the presentation layer can
    render a defined "no recommendations" state.
    """

    user_id: str
    items: List[RecommendationItem] = field(default_factory=list)
    reason: Optional[str] = None
    cold_start: bool = False
    stale: bool = False
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    @classmethod
    def empty(cls, user_id: str, reason: str) -> "RecommendationResult":
        return cls(user_id=user_id, items=[], reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "items": [item.to_dict() for item in self.items],
            "reason": self.reason,
            "cold_start": self.cold_start,
            "stale": self.stale,
            "generated_at": self.generated_at.isoformat(),
        }
