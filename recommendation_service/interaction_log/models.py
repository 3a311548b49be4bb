"""
Data Models for the Interaction Log

Defines the data structures used by the interaction log.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from ..errors import ValidationError
from ..models.items import RecommendationType, parse_datetime
from .interaction_types import InteractionType


@dataclass
class InteractionPayload:
    """Payload structure for interactions posted by a client."""

    type: str
    item_id: str
    item_type: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)
    ts: Optional[str] = None
    tz_offset_min: Optional[int] = None

    def validate(self) -> bool:
        """Validate the payload structure."""
        return (
            isinstance(self.type, str) and
            isinstance(self.item_id, str) and bool(self.item_id) and
            (self.item_type is None or isinstance(self.item_type, str)) and
            isinstance(self.meta, dict) and
            (self.ts is None or isinstance(self.ts, str)) and
            (self.tz_offset_min is None or isinstance(self.tz_offset_min, int))
        )

    def client_timestamp(self) -> Optional[datetime]:
        """Parse the client timestamp into UTC.

        ``tz_offset_min`` follows the browser convention (UTC - local, in
        minutes) and is only applied when the timestamp carries no offset.
        """
        if not self.ts:
            return None
        try:
            dt = datetime.fromisoformat(self.ts.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(f"Invalid client timestamp: {self.ts!r}") from exc
        if dt.tzinfo is None and isinstance(self.tz_offset_min, int):
            dt = dt.replace(tzinfo=timezone(timedelta(minutes=-self.tz_offset_min)))
        return parse_datetime(dt)


@dataclass(frozen=True)
class Interaction:
    """Immutable record of one user action on one item."""

    user_id: str
    item_id: str
    interaction_type: InteractionType
    timestamp: Optional[datetime] = None
    item_type: Optional[RecommendationType] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValidationError("Interaction requires a user_id")
        if not self.item_id:
            raise ValidationError("Interaction requires an item_id")
        if not isinstance(self.interaction_type, InteractionType):
            if not InteractionType.is_valid(self.interaction_type):
                raise ValidationError(f"Unknown interaction type: {self.interaction_type!r}")
            object.__setattr__(self, "interaction_type", InteractionType(self.interaction_type))
        if self.item_type is not None and not isinstance(self.item_type, RecommendationType):
            if not RecommendationType.is_valid(self.item_type):
                raise ValidationError(f"Unknown item type: {self.item_type!r}")
            object.__setattr__(self, "item_type", RecommendationType(self.item_type))
        if self.timestamp is not None:
            object.__setattr__(self, "timestamp", parse_datetime(self.timestamp))
        rating = self.metadata.get("rating")
        if rating is not None and not (isinstance(rating, (int, float)) and 1 <= rating <= 5):
            raise ValidationError(f"Rating must be between 1 and 5, got {rating!r}")

    @property
    def rating(self) -> Optional[float]:
        rating = self.metadata.get("rating")
        return float(rating) if rating is not None else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "user_id": self.user_id,
            "item_id": self.item_id,
            "item_type": self.item_type.value if self.item_type else None,
            "interaction_type": self.interaction_type.value,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Interaction":
        """Create Interaction from dictionary."""
        return cls(
            user_id=data.get("user_id", ""),
            item_id=data.get("item_id", ""),
            interaction_type=data.get("interaction_type", ""),
            timestamp=data.get("timestamp"),
            item_type=data.get("item_type"),
            metadata=data.get("metadata") or {},
        )
