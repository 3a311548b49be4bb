"""
Item data models.

An ``Item`` is anything the engine can recommend: an event, a club, an
activity, a course or a social gathering. Items are immutable snapshots
handed over by the persistence store; live interaction counters are
replayed from the interaction log by the feature extractor.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..errors import ValidationError


class RecommendationType(Enum):
    """Kinds of recommendable items."""

    EVENT = "event"
    CLUB = "club"
    ACTIVITY = "activity"
    COURSE = "course"
    SOCIAL = "social"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        try:
            cls(value)
            return True
        except ValueError:
            return False


class PreferenceCategory(Enum):
    """Closed set of interest categories shared by items and user preferences."""

    ACADEMIC = "academic"
    SPORTS = "sports"
    ARTS = "arts"
    TECHNOLOGY = "technology"
    SOCIAL = "social"
    VOLUNTEER = "volunteer"
    CAREER = "career"
    WELLNESS = "wellness"
    CULTURAL = "cultural"
    OUTDOOR = "outdoor"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        try:
            cls(value)
            return True
        except ValueError:
            return False


class SkillLevel(Enum):
    """Ordinal skill levels, lowest first."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return list(SkillLevel).index(self)

    def __lt__(self, other: "SkillLevel") -> bool:
        if not isinstance(other, SkillLevel):
            return NotImplemented
        return self.rank < other.rank


class LocationMode(Enum):
    """Where an item takes place."""

    ON_CAMPUS = "on_campus"
    OFF_CAMPUS = "off_campus"
    VIRTUAL = "virtual"


class ItemStatus(Enum):
    """Lifecycle status as stored for events."""

    PENDING = "pending"
    APPROVED = "approved"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 string (``Z`` suffix accepted) into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp: {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True, slots=True)
class ItemMetadata:
    """Optional structured attributes of an item."""

    duration: Optional[int] = None  # minutes
    capacity: Optional[int] = None
    cost: Optional[float] = None
    location: Optional[str] = None
    location_mode: Optional[LocationMode] = None
    difficulty: Optional[SkillLevel] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[ItemStatus] = None
    prerequisites: Tuple[str, ...] = ()
    skills: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ItemMetadata":
        data = data or {}
        try:
            location_mode = data.get("location_mode")
            difficulty = data.get("difficulty")
            status = data.get("status")
            return cls(
                duration=data.get("duration"),
                capacity=data.get("capacity"),
                cost=data.get("cost"),
                location=data.get("location"),
                location_mode=LocationMode(location_mode) if location_mode else None,
                difficulty=SkillLevel(difficulty) if difficulty else None,
                start_date=parse_datetime(data.get("start_date")),
                end_date=parse_datetime(data.get("end_date")),
                status=ItemStatus(status) if status else None,
                prerequisites=tuple(data.get("prerequisites") or ()),
                skills=tuple(data.get("skills") or ()),
            )
        except ValueError as exc:
            raise ValidationError(f"Invalid item metadata: {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": self.duration,
            "capacity": self.capacity,
            "cost": self.cost,
            "location": self.location,
            "location_mode": self.location_mode.value if self.location_mode else None,
            "difficulty": self.difficulty.value if self.difficulty else None,
            "start_date": _format_datetime(self.start_date),
            "end_date": _format_datetime(self.end_date),
            "status": self.status.value if self.status else None,
            "prerequisites": list(self.prerequisites),
            "skills": list(self.skills),
        }


@dataclass(frozen=True, slots=True)
class InteractionStats:
    """Aggregate interaction counters for an item."""

    views: int = 0
    clicks: int = 0
    bookmarks: int = 0
    registrations: int = 0
    rating: float = 0.0  # mean, 1-5
    rating_count: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "InteractionStats":
        data = data or {}
        return cls(
            views=int(data.get("views", 0)),
            clicks=int(data.get("clicks", 0)),
            bookmarks=int(data.get("bookmarks", 0)),
            registrations=int(data.get("registrations", 0)),
            rating=float(data.get("rating", 0.0)),
            rating_count=int(data.get("rating_count", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "views": self.views,
            "clicks": self.clicks,
            "bookmarks": self.bookmarks,
            "registrations": self.registrations,
            "rating": self.rating,
            "rating_count": self.rating_count,
        }

    def with_rating(self, rating: float) -> "InteractionStats":
        """Return a copy with one more rating folded into the running mean."""
        total = self.rating * self.rating_count + rating
        count = self.rating_count + 1
        return replace(self, rating=total / count, rating_count=count)


@dataclass(frozen=True, slots=True)
class Item:
    """A recommendable unit. The first category is the item's primary category."""

    id: str
    type: RecommendationType
    categories: Tuple[PreferenceCategory, ...]
    title: str = ""
    description: str = ""
    tags: Tuple[str, ...] = ()
    metadata: ItemMetadata = field(default_factory=ItemMetadata)
    interaction_data: InteractionStats = field(default_factory=InteractionStats)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("Item id must be non-empty")
        try:
            item_type = RecommendationType(self.type) if not isinstance(self.type, RecommendationType) else self.type
            categories = _dedupe(
                c if isinstance(c, PreferenceCategory) else PreferenceCategory(c)
                for c in self.categories
            )
        except ValueError as exc:
            raise ValidationError(f"Item {self.id}: {exc}") from exc
        if not categories:
            raise ValidationError(f"Item {self.id} must have at least one category")
        object.__setattr__(self, "type", item_type)
        object.__setattr__(self, "categories", categories)
        object.__setattr__(self, "tags", _dedupe(t.strip().lower() for t in self.tags if t and t.strip()))

    @property
    def primary_category(self) -> PreferenceCategory:
        return self.categories[0]

    def is_cancelled(self) -> bool:
        return self.metadata.status is ItemStatus.CANCELLED

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Item":
        """Build an Item from a persistence-store record."""
        categories = data.get("categories") or data.get("category") or ()
        if isinstance(categories, str):
            categories = (categories,)
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", ""),
            categories=tuple(categories),
            title=data.get("title", ""),
            description=data.get("description", ""),
            tags=tuple(data.get("tags") or ()),
            metadata=ItemMetadata.from_dict(data.get("metadata")),
            interaction_data=InteractionStats.from_dict(data.get("interaction_data")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "categories": [c.value for c in self.categories],
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "metadata": self.metadata.to_dict(),
            "interaction_data": self.interaction_data.to_dict(),
        }


def _dedupe(values: Iterable[Any]) -> Tuple[Any, ...]:
    seen: List[Any] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return tuple(seen)
