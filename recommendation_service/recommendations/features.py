"""
Feature extraction.

Turns raw items and interaction history into the numeric inputs the scorer
needs. The scorer never looks at raw interactions or item counters itself.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

from ..interaction_log import Interaction, InteractionLog, InteractionType
from ..models.items import InteractionStats, Item, PreferenceCategory

# Relative strength of each interaction. Skips push affinity down.
INTERACTION_WEIGHTS: Dict[InteractionType, float] = {
    InteractionType.REGISTER: 5.0,
    InteractionType.COMPLETE: 4.0,
    InteractionType.BOOKMARK: 3.0,
    InteractionType.RATE: 2.0,
    InteractionType.CLICK: 2.0,
    InteractionType.VIEW: 1.0,
    InteractionType.SKIP: -2.0,
}

UPCOMING_WINDOW = timedelta(hours=48)
AFTER_END_DECAY = timedelta(days=14)
FAR_FUTURE_HORIZON = timedelta(days=30)
NEUTRAL_TIMELINESS = 0.5


@dataclass(slots=True)
class UserProfile:
    """Decayed interaction mass of one user, computed in a single pass over the log."""

    user_id: str
    category_mass: Dict[PreferenceCategory, float] = field(default_factory=dict)
    total_mass: float = 0.0
    positive_items: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    interaction_count: int = 0

    @property
    def has_history(self) -> bool:
        return self.interaction_count > 0

    def affinity(self, category: PreferenceCategory) -> float:
        """Share of the user's interaction mass on items tagged with ``category``, in [0, 1]."""
        if self.total_mass <= 0:
            return 0.0
        return min(1.0, max(0.0, self.category_mass.get(category, 0.0) / self.total_mass))

    def liked_items_sharing_tags(self, item: Item) -> int:
        """Number of other positively-interacted items sharing at least one tag with ``item``."""
        tags = set(item.tags)
        if not tags:
            return 0
        return sum(
            1 for item_id, liked_tags in self.positive_items.items()
            if item_id != item.id and tags.intersection(liked_tags)
        )


class FeatureExtractor:
    """Derives per-user and per-item features from items and the interaction log."""

    def __init__(
        self,
        interaction_log: InteractionLog,
        item_lookup: Callable[[str], Optional[Item]],
        half_life_days: float = 14.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            interaction_log: Source of interaction history
            item_lookup: Resolves an item id to the catalog item
            half_life_days: Half-life of the recency decay applied to interactions
            clock: Source of "now" (UTC)
        """
        self.interaction_log = interaction_log
        self.item_lookup = item_lookup
        self.half_life_days = max(half_life_days, 1e-6)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # User features -------------------------------------------------------------

    def decay(self, age: timedelta) -> float:
        """Exponential decay: 1.0 for a fresh interaction, 0.5 after one half-life."""
        age_days = max(age.total_seconds(), 0.0) / 86400.0
        return math.exp(-math.log(2) * age_days / self.half_life_days)

    @staticmethod
    def interaction_weight(interaction: Interaction) -> float:
        weight = INTERACTION_WEIGHTS[interaction.interaction_type]
        if interaction.interaction_type is InteractionType.RATE and interaction.rating is not None:
            # 1 star -> 0, 3 stars -> 1x, 5 stars -> 2x
            weight *= min(2.0, max(0.0, (interaction.rating - 3.0) / 2.0 + 1.0))
        return weight

    def user_profile(self, user_id: str, now: Optional[datetime] = None) -> UserProfile:
        now = now or self._clock()
        profile = UserProfile(user_id=user_id)
        for interaction in self.interaction_log.query(user_id=user_id):
            item = self.item_lookup(interaction.item_id)
            if item is None:
                continue
            profile.interaction_count += 1
            contribution = self.interaction_weight(interaction) * self.decay(now - interaction.timestamp)
            profile.total_mass += abs(contribution)
            for category in item.categories:
                profile.category_mass[category] = profile.category_mass.get(category, 0.0) + contribution
            if interaction.interaction_type.is_positive:
                profile.positive_items[item.id] = item.tags
        return profile

    def user_affinity(self, user_id: str, category: PreferenceCategory, now: Optional[datetime] = None) -> float:
        """Recency-decayed share of the user's interaction mass on ``category``; 0 without history."""
        return self.user_profile(user_id, now).affinity(PreferenceCategory(category))

    # Item features -------------------------------------------------------------

    def replay_counters(self, item: Item) -> InteractionStats:
        """Item baseline counters with the interaction log replayed on top."""
        views = item.interaction_data.views
        clicks = item.interaction_data.clicks
        bookmarks = item.interaction_data.bookmarks
        registrations = item.interaction_data.registrations
        stats = item.interaction_data
        for interaction in self.interaction_log.query(item_id=item.id):
            kind = interaction.interaction_type
            if kind is InteractionType.VIEW:
                views += 1
            elif kind is InteractionType.CLICK:
                clicks += 1
            elif kind is InteractionType.BOOKMARK:
                bookmarks += 1
            elif kind is InteractionType.REGISTER:
                registrations += 1
            elif kind is InteractionType.RATE and interaction.rating is not None:
                stats = stats.with_rating(interaction.rating)
        return InteractionStats(
            views=views,
            clicks=clicks,
            bookmarks=bookmarks,
            registrations=registrations,
            rating=stats.rating,
            rating_count=stats.rating_count,
        )

    def item_popularity(self, item: Item, counters: Optional[InteractionStats] = None) -> float:
        """Blend of click-through, bookmark rate and normalized rating, in [0, 1]."""
        counters = counters or self.replay_counters(item)
        if counters.views > 0:
            ctr = _clamp(counters.clicks / counters.views)
            bookmark_rate = _clamp(counters.bookmarks / counters.views)
        else:
            ctr = bookmark_rate = 0.0
        rating = _clamp((counters.rating - 1.0) / 4.0) if counters.rating_count > 0 else 0.0
        return 0.4 * ctr + 0.3 * bookmark_rate + 0.3 * rating

    def timeliness(self, item: Item, now: Optional[datetime] = None) -> float:
        """How well-timed an item is right now, in [0, 1].

        1.0 while running or starting within 48 hours, linear decay to 0 over
        the 14 days after the end, 0.5 for undated items. Items further out
        than 48 hours fade from 1.0 to the neutral 0.5 at 30 days.
        """
        now = now or self._clock()
        start = item.metadata.start_date
        end = item.metadata.end_date or start
        if start is None and end is None:
            return NEUTRAL_TIMELINESS
        start = start or end

        if start <= now <= end or timedelta(0) <= start - now <= UPCOMING_WINDOW:
            return 1.0
        if now > end:
            elapsed = now - end
            return _clamp(1.0 - elapsed / AFTER_END_DECAY)
        lead = start - now
        if lead >= FAR_FUTURE_HORIZON:
            return NEUTRAL_TIMELINESS
        span = FAR_FUTURE_HORIZON - UPCOMING_WINDOW
        return 1.0 - (1.0 - NEUTRAL_TIMELINESS) * ((lead - UPCOMING_WINDOW) / span)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))
