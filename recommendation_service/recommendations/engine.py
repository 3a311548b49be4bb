"""
Recommendation engine primitives.

One synchronous pass of feature extraction, scoring and ranking over a
candidate snapshot. The engine has no notion of sessions, caching or
threads; ``RecommendationService`` owns those concerns.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..errors import ColdStartCondition, ComputationTimeout
from ..interaction_log import InteractionLog
from ..models.items import Item
from ..models.preferences import UserPreferences
from ..models.scores import RecommendationItem, RecommendationResult
from ..models.settings import RecommendationSettings
from .cold_start import cold_start_order, cold_start_reason
from .features import FeatureExtractor, UserProfile
from .ranker import Ranker
from .scorer import Scorer, rank_reasons

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Core data structures
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class RecommendationContext:
    """Everything one scoring pass needs for one user."""

    user_id: str
    candidates: Sequence[Item]
    preferences: UserPreferences = field(default_factory=UserPreferences.empty)
    settings: RecommendationSettings = field(default_factory=RecommendationSettings)
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    deadline: Optional[float] = None  # time.monotonic() value

    def check_deadline(self) -> None:
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise ComputationTimeout(f"Scoring pass for {self.user_id} exceeded its deadline")


class RecommendationEngine:
    """Runs Feature Extractor -> Scorer -> Ranker for one context."""

    def __init__(self, features: FeatureExtractor):
        self.features = features

    def is_cold_start(self, profile: UserProfile, preferences: UserPreferences) -> bool:
        return not profile.has_history and preferences.is_empty

    def select_candidates(self, context: RecommendationContext) -> List[Item]:
        """Cap the candidate set, keeping the items with the best baseline popularity."""
        candidates = list(context.candidates)
        limit = context.settings.max_candidates
        if len(candidates) <= limit:
            return candidates
        logger.info(f"Capping {len(candidates)} candidates to {limit} for {context.user_id}")
        candidates.sort(
            key=lambda item: (-self.features.item_popularity(item, item.interaction_data), item.id)
        )
        return candidates[:limit]

    def recommend(
        self,
        context: RecommendationContext,
        rng: Optional[random.Random] = None,
        truncate: bool = True,
    ) -> RecommendationResult:
        """Score and rank the context's candidates.

        Args:
            context: Candidates, preferences and settings for the pass
            rng: Random source for exploration and the random cold-start strategy
            truncate: Cap the output at ``max_recommendations``; when False the full
                ordering is returned (still diversified for that cap)

        Raises:
            ComputationTimeout: The context deadline passed while scoring
        """
        rng = rng or random.Random()
        settings = context.settings
        scorer = Scorer(
            self.features,
            weights=settings.weights,
            reason_threshold=settings.reason_threshold,
            enable_explanations=settings.enable_explanations,
        )

        candidates = self.select_candidates(context)
        if not candidates:
            return RecommendationResult.empty(context.user_id, "No recommendable items are available right now")

        profile = self.features.user_profile(context.user_id, context.now)
        scored: List[RecommendationItem] = []
        for item in candidates:
            context.check_deadline()
            scored.append(scorer.score(item, profile, context.preferences, context.now))

        limit = settings.max_recommendations
        try:
            if self.is_cold_start(profile, context.preferences):
                raise ColdStartCondition(context.user_id)
            ranker = Ranker(rng)
            ordered = ranker.rank(
                scored,
                max_recommendations=limit,
                diversity_factor=settings.diversity_factor,
                exploration_rate=settings.exploration_rate,
                truncate=truncate,
            )
            cold_start = False
        except ColdStartCondition:
            logger.info(
                f"Cold start for {context.user_id}, using {settings.cold_start_strategy.value} strategy"
            )
            ordered = cold_start_order(scored, settings.cold_start_strategy, rng)
            if settings.enable_explanations:
                reason = cold_start_reason(settings.cold_start_strategy)
                ordered = [
                    RecommendationItem(c.item, c.score, rank_reasons([*c.reasons, reason]))
                    for c in ordered
                ]
            if truncate:
                ordered = ordered[:limit]
            cold_start = True

        return RecommendationResult(
            user_id=context.user_id,
            items=ordered,
            cold_start=cold_start,
            generated_at=context.now,
        )


def build_default_engine(interaction_log: InteractionLog, item_lookup, half_life_days: float = 14.0) -> RecommendationEngine:
    """Factory for an engine wired with the default feature extractor."""
    return RecommendationEngine(FeatureExtractor(interaction_log, item_lookup, half_life_days=half_life_days))
