"""
Scoring of (user, item) pairs.

Each candidate gets four components in [0, 100] (relevance, personalization,
popularity, timeliness) and an ``overall`` blended with the active
``ScoringWeights``. Reasons are derived from the same components.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from ..models.items import Item
from ..models.preferences import UserPreferences
from ..models.scores import ReasonType, RecommendationItem, RecommendationReason, RecommendationScore
from ..models.settings import ScoringWeights
from .features import FeatureExtractor, UserProfile

SKILL_MATCH_BOOST = 1.2
LOCATION_MATCH_BOOST = 1.1
# Declared interests count for this much affinity before history accumulates.
DECLARED_CATEGORY_AFFINITY = 0.5
SIMILAR_ITEM_BONUS = 5.0
MAX_PERSONALIZATION_BONUS = 20.0
MAX_REASONS = 4


@dataclass(slots=True)
class MatchDetails:
    """What boosted an item's relevance; used to phrase reasons."""

    skill_match: bool = False
    location_match: bool = False
    similar_items: int = 0


def compute_overall(score_components: dict, weights: ScoringWeights) -> int:
    """Blend the four components with ``weights`` into the rounded overall score."""
    total = sum(getattr(weights, name) * value for name, value in score_components.items())
    return int(round(min(100.0, max(0.0, total))))


class Scorer:
    """Computes a RecommendationScore and reasons for one user and one item."""

    def __init__(
        self,
        features: FeatureExtractor,
        weights: Optional[ScoringWeights] = None,
        reason_threshold: float = 15.0,
        enable_explanations: bool = True,
    ):
        self.features = features
        self.weights = weights or ScoringWeights()
        self.reason_threshold = reason_threshold
        self.enable_explanations = enable_explanations

    def relevance(self, item: Item, profile: UserProfile, preferences: UserPreferences) -> tuple[float, MatchDetails]:
        details = MatchDetails()
        match_weight = 1.0
        if preferences.skill_level is not None and item.metadata.difficulty is preferences.skill_level:
            match_weight *= SKILL_MATCH_BOOST
            details.skill_match = True
        if preferences.location_preferences.accepts(item.metadata.location_mode):
            match_weight *= LOCATION_MATCH_BOOST
            details.location_match = True

        declared = set(preferences.categories)
        total = 0.0
        for category in item.categories:
            affinity = profile.affinity(category)
            if category in declared:
                affinity = max(affinity, DECLARED_CATEGORY_AFFINITY)
            total += affinity * match_weight
        relevance = 100.0 * total / max(1, len(item.categories))
        return _clamp(relevance), details

    def score(
        self,
        item: Item,
        profile: UserProfile,
        preferences: UserPreferences,
        now: Optional[datetime] = None,
    ) -> RecommendationItem:
        relevance, details = self.relevance(item, profile, preferences)

        details.similar_items = profile.liked_items_sharing_tags(item)
        bonus = min(MAX_PERSONALIZATION_BONUS, SIMILAR_ITEM_BONUS * details.similar_items)
        personalization = _clamp(relevance + bonus)

        popularity = _clamp(100.0 * self.features.item_popularity(item))
        timeliness = _clamp(100.0 * self.features.timeliness(item, now))

        components = {
            "relevance": relevance,
            "personalization": personalization,
            "popularity": popularity,
            "timeliness": timeliness,
        }
        score = RecommendationScore(
            overall=compute_overall(components, self.weights),
            relevance=relevance,
            popularity=popularity,
            personalization=personalization,
            timeliness=timeliness,
        )
        reasons = self.reasons(item, score, details, profile, preferences) if self.enable_explanations else []
        return RecommendationItem(item=item, score=score, reasons=reasons)

    def reasons(
        self,
        item: Item,
        score: RecommendationScore,
        details: MatchDetails,
        profile: UserProfile,
        preferences: UserPreferences,
    ) -> List[RecommendationReason]:
        """Explain the signals whose strength clears the threshold, strongest first."""
        candidates: List[RecommendationReason] = []

        if score.relevance > self.reason_threshold:
            best = max(
                item.categories,
                key=lambda c: (profile.affinity(c), c in preferences.categories),
            )
            candidates.append(RecommendationReason(
                type=ReasonType.CATEGORY_MATCH,
                description=f"Matches your interest in {best.value}",
                confidence=_confidence(score.relevance),
            ))
            if details.skill_match:
                candidates.append(RecommendationReason(
                    type=ReasonType.SKILL_LEVEL,
                    description=f"Suited to your {preferences.skill_level.value} skill level",
                    confidence=_confidence(score.relevance / SKILL_MATCH_BOOST),
                ))

        if score.personalization > self.reason_threshold:
            if details.similar_items:
                noun = "item" if details.similar_items == 1 else "items"
                description = f"Similar to {details.similar_items} {noun} you engaged with"
            else:
                description = "Based on your activity history"
            candidates.append(RecommendationReason(
                type=ReasonType.USER_HISTORY,
                description=description,
                confidence=_confidence(score.personalization),
            ))

        if score.popularity > self.reason_threshold:
            candidates.append(RecommendationReason(
                type=ReasonType.TRENDING,
                description="Popular with other students",
                confidence=_confidence(score.popularity),
            ))

        if score.timeliness > self.reason_threshold:
            if fits_schedule(item, preferences):
                description = "Scheduled for your preferred time"
            elif score.timeliness >= 100.0:
                description = "Happening soon"
            else:
                description = "Coming up on the calendar"
            candidates.append(RecommendationReason(
                type=ReasonType.TIME_MATCH,
                description=description,
                confidence=_confidence(score.timeliness),
            ))

        return rank_reasons(candidates)


def rank_reasons(reasons: List[RecommendationReason], limit: int = MAX_REASONS) -> List[RecommendationReason]:
    """Order by descending confidence, keep the first reason per type, cap at ``limit``."""
    ordered = sorted(reasons, key=lambda r: r.confidence, reverse=True)
    seen = set()
    result: List[RecommendationReason] = []
    for reason in ordered:
        if reason.type in seen:
            continue
        seen.add(reason.type)
        result.append(reason)
        if len(result) >= limit:
            break
    return result


def fits_schedule(item: Item, preferences: UserPreferences) -> bool:
    """Whether a dated item starts on a day and at a time the user marked as available."""
    start = item.metadata.start_date
    if start is None:
        return False
    times = preferences.time_preferences
    day_ok = times.weekends if start.weekday() >= 5 else times.weekdays
    hour = start.hour
    if hour < 12:
        time_ok = times.mornings
    elif hour < 17:
        time_ok = times.afternoons
    else:
        time_ok = times.evenings
    return day_ok and time_ok


def _confidence(value: float) -> int:
    return int(round(_clamp(value)))


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(high, max(low, value))
