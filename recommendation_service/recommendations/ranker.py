"""
Ranking and diversification of scored candidates.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Dict, List, Optional, Sequence

from ..models.items import PreferenceCategory
from ..models.scores import RecommendationItem

logger = logging.getLogger(__name__)


def sort_key(candidate: RecommendationItem):
    """Overall desc, then timeliness desc, then item id asc."""
    return (-candidate.score.overall, -candidate.score.timeliness, candidate.item.id)


def category_cap(diversity_factor: float, max_recommendations: int) -> int:
    """Maximum number of accepted items per primary category before deferral.

    A factor of 0 never defers; a factor of 1 allows one item per category
    until every represented category has appeared.
    """
    return max(1, math.ceil(round((1.0 - diversity_factor) * max_recommendations, 9)))


class Ranker:
    """Orders scored candidates, spreads them across categories and applies exploration."""

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Args:
            rng: Random source driving exploration; pass a seeded instance for reproducible output
        """
        self.rng = rng or random.Random()

    def sort(self, candidates: Sequence[RecommendationItem]) -> List[RecommendationItem]:
        return sorted(candidates, key=sort_key)

    def diversify(
        self,
        ordered: Sequence[RecommendationItem],
        diversity_factor: float,
        max_recommendations: int,
    ) -> List[RecommendationItem]:
        """Defer (never drop) candidates whose primary category is already at its cap."""
        cap = category_cap(diversity_factor, max_recommendations)
        accepted: List[RecommendationItem] = []
        deferred: List[RecommendationItem] = []
        counts: Dict[PreferenceCategory, int] = {}
        for candidate in ordered:
            category = candidate.item.primary_category
            if counts.get(category, 0) >= cap:
                deferred.append(candidate)
                continue
            counts[category] = counts.get(category, 0) + 1
            accepted.append(candidate)
        return accepted + deferred

    def explore(
        self,
        ordered: List[RecommendationItem],
        exploration_rate: float,
        slots: int,
    ) -> List[RecommendationItem]:
        """Per output slot, with probability ``exploration_rate``, replace a repeat-category
        candidate with the best-scoring candidate from a category not yet shown."""
        result = list(ordered)
        shown = set()
        for index in range(min(slots, len(result))):
            draw = self.rng.random()
            category = result[index].item.primary_category
            if draw < exploration_rate and category in shown:
                for j in range(index + 1, len(result)):
                    if result[j].item.primary_category not in shown:
                        promoted = result.pop(j)
                        result.insert(index, promoted)
                        logger.debug(f"Exploration promoted {promoted.item.id} into slot {index}")
                        break
            shown.add(result[index].item.primary_category)
        return result

    def rank(
        self,
        candidates: Sequence[RecommendationItem],
        max_recommendations: int,
        diversity_factor: float = 0.0,
        exploration_rate: float = 0.0,
        truncate: bool = True,
    ) -> List[RecommendationItem]:
        """Sort, diversify, explore and cap a scored candidate set."""
        ordered = self.sort(candidates)
        ordered = self.diversify(ordered, diversity_factor, max_recommendations)
        if exploration_rate > 0:
            ordered = self.explore(ordered, exploration_rate, max_recommendations)
        return ordered[:max_recommendations] if truncate else ordered
