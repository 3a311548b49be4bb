"""
Cold-start orderings for users with no history and no declared preferences.
"""

import random
from collections import OrderedDict
from typing import Callable, Dict, List, Sequence

from ..models.items import PreferenceCategory
from ..models.scores import ReasonType, RecommendationItem, RecommendationReason
from ..models.settings import ColdStartStrategy


def _by_popularity(candidates: Sequence[RecommendationItem]) -> List[RecommendationItem]:
    return sorted(candidates, key=lambda c: (-c.score.popularity, -c.score.timeliness, c.item.id))


def _group_by_category(candidates: Sequence[RecommendationItem]) -> Dict[PreferenceCategory, List[RecommendationItem]]:
    groups: Dict[PreferenceCategory, List[RecommendationItem]] = OrderedDict()
    for candidate in _by_popularity(candidates):
        groups.setdefault(candidate.item.primary_category, []).append(candidate)
    return groups


def popular(candidates: Sequence[RecommendationItem], rng: random.Random) -> List[RecommendationItem]:
    """Most popular first."""
    return _by_popularity(candidates)


def diverse(candidates: Sequence[RecommendationItem], rng: random.Random) -> List[RecommendationItem]:
    """Round-robin across categories, each category contributing its most popular items in turn."""
    groups = list(_group_by_category(candidates).values())
    ordered: List[RecommendationItem] = []
    depth = 0
    while len(ordered) < len(candidates):
        for group in groups:
            if depth < len(group):
                ordered.append(group[depth])
        depth += 1
    return ordered


def uniform_random(candidates: Sequence[RecommendationItem], rng: random.Random) -> List[RecommendationItem]:
    """Uniform shuffle driven by ``rng``."""
    ordered = sorted(candidates, key=lambda c: c.item.id)
    rng.shuffle(ordered)
    return ordered


def category_based(candidates: Sequence[RecommendationItem], rng: random.Random) -> List[RecommendationItem]:
    """The most popular item of every category first, then everything else by popularity."""
    leaders = [group[0] for group in _group_by_category(candidates).values()]
    leader_ids = {c.item.id for c in leaders}
    rest = [c for c in _by_popularity(candidates) if c.item.id not in leader_ids]
    return _by_popularity(leaders) + rest


STRATEGIES: Dict[ColdStartStrategy, Callable[[Sequence[RecommendationItem], random.Random], List[RecommendationItem]]] = {
    ColdStartStrategy.POPULAR: popular,
    ColdStartStrategy.DIVERSE: diverse,
    ColdStartStrategy.RANDOM: uniform_random,
    ColdStartStrategy.CATEGORY_BASED: category_based,
}


def cold_start_order(
    candidates: Sequence[RecommendationItem],
    strategy: ColdStartStrategy,
    rng: random.Random,
) -> List[RecommendationItem]:
    """Order candidates for a cold-start user according to ``strategy``."""
    return STRATEGIES[ColdStartStrategy(strategy)](candidates, rng)


def cold_start_reason(strategy: ColdStartStrategy) -> RecommendationReason:
    """Explanation attached to cold-start picks."""
    strategy = ColdStartStrategy(strategy)
    if strategy is ColdStartStrategy.POPULAR:
        return RecommendationReason(ReasonType.TRENDING, "Popular with students across campus", 60)
    if strategy is ColdStartStrategy.RANDOM:
        return RecommendationReason(ReasonType.DIVERSITY, "Something new to discover", 30)
    return RecommendationReason(ReasonType.DIVERSITY, "Picked to help you explore different interests", 50)
