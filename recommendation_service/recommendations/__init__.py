"""
Recommendation engine package for ranking campus events, clubs and activities.

Provides feature extraction, scoring and ranking primitives that can be
reused by the recommendation service, batch jobs or debug tooling.
"""

from .engine import (
    RecommendationContext,
    RecommendationEngine,
    build_default_engine,
)
from .features import FeatureExtractor, UserProfile
from .ranker import Ranker, category_cap
from .scorer import Scorer, compute_overall

__all__ = [
    "RecommendationContext",
    "RecommendationEngine",
    "FeatureExtractor",
    "UserProfile",
    "Ranker",
    "Scorer",
    "build_default_engine",
    "category_cap",
    "compute_overall",
]
