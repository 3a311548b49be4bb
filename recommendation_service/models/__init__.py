"""
Models package for the recommendation service.

Dataclasses describe immutable records (items, interactions, scores);
Pydantic models describe validated, user-editable configuration
(preferences and settings).
"""

from .items import (
    InteractionStats,
    Item,
    ItemMetadata,
    ItemStatus,
    LocationMode,
    PreferenceCategory,
    RecommendationType,
    SkillLevel,
    parse_datetime,
)

from .preferences import (
    LocationPreferences,
    TimePreferences,
    UserPreferences,
)

from .settings import (
    ColdStartStrategy,
    RecommendationSettings,
    ScoringWeights,
)

from .scores import (
    ReasonType,
    RecommendationItem,
    RecommendationReason,
    RecommendationResult,
    RecommendationScore,
)
