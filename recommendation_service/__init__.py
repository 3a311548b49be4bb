# Recommendation service package for campus events, clubs and activities

from .catalog import ItemCatalog, ItemSource, JsonItemSource, StaticItemSource
from .errors import (
    ColdStartCondition,
    ComputationTimeout,
    RecommendationError,
    SessionNotFound,
    StaleRequestSuperseded,
    ValidationError,
)
from .interaction_log import Interaction, InteractionLog, InteractionPayload, InteractionType
from .models import (
    ColdStartStrategy,
    Item,
    PreferenceCategory,
    RecommendationItem,
    RecommendationReason,
    RecommendationResult,
    RecommendationScore,
    RecommendationSettings,
    RecommendationType,
    ScoringWeights,
    UserPreferences,
)
from .service import RecommendationService, RecommendationStats
