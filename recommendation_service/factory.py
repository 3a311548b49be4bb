"""
Factory for wiring the recommendation service from configuration.
"""
from pathlib import Path
from typing import Optional

from config_manager import ConfigManager, config_manager as default_config_manager

from .catalog import ItemCatalog, ItemSource, JsonItemSource
from .interaction_log import InteractionLog
from .models.settings import RecommendationSettings
from .service import RecommendationService


def settings_from_config(config: ConfigManager) -> RecommendationSettings:
    """Build validated default settings from the configuration sections."""
    reco = config.get_recommendation_config()
    scoring = config.get_scoring_config()
    return RecommendationSettings.create(
        max_recommendations=reco.max_recommendations,
        refresh_interval_minutes=reco.refresh_interval_minutes,
        enable_explanations=reco.enable_explanations,
        diversity_factor=reco.diversity_factor,
        exploration_rate=reco.exploration_rate,
        cold_start_strategy=reco.cold_start_strategy,
        computation_timeout_seconds=reco.computation_timeout_seconds,
        max_candidates=reco.max_candidates,
        dedup_window_seconds=reco.dedup_window_seconds,
        half_life_days=reco.half_life_days,
        reason_threshold=reco.reason_threshold,
        weights={
            "relevance": scoring.relevance,
            "personalization": scoring.personalization,
            "popularity": scoring.popularity,
            "timeliness": scoring.timeliness,
        },
    )


def create_recommendation_service(
    config: Optional[ConfigManager] = None,
    source: Optional[ItemSource] = None,
    interaction_dir: Optional[Path] = None,
    auto_refresh: bool = False,
) -> RecommendationService:
    """Create the recommendation service with its catalog and interaction log.

    Args:
        config: Configuration to read; defaults to the global config manager
        source: Item source; defaults to the JSON catalog file from the paths config
        interaction_dir: Interaction storage directory; defaults to the paths config
        auto_refresh: Start the background refresh thread, polling at the
            configured auto_refresh_poll_seconds

    Returns:
        Ready-to-use RecommendationService
    """
    config = config or default_config_manager
    paths = config.get_paths_config()
    app = config.get_app_config()

    catalog = ItemCatalog(source or JsonItemSource(Path(paths.catalog_file)))
    interaction_log = InteractionLog(
        is_known_item=catalog.__contains__,
        storage_dir=interaction_dir or Path(paths.interaction_dir),
    )
    service = RecommendationService(
        catalog=catalog,
        interaction_log=interaction_log,
        default_settings=settings_from_config(config),
        seed=app.random_seed,
    )
    if auto_refresh:
        service.start_auto_refresh(poll_seconds=app.auto_refresh_poll_seconds)
    return service
