"""
Test cases for the configuration management system.
Tests config loading, environment overrides, and wiring into the service.
"""

import os
import json
from unittest.mock import patch
import pytest

from config_manager import (
    ConfigManager,
    RecommendationConfig,
    ScoringConfig,
    AppConfig,
    PathsConfig,
    get_recommendation_config,
    get_scoring_config,
    get_app_config,
    get_paths_config,
)
from recommendation_service import ColdStartStrategy, StaticItemSource, ValidationError
from recommendation_service.factory import create_recommendation_service, settings_from_config


class TestConfigManager:
    """Test the ConfigManager class functionality."""

    def test_defaults_when_file_missing(self, tmp_path):
        """Missing config file falls back to defaults."""
        with patch.dict(os.environ, {}, clear=True):
            manager = ConfigManager(str(tmp_path / "missing.json"))

        reco = manager.get_recommendation_config()
        assert isinstance(reco, RecommendationConfig)
        assert reco.max_recommendations == 10
        assert reco.refresh_interval_minutes == 30
        assert reco.diversity_factor == 0.7
        assert reco.exploration_rate == 0.3
        assert reco.cold_start_strategy == "popular"
        assert reco.half_life_days == 14.0

        scoring = manager.get_scoring_config()
        assert isinstance(scoring, ScoringConfig)
        assert (scoring.relevance, scoring.personalization, scoring.popularity, scoring.timeliness) == (
            0.35, 0.30, 0.20, 0.15
        )

    def test_load_config_from_file(self, tmp_path):
        """File values are merged over the defaults section by section."""
        config_file = tmp_path / "recommendation_config.json"
        config_file.write_text(json.dumps({
            "recommendations": {"max_recommendations": 5, "cold_start_strategy": "diverse"},
            "paths": {"catalog_file": "custom/catalog.json"},
        }))

        with patch.dict(os.environ, {}, clear=True):
            manager = ConfigManager(str(config_file))

        reco = manager.get_recommendation_config()
        assert reco.max_recommendations == 5
        assert reco.cold_start_strategy == "diverse"
        # Untouched keys keep their defaults
        assert reco.diversity_factor == 0.7
        assert manager.get_paths_config().catalog_file == "custom/catalog.json"
        assert manager.get_paths_config().interaction_dir == "data/interactions"

    def test_invalid_json_keeps_defaults(self, tmp_path):
        config_file = tmp_path / "broken.json"
        config_file.write_text("{not json")

        with patch.dict(os.environ, {}, clear=True):
            manager = ConfigManager(str(config_file))

        assert manager.get_recommendation_config().max_recommendations == 10

    def test_override_with_env_variables(self, tmp_path):
        """Environment variables override config file values."""
        env_vars = {
            "RECO_MAX_RECOMMENDATIONS": "7",
            "RECO_REFRESH_INTERVAL": "0",
            "RECO_DIVERSITY_FACTOR": "1.0",
            "RECO_EXPLORATION_RATE": "0",
            "RECO_COLD_START_STRATEGY": "category_based",
            "RECO_HALF_LIFE_DAYS": "7",
            "RECO_TIMEOUT_SECONDS": "0.5",
            "RECO_CATALOG_FILE": "/tmp/catalog.json",
            "RECO_INTERACTION_DIR": "/tmp/interactions",
            "RECO_RANDOM_SEED": "42",
            "APP_DEBUG": "true",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            manager = ConfigManager(str(tmp_path / "missing.json"))

        reco = manager.get_recommendation_config()
        assert reco.max_recommendations == 7
        assert reco.refresh_interval_minutes == 0
        assert reco.diversity_factor == 1.0
        assert reco.exploration_rate == 0
        assert reco.cold_start_strategy == "category_based"
        assert reco.half_life_days == 7
        assert reco.computation_timeout_seconds == 0.5
        assert manager.get_paths_config().catalog_file == "/tmp/catalog.json"
        assert manager.get_paths_config().interaction_dir == "/tmp/interactions"
        assert manager.get_app_config().debug is True
        assert manager.get_app_config().random_seed == 42

    def test_get_config_returns_copy(self, tmp_path):
        manager = ConfigManager(str(tmp_path / "missing.json"))
        config = manager.get_config()

        assert config == manager._config
        assert config is not manager._config

    def test_save_and_reload(self, tmp_path):
        """Saved configuration is picked up again on reload."""
        config_file = tmp_path / "recommendation_config.json"
        with patch.dict(os.environ, {}, clear=True):
            manager = ConfigManager(str(config_file))
            manager._config["recommendations"]["max_recommendations"] = 3
            manager.save_config()

            manager._config["recommendations"]["max_recommendations"] = 99
            manager.reload()

        assert json.loads(config_file.read_text())["recommendations"]["max_recommendations"] == 3
        assert manager.get_recommendation_config().max_recommendations == 3


class TestConfigDataClasses:
    """Test the configuration data classes."""

    def test_paths_config(self):
        config = PathsConfig(catalog_file="catalog.json", interaction_dir="interactions")

        assert config.catalog_file == "catalog.json"
        assert config.interaction_dir == "interactions"

    def test_app_config(self):
        config = AppConfig(debug=True, auto_refresh_poll_seconds=10.0, random_seed=None)

        assert config.debug is True
        assert config.auto_refresh_poll_seconds == 10.0
        assert config.random_seed is None


class TestGlobalFunctions:
    """Test the global configuration functions."""

    def test_global_accessors(self):
        assert isinstance(get_recommendation_config(), RecommendationConfig)
        assert isinstance(get_scoring_config(), ScoringConfig)
        assert isinstance(get_app_config(), AppConfig)
        assert isinstance(get_paths_config(), PathsConfig)


class TestServiceWiring:
    """Configuration flows into validated service settings."""

    def test_settings_from_config(self, tmp_path):
        with patch.dict(os.environ, {"RECO_COLD_START_STRATEGY": "random"}, clear=True):
            manager = ConfigManager(str(tmp_path / "missing.json"))

        settings = settings_from_config(manager)

        assert settings.cold_start_strategy is ColdStartStrategy.RANDOM
        assert settings.weights.relevance == 0.35

    def test_invalid_weights_rejected(self, tmp_path):
        config_file = tmp_path / "recommendation_config.json"
        config_file.write_text(json.dumps({"scoring": {"relevance": 0.9}}))
        with patch.dict(os.environ, {}, clear=True):
            manager = ConfigManager(str(config_file))

        with pytest.raises(ValidationError):
            settings_from_config(manager)

    def test_create_recommendation_service(self, tmp_path):
        with patch.dict(os.environ, {"RECO_RANDOM_SEED": "7"}, clear=True):
            manager = ConfigManager(str(tmp_path / "missing.json"))

        service = create_recommendation_service(
            config=manager,
            source=StaticItemSource([]),
            interaction_dir=tmp_path / "interactions",
        )

        assert len(service.catalog) == 0
        assert service.interaction_log.storage_dir == tmp_path / "interactions"
        assert service.default_settings.max_recommendations == 10

    def test_auto_refresh_uses_configured_poll_interval(self, tmp_path):
        config_file = tmp_path / "recommendation_config.json"
        config_file.write_text(json.dumps({"app": {"auto_refresh_poll_seconds": 5.0}}))
        with patch.dict(os.environ, {}, clear=True):
            manager = ConfigManager(str(config_file))

        with patch("recommendation_service.service.RecommendationService.start_auto_refresh") as mock_start:
            create_recommendation_service(
                config=manager,
                source=StaticItemSource([]),
                interaction_dir=tmp_path / "interactions",
                auto_refresh=True,
            )

        mock_start.assert_called_once_with(poll_seconds=5.0)

    def test_auto_refresh_off_by_default(self, tmp_path):
        with patch.dict(os.environ, {}, clear=True):
            manager = ConfigManager(str(tmp_path / "missing.json"))

        service = create_recommendation_service(
            config=manager,
            source=StaticItemSource([]),
            interaction_dir=tmp_path / "interactions",
        )

        assert service._timer_thread is None
