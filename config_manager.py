"""
Configuration management for the campus recommendation service.
Handles loading, validating, and providing access to deployment settings.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass


@dataclass
class RecommendationConfig:
    """Deployment defaults for recommendation settings."""
    max_recommendations: int
    refresh_interval_minutes: float
    enable_explanations: bool
    diversity_factor: float
    exploration_rate: float
    cold_start_strategy: str
    computation_timeout_seconds: float
    max_candidates: int
    dedup_window_seconds: float
    half_life_days: float
    reason_threshold: float


@dataclass
class ScoringConfig:
    """Scoring weight profile (must sum to 1.0)."""
    relevance: float
    personalization: float
    popularity: float
    timeliness: float


@dataclass
class AppConfig:
    """Process-level settings."""
    debug: bool
    auto_refresh_poll_seconds: float
    random_seed: Optional[int]


@dataclass
class PathsConfig:
    """Path configuration settings."""
    catalog_file: str
    interaction_dir: str


class ConfigManager:
    """Manages application configuration loading and access."""

    def __init__(self, config_file: str = "recommendation_config.json"):
        self.config_file = Path(config_file)
        self._config: Optional[Dict[str, Any]] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables."""
        # Start with default config
        self._config = self._get_default_config()

        # Load base config from file
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
                    self._merge_config(file_config)
            except (json.JSONDecodeError, FileNotFoundError):
                # Keep default config if file is invalid or not found
                pass

        # Override with environment variables
        self._override_with_env()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "recommendations": {
                "max_recommendations": 10,
                "refresh_interval_minutes": 30,
                "enable_explanations": True,
                "diversity_factor": 0.7,
                "exploration_rate": 0.3,
                "cold_start_strategy": "popular",
                "computation_timeout_seconds": 2.0,
                "max_candidates": 500,
                "dedup_window_seconds": 1.0,
                "half_life_days": 14.0,
                "reason_threshold": 15.0
            },
            "scoring": {
                "relevance": 0.35,
                "personalization": 0.30,
                "popularity": 0.20,
                "timeliness": 0.15
            },
            "app": {
                "debug": False,
                "auto_refresh_poll_seconds": 30.0,
                "random_seed": None
            },
            "paths": {
                "catalog_file": "data/catalog.json",
                "interaction_dir": "data/interactions"
            }
        }

    def _merge_config(self, file_config: Dict[str, Any]) -> None:
        """Merge file configuration with current config."""
        for section, values in file_config.items():
            if section in self._config:
                if isinstance(values, dict):
                    self._config[section].update(values)
                else:
                    self._config[section] = values
            else:
                self._config[section] = values

    def _override_with_env(self) -> None:
        """Override configuration with environment variables."""
        reco = self._config["recommendations"]

        if os.getenv("RECO_MAX_RECOMMENDATIONS"):
            reco["max_recommendations"] = int(os.getenv("RECO_MAX_RECOMMENDATIONS"))

        if os.getenv("RECO_REFRESH_INTERVAL"):
            reco["refresh_interval_minutes"] = float(os.getenv("RECO_REFRESH_INTERVAL"))

        if os.getenv("RECO_DIVERSITY_FACTOR"):
            reco["diversity_factor"] = float(os.getenv("RECO_DIVERSITY_FACTOR"))

        if os.getenv("RECO_EXPLORATION_RATE"):
            reco["exploration_rate"] = float(os.getenv("RECO_EXPLORATION_RATE"))

        if os.getenv("RECO_COLD_START_STRATEGY"):
            reco["cold_start_strategy"] = os.getenv("RECO_COLD_START_STRATEGY")

        if os.getenv("RECO_HALF_LIFE_DAYS"):
            reco["half_life_days"] = float(os.getenv("RECO_HALF_LIFE_DAYS"))

        if os.getenv("RECO_TIMEOUT_SECONDS"):
            reco["computation_timeout_seconds"] = float(os.getenv("RECO_TIMEOUT_SECONDS"))

        # Path settings
        if os.getenv("RECO_CATALOG_FILE"):
            self._config["paths"]["catalog_file"] = os.getenv("RECO_CATALOG_FILE")

        if os.getenv("RECO_INTERACTION_DIR"):
            self._config["paths"]["interaction_dir"] = os.getenv("RECO_INTERACTION_DIR")

        # App settings
        if os.getenv("APP_DEBUG"):
            self._config["app"]["debug"] = os.getenv("APP_DEBUG").lower() == "true"

        if os.getenv("RECO_RANDOM_SEED"):
            self._config["app"]["random_seed"] = int(os.getenv("RECO_RANDOM_SEED"))

    def get_recommendation_config(self) -> RecommendationConfig:
        """Get recommendation defaults."""
        reco = self._config["recommendations"]
        return RecommendationConfig(
            max_recommendations=reco["max_recommendations"],
            refresh_interval_minutes=reco["refresh_interval_minutes"],
            enable_explanations=reco["enable_explanations"],
            diversity_factor=reco["diversity_factor"],
            exploration_rate=reco["exploration_rate"],
            cold_start_strategy=reco["cold_start_strategy"],
            computation_timeout_seconds=reco["computation_timeout_seconds"],
            max_candidates=reco["max_candidates"],
            dedup_window_seconds=reco["dedup_window_seconds"],
            half_life_days=reco["half_life_days"],
            reason_threshold=reco["reason_threshold"]
        )

    def get_scoring_config(self) -> ScoringConfig:
        """Get scoring weight profile."""
        scoring = self._config["scoring"]
        return ScoringConfig(
            relevance=scoring["relevance"],
            personalization=scoring["personalization"],
            popularity=scoring["popularity"],
            timeliness=scoring["timeliness"]
        )

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        app_config = self._config["app"]
        return AppConfig(
            debug=app_config["debug"],
            auto_refresh_poll_seconds=app_config["auto_refresh_poll_seconds"],
            random_seed=app_config["random_seed"]
        )

    def get_paths_config(self) -> PathsConfig:
        """Get paths configuration."""
        paths_config = self._config["paths"]
        return PathsConfig(
            catalog_file=paths_config["catalog_file"],
            interaction_dir=paths_config["interaction_dir"]
        )

    def get_config(self) -> Dict[str, Any]:
        """Get raw configuration dictionary."""
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def save_config(self) -> None:
        """Save current configuration to file."""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)


# Global configuration instance
config_manager = ConfigManager()


def get_recommendation_config() -> RecommendationConfig:
    """Get recommendation defaults."""
    return config_manager.get_recommendation_config()


def get_scoring_config() -> ScoringConfig:
    """Get scoring weight profile."""
    return config_manager.get_scoring_config()


def get_app_config() -> AppConfig:
    """Get application configuration."""
    return config_manager.get_app_config()


def get_paths_config() -> PathsConfig:
    """Get paths configuration."""
    return config_manager.get_paths_config()


def reload_config() -> None:
    """Reload configuration."""
    config_manager.reload()


def save_config() -> None:
    """Save configuration."""
    config_manager.save_config()
