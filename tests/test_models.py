"""
Tests for item, preference and settings models.
"""

from datetime import datetime, timezone

import pydantic
import pytest

from recommendation_service.errors import ValidationError
from recommendation_service.models import (
    ColdStartStrategy,
    Item,
    PreferenceCategory,
    RecommendationResult,
    RecommendationSettings,
    RecommendationType,
    ScoringWeights,
    UserPreferences,
)
from recommendation_service.models.items import (
    InteractionStats,
    ItemStatus,
    LocationMode,
    SkillLevel,
    parse_datetime,
)


class TestItem:
    """Test the Item model."""

    def test_from_dict_normalizes_fields(self):
        item = Item.from_dict({
            "id": "evt-1",
            "type": "event",
            "categories": ["technology", "career", "technology"],
            "title": "Hack Night",
            "tags": ["Python", " python ", "AI"],
            "metadata": {
                "location_mode": "on_campus",
                "difficulty": "beginner",
                "start_date": "2025-03-01T18:00:00Z",
                "status": "approved",
            },
            "interaction_data": {"views": 10, "clicks": 4, "rating": 4.5, "rating_count": 2},
        })

        assert item.type is RecommendationType.EVENT
        assert item.categories == (PreferenceCategory.TECHNOLOGY, PreferenceCategory.CAREER)
        assert item.primary_category is PreferenceCategory.TECHNOLOGY
        assert item.tags == ("python", "ai")
        assert item.metadata.location_mode is LocationMode.ON_CAMPUS
        assert item.metadata.difficulty is SkillLevel.BEGINNER
        assert item.metadata.start_date == datetime(2025, 3, 1, 18, 0, tzinfo=timezone.utc)
        assert item.interaction_data.clicks == 4
        assert not item.is_cancelled()

    def test_single_category_field_accepted(self):
        item = Item.from_dict({"id": "club-1", "type": "club", "category": "sports"})

        assert item.categories == (PreferenceCategory.SPORTS,)

    def test_to_dict_round_trip(self):
        item = Item.from_dict({
            "id": "act-1",
            "type": "activity",
            "categories": ["outdoor"],
            "metadata": {"status": "cancelled", "end_date": "2025-03-02T00:00:00+00:00"},
        })

        assert Item.from_dict(item.to_dict()) == item
        assert item.is_cancelled()
        assert item.metadata.status is ItemStatus.CANCELLED

    @pytest.mark.parametrize("record", [
        {"id": "", "type": "event", "categories": ["arts"]},
        {"id": "x", "type": "party", "categories": ["arts"]},
        {"id": "x", "type": "event", "categories": []},
        {"id": "x", "type": "event", "categories": ["cooking"]},
        {"id": "x", "type": "event", "categories": ["arts"], "metadata": {"difficulty": "godlike"}},
    ])
    def test_invalid_records_rejected(self, record):
        with pytest.raises(ValidationError):
            Item.from_dict(record)

    def test_interaction_stats_running_rating(self):
        stats = InteractionStats(rating=4.0, rating_count=2).with_rating(1.0)

        assert stats.rating_count == 3
        assert stats.rating == pytest.approx(3.0)

    def test_parse_datetime(self):
        assert parse_datetime(None) is None
        assert parse_datetime("2025-01-01T00:00:00") == datetime(2025, 1, 1, tzinfo=timezone.utc)
        with pytest.raises(ValidationError):
            parse_datetime("yesterday")

    def test_skill_levels_are_ordered(self):
        assert SkillLevel.BEGINNER < SkillLevel.INTERMEDIATE < SkillLevel.EXPERT


class TestUserPreferences:
    """Test preference models and partial updates."""

    def test_defaults(self):
        prefs = UserPreferences.empty()

        assert prefs.is_empty
        assert prefs.time_preferences.weekdays
        assert not prefs.time_preferences.mornings
        assert prefs.location_preferences.accepts(LocationMode.ON_CAMPUS)
        assert not prefs.location_preferences.accepts(LocationMode.OFF_CAMPUS)
        assert not prefs.location_preferences.accepts(None)
        assert prefs.group_size == "any"

    def test_apply_updates(self):
        prefs = UserPreferences.empty().apply_updates(categories=["arts", "sports"], skill_level="advanced")

        assert prefs.categories == [PreferenceCategory.ARTS, PreferenceCategory.SPORTS]
        assert prefs.skill_level is SkillLevel.ADVANCED
        assert not prefs.is_empty

    @pytest.mark.parametrize("changes", [
        {"categories": ["cooking"]},
        {"budget": "unlimited"},
        {"group_size": "huge"},
        {"favourite_colour": "blue"},
    ])
    def test_invalid_updates_rejected(self, changes):
        prefs = UserPreferences.empty()

        with pytest.raises(ValidationError):
            prefs.apply_updates(**changes)


class TestRecommendationSettings:
    """Test settings validation."""

    def test_defaults(self):
        settings = RecommendationSettings()

        assert settings.max_recommendations == 10
        assert settings.refresh_interval_minutes == 30
        assert settings.enable_explanations
        assert settings.diversity_factor == 0.7
        assert settings.exploration_rate == 0.3
        assert settings.cold_start_strategy is ColdStartStrategy.POPULAR
        assert settings.weights.as_dict() == {
            "relevance": 0.35, "personalization": 0.30, "popularity": 0.20, "timeliness": 0.15
        }

    @pytest.mark.parametrize("changes", [
        {"max_recommendations": 0},
        {"diversity_factor": 1.5},
        {"exploration_rate": -0.1},
        {"refresh_interval_minutes": -1},
        {"cold_start_strategy": "trending"},
        {"weights": {"relevance": 0.5, "personalization": 0.5, "popularity": 0.5, "timeliness": 0.5}},
        {"not_a_setting": 1},
    ])
    def test_invalid_updates_rejected(self, changes):
        settings = RecommendationSettings()

        with pytest.raises(ValidationError):
            settings.apply_updates(**changes)

    def test_apply_updates_returns_new_settings(self):
        settings = RecommendationSettings()
        weights = ScoringWeights(relevance=0.25, personalization=0.25, popularity=0.25, timeliness=0.25)

        updated = settings.apply_updates(max_recommendations=3, weights=weights, cold_start_strategy="diverse")

        assert updated.max_recommendations == 3
        assert updated.weights == weights
        assert updated.cold_start_strategy is ColdStartStrategy.DIVERSE
        assert settings.max_recommendations == 10

    def test_weights_must_sum_to_one(self):
        with pytest.raises(pydantic.ValidationError):
            ScoringWeights(relevance=0.9)


def test_empty_result_carries_reason():
    result = RecommendationResult.empty("alice", "Nothing to show")

    assert result.is_empty
    assert len(result) == 0
    assert result.to_dict()["reason"] == "Nothing to show"
