"""
User preference models.

This module contains Pydantic models for a user's declared interests and
constraints. Preferences are owned by the user and read-only to the engine.
"""

from typing import Any, List, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from ..errors import ValidationError
from .items import LocationMode, PreferenceCategory, SkillLevel


class TimePreferences(BaseModel):
    """Days and times of day the user is usually available."""
    model_config = ConfigDict(frozen=True)

    weekdays: bool = True
    weekends: bool = True
    mornings: bool = False
    afternoons: bool = True
    evenings: bool = True


class LocationPreferences(BaseModel):
    """Location modes the user is willing to attend."""
    model_config = ConfigDict(frozen=True)

    on_campus: bool = True
    off_campus: bool = False
    virtual: bool = True

    def accepts(self, mode: Optional[LocationMode]) -> bool:
        """Check whether an item's location mode matches one of the enabled flags."""
        if mode is None:
            return False
        return {
            LocationMode.ON_CAMPUS: self.on_campus,
            LocationMode.OFF_CAMPUS: self.off_campus,
            LocationMode.VIRTUAL: self.virtual,
        }[mode]


class UserPreferences(BaseModel):
    """A user's declared category affinities and constraints.

    ``group_size`` and ``budget`` are validated and carried for consumers
    (filters and display); scoring does not read them.
    """
    model_config = ConfigDict(frozen=True, use_enum_values=False)

    categories: List[PreferenceCategory] = Field(default_factory=list, description="Declared interest categories")
    time_preferences: TimePreferences = Field(default_factory=TimePreferences)
    location_preferences: LocationPreferences = Field(default_factory=LocationPreferences)
    skill_level: Optional[SkillLevel] = Field(default=None, description="Declared skill level, if any")
    group_size: str = Field(default="any", pattern="^(small|medium|large|any)$")
    budget: str = Field(default="any", pattern="^(free|low|medium|high|any)$")

    @classmethod
    def empty(cls) -> "UserPreferences":
        """Preferences of a user who has declared nothing yet."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.categories and self.skill_level is None

    def apply_updates(self, **changes: Any) -> "UserPreferences":
        """Return a validated copy with a partial update applied."""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValidationError(f"Unknown preferences: {sorted(unknown)}")
        merged = self.model_dump()
        for key, value in changes.items():
            merged[key] = value.model_dump() if isinstance(value, BaseModel) else value
        try:
            return type(self).model_validate(merged)
        except pydantic.ValidationError as exc:
            raise ValidationError(str(exc)) from exc
