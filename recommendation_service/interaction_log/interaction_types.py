"""
Interaction Types for the Interaction Log

Defines all allowed interaction types as an enum for type safety and consistency.
"""

from enum import Enum


class InteractionType(Enum):
    """Allowed user interaction types."""

    # Passive signals
    VIEW = "view"
    CLICK = "click"

    # Explicit engagement
    BOOKMARK = "bookmark"
    REGISTER = "register"
    RATE = "rate"
    COMPLETE = "complete"

    # Negative signal
    SKIP = "skip"

    @classmethod
    def is_valid(cls, interaction_type: str) -> bool:
        """Check if an interaction type string is valid."""
        try:
            cls(interaction_type)
            return True
        except ValueError:
            return False

    @classmethod
    def get_allowed_types(cls) -> set[str]:
        """Get all allowed interaction type strings."""
        return {t.value for t in cls}

    @property
    def is_positive(self) -> bool:
        """Signals that count toward "similar to what you liked"."""
        return self in (InteractionType.CLICK, InteractionType.BOOKMARK, InteractionType.REGISTER)
